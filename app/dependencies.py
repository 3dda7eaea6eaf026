"""Request-scoped dependencies: caller identity, ownership checks and pagination."""

import logging
from dataclasses import dataclass

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import Forbidden, InvalidOrExpiredToken
from app.services.sessions import Identity, get_session_token_service

logger = logging.getLogger("roster")

bearer_scheme = HTTPBearer(auto_error=False)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 10


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    """Raw token from `Authorization: Bearer <token>`, or None."""
    return credentials.credentials if credentials else None


def resolve_identity(
    token: str | None = Depends(get_bearer_token),
    db: Session = Depends(get_db),
) -> Identity | None:
    """Resolve the caller from the bearer token.

    Registered on the application so it runs for every routed request, which
    also refreshes the token's last use. A missing, unknown or expired token
    yields None and leaves the decision to the handler.
    """
    if not token:
        return None
    try:
        return get_session_token_service().verify(db, token)
    except InvalidOrExpiredToken:
        logger.debug("Ignoring invalid or expired bearer token")
        return None


def require_owner(identity: Identity | None, user_id: int, message: str) -> Identity:
    """Only the account owner may act on their own record."""
    if identity is None or identity.id != user_id:
        raise Forbidden(message)
    return identity


@dataclass(frozen=True)
class Pagination:
    page: int
    size: int


def _as_int(value: str | None) -> int | None:
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def get_pagination(page: str | None = None, size: str | None = None) -> Pagination:
    """Lenient page/size parsing: bad values fall back to defaults instead of failing."""
    page_number = _as_int(page) or 0
    if page_number < 0:
        page_number = 0
    page_size = _as_int(size) or 0
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        page_size = DEFAULT_PAGE_SIZE
    return Pagination(page=page_number, size=page_size)

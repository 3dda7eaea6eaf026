"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_bearer_token
from app.rate_limit import limiter
from app.schemas.auth import LoginRequest, TokenResponse
from app.schemas.common import MessageResponse
from app.services.auth import get_auth_service

router = APIRouter(prefix="/api/1.0", tags=["Authentication"])


@router.post("/auth", response_model=TokenResponse)
@limiter.limit("10/minute")
def authenticate(request: Request, body: LoginRequest | None = None, db: Session = Depends(get_db)) -> TokenResponse:
    """Exchange e-mail and password for a bearer session token."""
    body = body or LoginRequest()
    result = get_auth_service().authenticate(db, body.email, body.password)
    return TokenResponse(id=result.id, username=result.username, token=result.token)


@router.post("/logout", response_model=MessageResponse)
def logout(token: str | None = Depends(get_bearer_token), db: Session = Depends(get_db)) -> MessageResponse:
    """Revoke the presented session token. Succeeds with or without one."""
    get_auth_service().logout(db, token)
    return MessageResponse(message="Logout success")

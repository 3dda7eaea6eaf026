"""Authentication service."""

import logging
from dataclasses import dataclass
from typing import Any

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.orm import Session

from app.errors import AccountInactive, AuthenticationFailed
from app.models.user import User
from app.services.security import verify_password
from app.services.sessions import SessionTokenService, get_session_token_service

logger = logging.getLogger("roster")


@dataclass
class AuthResult:
    """Minimal identity returned after a successful login."""

    id: int
    username: str
    token: str


class AuthService:
    """Checks credentials and mints session tokens."""

    def __init__(self, sessions: SessionTokenService | None = None) -> None:
        self.sessions = sessions or get_session_token_service()

    def authenticate(self, db: Session, email: Any, password: Any) -> AuthResult:
        """Authenticate a user by email and password.

        Unknown e-mail, wrong password and a malformed body all raise the same
        AuthenticationFailed. AccountInactive is only raised once the
        credentials have matched.
        """
        if not isinstance(email, str) or not isinstance(password, str):
            raise AuthenticationFailed()
        if not email or not password or not self._is_valid_email(email):
            raise AuthenticationFailed()

        user = db.query(User).filter(User.email == email).first()
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationFailed()

        if user.inactive:
            raise AccountInactive()

        token = self.sessions.issue(db, user.id)
        logger.info("User %s authenticated", user.id)
        return AuthResult(id=user.id, username=user.username, token=token)

    def logout(self, db: Session, token: str | None) -> None:
        """Revoke the presented token, if any. Never fails."""
        if token:
            self.sessions.revoke(db, token)

    @staticmethod
    def _is_valid_email(email: str) -> bool:
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError:
            return False
        return True


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service

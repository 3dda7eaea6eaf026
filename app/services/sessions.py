"""Bearer session tokens: issuance, sliding-expiry verification and revocation."""

import logging
from dataclasses import dataclass
from datetime import timedelta

from fastapi import status
from sqlalchemy.orm import Session

from app.config import get_settings
from app.errors import InvalidOrExpiredToken
from app.models.session_token import SessionToken
from app.services.clock import Clock, SystemClock
from app.services.security import generate_token

logger = logging.getLogger("roster")


@dataclass(frozen=True)
class Identity:
    """Authenticated caller resolved from a session token."""

    id: int


class SessionTokenService:
    """Persists session tokens and enforces the idle timeout.

    A token is usable while ``now - last_used_at < ttl``. Every successful
    verification moves ``last_used_at`` forward, so the window slides with use.
    Expired rows stay in the table until ``delete_expired`` sweeps them.
    """

    def __init__(self, clock: Clock | None = None, ttl: timedelta | None = None) -> None:
        self.clock = clock or SystemClock()
        self.ttl = ttl or timedelta(days=get_settings().SESSION_TOKEN_TTL_DAYS)

    def issue(self, db: Session, user_id: int) -> str:
        """Mint and persist a new token for the user."""
        token = generate_token()
        db.add(SessionToken(token=token, user_id=user_id, last_used_at=self.clock.now()))
        db.commit()
        logger.info("Session issued for user %s", user_id)
        return token

    def is_expired(self, session_token: SessionToken) -> bool:
        return self.clock.now() - session_token.last_used_at >= self.ttl

    def verify(self, db: Session, token: str) -> Identity:
        """Resolve a token to its owner and refresh last_used_at.

        Raises InvalidOrExpiredToken if the token is unknown or idle for ttl or
        longer, or if it was revoked after the lookup but before the bump.
        """
        session_token = db.get(SessionToken, token) if token else None
        if session_token is None or self.is_expired(session_token):
            raise InvalidOrExpiredToken(status_code=status.HTTP_403_FORBIDDEN)
        user_id = session_token.user_id

        bumped = (
            db.query(SessionToken)
            .filter(SessionToken.token == token)
            .update({SessionToken.last_used_at: self.clock.now()}, synchronize_session=False)
        )
        db.commit()
        if not bumped:
            raise InvalidOrExpiredToken(status_code=status.HTTP_403_FORBIDDEN)
        return Identity(id=user_id)

    def revoke(self, db: Session, token: str) -> None:
        """Delete one token. Unknown tokens are ignored."""
        deleted = db.query(SessionToken).filter(SessionToken.token == token).delete(synchronize_session=False)
        db.commit()
        if deleted:
            logger.info("Session revoked")

    def revoke_all_for_user(self, db: Session, user_id: int, commit: bool = True) -> int:
        """Delete every token owned by the user. Pass commit=False to join the caller's transaction."""
        deleted = (
            db.query(SessionToken).filter(SessionToken.user_id == user_id).delete(synchronize_session=False)
        )
        if commit:
            db.commit()
        logger.info("Revoked %d session(s) for user %s", deleted, user_id)
        return deleted

    def delete_expired(self, db: Session) -> int:
        """Delete every token idle for ttl or longer. Does not commit."""
        cutoff = self.clock.now() - self.ttl
        return (
            db.query(SessionToken).filter(SessionToken.last_used_at <= cutoff).delete(synchronize_session=False)
        )


_session_token_service: SessionTokenService | None = None


def get_session_token_service() -> SessionTokenService:
    """Get singleton session token service instance."""
    global _session_token_service
    if _session_token_service is None:
        _session_token_service = SessionTokenService()
    return _session_token_service

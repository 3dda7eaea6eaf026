"""Account lifecycle: registration, activation, listing, profile changes and password reset."""

import logging
import math

from fastapi import status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.database import transaction
from app.errors import EmailDeliveryFailed, InvalidOrExpiredToken, NotFound, ValidationFailed
from app.models.user import User
from app.schemas.user import UserPage, UserResponse
from app.services.email import get_mailer
from app.services.images import get_image_store
from app.services.security import generate_token, hash_password
from app.services.sessions import SessionTokenService, get_session_token_service

logger = logging.getLogger("roster")


class UserService:
    """Handles user records. Mailer and image store are looked up at call time."""

    def __init__(self, sessions: SessionTokenService | None = None) -> None:
        self.sessions = sessions or get_session_token_service()

    # --- lookups ---

    def find_by_email(self, db: Session, email: str) -> User | None:
        return db.query(User).filter(User.email == email).first()

    def find_by_username(self, db: Session, username: str) -> User | None:
        return db.query(User).filter(User.username == username).first()

    def find_by_id(self, db: Session, user_id: int) -> User | None:
        return db.get(User, user_id)

    def find_active_by_id(self, db: Session, user_id: int) -> User | None:
        return db.query(User).filter(User.id == user_id, User.inactive.is_(False)).first()

    def find_by_activation_token(self, db: Session, token: str) -> User | None:
        return db.query(User).filter(User.activation_token == token).first()

    def find_by_password_reset_token(self, db: Session, token: str | None) -> User | None:
        if not token:
            return None
        return db.query(User).filter(User.password_reset_token == token).first()

    # --- registration and activation ---

    def register(self, db: Session, username: str, email: str, password: str) -> User:
        """Create an inactive user and send the activation e-mail.

        The insert and the e-mail succeed or fail together: if the mail
        cannot be delivered the user row is rolled back.
        """
        in_use = {}
        if self.find_by_username(db, username):
            in_use["username"] = "Username in use"
        if self.find_by_email(db, email):
            in_use["email"] = "Email in use"
        if in_use:
            raise ValidationFailed(in_use)

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            inactive=True,
            activation_token=generate_token(),
        )
        with transaction(db):
            db.add(user)
            db.flush()
            if not get_mailer().send_account_activation(user):
                raise EmailDeliveryFailed()
        db.refresh(user)
        logger.info("User %s registered", user.id)
        return user

    def activate(self, db: Session, token: str) -> User:
        """Redeem an activation token. Each token works once."""
        user = self.find_by_activation_token(db, token)
        if not user:
            raise InvalidOrExpiredToken(
                "This account is either active or the token is invalid",
                status_code=status.HTTP_400_BAD_REQUEST,
            )
        user.inactive = False
        user.activation_token = None
        db.commit()
        logger.info("User %s activated", user.id)
        return user

    # --- reads ---

    def list_users(self, db: Session, page: int, size: int, exclude_id: int | None = None) -> UserPage:
        """Page through active users ordered by id, leaving out the caller."""
        query = db.query(User).filter(User.inactive.is_(False))
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)

        total = query.with_entities(func.count(User.id)).scalar() or 0
        users = query.order_by(User.id).offset(page * size).limit(size).all()
        return UserPage(
            content=[UserResponse.model_validate(u) for u in users],
            page=page,
            size=size,
            totalPages=math.ceil(total / size),
        )

    def get_user(self, db: Session, user_id: int) -> User:
        user = self.find_active_by_id(db, user_id)
        if not user:
            raise NotFound("User not found")
        return user

    # --- profile changes ---

    def update_user(self, db: Session, user_id: int, username: str, image: bytes | None = None) -> User:
        """Rename the user and optionally replace the profile image."""
        user = self.find_by_id(db, user_id)
        if not user:
            raise NotFound("User not found")
        taken = self.find_by_username(db, username)
        if taken is not None and taken.id != user.id:
            raise ValidationFailed({"username": "Username in use"})

        store = get_image_store()
        old_image = user.image
        new_image = store.save(image) if image is not None else None
        try:
            with transaction(db):
                user.username = username
                if new_image:
                    user.image = new_image
        except Exception:
            if new_image:
                store.delete(new_image)
            raise

        if new_image and old_image:
            store.delete(old_image)
        db.refresh(user)
        return user

    def delete_user(self, db: Session, user_id: int) -> None:
        """Delete the account and every session it owns in one transaction."""
        user = self.find_by_id(db, user_id)
        if not user:
            raise NotFound("User not found")

        image = user.image
        with transaction(db):
            self.sessions.revoke_all_for_user(db, user_id, commit=False)
            db.delete(user)
        if image:
            get_image_store().delete(image)
        logger.info("User %s deleted", user_id)

    # --- password reset ---

    def request_password_reset(self, db: Session, email: str) -> None:
        """Store a fresh reset token and e-mail it. Rolled back if the mail fails."""
        user = self.find_by_email(db, email)
        if not user:
            raise NotFound("E-mail not found")

        with transaction(db):
            user.password_reset_token = generate_token()
            db.flush()
            if not get_mailer().send_password_reset(user):
                raise EmailDeliveryFailed()
        logger.info("Password reset requested for user %s", user.id)

    def require_password_reset_user(self, db: Session, token: str | None) -> User:
        """Resolve the owner of a reset token or refuse with 403."""
        user = self.find_by_password_reset_token(db, token)
        if not user:
            raise InvalidOrExpiredToken(
                "You are not authorized to update your password, Please follow the password reset step again",
                status_code=status.HTTP_403_FORBIDDEN,
            )
        return user

    def update_password(self, db: Session, user: User, password: str) -> None:
        """Set a new password from a reset token.

        Clears both single-use tokens, activates the account and signs the
        user out everywhere, all in a single transaction.
        """
        with transaction(db):
            user.password_hash = hash_password(password)
            user.password_reset_token = None
            user.activation_token = None
            user.inactive = False
            self.sessions.revoke_all_for_user(db, user.id, commit=False)
        logger.info("Password updated for user %s", user.id)


_user_service: UserService | None = None


def get_user_service() -> UserService:
    """Get singleton user service instance."""
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service

"""User account API endpoints."""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import Pagination, get_pagination, require_owner, resolve_identity
from app.rate_limit import limiter
from app.schemas.common import MessageResponse, parse_body
from app.schemas.user import (
    PasswordResetRequest,
    PasswordUpdateRequest,
    RegisterRequest,
    UserPage,
    UserResponse,
    UserUpdateRequest,
)
from app.services.sessions import Identity
from app.services.users import get_user_service

router = APIRouter(prefix="/api/1.0", tags=["Users"])


@router.post("/users", response_model=MessageResponse)
@limiter.limit("5/minute")
def register(request: Request, body: RegisterRequest, db: Session = Depends(get_db)) -> MessageResponse:
    """Create an inactive account and e-mail its activation token."""
    get_user_service().register(db, body.username, body.email, body.password)  # type: ignore[arg-type]
    return MessageResponse(message="User created")


@router.post("/users/token/{token}", response_model=MessageResponse)
def activate(token: str, db: Session = Depends(get_db)) -> MessageResponse:
    """Redeem an activation token."""
    get_user_service().activate(db, token)
    return MessageResponse(message="Account is activated")


@router.get("/users", response_model=UserPage)
def list_users(
    pagination: Pagination = Depends(get_pagination),
    identity: Identity | None = Depends(resolve_identity),
    db: Session = Depends(get_db),
) -> UserPage:
    """Page through active users. An authenticated caller does not see themselves."""
    return get_user_service().list_users(
        db, pagination.page, pagination.size, exclude_id=identity.id if identity else None
    )


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db)) -> UserResponse:
    """Get an active user by id."""
    user = get_user_service().get_user(db, user_id)
    return UserResponse.model_validate(user)


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    body: dict[str, Any] | None = Body(default=None),
    identity: Identity | None = Depends(resolve_identity),
    db: Session = Depends(get_db),
) -> UserResponse:
    """Update the caller's own username and profile image."""
    require_owner(identity, user_id, "Unauthorized User Update")
    update = parse_body(UserUpdateRequest, body)
    user = get_user_service().update_user(db, user_id, update.username, update.image)  # type: ignore[arg-type]
    return UserResponse.model_validate(user)


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    identity: Identity | None = Depends(resolve_identity),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Delete the caller's own account and sign it out everywhere."""
    require_owner(identity, user_id, "Unauthorized User Delete")
    get_user_service().delete_user(db, user_id)
    return MessageResponse(message="User deleted")


@router.post("/user/password", response_model=MessageResponse)
@limiter.limit("3/minute")
def request_password_reset(
    request: Request, body: PasswordResetRequest, db: Session = Depends(get_db)
) -> MessageResponse:
    """E-mail a single-use password reset token."""
    get_user_service().request_password_reset(db, body.email)  # type: ignore[arg-type]
    return MessageResponse(message="Check your e-mail for resetting your password")


@router.put("/user/password", response_model=MessageResponse)
def update_password(body: dict[str, Any] | None = Body(default=None), db: Session = Depends(get_db)) -> MessageResponse:
    """Set a new password with a reset token. The token is checked before the password."""
    service = get_user_service()
    reset_token = body.get("passwordResetToken") if body else None
    user = service.require_password_reset_user(db, reset_token if isinstance(reset_token, str) else None)
    update = parse_body(PasswordUpdateRequest, body)
    service.update_password(db, user, update.password)  # type: ignore[arg-type]
    return MessageResponse(message="Password updated")

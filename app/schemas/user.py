"""Pydantic schemas for user endpoints."""

import base64
import binascii
import re

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

from app.services.images import get_image_store
from app.services.security import MAX_PASSWORD_BYTES, is_password_too_long

PASSWORD_PATTERN = re.compile(r"^(?=.*\d)(?=.*[a-z])(?=.*[A-Z]).*$")


def check_username(value: str | None) -> str:
    if value is None or value == "":
        raise PydanticCustomError("username", "Username cannot be null")
    if not 4 <= len(value) <= 32:
        raise PydanticCustomError("username", "Username must have min 4 and max 32 characters")
    return value


def check_email(value: str | None, null_message: str = "Email cannot be null") -> str:
    if value is None or value == "":
        raise PydanticCustomError("email", null_message)
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise PydanticCustomError("email", "Email is not valid") from None
    return value


def check_password(value: str | None) -> str:
    if value is None or value == "":
        raise PydanticCustomError("password", "Password cannot be null")
    if len(value) < 6:
        raise PydanticCustomError("password", "Password must be at least 6 characters")
    if is_password_too_long(value):
        raise PydanticCustomError(
            "password", "Password cannot be longer than {max_bytes} bytes", {"max_bytes": MAX_PASSWORD_BYTES}
        )
    if not PASSWORD_PATTERN.match(value):
        raise PydanticCustomError("password", "Password must have at least 1 lowercase, 1 uppercase and 1 number")
    return value


class RegisterRequest(BaseModel):
    username: str | None = Field(default=None, validate_default=True)
    email: str | None = Field(default=None, validate_default=True)
    password: str | None = Field(default=None, validate_default=True)

    @field_validator("username")
    @classmethod
    def username_rules(cls, value: str | None) -> str:
        return check_username(value)

    @field_validator("email")
    @classmethod
    def email_rules(cls, value: str | None) -> str:
        return check_email(value)

    @field_validator("password")
    @classmethod
    def password_rules(cls, value: str | None) -> str:
        return check_password(value)


class UserUpdateRequest(BaseModel):
    """Profile update. `image` arrives base64-encoded and is decoded during validation."""

    username: str | None = Field(default=None, validate_default=True)
    image: bytes | None = None

    @field_validator("username")
    @classmethod
    def username_rules(cls, value: str | None) -> str:
        return check_username(value)

    @field_validator("image", mode="before")
    @classmethod
    def decode_image(cls, value: object) -> bytes | None:
        if value is None or value == "":
            return None
        if not isinstance(value, str):
            raise PydanticCustomError("image", "Only JPEG or PNG files are allowed")
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            raise PydanticCustomError("image", "Only JPEG or PNG files are allowed") from None

    @field_validator("image")
    @classmethod
    def check_image(cls, value: bytes | None) -> bytes | None:
        if value is None:
            return None
        store = get_image_store()
        if store.is_too_large(value):
            raise PydanticCustomError(
                "image", "Your profile image cannot be bigger than {max_mb}MB", {"max_mb": store.max_size_mb}
            )
        if not store.is_supported_type(value):
            raise PydanticCustomError("image", "Only JPEG or PNG files are allowed")
        return value


class PasswordResetRequest(BaseModel):
    email: str | None = Field(default=None, validate_default=True)

    @field_validator("email")
    @classmethod
    def email_rules(cls, value: str | None) -> str:
        return check_email(value, null_message="Email is not valid")


class PasswordUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    password: str | None = Field(default=None, validate_default=True)
    password_reset_token: str | None = Field(default=None, alias="passwordResetToken")

    @field_validator("password")
    @classmethod
    def password_rules(cls, value: str | None) -> str:
        return check_password(value)


class UserResponse(BaseModel):
    """Public view of an account."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    image: str | None = None


class UserPage(BaseModel):
    content: list[UserResponse]
    page: int
    size: int
    totalPages: int

"""Pydantic schemas for authentication endpoints."""

from typing import Any

from pydantic import BaseModel


class LoginRequest(BaseModel):
    # Left untyped: a missing or malformed field is an authentication failure, not a 400
    email: Any = None
    password: Any = None


class TokenResponse(BaseModel):
    id: int
    username: str
    token: str

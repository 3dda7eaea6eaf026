"""Password hashing and random token generation."""

import secrets

import bcrypt

MIN_TOKEN_LENGTH = 32
# bcrypt only looks at the first 72 bytes and newer releases refuse anything longer
MAX_PASSWORD_BYTES = 72


def generate_token(length: int = MIN_TOKEN_LENGTH) -> str:
    """Return an unguessable URL-safe string of exactly `length` characters (at least 32)."""
    length = max(length, MIN_TOKEN_LENGTH)
    # token_urlsafe(n) yields ~1.3 chars per byte, so n=length always covers the slice
    return secrets.token_urlsafe(length)[:length]


def is_password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Compare a plaintext password against a stored bcrypt hash.

    A password bcrypt cannot take is never a match.
    """
    if is_password_too_long(password):
        return False
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))

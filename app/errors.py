"""Domain errors raised by services and mapped to HTTP responses in main.py."""

from fastapi import status


class ApiError(Exception):
    """Base class for errors that surface to the client as a structured body."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Bad request"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(ApiError):
    """Malformed input. Carries a field -> message map."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation Failure"

    def __init__(self, validation_errors: dict[str, str], message: str | None = None) -> None:
        super().__init__(message)
        self.validation_errors = validation_errors


class AuthenticationFailed(ApiError):
    """Unknown e-mail or wrong password. Both cases look the same to the caller."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Incorrect credential"


class Forbidden(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class AccountInactive(Forbidden):
    """Credentials matched but the account has not been activated."""

    default_message = "Account is inactive"


class InvalidOrExpiredToken(ApiError):
    """Session, activation or reset token is unknown, consumed or expired."""

    default_message = "Invalid or expired token"

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class EmailDeliveryFailed(ApiError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "E-mail Failure"

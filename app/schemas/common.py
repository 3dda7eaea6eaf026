"""Helpers shared by request schemas."""

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from app.errors import ValidationFailed

ModelT = TypeVar("ModelT", bound=BaseModel)


class MessageResponse(BaseModel):
    message: str


def validation_messages(errors: list[dict[str, Any]]) -> dict[str, str]:
    """Collapse pydantic error entries into {field: first message}."""
    messages: dict[str, str] = {}
    for error in errors:
        loc = error.get("loc") or ("body",)
        field = str(loc[-1])
        messages.setdefault(field, error["msg"])
    return messages


def parse_body(model: type[ModelT], data: Any) -> ModelT:
    """Validate a raw JSON body against `model`, raising ValidationFailed with per-field messages.

    Used where a handler has to run its own checks (ownership, reset token)
    before the body is validated.
    """
    try:
        return model.model_validate(data if data is not None else {})
    except ValidationError as exc:
        raise ValidationFailed(validation_messages(exc.errors())) from None

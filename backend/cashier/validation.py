from __future__ import annotations

from .errors import ValidationError

MAX_ACTOR_LENGTH = 64
MAX_REASON_LENGTH = 255


def require_text(value, field: str, *, max_length: int | None = None) -> str:
    """Non-empty, stripped string or ValidationError."""
    if value is None or not isinstance(value, (str, int)) or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"{field} is required")
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def optional_text(value, field: str, *, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    text = value.strip()
    if not text:
        return None
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def require_actor(value, field: str = "changed_by") -> str:
    """The already-authenticated user the caller acts for."""
    return require_text(value, field, max_length=MAX_ACTOR_LENGTH)


def optional_version(value, field: str = "version") -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().strip('"').isdigit():
        return int(value.strip().strip('"'))
    raise ValidationError(f"{field} must be an integer")

from __future__ import annotations

from enum import Enum
from typing import Iterable, Type, TypeVar

from ..core.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def require_non_empty(value: str, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_roll_numbers(values: Iterable[str] | None) -> list[str]:
    if not isinstance(values, (list, tuple)):
        raise ValidationError("rollNumbers must be a list")
    cleaned = [str(v).strip() for v in values if v is not None and str(v).strip()]
    if not cleaned:
        raise ValidationError("rollNumbers must not be empty")
    return cleaned


def require_enum(enum_cls: Type[E], value: str, field_name: str) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {field_name} {value!r} (allowed: {allowed})")

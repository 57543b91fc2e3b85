from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional

from ..core.exceptions import ValidationError

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


def _label(field: str) -> str:
    return field.replace("_", " ")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(
            f"The {_label(field_name)} field is required.",
            errors={field_name: [f"The {_label(field_name)} field is required."]},
        )
    return value.strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        msg = f"The {_label(field_name)} must be at least {min_len} characters."
        raise ValidationError(msg, errors={field_name: [msg]})
    return value


class FieldErrors:
    """Collects per-field messages and raises them as one ValidationError."""

    def __init__(self) -> None:
        self._errors: dict[str, list[str]] = {}

    def add(self, field: str, message: str) -> None:
        self._errors.setdefault(field, []).append(message)

    def has(self, field: str) -> bool:
        return field in self._errors

    def __bool__(self) -> bool:
        return bool(self._errors)

    def raise_if_any(self, message: str = "The given data was invalid.") -> None:
        if self._errors:
            raise ValidationError(message, errors=self._errors)


def _is_blank(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


def read_str(
    payload: Mapping[str, Any],
    field: str,
    errors: FieldErrors,
    *,
    required: bool = False,
    max_length: Optional[int] = None,
) -> Optional[str]:
    raw = payload.get(field)
    if _is_blank(raw):
        if required:
            errors.add(field, f"The {_label(field)} field is required.")
        return None
    value = str(raw).strip()
    if max_length is not None and len(value) > max_length:
        errors.add(field, f"The {_label(field)} may not be greater than {max_length} characters.")
    return value


def read_bool(payload: Mapping[str, Any], field: str, default: bool = False) -> bool:
    raw = payload.get(field)
    if _is_blank(raw):
        return default
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return raw != 0
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def read_int(
    payload: Mapping[str, Any],
    field: str,
    errors: FieldErrors,
    *,
    required: bool = False,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> Optional[int]:
    raw = payload.get(field)
    if _is_blank(raw):
        if required:
            errors.add(field, f"The {_label(field)} field is required.")
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        errors.add(field, f"The {_label(field)} must be an integer.")
        return None
    if min_value is not None and value < min_value:
        errors.add(field, f"The {_label(field)} must be at least {min_value}.")
    if max_value is not None and value > max_value:
        errors.add(field, f"The {_label(field)} may not be greater than {max_value}.")
    return value


def read_decimal(
    payload: Mapping[str, Any],
    field: str,
    errors: FieldErrors,
    *,
    required: bool = False,
    min_value: Optional[Decimal] = None,
    max_value: Optional[Decimal] = None,
) -> Optional[Decimal]:
    raw = payload.get(field)
    if _is_blank(raw):
        if required:
            errors.add(field, f"The {_label(field)} field is required.")
        return None
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        errors.add(field, f"The {_label(field)} must be a number.")
        return None
    if min_value is not None and value < min_value:
        errors.add(field, f"The {_label(field)} must be at least {min_value}.")
    if max_value is not None and value > max_value:
        errors.add(field, f"The {_label(field)} may not be greater than {max_value}.")
    return value


def read_date(
    payload: Mapping[str, Any],
    field: str,
    errors: FieldErrors,
    *,
    required: bool = False,
) -> Optional[date]:
    raw = payload.get(field)
    if _is_blank(raw):
        if required:
            errors.add(field, f"The {_label(field)} field is required.")
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    try:
        return datetime.strptime(str(raw).strip()[:10], "%Y-%m-%d").date()
    except ValueError:
        errors.add(field, f"The {_label(field)} is not a valid date.")
        return None


def read_choice(
    payload: Mapping[str, Any],
    field: str,
    errors: FieldErrors,
    choices: Iterable[str],
    *,
    required: bool = False,
    default: Optional[str] = None,
) -> Optional[str]:
    raw = payload.get(field)
    if _is_blank(raw):
        if required:
            errors.add(field, f"The {_label(field)} field is required.")
        return default
    value = str(raw).strip()
    allowed = list(choices)
    if value not in allowed:
        errors.add(field, f"The selected {_label(field)} is invalid.")
        return default
    return value


def read_int_list(payload: Mapping[str, Any], field: str, errors: FieldErrors) -> tuple[int, ...]:
    raw = payload.get(field)
    if _is_blank(raw):
        return ()
    if isinstance(raw, str):
        raw = [p for p in raw.split(",") if p.strip()]
    if not isinstance(raw, (list, tuple)):
        errors.add(field, f"The {_label(field)} must be an array.")
        return ()
    out: list[int] = []
    for item in raw:
        try:
            out.append(int(item))
        except (TypeError, ValueError):
            errors.add(field, f"The {_label(field)} must contain only integers.")
            return ()
    return tuple(out)


def check_hex_color(value: Optional[str], field: str, errors: FieldErrors) -> None:
    if value is not None and not _HEX_COLOR.match(value):
        errors.add(field, f"The {_label(field)} format is invalid.")

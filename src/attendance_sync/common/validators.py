from __future__ import annotations

from datetime import date

from ..core.exceptions import ValidationError


def require_date_order(start: date, end: date) -> None:
    if end < start:
        raise ValidationError(f"end_date {end.isoformat()} is before start_date {start.isoformat()}")


def require_positive_int(value, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field_name} must be an integer") from exc
    if number <= 0:
        raise ValidationError(f"{field_name} must be positive")
    return number

from __future__ import annotations

from datetime import date, datetime

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(str(value), "%Y-%m-%d").date()
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {value!r}") from exc


def parse_timestamp(value) -> datetime:
    """Parse a clock timestamp as sent by the server or stored locally.

    Accepts datetime objects, ISO-8601 strings (``2024-05-01T08:00:00``, optional ``Z``)
    and the ``YYYY-MM-DD HH:MM:SS`` form. Timezone info is dropped: clock times are local.
    """

    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1]
    try:
        return datetime.fromisoformat(text).replace(tzinfo=None)
    except ValueError as exc:
        raise ValidationError(f"Invalid timestamp: {value!r}") from exc


def format_timestamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S")


def minutes_of_day(value: datetime) -> int:
    return value.hour * 60 + value.minute


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()

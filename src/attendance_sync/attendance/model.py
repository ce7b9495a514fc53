from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..common.datetime_utils import format_timestamp, parse_iso_date, parse_timestamp
from ..core.enums import ClockType, SyncState
from ..core.exceptions import ValidationError

DayKey = Tuple[int, date]


@dataclass(frozen=True)
class ClockEvent:
    """One clock scan. Only ``*_out`` events carry hours."""

    id: int
    employee_id: int
    clock_type: ClockType
    timestamp: datetime
    calendar_date: date
    regular_hours: float = 0.0
    overtime_hours: float = 0.0
    is_late: bool = False
    sync_state: SyncState = SyncState.NEVER_SYNCED

    @property
    def key(self) -> DayKey:
        return (self.employee_id, self.calendar_date)

    @property
    def total_hours(self) -> float:
        return round(self.regular_hours + self.overtime_hours, 2)

    def with_hours(self, *, regular_hours: float, overtime_hours: float) -> "ClockEvent":
        return replace(self, regular_hours=regular_hours, overtime_hours=overtime_hours)

    def with_sync_state(self, sync_state: SyncState) -> "ClockEvent":
        return replace(self, sync_state=sync_state)

    def to_remote(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "employee_uid": self.employee_id,
            "clock_type": self.clock_type.value,
            "clock_time": format_timestamp(self.timestamp),
            "date": self.calendar_date.isoformat(),
            "regular_hours": self.regular_hours,
            "overtime_hours": self.overtime_hours,
            "is_late": 1 if self.is_late else 0,
        }

    @classmethod
    def from_remote(cls, data: Dict[str, Any], *, sync_state: SyncState = SyncState.SYNCED) -> "ClockEvent":
        """Build an event from a server payload; raises ValidationError on malformed rows."""

        clock_type = ClockType.parse(data.get("clock_type"))
        if clock_type is None:
            raise ValidationError(f"Unknown clock_type {data.get('clock_type')!r} for record {data.get('id')!r}")
        try:
            record_id = int(data["id"])
            employee_id = int(data["employee_uid"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed attendance record: {data!r}") from exc

        timestamp = parse_timestamp(data.get("clock_time"))
        raw_date = data.get("date")
        calendar_date = parse_iso_date(str(raw_date)[:10]) if raw_date else timestamp.date()
        try:
            regular_hours = round(float(data.get("regular_hours") or 0), 2)
            overtime_hours = round(float(data.get("overtime_hours") or 0), 2)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Non-numeric hours for record {record_id}") from exc
        return cls(
            id=record_id,
            employee_id=employee_id,
            clock_type=clock_type,
            timestamp=timestamp,
            calendar_date=calendar_date,
            regular_hours=regular_hours,
            overtime_hours=overtime_hours,
            is_late=parse_flag(data.get("is_late"), "is_late"),
            sync_state=sync_state,
        )


@dataclass(frozen=True)
class SessionPair:
    """Transient in/out association; never persisted."""

    clock_in: ClockEvent
    clock_out: ClockEvent

    @property
    def worked_minutes(self) -> int:
        return int((self.clock_out.timestamp - self.clock_in.timestamp).total_seconds() // 60)


@dataclass(frozen=True)
class ScanResult:
    event: ClockEvent
    paired_with: Optional[ClockEvent] = None


class UpsertOutcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


def same_content(a: ClockEvent, b: ClockEvent, *, tolerance: float = 0.0) -> bool:
    """Field-by-field comparison used by reconciliation; sync state is ignored."""

    return (
        a.employee_id == b.employee_id
        and a.clock_type == b.clock_type
        and a.timestamp.replace(microsecond=0) == b.timestamp.replace(microsecond=0)
        and a.calendar_date == b.calendar_date
        and abs(a.regular_hours - b.regular_hours) <= tolerance
        and abs(a.overtime_hours - b.overtime_hours) <= tolerance
        and a.is_late == b.is_late
    )


def parse_flag(value: Any, field_name: str) -> bool:
    """Server booleans arrive as bool, 0/1 or "true"/"false"."""

    if value is None or value == "":
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in {"1", "true", "yes"}:
        return True
    if text in {"0", "false", "no"}:
        return False
    raise ValidationError(f"{field_name} must be a boolean, got {value!r}")

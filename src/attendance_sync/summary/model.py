from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional

from ..common.datetime_utils import format_timestamp
from ..core.enums import ClockType

SESSION_TIME_FIELDS = tuple(c.value for c in ClockType)


@dataclass(frozen=True)
class DailySummary:
    """Per-employee-per-day aggregate. Fully derived from the day's clock events."""

    employee_id: int
    work_date: date
    first_clock_in: Optional[datetime] = None
    last_clock_out: Optional[datetime] = None
    session_times: Dict[str, Optional[datetime]] = field(default_factory=dict)
    regular_hours: float = 0.0
    overtime_hours: float = 0.0
    total_hours: float = 0.0
    morning_hours: float = 0.0
    afternoon_hours: float = 0.0
    evening_hours: float = 0.0
    overtime_session_hours: float = 0.0
    is_incomplete: bool = False
    has_late_entry: bool = False
    has_overtime: bool = False
    has_evening_session: bool = False
    total_sessions: int = 0
    completed_sessions: int = 0
    pending_sessions: int = 0
    total_minutes_worked: int = 0
    break_time_minutes: int = 0
    last_updated: Optional[datetime] = None

    @property
    def key(self):
        return (self.employee_id, self.work_date)

    def session_time(self, clock_type: ClockType) -> Optional[datetime]:
        return self.session_times.get(clock_type.value)

    def to_remote(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("session_times")
        data["employee_uid"] = data.pop("employee_id")
        data["date"] = data.pop("work_date").isoformat()
        for name in SESSION_TIME_FIELDS:
            value = self.session_times.get(name)
            data[name] = format_timestamp(value) if value else None
        for name in ("first_clock_in", "last_clock_out", "last_updated"):
            value = data[name]
            data[name] = format_timestamp(value) if value else None
        for name in ("is_incomplete", "has_late_entry", "has_overtime", "has_evening_session"):
            data[name] = 1 if data[name] else 0
        return data

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import ClockType, SyncState
from .model import ClockEvent, UpsertOutcome


class AttendanceRepository(Protocol):
    def list_range(self, *, start_date: date, end_date: date, employee_id: Optional[int] = None) -> Sequence[ClockEvent]:
        raise NotImplementedError

    def list_for_day(self, employee_id: int, work_date: date) -> Sequence[ClockEvent]:
        raise NotImplementedError

    def get(self, event_id: int) -> Optional[ClockEvent]:
        raise NotImplementedError

    def last_for_employee(self, employee_id: int) -> Optional[ClockEvent]:
        raise NotImplementedError

    def create(
        self,
        *,
        employee_id: int,
        clock_type: ClockType,
        timestamp: datetime,
        calendar_date: date,
        regular_hours: float = 0.0,
        overtime_hours: float = 0.0,
        is_late: bool = False,
    ) -> ClockEvent:
        """Store a new local scan as never-synced."""

        raise NotImplementedError

    def upsert(self, event: ClockEvent) -> UpsertOutcome:
        """Insert or replace keyed by ``event.id``; replaying the same row is a no-op."""

        raise NotImplementedError

    def update_hours(self, event_id: int, *, regular_hours: float, overtime_hours: float, sync_state: SyncState) -> bool:
        raise NotImplementedError

    def delete(self, event_id: int) -> bool:
        raise NotImplementedError

    def set_sync_state(self, event_ids: Iterable[int], sync_state: SyncState) -> int:
        raise NotImplementedError

    def list_pending(self, *, limit: int) -> Sequence[ClockEvent]:
        """Rows that still need a forward push (never-synced or dirty), oldest first."""

        raise NotImplementedError

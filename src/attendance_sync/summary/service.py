from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence

from ..attendance.model import ClockEvent, DayKey
from ..attendance.pairing import chronological, pair_sessions
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import now_local
from ..common.validators import require_date_order
from ..core.enums import ClockType, EventType, Session
from ..core.events import EventChannel
from ..core.exceptions import TransactionFailure
from ..database.connection import TransactionManager
from ..hours.model import round2
from .model import DailySummary
from .repository import SummaryRepository

logger = logging.getLogger(__name__)

LUNCH_BREAK_MINUTES = 60


def build_summary(employee_id: int, work_date: date, events: Sequence[ClockEvent], *, now: datetime | None = None) -> Optional[DailySummary]:
    """Aggregate one day's events; ``None`` when there is nothing to summarize."""

    if not events:
        return None

    ordered = chronological(events)
    pairs, _ = pair_sessions(ordered)

    session_times: Dict[str, Optional[datetime]] = {c.value: None for c in ClockType}
    for event in ordered:
        session_times[event.clock_type.value] = event.timestamp

    outs = [e for e in ordered if e.clock_type.is_out]
    ins = [e for e in ordered if e.clock_type.is_in]
    regular = sum(e.regular_hours for e in outs)
    overtime = sum(e.overtime_hours for e in outs)

    def session_hours(session: Session, *, overtime_part: bool) -> float:
        return round2(
            sum(e.overtime_hours if overtime_part else e.regular_hours for e in outs if e.clock_type.session == session)
        )

    first_in = ins[0].timestamp if ins else None
    last_out = outs[-1].timestamp if outs else None

    has_morning = bool(session_times["morning_in"] and session_times["morning_out"])
    has_afternoon = bool(session_times["afternoon_in"] and session_times["afternoon_out"])
    break_minutes = LUNCH_BREAK_MINUTES if has_morning and has_afternoon else 0

    minutes_worked = 0
    if first_in and last_out:
        minutes_worked = max(0, int(round((last_out - first_in).total_seconds() / 60)) - break_minutes)

    completed = len(pairs)
    pending = len(ins) - completed
    sessions_seen = {e.clock_type.session for e in ordered}

    return DailySummary(
        employee_id=employee_id,
        work_date=work_date,
        first_clock_in=first_in,
        last_clock_out=last_out,
        session_times=session_times,
        regular_hours=round2(regular),
        overtime_hours=round2(overtime),
        total_hours=round2(regular + overtime),
        morning_hours=session_hours(Session.MORNING, overtime_part=False),
        afternoon_hours=session_hours(Session.AFTERNOON, overtime_part=False),
        evening_hours=session_hours(Session.EVENING, overtime_part=True),
        overtime_session_hours=session_hours(Session.OVERTIME, overtime_part=True),
        is_incomplete=pending > 0,
        has_late_entry=any(e.is_late for e in ordered),
        has_overtime=overtime > 0 or bool(sessions_seen & {Session.EVENING, Session.OVERTIME}),
        has_evening_session=Session.EVENING in sessions_seen,
        total_sessions=len(ins),
        completed_sessions=completed,
        pending_sessions=pending,
        total_minutes_worked=minutes_worked,
        break_time_minutes=break_minutes,
        last_updated=now or now_local(),
    )


class DailySummaryBuilder:
    """Rebuilds summaries by delete-then-recreate; a summary is never patched in place."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        summaries: SummaryRepository,
        transactions: TransactionManager,
        *,
        events: EventChannel | None = None,
    ):
        self._attendance = attendance
        self._summaries = summaries
        self._transactions = transactions
        self._events = events

    def _rebuild_in_transaction(self, employee_id: int, work_date: date) -> Optional[DailySummary]:
        self._summaries.delete(employee_id, work_date)
        summary = build_summary(employee_id, work_date, self._attendance.list_for_day(employee_id, work_date))
        if summary is not None:
            self._summaries.insert(summary)
        return summary

    def _notify(self, keys: Iterable[DayKey]) -> None:
        if not self._events:
            return
        for employee_id, work_date in keys:
            self._events.publish(EventType.SUMMARY_REBUILT, employee_id=employee_id, date=work_date.isoformat())

    def rebuild(self, employee_id: int, work_date: date) -> Optional[DailySummary]:
        """Rebuild one summary atomically; joins the caller's transaction when one is open."""

        try:
            with self._transactions.transaction():
                summary = self._rebuild_in_transaction(employee_id, work_date)
        except Exception as exc:
            raise TransactionFailure(f"Summary rebuild failed for {employee_id}/{work_date}: {exc}") from exc
        self._notify([(employee_id, work_date)])
        return summary

    def rebuild_many(self, keys: Iterable[DayKey]) -> List[DailySummary]:
        """Rebuild a batch of keys inside one transaction: all of them or none."""

        unique = sorted(set(keys))
        built: List[DailySummary] = []
        try:
            with self._transactions.transaction():
                for employee_id, work_date in unique:
                    summary = self._rebuild_in_transaction(employee_id, work_date)
                    if summary is not None:
                        built.append(summary)
        except Exception as exc:
            raise TransactionFailure(f"Batch summary rebuild failed ({len(unique)} keys): {exc}") from exc
        self._notify(unique)
        logger.info("Rebuilt %s summaries (%s keys)", len(built), len(unique))
        return built

    def rebuild_range(self, start_date: date, end_date: date, *, employee_id: Optional[int] = None) -> int:
        """Rebuild every (employee, date) with events in the range, one transaction per key."""

        require_date_order(start_date, end_date)
        keys = {e.key for e in self._attendance.list_range(start_date=start_date, end_date=end_date, employee_id=employee_id)}
        keys |= {
            s.key for s in self._summaries.list_range(start_date=start_date, end_date=end_date, employee_id=employee_id)
        }
        for emp, work_date in sorted(keys):
            self.rebuild(emp, work_date)
        return len(keys)

    def get(self, employee_id: int, work_date: date) -> Optional[DailySummary]:
        return self._summaries.get(employee_id, work_date)

    def list_range(self, start_date: date, end_date: date, *, employee_id: Optional[int] = None) -> Sequence[DailySummary]:
        require_date_order(start_date, end_date)
        return self._summaries.list_range(start_date=start_date, end_date=end_date, employee_id=employee_id)

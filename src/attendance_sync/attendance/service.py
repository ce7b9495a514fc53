from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..common.validators import require_positive_int
from ..core.enums import EventType
from ..core.events import EventChannel
from ..core.exceptions import TransactionFailure
from ..database.connection import TransactionManager
from ..hours.service import HoursCalculator, is_late
from ..summary.service import DailySummaryBuilder
from .clock_type import is_overnight_continuation, next_clock_type
from .model import DayKey, ScanResult
from .pairing import open_clock_in
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class ClockService:
    """Records kiosk scans: picks the clock type, computes hours and refreshes the day summary."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        summaries: DailySummaryBuilder,
        transactions: TransactionManager,
        *,
        calculator: HoursCalculator | None = None,
        events: EventChannel | None = None,
        on_recorded: Callable[[DayKey], None] | None = None,
    ):
        self._attendance = attendance
        self._summaries = summaries
        self._transactions = transactions
        self._calculator = calculator or HoursCalculator()
        self._events = events
        self._on_recorded = on_recorded

    def set_on_recorded(self, callback: Optional[Callable[[DayKey], None]]) -> None:
        self._on_recorded = callback

    def record_scan(self, employee_id: int, *, now: datetime | None = None) -> ScanResult:
        employee_id = require_positive_int(employee_id, "employee_id")
        now = now or now_local()

        last = self._attendance.last_for_employee(employee_id)
        if last is not None and last.timestamp.date() != now.date() and not is_overnight_continuation(
            last.clock_type, now, last.timestamp
        ):
            # Yesterday's history does not drive today's first scan.
            last = None

        clock_type = next_clock_type(last.clock_type if last else None, now, last.timestamp if last else None)
        work_date = now.date()
        clock_in = None
        if clock_type.is_out:
            if last is not None:
                work_date = last.calendar_date
            clock_in = open_clock_in(self._attendance.list_for_day(employee_id, work_date), clock_type.session)

        hours = self._calculator.compute_hours(clock_type, now, clock_in.timestamp if clock_in else None)

        try:
            with self._transactions.transaction():
                event = self._attendance.create(
                    employee_id=employee_id,
                    clock_type=clock_type,
                    timestamp=now,
                    calendar_date=work_date,
                    regular_hours=hours.regular_hours,
                    overtime_hours=hours.overtime_hours,
                    is_late=is_late(clock_type, now),
                )
                self._summaries.rebuild(employee_id, work_date)
        except TransactionFailure:
            raise
        except Exception as exc:
            raise TransactionFailure(f"Could not record scan for employee {employee_id}: {exc}") from exc

        logger.info(
            "Recorded %s for employee %s at %s (regular=%s overtime=%s)",
            clock_type.value, employee_id, now, hours.regular_hours, hours.overtime_hours,
        )
        if self._events:
            self._events.publish(
                EventType.ATTENDANCE_CHANGED,
                employee_id=employee_id,
                date=work_date.isoformat(),
                clock_type=clock_type.value,
                event_id=event.id,
            )
        if self._on_recorded:
            self._on_recorded(event.key)
        return ScanResult(event=event, paired_with=clock_in)

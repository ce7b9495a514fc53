from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from ..attendance.model import ClockEvent, DayKey
from ..attendance.pairing import chronological, pair_sessions
from ..attendance.repository import AttendanceRepository
from ..common.validators import require_date_order
from ..core.constants import HOURS_TOLERANCE
from ..core.enums import EventType, SyncState
from ..core.events import EventChannel
from ..core.exceptions import TransactionFailure
from ..database.connection import TransactionManager
from ..hours.service import HoursCalculator
from ..summary.service import DailySummaryBuilder
from .model import Correction, ValidationIssue, ValidationOptions, ValidationReport

logger = logging.getLogger(__name__)


class AttendanceValidator:
    """Re-derives hours for stored events and corrects mismatches.

    Each (employee, date) is handled in its own transaction: the recompute and the summary
    rebuild commit together, so a summary is never observable half-updated.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        summaries: DailySummaryBuilder,
        transactions: TransactionManager,
        *,
        calculator: HoursCalculator | None = None,
        events: EventChannel | None = None,
        tolerance: float = HOURS_TOLERANCE,
    ):
        self._attendance = attendance
        self._summaries = summaries
        self._transactions = transactions
        self._calculator = calculator or HoursCalculator()
        self._events = events
        self._tolerance = float(tolerance)

    def validate(
        self,
        start_date: date,
        end_date: date,
        employee_id: Optional[int] = None,
        options: ValidationOptions | None = None,
    ) -> ValidationReport:
        require_date_order(start_date, end_date)
        events = self._attendance.list_range(start_date=start_date, end_date=end_date, employee_id=employee_id)
        keys = sorted({e.key for e in events})
        report = self.validate_keys(keys, options)
        logger.info(
            "Validated %s..%s: total=%s valid=%s corrected=%s errors=%s",
            start_date, end_date, report.total_records, report.valid_records,
            report.corrected_records, report.error_records,
        )
        return report

    def validate_keys(self, keys: Iterable[DayKey], options: ValidationOptions | None = None) -> ValidationReport:
        options = options or ValidationOptions()
        report = ValidationReport()
        for employee_id, work_date in sorted(set(keys)):
            try:
                with self._transactions.transaction():
                    day_report = self._validate_day(employee_id, work_date, options)
            except TransactionFailure:
                raise
            except Exception as exc:
                raise TransactionFailure(f"Validation failed for {employee_id}/{work_date}: {exc}") from exc
            report.merge(day_report)

        if self._events:
            self._events.publish(
                EventType.VALIDATION_COMPLETED,
                total=report.total_records,
                corrected=report.corrected_records,
                errors=report.error_records,
            )
        return report

    def check_events(self, events: Sequence[ClockEvent]) -> tuple[List[Correction], List[ValidationIssue], int]:
        """Pure comparison of stored vs expected hours for one day's events.

        Returns ``(mismatches, issues, valid_count)``; mismatches are not marked applied.
        """

        ordered = chronological(events)
        pairs, orphans = pair_sessions(ordered)
        clock_in_for = {p.clock_out.id: p.clock_in for p in pairs}
        orphan_ids = {e.id for e in orphans}

        mismatches: List[Correction] = []
        issues: List[ValidationIssue] = []
        valid = 0
        for event in ordered:
            if event.id in orphan_ids:
                logger.warning(
                    "Event %s (%s, employee %s, %s) has no matching clock-in",
                    event.id, event.clock_type.value, event.employee_id, event.calendar_date,
                )
                issues.append(
                    ValidationIssue(
                        event_id=event.id,
                        employee_id=event.employee_id,
                        work_date=event.calendar_date,
                        clock_type=event.clock_type,
                        message=f"No matching {event.clock_type.paired.value} before {event.clock_type.value}",
                    )
                )
                continue

            clock_in = clock_in_for.get(event.id)
            expected = self._calculator.compute_hours(
                event.clock_type, event.timestamp, clock_in.timestamp if clock_in else None
            )
            if expected.matches(event.regular_hours, event.overtime_hours, tolerance=self._tolerance):
                valid += 1
                continue

            mismatches.append(
                Correction(
                    event_id=event.id,
                    employee_id=event.employee_id,
                    work_date=event.calendar_date,
                    clock_type=event.clock_type,
                    stored_regular_hours=event.regular_hours,
                    stored_overtime_hours=event.overtime_hours,
                    expected_regular_hours=expected.regular_hours,
                    expected_overtime_hours=expected.overtime_hours,
                    applied=False,
                )
            )
        return mismatches, issues, valid

    def _validate_day(self, employee_id: int, work_date: date, options: ValidationOptions) -> ValidationReport:
        events = self._attendance.list_for_day(employee_id, work_date)
        by_id: Dict[int, ClockEvent] = {e.id: e for e in events}
        mismatches, issues, valid = self.check_events(events)

        report = ValidationReport(
            total_records=len(events),
            valid_records=valid,
            corrected_records=len(mismatches),
            error_records=len(issues),
            issues=issues,
        )

        for mismatch in mismatches:
            if options.auto_correct:
                event = by_id[mismatch.event_id]
                # A never-synced row still needs its first upload; only synced rows turn dirty.
                state = SyncState.DIRTY if event.sync_state == SyncState.SYNCED else event.sync_state
                self._attendance.update_hours(
                    event.id,
                    regular_hours=mismatch.expected_regular_hours,
                    overtime_hours=mismatch.expected_overtime_hours,
                    sync_state=state,
                )
                mismatch = replace(mismatch, applied=True)
                logger.info(
                    "Corrected event %s %s: %s/%s -> %s/%s",
                    mismatch.event_id, mismatch.clock_type.value,
                    mismatch.stored_regular_hours, mismatch.stored_overtime_hours,
                    mismatch.expected_regular_hours, mismatch.expected_overtime_hours,
                )
            report.corrections.append(mismatch)

        corrected = options.auto_correct and bool(mismatches)
        if corrected:
            report.corrected_keys.add((employee_id, work_date))
        if options.rebuild_summary and (corrected or options.force_rebuild):
            self._summaries.rebuild(employee_id, work_date)
            report.rebuilt_summaries += 1
        return report

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, timedelta
from typing import Callable, Iterable, List, Optional, Sequence, Set, Union

from ..attendance.model import DayKey, UpsertOutcome
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import now_local
from ..common.validators import require_date_order
from ..core.constants import DEFAULT_FETCH_LIMIT, DEFAULT_SYNC_LOG_RETENTION_DAYS
from ..core.enums import ActionType, EventType, ReconciliationStage, SyncState
from ..core.events import EventChannel
from ..core.exceptions import DomainError, SyncError, TransactionFailure
from ..database.connection import TransactionManager
from ..summary.service import DailySummaryBuilder
from ..validation.model import ValidationOptions
from ..validation.service import AttendanceValidator
from .comparison import classify
from .model import ApplyResult, ComparisonResult, CycleReport, SyncAction, SyncLogEntry
from .remote import RemoteClient
from .repository import CheckpointRepository, SyncLogRepository

logger = logging.getLogger(__name__)

# Remote rows already carry server-side hours; local validation re-derives them.
_REVALIDATE = ValidationOptions(auto_correct=True, rebuild_summary=False)


class ReconciliationEngine:
    """Fetch/apply/validate/rebuild/upload/ack cycle plus the manual compare-and-apply path.

    Only one pass runs at a time; a second ``run_cycle`` while one is in flight is skipped.
    """

    def __init__(
        self,
        *,
        attendance: AttendanceRepository,
        validator: AttendanceValidator,
        summaries: DailySummaryBuilder,
        checkpoints: CheckpointRepository,
        sync_log: SyncLogRepository,
        remote: RemoteClient,
        transactions: TransactionManager,
        events: EventChannel | None = None,
        fetch_limit: int = DEFAULT_FETCH_LIMIT,
        clock: Callable[[], datetime] = now_local,
        reupload_sink: Callable[[DayKey], None] | None = None,
    ):
        self._attendance = attendance
        self._validator = validator
        self._summaries = summaries
        self._checkpoints = checkpoints
        self._sync_log = sync_log
        self._remote = remote
        self._transactions = transactions
        self._events = events
        self._fetch_limit = int(fetch_limit)
        self._clock = clock
        self._reupload_sink = reupload_sink
        self._in_flight = threading.Lock()
        self._last_comparison: Optional[ComparisonResult] = None
        self._last_report: Optional[CycleReport] = None

    def set_reupload_sink(self, sink: Optional[Callable[[DayKey], None]]) -> None:
        self._reupload_sink = sink

    @property
    def is_running(self) -> bool:
        return self._in_flight.locked()

    @property
    def last_comparison(self) -> Optional[ComparisonResult]:
        return self._last_comparison

    @property
    def last_report(self) -> Optional[CycleReport]:
        return self._last_report

    def clear_comparison(self) -> None:
        self._last_comparison = None

    def checkpoint(self) -> Optional[str]:
        return self._checkpoints.get()

    # Comparison mode

    def compare(self, start_date: date, end_date: date) -> ComparisonResult:
        require_date_order(start_date, end_date)
        server = self._remote.fetch_range(start_date=start_date, end_date=end_date)
        local = self._attendance.list_range(start_date=start_date, end_date=end_date)
        result = classify(local, server, start_date=start_date, end_date=end_date, compared_at=self._clock())
        self._last_comparison = result
        logger.info("Compared %s..%s: %s", start_date, end_date, result.counts())
        return result

    def apply_actions(self, actions: Sequence[Union[SyncAction, dict]]) -> ApplyResult:
        """Apply an ordered action list atomically, then validate, rebuild and push the affected days."""

        result = ApplyResult()
        parsed: List[SyncAction] = []
        for raw in actions:
            if isinstance(raw, SyncAction):
                parsed.append(raw)
                continue
            try:
                parsed.append(SyncAction.from_dict(raw))
            except DomainError as exc:
                logger.error("Rejected sync action %r: %s", raw, exc)
                result.errors.append(str(exc))

        self._apply(parsed, result)
        if result.affected_keys:
            self._after_apply(result)
            self._push_summaries(result)
        if self._events:
            self._events.publish(EventType.ATTENDANCE_CHANGED, source="apply", **result.to_dict())
        return result

    # Internals shared by both paths

    def _apply(self, actions: Iterable[SyncAction], result: ApplyResult) -> None:
        try:
            with self._transactions.transaction():
                for action in actions:
                    try:
                        self._apply_one(action, result)
                    except Exception as exc:
                        logger.error("Failed to apply %s for record %s: %s", action.type.value, action.record_id, exc)
                        result.errors.append(f"{action.type.value} {action.record_id}: {exc}")
        except Exception as exc:
            # Nothing from the batch survived the rollback.
            result.added = result.updated = result.unchanged = result.deleted = result.kept = 0
            result.affected_keys.clear()
            raise TransactionFailure(f"Applying sync actions failed and was rolled back: {exc}") from exc

    def _apply_one(self, action: SyncAction, result: ApplyResult) -> None:
        if action.type == ActionType.KEEP_LOCAL:
            result.kept += 1
            return

        existing = self._attendance.get(action.record_id)
        if action.type == ActionType.DELETE_LOCAL:
            if existing is None:
                result.unchanged += 1
                return
            self._attendance.delete(action.record_id)
            result.deleted += 1
            result.affected_keys.add(existing.key)
            return

        record = action.record.with_sync_state(SyncState.SYNCED)
        outcome = self._attendance.upsert(record)
        if outcome == UpsertOutcome.UNCHANGED:
            result.unchanged += 1
            return
        if outcome == UpsertOutcome.INSERTED:
            result.added += 1
        else:
            result.updated += 1
        result.affected_keys.add(record.key)
        if existing is not None:
            result.affected_keys.add(existing.key)

    def _after_apply(self, result: ApplyResult) -> None:
        keys = sorted(result.affected_keys)
        result.validation = self._validator.validate_keys(keys, _REVALIDATE)
        self._summaries.rebuild_many(keys)
        result.rebuilt = len(keys)

    def _push_summaries(self, result: ApplyResult) -> None:
        summaries = [s for s in (self._summaries.get(emp, day) for emp, day in sorted(result.affected_keys)) if s]
        try:
            result.summaries_uploaded = self._remote.upload_summaries(summaries)
        except SyncError as exc:
            logger.warning("Summary upload after apply failed; queued for re-upload: %s", exc)
            if self._reupload_sink:
                for key in sorted(result.affected_keys):
                    self._reupload_sink(key)

    # Forward pushes

    def push_pending(self, *, limit: int | None = None) -> int:
        """Push never-synced and dirty rows one at a time; each success is marked synced."""

        pushed = 0
        for event in self._attendance.list_pending(limit=limit or self._fetch_limit):
            self._remote.push_record(event)
            self._attendance.set_sync_state([event.id], SyncState.SYNCED)
            pushed += 1
        if pushed:
            logger.info("Pushed %s pending attendance rows", pushed)
        return pushed

    def reupload_key(self, key: DayKey) -> int:
        """Re-send one day's corrected rows and its summary."""

        employee_id, work_date = key
        uploaded = 0
        try:
            for event in self._attendance.list_for_day(employee_id, work_date):
                if event.sync_state.needs_upload:
                    self._remote.push_record(event)
                    self._attendance.set_sync_state([event.id], SyncState.SYNCED)
                    uploaded += 1
            summary = self._summaries.get(employee_id, work_date)
            if summary is not None:
                uploaded += self._remote.upload_summaries([summary])
        except SyncError:
            raise
        except Exception as exc:
            raise TransactionFailure(f"Re-upload of {employee_id}/{work_date} failed in local storage: {exc}") from exc
        return uploaded

    # Periodic pass

    def run_cycle(self) -> Optional[CycleReport]:
        if not self._in_flight.acquire(blocking=False):
            logger.info("Reconciliation pass already in flight; skipping")
            return None

        report = CycleReport(started_at=self._clock())
        try:
            self._run_stages(report)
        except (SyncError, DomainError) as exc:
            report.error = str(exc)
            report.failed_stage = report.stage
            report.stage = ReconciliationStage.FAILED
            logger.error("Reconciliation failed during %s: %s", report.failed_stage.value, exc)
            if self._events:
                self._events.publish(EventType.SYNC_ERROR, stage=report.failed_stage.value, error=report.error)
        finally:
            report.finished_at = self._clock()
            self._last_report = report
            self._record_history(report)
            self._in_flight.release()

        if report.succeeded:
            logger.info(
                "Reconciliation done: checked=%s applied=%s deleted=%s corrected=%s rebuilt=%s uploaded=%s",
                report.checked, report.applied, report.deleted, report.corrected, report.rebuilt, report.uploaded,
            )
            if self._events:
                self._events.publish(EventType.SYNC_COMPLETED, **report.to_dict())
        return report

    def _run_stages(self, report: CycleReport) -> None:
        report.stage = ReconciliationStage.INITIALIZING
        cursor = self._checkpoints.get()
        report.checkpoint = cursor

        report.stage = ReconciliationStage.FETCHING
        changes = self._remote.fetch_changes(since=cursor, limit=self._fetch_limit)
        report.checked = len(changes.edited) + len(changes.deleted)
        report.errors.extend(changes.rejected)

        keys: Set[DayKey] = set()
        if not changes.is_empty:
            report.stage = ReconciliationStage.APPLYING
            actions = [SyncAction(type=ActionType.UPDATE_FROM_SERVER, record_id=e.id, record=e) for e in changes.edited]
            actions += [SyncAction(type=ActionType.DELETE_LOCAL, record_id=i) for i in changes.deleted]
            applied = ApplyResult()
            self._apply(actions, applied)
            report.applied = applied.applied
            report.deleted = applied.deleted
            report.errors.extend(applied.errors)
            keys = set(applied.affected_keys)

        if keys:
            report.stage = ReconciliationStage.VALIDATING
            validation = self._validator.validate_keys(sorted(keys), _REVALIDATE)
            report.corrected = validation.corrected_records

            report.stage = ReconciliationStage.REBUILDING
            self._summaries.rebuild_many(keys)
            report.rebuilt = len(keys)

        report.stage = ReconciliationStage.UPLOADING
        report.uploaded = self.push_pending()
        if keys:
            summaries = [s for s in (self._summaries.get(emp, day) for emp, day in sorted(keys)) if s]
            report.uploaded += self._remote.upload_summaries(summaries)

        if not changes.is_empty or changes.cursor:
            report.stage = ReconciliationStage.ACK
            if not changes.is_empty:
                self._remote.mark_synced(
                    edited_ids=[e.id for e in changes.edited],
                    deleted_ids=list(changes.deleted),
                )
            if changes.cursor and changes.cursor != cursor:
                self._checkpoints.set(changes.cursor)
                report.checkpoint = changes.cursor

        report.stage = ReconciliationStage.IDLE

    # History

    def _record_history(self, report: CycleReport) -> None:
        entry = SyncLogEntry(
            sync_time=report.started_at,
            records_checked=report.checked,
            records_updated=report.applied + report.corrected,
            records_deleted=report.deleted,
            records_uploaded=report.uploaded,
            success=report.succeeded,
            error_message=report.error or ("; ".join(report.errors[:5]) or None),
        )
        try:
            self._sync_log.add(entry)
        except Exception:
            logger.exception("Could not write sync history entry")

    def history(self, limit: int = 20) -> Sequence[SyncLogEntry]:
        return self._sync_log.recent(limit)

    def prune_history(self, *, days: int = DEFAULT_SYNC_LOG_RETENTION_DAYS) -> int:
        removed = self._sync_log.prune(older_than=self._clock() - timedelta(days=days))
        if removed:
            logger.info("Pruned %s sync history entries older than %s days", removed, days)
        return removed

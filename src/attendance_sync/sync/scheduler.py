from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..attendance.model import DayKey
from ..core.constants import (
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_MAX_RETRY_ATTEMPTS,
    DEFAULT_RETRY_BASE_DELAY_SECONDS,
    DEFAULT_RETRY_MAX_DELAY_SECONDS,
    DEFAULT_REUPLOAD_CAPACITY,
    DEFAULT_REUPLOAD_ITEM_DELAY_SECONDS,
    DEFAULT_SYNC_INTERVAL_SECONDS,
)
from ..core.enums import EventType
from ..core.events import EventChannel
from ..core.exceptions import SyncError
from ..validation.model import ValidationOptions, ValidationReport
from ..validation.service import AttendanceValidator
from .model import CycleReport
from .reconciliation import ReconciliationEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    base_delay: float = DEFAULT_RETRY_BASE_DELAY_SECONDS
    max_delay: float = DEFAULT_RETRY_MAX_DELAY_SECONDS
    max_attempts: int = DEFAULT_MAX_RETRY_ATTEMPTS

    def delay_for(self, attempts: int) -> float:
        """Delay after ``attempts`` consecutive failures: base, 2x base, 4x base... capped."""

        return min(self.base_delay * (2 ** max(0, attempts - 1)), self.max_delay)

    def exhausted(self, attempts: int) -> bool:
        return attempts >= self.max_attempts


class ValidationDebouncer:
    """Coalesces validation requests per (employee, date) until a quiet period has passed.

    There is a single pending deadline; every new request pushes it back.
    """

    def __init__(self, quiet_seconds: float = DEFAULT_DEBOUNCE_SECONDS):
        self._quiet = float(quiet_seconds)
        self._pending: "OrderedDict[DayKey, None]" = OrderedDict()
        self._deadline: Optional[float] = None

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def add(self, key: DayKey, now: float) -> None:
        self._pending[key] = None
        self._deadline = now + self._quiet

    def due(self, now: float) -> bool:
        return self._deadline is not None and now >= self._deadline

    def take(self) -> List[DayKey]:
        keys = list(self._pending)
        self._pending.clear()
        self._deadline = None
        return keys


class ReuploadQueue:
    """Bounded FIFO of days whose rows/summary must be re-sent; duplicates are ignored."""

    def __init__(self, capacity: int = DEFAULT_REUPLOAD_CAPACITY):
        self._capacity = int(capacity)
        self._items: "OrderedDict[DayKey, None]" = OrderedDict()
        self.dropped = 0

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: DayKey) -> bool:
        return key in self._items

    def push(self, key: DayKey) -> None:
        if key in self._items:
            return
        if len(self._items) >= self._capacity:
            oldest, _ = self._items.popitem(last=False)
            self.dropped += 1
            logger.warning("Re-upload queue full (%s); dropping oldest %s", self._capacity, oldest)
        self._items[key] = None

    def push_front(self, key: DayKey) -> None:
        self._items[key] = None
        self._items.move_to_end(key, last=False)

    def pop(self) -> Optional[DayKey]:
        if not self._items:
            return None
        key, _ = self._items.popitem(last=False)
        return key


class SyncScheduler:
    """Drives periodic reconciliation, debounced validation and the re-upload queue.

    ``tick()`` does one round of due work and is what the background thread calls; tests drive it
    directly with an injected clock.
    """

    def __init__(
        self,
        engine: ReconciliationEngine,
        validator: AttendanceValidator,
        *,
        events: EventChannel | None = None,
        interval_seconds: float = DEFAULT_SYNC_INTERVAL_SECONDS,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        reupload_capacity: int = DEFAULT_REUPLOAD_CAPACITY,
        reupload_item_delay: float = DEFAULT_REUPLOAD_ITEM_DELAY_SECONDS,
        retry: RetryPolicy | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Any] | None = None,
        tick_seconds: float = 1.0,
    ):
        self._engine = engine
        self._validator = validator
        self._events = events
        self._interval = float(interval_seconds)
        self._item_delay = float(reupload_item_delay)
        self._retry = retry or RetryPolicy()
        self._clock = clock
        self._tick_seconds = float(tick_seconds)

        self._debouncer = ValidationDebouncer(debounce_seconds)
        self._reupload = ReuploadQueue(reupload_capacity)
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._sleep = sleep or self._stop_event.wait
        self._thread: Optional[threading.Thread] = None

        self.polling = False
        self.failed = False
        self.attempts = 0
        self.next_poll_at: Optional[float] = None
        self.last_error: Optional[str] = None

    # Validation debounce

    def queue_validation(self, key: DayKey) -> None:
        with self._lock:
            self._debouncer.add(key, self._clock())

    def flush_validation(self) -> Optional[ValidationReport]:
        with self._lock:
            keys = self._debouncer.take()
        if not keys:
            return None
        try:
            report = self._validator.validate_keys(keys, ValidationOptions())
        except SyncError as exc:
            logger.warning("Debounced validation of %s day(s) failed, requeued: %s", len(keys), exc)
            with self._lock:
                now = self._clock()
                for key in keys:
                    self._debouncer.add(key, now)
            return None
        for key in sorted(report.corrected_keys):
            self.queue_reupload(key)
        logger.info("Debounced validation of %s day(s): corrected=%s", len(keys), report.corrected_records)
        return report

    # Re-upload queue

    def queue_reupload(self, key: DayKey) -> None:
        with self._lock:
            self._reupload.push(key)

    def drain_reupload(self, *, max_items: int | None = None) -> int:
        """Send queued days one at a time; a failed item goes back to the front and draining stops."""

        sent = 0
        while max_items is None or sent < max_items:
            with self._lock:
                key = self._reupload.pop()
            if key is None:
                break
            if sent:
                self._sleep(self._item_delay)
            try:
                self._engine.reupload_key(key)
            except SyncError as exc:
                logger.warning("Re-upload of %s failed, will retry next cycle: %s", key, exc)
                with self._lock:
                    self._reupload.push_front(key)
                break
            sent += 1

        if sent and self._events:
            self._events.publish(EventType.REUPLOAD_COMPLETED, count=sent)
        return sent

    # Polling

    def poll_once(self) -> Optional[CycleReport]:
        error: Optional[str] = None
        report: Optional[CycleReport] = None
        try:
            report = self._engine.run_cycle()
        except Exception as exc:
            logger.exception("Reconciliation pass crashed")
            error = str(exc) or exc.__class__.__name__

        now = self._clock()
        if report is None and error is None:
            # Another pass is in flight; try again on the next interval.
            self.next_poll_at = now + self._interval
            return None

        if report is not None and report.error:
            error = report.error

        if error is None:
            self.attempts = 0
            self.last_error = None
            self.next_poll_at = now + self._interval
            return report

        self.attempts += 1
        self.last_error = error
        if self._retry.exhausted(self.attempts):
            self.polling = False
            self.failed = True
            self.next_poll_at = None
            logger.error("Polling stopped after %s failed attempts: %s", self.attempts, error)
            if self._events:
                self._events.publish(EventType.POLLING_FAILED, attempts=self.attempts, error=error)
        else:
            delay = self._retry.delay_for(self.attempts)
            self.next_poll_at = now + delay
            logger.warning("Reconciliation attempt %s failed; retrying in %.0fs", self.attempts, delay)
        return report

    def tick(self) -> None:
        now = self._clock()
        with self._lock:
            validation_due = self._debouncer.due(now)
        if validation_due:
            self.flush_validation()

        if self.polling and self.next_poll_at is not None and now >= self.next_poll_at:
            self.poll_once()

        if len(self._reupload):
            self.drain_reupload()

    def enable_polling(self) -> None:
        self.polling = True
        self.failed = False
        self.attempts = 0
        self.last_error = None
        self.next_poll_at = self._clock()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self.enable_polling()
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="attendance-sync", daemon=True)
        self._thread.start()
        logger.info("Sync scheduler started (interval=%ss)", self._interval)

    def stop(self, *, timeout: float | None = 5.0) -> None:
        self.polling = False
        self.next_poll_at = None
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Sync scheduler stopped")

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("Sync scheduler tick failed")
            self._stop_event.wait(self._tick_seconds)

    def status(self) -> Dict[str, Any]:
        with self._lock:
            pending_validation = len(self._debouncer)
            reupload_size = len(self._reupload)
            dropped = self._reupload.dropped
        last = self._engine.last_report
        return {
            "polling": self.polling,
            "failed": self.failed,
            "running": self._engine.is_running,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "pending_validation": pending_validation,
            "reupload_queue": reupload_size,
            "reupload_dropped": dropped,
            "next_poll_in": (
                max(0.0, round(self.next_poll_at - self._clock(), 1)) if self.next_poll_at is not None else None
            ),
            "checkpoint": self._engine.checkpoint(),
            "last_cycle": last.to_dict() if last else None,
        }

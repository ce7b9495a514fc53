from __future__ import annotations

import copy
from contextlib import contextmanager
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence

import pytest

from attendance_sync.attendance.model import ClockEvent, UpsertOutcome, same_content
from attendance_sync.container import assemble
from attendance_sync.core.enums import ClockType, SyncState
from attendance_sync.summary.model import DailySummary
from attendance_sync.sync.model import RemoteChanges, SyncLogEntry


class InjectedFailure(RuntimeError):
    pass


class InMemoryStore:
    """Shared state behind every in-memory repository, with snapshot/rollback transactions."""

    def __init__(self):
        self.events: Dict[int, ClockEvent] = {}
        self.summaries: Dict[tuple, DailySummary] = {}
        self.settings: Dict[str, str] = {}
        self.sync_log: List[SyncLogEntry] = []
        self.next_id = 1
        self.depth = 0
        self.commits = 0
        self.rollbacks = 0
        self.fail_commit = False
        self.fail_sync_state: Optional[Exception] = None
        self._summary_inserts_left: Optional[int] = None

    def fail_on_summary_insert(self, nth: int) -> None:
        """Raise on the ``nth`` summary insert from now on."""

        self._summary_inserts_left = nth

    def _snapshot(self):
        return copy.deepcopy((self.events, self.summaries, self.settings, self.sync_log, self.next_id))

    @contextmanager
    def transaction(self):
        if self.depth:
            self.depth += 1
            try:
                yield self
            finally:
                self.depth -= 1
            return

        snapshot = self._snapshot()
        self.depth = 1
        try:
            yield self
            if self.fail_commit:
                raise InjectedFailure("commit failed")
            self.commits += 1
        except Exception:
            self.events, self.summaries, self.settings, self.sync_log, self.next_id = snapshot
            self.rollbacks += 1
            raise
        finally:
            self.depth = 0

    def seed(self, *events: ClockEvent) -> None:
        for event in events:
            self.events[event.id] = event
            self.next_id = max(self.next_id, event.id + 1)


class InMemoryAttendance:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def list_range(self, *, start_date: date, end_date: date, employee_id: Optional[int] = None) -> Sequence[ClockEvent]:
        rows = [
            e
            for e in self._s.events.values()
            if start_date <= e.calendar_date <= end_date and (employee_id is None or e.employee_id == employee_id)
        ]
        return sorted(rows, key=lambda e: (e.employee_id, e.calendar_date, e.timestamp, e.id))

    def list_for_day(self, employee_id: int, work_date: date) -> Sequence[ClockEvent]:
        rows = [e for e in self._s.events.values() if e.key == (employee_id, work_date)]
        return sorted(rows, key=lambda e: (e.timestamp, e.id))

    def get(self, event_id: int) -> Optional[ClockEvent]:
        return self._s.events.get(event_id)

    def last_for_employee(self, employee_id: int) -> Optional[ClockEvent]:
        rows = [e for e in self._s.events.values() if e.employee_id == employee_id]
        return max(rows, key=lambda e: (e.timestamp, e.id)) if rows else None

    def create(self, *, employee_id, clock_type, timestamp, calendar_date, regular_hours=0.0, overtime_hours=0.0, is_late=False):
        event = ClockEvent(
            id=self._s.next_id,
            employee_id=employee_id,
            clock_type=clock_type,
            timestamp=timestamp,
            calendar_date=calendar_date,
            regular_hours=regular_hours,
            overtime_hours=overtime_hours,
            is_late=is_late,
        )
        self._s.next_id += 1
        self._s.events[event.id] = event
        return event

    def upsert(self, event: ClockEvent) -> UpsertOutcome:
        existing = self._s.events.get(event.id)
        if existing is not None and same_content(existing, event) and existing.sync_state == event.sync_state:
            return UpsertOutcome.UNCHANGED
        self._s.events[event.id] = event
        self._s.next_id = max(self._s.next_id, event.id + 1)
        return UpsertOutcome.INSERTED if existing is None else UpsertOutcome.UPDATED

    def update_hours(self, event_id: int, *, regular_hours: float, overtime_hours: float, sync_state: SyncState) -> bool:
        existing = self._s.events.get(event_id)
        if existing is None:
            return False
        self._s.events[event_id] = existing.with_hours(
            regular_hours=regular_hours, overtime_hours=overtime_hours
        ).with_sync_state(sync_state)
        return True

    def delete(self, event_id: int) -> bool:
        return self._s.events.pop(event_id, None) is not None

    def set_sync_state(self, event_ids, sync_state: SyncState) -> int:
        if self._s.fail_sync_state is not None:
            raise self._s.fail_sync_state
        count = 0
        for event_id in event_ids:
            if event_id in self._s.events:
                self._s.events[event_id] = self._s.events[event_id].with_sync_state(sync_state)
                count += 1
        return count

    def list_pending(self, *, limit: int) -> Sequence[ClockEvent]:
        rows = [e for e in self._s.events.values() if e.sync_state != SyncState.SYNCED]
        return sorted(rows, key=lambda e: (e.timestamp, e.id))[:limit]


class InMemorySummaries:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def get(self, employee_id: int, work_date: date) -> Optional[DailySummary]:
        return self._s.summaries.get((employee_id, work_date))

    def list_range(self, *, start_date: date, end_date: date, employee_id: Optional[int] = None):
        rows = [
            s
            for s in self._s.summaries.values()
            if start_date <= s.work_date <= end_date and (employee_id is None or s.employee_id == employee_id)
        ]
        return sorted(rows, key=lambda s: (s.work_date, s.employee_id))

    def delete(self, employee_id: int, work_date: date) -> bool:
        return self._s.summaries.pop((employee_id, work_date), None) is not None

    def insert(self, summary: DailySummary) -> None:
        if self._s._summary_inserts_left is not None:
            self._s._summary_inserts_left -= 1
            if self._s._summary_inserts_left <= 0:
                self._s._summary_inserts_left = None
                raise InjectedFailure("summary insert failed")
        self._s.summaries[summary.key] = summary


class InMemoryCheckpoints:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def get(self) -> Optional[str]:
        return self._s.settings.get("last_sync_cursor")

    def set(self, cursor: str) -> None:
        self._s.settings["last_sync_cursor"] = cursor


class InMemorySyncLog:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def add(self, entry: SyncLogEntry) -> int:
        self._s.sync_log.append(entry)
        return len(self._s.sync_log)

    def recent(self, limit: int):
        return list(reversed(self._s.sync_log))[:limit]

    def prune(self, *, older_than: datetime) -> int:
        before = len(self._s.sync_log)
        self._s.sync_log = [e for e in self._s.sync_log if e.sync_time >= older_than]
        return before - len(self._s.sync_log)


class FakeRemote:
    """Scriptable stand-in for the attendance server."""

    def __init__(self):
        self.server_rows: Dict[int, ClockEvent] = {}
        self.changes = RemoteChanges(edited=[], deleted=[])
        self.fail: Dict[str, Exception] = {}
        self.fetch_calls: List[Optional[str]] = []
        self.marked: List[tuple] = []
        self.pushed: List[ClockEvent] = []
        self.uploaded_summaries: List[DailySummary] = []
        self.on_fetch: Optional[Callable[[], None]] = None

    def _maybe_fail(self, name: str) -> None:
        if name in self.fail:
            raise self.fail[name]

    def fetch_changes(self, *, since, limit):
        self._maybe_fail("fetch_changes")
        self.fetch_calls.append(since)
        if self.on_fetch:
            self.on_fetch()
        return self.changes

    def fetch_range(self, *, start_date, end_date):
        self._maybe_fail("fetch_range")
        return [e for e in self.server_rows.values() if start_date <= e.calendar_date <= end_date]

    def mark_synced(self, *, edited_ids, deleted_ids):
        self._maybe_fail("mark_synced")
        self.marked.append((list(edited_ids), list(deleted_ids)))

    def upload_summaries(self, summaries):
        self._maybe_fail("upload_summaries")
        self.uploaded_summaries.extend(summaries)
        return len(summaries)

    def push_record(self, event):
        self._maybe_fail("push_record")
        self.pushed.append(event)
        self.server_rows[event.id] = event.with_sync_state(SyncState.SYNCED)


class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_event(
    event_id: int,
    clock_type: ClockType,
    when: str,
    *,
    employee_id: int = 7,
    regular: float = 0.0,
    overtime: float = 0.0,
    state: SyncState = SyncState.SYNCED,
    work_date: Optional[date] = None,
    is_late: bool = False,
) -> ClockEvent:
    timestamp = datetime.fromisoformat(when)
    return ClockEvent(
        id=event_id,
        employee_id=employee_id,
        clock_type=clock_type,
        timestamp=timestamp,
        calendar_date=work_date or timestamp.date(),
        regular_hours=regular,
        overtime_hours=overtime,
        is_late=is_late,
        sync_state=state,
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def container(store, remote, clock, sleeps):
    return assemble(
        attendance=InMemoryAttendance(store),
        summaries=InMemorySummaries(store),
        checkpoints=InMemoryCheckpoints(store),
        sync_log=InMemorySyncLog(store),
        remote=remote,
        transactions=store,
        scheduler_kwargs={"clock": clock, "sleep": sleeps.append},
    )

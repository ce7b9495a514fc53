from __future__ import annotations

from datetime import date, datetime

import pytest

from attendance_sync.core.enums import ClockType, EventType, SyncState
from attendance_sync.core.exceptions import TransactionFailure, ValidationError


def at(hhmm: str, day: int = 1) -> datetime:
    return datetime.fromisoformat(f"2024-05-{day:02d} {hhmm}:00")


def test_scan_pair_records_hours_and_summary(container, store):
    first = container.clock_service.record_scan(7, now=at("08:00"))
    assert first.event.clock_type == ClockType.MORNING_IN
    assert first.event.sync_state == SyncState.NEVER_SYNCED
    assert store.summaries[(7, date(2024, 5, 1))].is_incomplete

    second = container.clock_service.record_scan(7, now=at("12:00"))
    assert second.event.clock_type == ClockType.MORNING_OUT
    assert second.paired_with.id == first.event.id
    assert (second.event.regular_hours, second.event.overtime_hours) == (4.0, 0.0)

    summary = store.summaries[(7, date(2024, 5, 1))]
    assert summary.regular_hours == 4.0
    assert not summary.is_incomplete
    assert summary.completed_sessions == 1
    assert summary.total_minutes_worked == 240


def test_late_morning_scan_is_flagged(container):
    result = container.clock_service.record_scan(7, now=at("08:10"))
    assert result.event.is_late


def test_overnight_clock_out_belongs_to_the_clock_in_day(container, store):
    container.clock_service.record_scan(7, now=at("22:00", day=1))
    result = container.clock_service.record_scan(7, now=at("02:00", day=2))

    assert result.event.clock_type == ClockType.OVERTIME_OUT
    assert result.event.calendar_date == date(2024, 5, 1)
    assert result.event.overtime_hours == 3.5
    assert (7, date(2024, 5, 2)) not in store.summaries


def test_previous_day_history_does_not_drive_first_scan(container):
    container.clock_service.record_scan(7, now=at("08:00", day=1))
    container.clock_service.record_scan(7, now=at("12:00", day=1))

    result = container.clock_service.record_scan(7, now=at("08:00", day=2))
    assert result.event.clock_type == ClockType.MORNING_IN
    assert result.event.calendar_date == date(2024, 5, 2)


def test_scan_queues_debounced_validation_and_publishes(container):
    container.clock_service.record_scan(7, now=at("08:00"))
    container.clock_service.record_scan(7, now=at("12:00"))

    assert container.scheduler.status()["pending_validation"] == 1
    published = [e.type for e in container.events.drain()]
    assert published.count(EventType.ATTENDANCE_CHANGED) == 2
    assert EventType.SUMMARY_REBUILT in published


def test_failed_summary_write_rolls_back_the_scan(container, store):
    store.fail_on_summary_insert(1)

    with pytest.raises(TransactionFailure):
        container.clock_service.record_scan(7, now=at("08:00"))

    assert store.events == {}
    assert store.summaries == {}


@pytest.mark.parametrize("employee_id", [0, -3, "abc", None])
def test_invalid_employee_is_rejected(container, employee_id):
    with pytest.raises(ValidationError):
        container.clock_service.record_scan(employee_id, now=at("08:00"))

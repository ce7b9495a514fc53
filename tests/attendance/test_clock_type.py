from __future__ import annotations

import itertools
from datetime import datetime

import pytest

from attendance_sync.attendance.clock_type import (
    TRANSITIONS,
    TimeBucket,
    is_overnight_continuation,
    next_clock_type,
)
from attendance_sync.core.enums import ClockType


def at(hhmm: str, day: int = 1) -> datetime:
    return datetime.fromisoformat(f"2024-05-{day:02d} {hhmm}:00")


def test_transition_table_covers_every_combination():
    expected = set(itertools.product([None, *ClockType], TimeBucket))
    assert set(TRANSITIONS) == expected


@pytest.mark.parametrize(
    "when, expected",
    [
        ("05:50", ClockType.MORNING_IN),
        ("07:00", ClockType.MORNING_IN),
        ("11:59", ClockType.MORNING_IN),
        ("12:00", ClockType.AFTERNOON_IN),
        ("17:10", ClockType.AFTERNOON_IN),
        ("17:15", ClockType.EVENING_IN),
        ("21:59", ClockType.EVENING_IN),
        ("22:00", ClockType.OVERTIME_IN),
    ],
)
def test_first_scan_of_the_day(when, expected):
    assert next_clock_type(None, at(when)) == expected


@pytest.mark.parametrize("clock_type", [c for c in ClockType if c.is_in])
def test_open_clock_in_is_always_closed_next(clock_type):
    for when in ("07:00", "12:30", "19:00", "23:00"):
        assert next_clock_type(clock_type, at(when), at("06:30")) == clock_type.paired


@pytest.mark.parametrize(
    "last, when, expected",
    [
        (ClockType.MORNING_OUT, "11:30", ClockType.AFTERNOON_IN),
        (ClockType.MORNING_OUT, "12:30", ClockType.AFTERNOON_IN),
        (ClockType.MORNING_OUT, "17:05", ClockType.EVENING_IN),
        (ClockType.MORNING_OUT, "17:30", ClockType.EVENING_IN),
        (ClockType.MORNING_OUT, "22:30", ClockType.OVERTIME_IN),
        (ClockType.MORNING_OUT, "07:00", ClockType.MORNING_IN),
        (ClockType.AFTERNOON_OUT, "09:00", ClockType.MORNING_IN),
        (ClockType.AFTERNOON_OUT, "17:20", ClockType.EVENING_IN),
        (ClockType.EVENING_OUT, "22:10", ClockType.OVERTIME_IN),
    ],
)
def test_after_a_clock_out(last, when, expected):
    assert next_clock_type(last, at(when), at("06:00")) == expected


def test_overnight_scan_closes_the_open_evening_session():
    last_at = at("18:00", day=1)
    now = at("02:00", day=2)
    assert is_overnight_continuation(ClockType.EVENING_IN, now, last_at)
    assert next_clock_type(ClockType.EVENING_IN, now, last_at) == ClockType.EVENING_OUT


def test_morning_clock_in_is_not_an_overnight_continuation():
    assert not is_overnight_continuation(ClockType.MORNING_IN, at("02:00", day=2), at("08:00"))
    assert not is_overnight_continuation(ClockType.OVERTIME_OUT, at("02:00", day=2), at("23:00"))


def test_unknown_last_type_defaults_to_morning_in():
    assert next_clock_type("lunch_in", at("15:00")) == ClockType.MORNING_IN

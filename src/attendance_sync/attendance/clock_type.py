"""Next-expected clock type as an explicit transition table.

The table is keyed by ``(last clock type or None, time bucket of now)`` and is checked for
completeness at import time, so a missing combination fails loudly instead of falling through.
"""

from __future__ import annotations

import itertools
import logging
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple

from ..common.datetime_utils import minutes_of_day
from ..core.constants import EVENING_CLOCK_IN_FROM, EVENING_START, LUNCH_START, MORNING_START, OVERTIME_WINDOW_END
from ..core.enums import ClockType

logger = logging.getLogger(__name__)


class TimeBucket(str, Enum):
    EARLY_MORNING = "early_morning"  # before 08:00
    MORNING = "morning"  # 08:00-11:59
    AFTERNOON = "afternoon"  # 12:00-16:59
    LATE_AFTERNOON = "late_afternoon"  # 17:00-17:14
    EVENING = "evening"  # 17:15-21:59
    NIGHT = "night"  # 22:00 onwards

    @classmethod
    def of(cls, when: datetime) -> "TimeBucket":
        minutes = minutes_of_day(when)
        if minutes < MORNING_START:
            return cls.EARLY_MORNING
        if minutes < LUNCH_START:
            return cls.MORNING
        if minutes < EVENING_START:
            return cls.AFTERNOON
        if minutes < EVENING_CLOCK_IN_FROM:
            return cls.LATE_AFTERNOON
        if minutes < OVERTIME_WINDOW_END:
            return cls.EVENING
        return cls.NIGHT


_B = TimeBucket
_C = ClockType

_FIRST_OF_DAY: Dict[TimeBucket, ClockType] = {
    _B.EARLY_MORNING: _C.MORNING_IN,
    _B.MORNING: _C.MORNING_IN,
    _B.AFTERNOON: _C.AFTERNOON_IN,
    _B.LATE_AFTERNOON: _C.AFTERNOON_IN,
    _B.EVENING: _C.EVENING_IN,
    _B.NIGHT: _C.OVERTIME_IN,
}

_AFTER_MORNING_OUT: Dict[TimeBucket, ClockType] = {
    _B.EARLY_MORNING: _C.MORNING_IN,
    _B.MORNING: _C.AFTERNOON_IN,
    _B.AFTERNOON: _C.AFTERNOON_IN,
    _B.LATE_AFTERNOON: _C.EVENING_IN,
    _B.EVENING: _C.EVENING_IN,
    _B.NIGHT: _C.OVERTIME_IN,
}

_AFTER_LATER_OUT: Dict[TimeBucket, ClockType] = {
    _B.EARLY_MORNING: _C.MORNING_IN,
    _B.MORNING: _C.MORNING_IN,
    _B.AFTERNOON: _C.AFTERNOON_IN,
    _B.LATE_AFTERNOON: _C.EVENING_IN,
    _B.EVENING: _C.EVENING_IN,
    _B.NIGHT: _C.OVERTIME_IN,
}


def _build_table() -> Dict[Tuple[Optional[ClockType], TimeBucket], ClockType]:
    table: Dict[Tuple[Optional[ClockType], TimeBucket], ClockType] = {}
    for bucket in TimeBucket:
        table[(None, bucket)] = _FIRST_OF_DAY[bucket]
        for clock_type in ClockType:
            if clock_type.is_in:
                table[(clock_type, bucket)] = clock_type.paired
            elif clock_type == ClockType.MORNING_OUT:
                table[(clock_type, bucket)] = _AFTER_MORNING_OUT[bucket]
            else:
                table[(clock_type, bucket)] = _AFTER_LATER_OUT[bucket]
    return table


TRANSITIONS = _build_table()


def _assert_exhaustive() -> None:
    expected = set(itertools.product([None, *ClockType], TimeBucket))
    missing = expected - set(TRANSITIONS)
    if missing:
        raise RuntimeError(f"Clock type transition table is missing {sorted(map(str, missing))}")


_assert_exhaustive()


def is_overnight_continuation(last_type: Optional[ClockType], now: datetime, last_timestamp: Optional[datetime]) -> bool:
    """An open clock-in from 17:00 or later, scanned again before 08:00, closes that session."""

    if last_type is None or last_timestamp is None or not last_type.is_in:
        return False
    return minutes_of_day(last_timestamp) >= EVENING_START and minutes_of_day(now) < MORNING_START


def next_clock_type(last_type, now: datetime, last_timestamp: Optional[datetime] = None) -> ClockType:
    """Decide which clock type the next scan records."""

    parsed: Optional[ClockType]
    if last_type is None or last_type == "":
        parsed = None
    else:
        parsed = ClockType.parse(last_type)
        if parsed is None:
            logger.warning("Unknown last clock type %r; defaulting to morning_in", last_type)
            return ClockType.MORNING_IN

    if is_overnight_continuation(parsed, now, last_timestamp):
        return parsed.paired

    return TRANSITIONS[(parsed, TimeBucket.of(now))]

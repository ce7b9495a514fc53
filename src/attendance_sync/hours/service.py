from __future__ import annotations

import logging
from datetime import datetime

from ..common.datetime_utils import minutes_of_day, parse_timestamp
from ..core.constants import AFTERNOON_START, EARLY_MORNING_START, MORNING_START, REGULAR_GRACE_MINUTES
from ..core.enums import ClockType
from ..core.exceptions import ValidationError
from .factory import SessionCalculatorFactory
from .model import ZERO_HOURS, HoursResult
from .rules import normalize_overnight

logger = logging.getLogger(__name__)


class HoursCalculator:
    """Converts a clock-out and its paired clock-in into regular/overtime hours.

    Calculation problems never raise: they degrade to zero hours and a log entry, so a single
    bad record cannot fail a validation batch.
    """

    def __init__(self, *, factory: SessionCalculatorFactory | None = None):
        self._factory = factory or SessionCalculatorFactory()

    def compute_hours(self, clock_type, clock_out_time, clock_in_time=None) -> HoursResult:
        parsed = ClockType.parse(clock_type)
        if parsed is None:
            logger.warning("Unknown clock type %r; no hours computed", clock_type)
            return ZERO_HOURS
        if parsed.is_in:
            return ZERO_HOURS
        if clock_in_time is None:
            logger.warning("%s at %s has no matching clock-in; no hours computed", parsed.value, clock_out_time)
            return ZERO_HOURS

        try:
            out_at = parse_timestamp(clock_out_time)
            in_at = parse_timestamp(clock_in_time)
        except ValidationError:
            logger.warning("Unparsable clock times for %s: in=%r out=%r", parsed.value, clock_in_time, clock_out_time)
            return ZERO_HOURS

        clock_in = minutes_of_day(in_at)
        clock_out = normalize_overnight(clock_in, minutes_of_day(out_at))
        result = self._factory.for_session(parsed.session).compute(clock_in, clock_out).rounded()
        logger.debug(
            "%s %02d:%02d -> %02d:%02d => regular=%s overtime=%s",
            parsed.value, clock_in // 60, clock_in % 60, (clock_out // 60) % 24, clock_out % 60,
            result.regular_hours, result.overtime_hours,
        )
        return result


def is_late(clock_type, clock_time: datetime) -> bool:
    """Morning in is late after 08:05 (06:00-06:05 counts as on time); afternoon in after 13:05."""

    parsed = ClockType.parse(clock_type)
    minutes = minutes_of_day(clock_time)
    if parsed == ClockType.MORNING_IN:
        if EARLY_MORNING_START <= minutes <= EARLY_MORNING_START + REGULAR_GRACE_MINUTES:
            return False
        return minutes > MORNING_START + REGULAR_GRACE_MINUTES
    if parsed == ClockType.AFTERNOON_IN:
        return minutes > AFTERNOON_START + REGULAR_GRACE_MINUTES
    return False


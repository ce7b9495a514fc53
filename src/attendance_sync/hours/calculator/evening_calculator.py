from __future__ import annotations

from ...core.constants import (
    EVENING_CLOCK_IN_FROM,
    EVENING_FIRST_HOUR_END,
    OVERTIME_WINDOW_END,
    SESSION_GRACE_MINUTES,
)
from ..model import HoursResult
from ..rules import half_hour_hours
from .base import SessionCalculator


class EveningSessionCalculator(SessionCalculator):
    """Evening hours are always overtime.

    First hour (17:00-18:00) is credited by clock-in time; time after 18:00 uses half-hour
    rounding. A session started at or after 22:00 is one continuous span minus the grace.
    """

    def __init__(self, *, grace_minutes: int = SESSION_GRACE_MINUTES):
        self._grace = int(grace_minutes)

    def first_hour_credit(self, clock_in: int) -> float:
        if clock_in <= EVENING_CLOCK_IN_FROM:
            return 1.0
        if clock_in < EVENING_FIRST_HOUR_END:
            return 0.5
        return 0.0

    def compute(self, clock_in: int, clock_out: int) -> HoursResult:
        worked = clock_out - clock_in
        if worked <= 0:
            return HoursResult()

        if clock_in >= OVERTIME_WINDOW_END:
            return HoursResult(overtime_hours=half_hour_hours(worked - self._grace))

        hours = self.first_hour_credit(clock_in)
        if clock_out > EVENING_FIRST_HOUR_END:
            hours += half_hour_hours(clock_out - max(clock_in, EVENING_FIRST_HOUR_END))
        return HoursResult(overtime_hours=hours)

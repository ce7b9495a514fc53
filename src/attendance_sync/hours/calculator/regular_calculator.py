from __future__ import annotations

import logging

from ...core.constants import (
    AFTERNOON_END,
    AFTERNOON_START,
    EARLY_ALLOWANCE_FROM,
    EARLY_ALLOWANCE_MIN_CLOCK_OUT,
    EARLY_ALLOWANCE_OVERTIME_HOURS,
    EARLY_ALLOWANCE_REGULAR_HOURS,
    EARLY_ALLOWANCE_UNTIL,
    EARLY_MORNING_START,
    LUNCH_START,
    MORNING_END,
    MORNING_START,
    NIGHT_WINDOW_END,
    OVERTIME_WINDOW_END,
    REGULAR_GRACE_MINUTES,
)
from ..model import HoursResult
from ..rules import credit_hour_blocks, lateness_credit, simple_overtime
from .base import SessionCalculator

logger = logging.getLogger(__name__)


def trailing_overtime(clock_out: int) -> float:
    """Simple overtime for the 17:00-22:00 and 22:00-06:00(+1) spans after a regular day."""

    hours = 0.0
    if clock_out > AFTERNOON_END:
        hours += simple_overtime(AFTERNOON_END, min(clock_out, OVERTIME_WINDOW_END))
    if clock_out > OVERTIME_WINDOW_END:
        hours += simple_overtime(OVERTIME_WINDOW_END, min(clock_out, NIGHT_WINDOW_END))
    return hours


def afternoon_blocks(*, clock_in: int, clock_out: int) -> float:
    if clock_in >= AFTERNOON_END or clock_out <= AFTERNOON_START:
        return 0.0
    return credit_hour_blocks(
        clock_in=clock_in,
        work_start=clock_in,
        work_end=clock_out,
        session_start=AFTERNOON_START,
        session_end=AFTERNOON_END,
        grace=REGULAR_GRACE_MINUTES,
    )


def early_window_overtime(clock_in: int) -> float:
    """Overtime for 06:00-08:00 when a morning session starts in [05:55, 08:00)."""

    if clock_in <= EARLY_MORNING_START + REGULAR_GRACE_MINUTES:
        return 2.0

    hours = 0.0
    for block_start in (EARLY_MORNING_START, EARLY_MORNING_START + 60):
        if clock_in < block_start + 60:
            hours += lateness_credit(max(0, clock_in - block_start), REGULAR_GRACE_MINUTES)
    return hours


class MorningSessionCalculator(SessionCalculator):
    """Morning clock-in counted continuously through the afternoon and into the evening."""

    def compute(self, clock_in: int, clock_out: int) -> HoursResult:
        if EARLY_ALLOWANCE_FROM <= clock_in < EARLY_ALLOWANCE_UNTIL and clock_out >= EARLY_ALLOWANCE_MIN_CLOCK_OUT:
            logger.debug("Early-morning allowance applied")
            return HoursResult(
                regular_hours=EARLY_ALLOWANCE_REGULAR_HOURS,
                overtime_hours=EARLY_ALLOWANCE_OVERTIME_HOURS,
            )

        regular = 0.0
        overtime = 0.0

        if EARLY_ALLOWANCE_FROM <= clock_in < MORNING_START:
            overtime += early_window_overtime(clock_in)

        if clock_in < MORNING_END and clock_out > MORNING_START:
            regular += credit_hour_blocks(
                clock_in=max(clock_in, MORNING_START),
                work_start=clock_in,
                work_end=clock_out,
                session_start=MORNING_START,
                session_end=MORNING_END,
                grace=REGULAR_GRACE_MINUTES,
            )

        # Lunch is excluded; whoever stays past it is treated as on time at 13:00.
        regular += afternoon_blocks(clock_in=AFTERNOON_START, clock_out=clock_out)
        overtime += trailing_overtime(clock_out)
        return HoursResult(regular_hours=regular, overtime_hours=overtime)


class AfternoonSessionCalculator(SessionCalculator):
    def compute(self, clock_in: int, clock_out: int) -> HoursResult:
        overtime = 0.0
        effective_in = clock_in

        if clock_in < LUNCH_START:
            overtime += simple_overtime(clock_in, min(clock_out, AFTERNOON_START))
        elif clock_in < AFTERNOON_START:
            effective_in = AFTERNOON_START

        regular = afternoon_blocks(clock_in=effective_in, clock_out=clock_out)
        overtime += trailing_overtime(clock_out)
        return HoursResult(regular_hours=regular, overtime_hours=overtime)

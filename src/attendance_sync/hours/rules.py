"""Building blocks shared by the session calculators.

All times are minutes from midnight of the clock-in day; a clock-out on the following day is
expressed as ``minutes + 1440`` (see ``normalize_overnight``).
"""

from __future__ import annotations

import logging

from ..core.constants import HALF_HOUR_THRESHOLD_MINUTES, LATENESS_CUTOFF_MINUTES, MINUTES_PER_DAY

logger = logging.getLogger(__name__)


def normalize_overnight(clock_in: int, clock_out: int) -> int:
    if clock_out < clock_in:
        return clock_out + MINUTES_PER_DAY
    return clock_out


def half_hour_hours(minutes: int) -> float:
    """Whole hours plus 0.5 when the remainder reaches 30 minutes; shorter remainders are dropped."""

    if minutes <= 0:
        return 0.0
    whole, remainder = divmod(int(minutes), 60)
    return whole + (0.5 if remainder >= HALF_HOUR_THRESHOLD_MINUTES else 0.0)


def simple_overtime(start: int, end: int) -> float:
    return half_hour_hours(end - start)


def lateness_credit(lateness: int, grace: int) -> float:
    if lateness <= grace:
        return 1.0
    if lateness <= LATENESS_CUTOFF_MINUTES:
        return 0.5
    return 0.0


def credit_hour_blocks(
    *,
    clock_in: int,
    work_start: int,
    work_end: int,
    session_start: int,
    session_end: int,
    grace: int,
) -> float:
    """Per-hour crediting for a regular session.

    ``clock_in`` drives lateness; ``work_start``/``work_end`` bound the time actually worked.
    A block is credited from its own start:

    - lateness <= grace: 1.0 when at least 30 minutes were worked in the block, else 0.5
    - grace < lateness <= 30: 0.5 when at least 30 minutes were worked, else 0
    - lateness > 30: 0

    The step between 30 and 31 minutes late is intentional and must not be smoothed.
    """

    start = max(work_start, session_start)
    end = min(work_end, session_end)
    if end <= start:
        return 0.0

    total = 0.0
    for block_start in range(session_start, session_end, 60):
        block_end = block_start + 60
        if end <= block_start or start >= block_end:
            continue

        worked = min(end, block_end) - max(start, block_start)
        lateness = max(0, clock_in - block_start)
        if lateness <= grace:
            credit = 1.0 if worked >= HALF_HOUR_THRESHOLD_MINUTES else 0.5
        elif lateness <= LATENESS_CUTOFF_MINUTES:
            credit = 0.5 if worked >= HALF_HOUR_THRESHOLD_MINUTES else 0.0
        else:
            credit = 0.0

        logger.debug(
            "Block %02d:%02d worked=%s late=%s credit=%s",
            block_start // 60, block_start % 60, worked, lateness, credit,
        )
        total += credit
    return total

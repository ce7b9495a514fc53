from __future__ import annotations

from ...core.constants import SESSION_GRACE_MINUTES
from ..model import HoursResult
from ..rules import half_hour_hours
from .base import SessionCalculator


class OvertimeSessionCalculator(SessionCalculator):
    """Standalone overtime: (worked - grace) with half-hour rounding, no tiers."""

    def __init__(self, *, grace_minutes: int = SESSION_GRACE_MINUTES):
        self._grace = int(grace_minutes)

    def compute(self, clock_in: int, clock_out: int) -> HoursResult:
        effective = max(0, clock_out - clock_in - self._grace)
        return HoursResult(overtime_hours=half_hour_hours(effective))

from __future__ import annotations

from abc import ABC, abstractmethod

from ..model import HoursResult


class SessionCalculator(ABC):
    """Calculator interface (Strategy Pattern, one per session)."""

    @abstractmethod
    def compute(self, clock_in: int, clock_out: int) -> HoursResult:
        """Hours for a session; ``clock_out`` is already normalized past midnight."""

        raise NotImplementedError

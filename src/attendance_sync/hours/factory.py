from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from ..core.enums import Session
from .calculator.base import SessionCalculator
from .calculator.evening_calculator import EveningSessionCalculator
from .calculator.overtime_calculator import OvertimeSessionCalculator
from .calculator.regular_calculator import AfternoonSessionCalculator, MorningSessionCalculator


def _default_calculators() -> Dict[Session, SessionCalculator]:
    return {
        Session.MORNING: MorningSessionCalculator(),
        Session.AFTERNOON: AfternoonSessionCalculator(),
        Session.EVENING: EveningSessionCalculator(),
        Session.OVERTIME: OvertimeSessionCalculator(),
    }


@dataclass
class SessionCalculatorFactory:
    """Factory Pattern: choose the calculator for a session."""

    calculators: Dict[Session, SessionCalculator] = field(default_factory=_default_calculators)

    def for_session(self, session: Session) -> SessionCalculator:
        return self.calculators[session]

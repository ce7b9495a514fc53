from .model import HoursResult
from .service import HoursCalculator

__all__ = ["HoursCalculator", "HoursResult"]

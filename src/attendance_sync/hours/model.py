from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class HoursResult:
    regular_hours: float = 0.0
    overtime_hours: float = 0.0

    @property
    def total_hours(self) -> float:
        return round(self.regular_hours + self.overtime_hours, 2)

    def __add__(self, other: "HoursResult") -> "HoursResult":
        return HoursResult(
            regular_hours=self.regular_hours + other.regular_hours,
            overtime_hours=self.overtime_hours + other.overtime_hours,
        )

    def rounded(self) -> "HoursResult":
        return HoursResult(regular_hours=round2(self.regular_hours), overtime_hours=round2(self.overtime_hours))

    def matches(self, regular_hours: float, overtime_hours: float, *, tolerance: float) -> bool:
        return (
            abs(self.regular_hours - regular_hours) <= tolerance
            and abs(self.overtime_hours - overtime_hours) <= tolerance
        )


def round2(value: float) -> float:
    return round(float(value), 2)


ZERO_HOURS = HoursResult()

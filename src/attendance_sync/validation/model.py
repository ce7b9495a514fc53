from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Set

from ..attendance.model import DayKey
from ..core.enums import ClockType


@dataclass(frozen=True)
class ValidationOptions:
    auto_correct: bool = True
    rebuild_summary: bool = True
    # Rebuild every touched summary even when nothing was corrected.
    force_rebuild: bool = False


@dataclass(frozen=True)
class Correction:
    event_id: int
    employee_id: int
    work_date: date
    clock_type: ClockType
    stored_regular_hours: float
    stored_overtime_hours: float
    expected_regular_hours: float
    expected_overtime_hours: float
    applied: bool

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "employee_uid": self.employee_id,
            "date": self.work_date.isoformat(),
            "clock_type": self.clock_type.value,
            "stored": {"regular_hours": self.stored_regular_hours, "overtime_hours": self.stored_overtime_hours},
            "expected": {"regular_hours": self.expected_regular_hours, "overtime_hours": self.expected_overtime_hours},
            "applied": self.applied,
        }


@dataclass(frozen=True)
class ValidationIssue:
    """A record that cannot be validated (e.g. a clock-out with no clock-in); never auto-corrected."""

    event_id: int
    employee_id: int
    work_date: date
    clock_type: ClockType
    message: str

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "employee_uid": self.employee_id,
            "date": self.work_date.isoformat(),
            "clock_type": self.clock_type.value,
            "message": self.message,
        }


@dataclass
class ValidationReport:
    total_records: int = 0
    valid_records: int = 0
    corrected_records: int = 0
    error_records: int = 0
    rebuilt_summaries: int = 0
    corrections: List[Correction] = field(default_factory=list)
    issues: List[ValidationIssue] = field(default_factory=list)
    corrected_keys: Set[DayKey] = field(default_factory=set)

    def merge(self, other: "ValidationReport") -> None:
        self.total_records += other.total_records
        self.valid_records += other.valid_records
        self.corrected_records += other.corrected_records
        self.error_records += other.error_records
        self.rebuilt_summaries += other.rebuilt_summaries
        self.corrections.extend(other.corrections)
        self.issues.extend(other.issues)
        self.corrected_keys |= other.corrected_keys

    def to_dict(self) -> dict:
        return {
            "total_records": self.total_records,
            "valid_records": self.valid_records,
            "corrected_records": self.corrected_records,
            "error_records": self.error_records,
            "rebuilt_summaries": self.rebuilt_summaries,
            "corrections": [c.to_dict() for c in self.corrections],
            "issues": [i.to_dict() for i in self.issues],
        }

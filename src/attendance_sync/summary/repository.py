from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import DailySummary


class SummaryRepository(Protocol):
    def get(self, employee_id: int, work_date: date) -> Optional[DailySummary]:
        raise NotImplementedError

    def list_range(self, *, start_date: date, end_date: date, employee_id: Optional[int] = None) -> Sequence[DailySummary]:
        raise NotImplementedError

    def delete(self, employee_id: int, work_date: date) -> bool:
        raise NotImplementedError

    def insert(self, summary: DailySummary) -> None:
        raise NotImplementedError

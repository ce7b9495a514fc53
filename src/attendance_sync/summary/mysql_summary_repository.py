from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone
from .model import SESSION_TIME_FIELDS, DailySummary
from .repository import SummaryRepository

_SCALAR_COLUMNS = (
    "first_clock_in",
    "last_clock_out",
    "regular_hours",
    "overtime_hours",
    "total_hours",
    "morning_hours",
    "afternoon_hours",
    "evening_hours",
    "overtime_session_hours",
    "is_incomplete",
    "has_late_entry",
    "has_overtime",
    "has_evening_session",
    "total_sessions",
    "completed_sessions",
    "pending_sessions",
    "total_minutes_worked",
    "break_time_minutes",
    "last_updated",
)
_FLAGS = ("is_incomplete", "has_late_entry", "has_overtime", "has_evening_session")
_FLOATS = (
    "regular_hours",
    "overtime_hours",
    "total_hours",
    "morning_hours",
    "afternoon_hours",
    "evening_hours",
    "overtime_session_hours",
)
_INTS = ("total_sessions", "completed_sessions", "pending_sessions", "total_minutes_worked", "break_time_minutes")

_ALL_COLUMNS = ("employee_uid", "work_date", *SESSION_TIME_FIELDS, *_SCALAR_COLUMNS)
_SELECT = f"SELECT {', '.join(_ALL_COLUMNS)} FROM daily_summaries"


def _row_to_summary(r: Dict[str, Any]) -> DailySummary:
    kwargs: Dict[str, Any] = {
        "employee_id": int(r["employee_uid"]),
        "work_date": r["work_date"],
        "session_times": {name: r.get(name) for name in SESSION_TIME_FIELDS},
        "first_clock_in": r.get("first_clock_in"),
        "last_clock_out": r.get("last_clock_out"),
        "last_updated": r.get("last_updated"),
    }
    kwargs.update({name: float(r.get(name) or 0) for name in _FLOATS})
    kwargs.update({name: int(r.get(name) or 0) for name in _INTS})
    kwargs.update({name: as_bool(r.get(name)) for name in _FLAGS})
    return DailySummary(**kwargs)


class MySQLSummaryRepository(SummaryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, employee_id: int, work_date: date) -> Optional[DailySummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE employee_uid=%s AND work_date=%s", (int(employee_id), work_date))
            r = fetchone(cur)
            return _row_to_summary(r) if r else None

    def list_range(self, *, start_date: date, end_date: date, employee_id: Optional[int] = None) -> Sequence[DailySummary]:
        sql = f"{_SELECT} WHERE work_date BETWEEN %s AND %s"
        params: list = [start_date, end_date]
        if employee_id is not None:
            sql += " AND employee_uid=%s"
            params.append(int(employee_id))
        sql += " ORDER BY work_date, employee_uid"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_summary(r) for r in fetchall(cur)]

    def delete(self, employee_id: int, work_date: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM daily_summaries WHERE employee_uid=%s AND work_date=%s",
                (int(employee_id), work_date),
            )
            return cur.rowcount > 0

    def insert(self, summary: DailySummary) -> None:
        values = [summary.employee_id, summary.work_date]
        values += [summary.session_times.get(name) for name in SESSION_TIME_FIELDS]
        for name in _SCALAR_COLUMNS:
            value = getattr(summary, name)
            values.append(int(value) if name in _FLAGS else value)

        placeholders = ", ".join(["%s"] * len(_ALL_COLUMNS))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO daily_summaries ({', '.join(_ALL_COLUMNS)}) VALUES ({placeholders})",
                tuple(values),
            )

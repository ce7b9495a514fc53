from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional, Sequence

from ..core.enums import ClockType, SyncState
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone
from .model import ClockEvent, UpsertOutcome, same_content
from .repository import AttendanceRepository

_COLUMNS = "id, employee_uid, clock_type, clock_time, work_date, regular_hours, overtime_hours, is_late, sync_state"


def _row_to_event(r: Dict[str, Any]) -> ClockEvent:
    return ClockEvent(
        id=int(r["id"]),
        employee_id=int(r["employee_uid"]),
        clock_type=ClockType(r["clock_type"]),
        timestamp=r["clock_time"],
        calendar_date=r["work_date"],
        regular_hours=float(r.get("regular_hours") or 0),
        overtime_hours=float(r.get("overtime_hours") or 0),
        is_late=as_bool(r.get("is_late")),
        sync_state=SyncState(r.get("sync_state") or SyncState.NEVER_SYNCED.value),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_range(self, *, start_date: date, end_date: date, employee_id: Optional[int] = None) -> Sequence[ClockEvent]:
        sql = f"SELECT {_COLUMNS} FROM attendance_events WHERE work_date BETWEEN %s AND %s"
        params: list = [start_date, end_date]
        if employee_id is not None:
            sql += " AND employee_uid=%s"
            params.append(int(employee_id))
        sql += " ORDER BY employee_uid, work_date, clock_time, id"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_event(r) for r in fetchall(cur)]

    def list_for_day(self, employee_id: int, work_date: date) -> Sequence[ClockEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_events
                WHERE employee_uid=%s AND work_date=%s
                ORDER BY clock_time, id
                """,
                (int(employee_id), work_date),
            )
            return [_row_to_event(r) for r in fetchall(cur)]

    def get(self, event_id: int) -> Optional[ClockEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_events WHERE id=%s", (int(event_id),))
            r = fetchone(cur)
            return _row_to_event(r) if r else None

    def last_for_employee(self, employee_id: int) -> Optional[ClockEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_events
                WHERE employee_uid=%s
                ORDER BY clock_time DESC, id DESC
                LIMIT 1
                """,
                (int(employee_id),),
            )
            r = fetchone(cur)
            return _row_to_event(r) if r else None

    def create(
        self,
        *,
        employee_id: int,
        clock_type: ClockType,
        timestamp: datetime,
        calendar_date: date,
        regular_hours: float = 0.0,
        overtime_hours: float = 0.0,
        is_late: bool = False,
    ) -> ClockEvent:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_events
                    (employee_uid, clock_type, clock_time, work_date, regular_hours, overtime_hours, is_late, sync_state)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    int(employee_id),
                    clock_type.value,
                    timestamp,
                    calendar_date,
                    regular_hours,
                    overtime_hours,
                    1 if is_late else 0,
                    SyncState.NEVER_SYNCED.value,
                ),
            )
            new_id = int(cur.lastrowid)
        return ClockEvent(
            id=new_id,
            employee_id=int(employee_id),
            clock_type=clock_type,
            timestamp=timestamp,
            calendar_date=calendar_date,
            regular_hours=regular_hours,
            overtime_hours=overtime_hours,
            is_late=is_late,
        )

    def upsert(self, event: ClockEvent) -> UpsertOutcome:
        existing = self.get(event.id)
        if existing is not None and same_content(existing, event) and existing.sync_state == event.sync_state:
            return UpsertOutcome.UNCHANGED

        params = (
            event.employee_id,
            event.clock_type.value,
            event.timestamp,
            event.calendar_date,
            event.regular_hours,
            event.overtime_hours,
            1 if event.is_late else 0,
            event.sync_state.value,
        )
        with db_cursor(self._conn_factory) as (_, cur):
            if existing is None:
                cur.execute(
                    """
                    INSERT INTO attendance_events
                        (employee_uid, clock_type, clock_time, work_date, regular_hours, overtime_hours, is_late,
                         sync_state, id)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    params + (event.id,),
                )
                return UpsertOutcome.INSERTED

            cur.execute(
                """
                UPDATE attendance_events
                SET employee_uid=%s, clock_type=%s, clock_time=%s, work_date=%s, regular_hours=%s,
                    overtime_hours=%s, is_late=%s, sync_state=%s
                WHERE id=%s
                """,
                params + (event.id,),
            )
            return UpsertOutcome.UPDATED

    def update_hours(self, event_id: int, *, regular_hours: float, overtime_hours: float, sync_state: SyncState) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_events
                SET regular_hours=%s, overtime_hours=%s, sync_state=%s
                WHERE id=%s
                """,
                (regular_hours, overtime_hours, sync_state.value, int(event_id)),
            )
            return cur.rowcount > 0

    def delete(self, event_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_events WHERE id=%s", (int(event_id),))
            return cur.rowcount > 0

    def set_sync_state(self, event_ids: Iterable[int], sync_state: SyncState) -> int:
        ids = [int(i) for i in event_ids]
        if not ids:
            return 0
        placeholders = ", ".join(["%s"] * len(ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE attendance_events SET sync_state=%s WHERE id IN ({placeholders})",
                (sync_state.value, *ids),
            )
            return int(cur.rowcount)

    def list_pending(self, *, limit: int) -> Sequence[ClockEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_events
                WHERE sync_state <> %s
                ORDER BY clock_time, id
                LIMIT %s
                """,
                (SyncState.SYNCED.value, int(limit)),
            )
            return [_row_to_event(r) for r in fetchall(cur)]

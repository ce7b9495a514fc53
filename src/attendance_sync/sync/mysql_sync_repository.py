from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.constants import CHECKPOINT_SETTING_KEY
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone
from .model import SyncLogEntry
from .repository import CheckpointRepository, SyncLogRepository


class MySQLCheckpointRepository(CheckpointRepository):
    """Stores the remote cursor as one row of the ``settings`` table."""

    def __init__(self, conn_factory: DatabaseConnection, *, key: str = CHECKPOINT_SETTING_KEY):
        self._conn_factory = conn_factory
        self._key = key

    def get(self) -> Optional[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT setting_value FROM settings WHERE setting_key=%s", (self._key,))
            r = fetchone(cur)
            return r["setting_value"] if r and r.get("setting_value") else None

    def set(self, cursor: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO settings (setting_key, setting_value)
                VALUES (%s, %s)
                ON DUPLICATE KEY UPDATE setting_value=VALUES(setting_value), updated_at=CURRENT_TIMESTAMP
                """,
                (self._key, cursor),
            )


class MySQLSyncLogRepository(SyncLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def add(self, entry: SyncLogEntry) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO sync_log
                    (sync_time, records_checked, records_updated, records_deleted, records_uploaded,
                     success, error_message)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    entry.sync_time,
                    entry.records_checked,
                    entry.records_updated,
                    entry.records_deleted,
                    entry.records_uploaded,
                    1 if entry.success else 0,
                    entry.error_message,
                ),
            )
            return int(cur.lastrowid)

    def recent(self, limit: int) -> Sequence[SyncLogEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, sync_time, records_checked, records_updated, records_deleted, records_uploaded,
                       success, error_message
                FROM sync_log
                ORDER BY sync_time DESC, id DESC
                LIMIT %s
                """,
                (int(limit),),
            )
            return [
                SyncLogEntry(
                    id=int(r["id"]),
                    sync_time=r["sync_time"],
                    records_checked=int(r["records_checked"] or 0),
                    records_updated=int(r["records_updated"] or 0),
                    records_deleted=int(r["records_deleted"] or 0),
                    records_uploaded=int(r["records_uploaded"] or 0),
                    success=as_bool(r.get("success")),
                    error_message=r.get("error_message"),
                )
                for r in fetchall(cur)
            ]

    def prune(self, *, older_than: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM sync_log WHERE sync_time < %s", (older_than,))
            return int(cur.rowcount)

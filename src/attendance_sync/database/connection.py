from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, Protocol

import mysql.connector


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str


class TransactionManager(Protocol):
    def transaction(self):
        """Context manager; everything inside commits together or not at all."""

        raise NotImplementedError


class DatabaseConnection:
    """DB connection factory with per-thread transaction scoping.

    Note: Outside a transaction we create short-lived connections per operation.
    Inside ``transaction()`` every repository call on the same thread reuses one connection,
    so a multi-row correction/apply/rebuild commits or rolls back as a unit.
    """

    def __init__(self, config: DBConfig):
        self._config = config
        self._local = threading.local()

    def connect(self):
        return mysql.connector.connect(
            host=self._config.host,
            port=int(self._config.port),
            user=self._config.user,
            password=self._config.password,
            database=self._config.database,
        )

    @property
    def active_connection(self) -> Optional[object]:
        return getattr(self._local, "conn", None)

    @contextmanager
    def transaction(self) -> Iterator[object]:
        # Nested calls join the outermost transaction.
        if self.active_connection is not None:
            yield self.active_connection
            return

        conn = self.connect()
        self._local.conn = conn
        try:
            conn.start_transaction()
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._local.conn = None
            conn.close()

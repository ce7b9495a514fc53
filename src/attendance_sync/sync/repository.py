from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import SyncLogEntry


class CheckpointRepository(Protocol):
    def get(self) -> Optional[str]:
        raise NotImplementedError

    def set(self, cursor: str) -> None:
        raise NotImplementedError


class SyncLogRepository(Protocol):
    def add(self, entry: SyncLogEntry) -> int:
        raise NotImplementedError

    def recent(self, limit: int) -> Sequence[SyncLogEntry]:
        raise NotImplementedError

    def prune(self, *, older_than: datetime) -> int:
        raise NotImplementedError

from __future__ import annotations

from enum import Enum


class Session(str, Enum):
    """Work session; each one has its own in/out pair and hour-accounting rule."""

    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    OVERTIME = "overtime"


class ClockType(str, Enum):
    """Clock event type as stored locally and on the server."""

    MORNING_IN = "morning_in"
    MORNING_OUT = "morning_out"
    AFTERNOON_IN = "afternoon_in"
    AFTERNOON_OUT = "afternoon_out"
    EVENING_IN = "evening_in"
    EVENING_OUT = "evening_out"
    OVERTIME_IN = "overtime_in"
    OVERTIME_OUT = "overtime_out"

    @property
    def session(self) -> Session:
        return Session(self.value.rsplit("_", 1)[0])

    @property
    def is_in(self) -> bool:
        return self.value.endswith("_in")

    @property
    def is_out(self) -> bool:
        return self.value.endswith("_out")

    @property
    def paired(self) -> "ClockType":
        if self.is_in:
            return ClockType(f"{self.session.value}_out")
        return ClockType(f"{self.session.value}_in")

    @classmethod
    def parse(cls, value) -> "ClockType | None":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            return None


class SyncState(str, Enum):
    """Replication state of a local row."""

    NEVER_SYNCED = "never_synced"
    SYNCED = "synced"
    DIRTY = "dirty"

    @property
    def needs_upload(self) -> bool:
        return self != SyncState.SYNCED


class ActionType(str, Enum):
    ADD_FROM_SERVER = "add_from_server"
    UPDATE_FROM_SERVER = "update_from_server"
    DELETE_LOCAL = "delete_local"
    KEEP_LOCAL = "keep_local"


class ReconciliationStage(str, Enum):
    INITIALIZING = "initializing"
    FETCHING = "fetching"
    APPLYING = "applying"
    VALIDATING = "validating"
    REBUILDING = "rebuilding"
    UPLOADING = "uploading"
    ACK = "ack"
    IDLE = "idle"
    FAILED = "failed"


class EventType(str, Enum):
    """Outbound notifications relayed to the UI by an external pub/sub layer."""

    ATTENDANCE_CHANGED = "attendance_changed"
    SUMMARY_REBUILT = "summary_rebuilt"
    VALIDATION_COMPLETED = "validation_completed"
    REUPLOAD_COMPLETED = "reupload_completed"
    SYNC_COMPLETED = "sync_completed"
    SYNC_ERROR = "sync_error"
    POLLING_FAILED = "polling_failed"

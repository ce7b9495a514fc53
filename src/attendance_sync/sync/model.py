from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Set

from ..attendance.model import ClockEvent, DayKey
from ..core.enums import ActionType, ClockType, ReconciliationStage
from ..core.exceptions import ValidationError
from ..validation.model import ValidationReport


@dataclass(frozen=True)
class RemoteChanges:
    edited: List[ClockEvent]
    deleted: List[int]
    cursor: Optional[str] = None
    # Edited payloads that could not be parsed; reported, never applied.
    rejected: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.edited and not self.deleted


@dataclass(frozen=True)
class ComparisonEntry:
    record_id: int
    local: Optional[ClockEvent] = None
    server: Optional[ClockEvent] = None
    differences: List[str] = field(default_factory=list)
    recommendation: Optional[ActionType] = None
    # Local row the next cycle will push upstream; keep_local leaves it queued for that push.
    pending_upload: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.record_id,
            "local": self.local.to_remote() if self.local else None,
            "server": self.server.to_remote() if self.server else None,
            "differences": list(self.differences),
            "recommendation": self.recommendation.value if self.recommendation else None,
            "pending_upload": self.pending_upload,
        }


@dataclass(frozen=True)
class DuplicateCluster:
    """Scans of the same type within a few minutes of each other; flagged, never merged."""

    employee_id: int
    work_date: date
    clock_type: ClockType
    record_ids: List[int]
    timestamps: List[datetime]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "employee_uid": self.employee_id,
            "date": self.work_date.isoformat(),
            "clock_type": self.clock_type.value,
            "ids": list(self.record_ids),
            "clock_times": [t.isoformat(sep=" ") for t in self.timestamps],
        }


@dataclass
class ComparisonResult:
    start_date: date
    end_date: date
    server_only: List[ComparisonEntry] = field(default_factory=list)
    local_only: List[ComparisonEntry] = field(default_factory=list)
    different: List[ComparisonEntry] = field(default_factory=list)
    identical: List[ComparisonEntry] = field(default_factory=list)
    server_deleted: List[ComparisonEntry] = field(default_factory=list)
    duplicates: List[DuplicateCluster] = field(default_factory=list)
    compared_at: Optional[datetime] = None

    def counts(self) -> Dict[str, int]:
        return {
            "server_only": len(self.server_only),
            "local_only": len(self.local_only),
            "different": len(self.different),
            "identical": len(self.identical),
            "server_deleted": len(self.server_deleted),
            "duplicates": len(self.duplicates),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "counts": self.counts(),
            "server_only": [e.to_dict() for e in self.server_only],
            "local_only": [e.to_dict() for e in self.local_only],
            "different": [e.to_dict() for e in self.different],
            "identical": [e.record_id for e in self.identical],
            "server_deleted": [e.to_dict() for e in self.server_deleted],
            "duplicates": [d.to_dict() for d in self.duplicates],
        }


@dataclass(frozen=True)
class SyncAction:
    type: ActionType
    record_id: int
    record: Optional[ClockEvent] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SyncAction":
        try:
            action_type = ActionType(str(data.get("type")))
        except ValueError as exc:
            raise ValidationError(f"Unknown action type {data.get('type')!r}") from exc

        payload = data.get("payload") or data.get("record")
        if action_type in (ActionType.ADD_FROM_SERVER, ActionType.UPDATE_FROM_SERVER):
            if not isinstance(payload, dict):
                raise ValidationError(f"{action_type.value} needs a record payload")
            record = ClockEvent.from_remote(payload)
            return cls(type=action_type, record_id=record.id, record=record)

        raw_id = data.get("id")
        if raw_id is None and isinstance(payload, dict):
            raw_id = payload.get("id")
        try:
            record_id = int(raw_id)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"{action_type.value} needs a record id") from exc
        return cls(type=action_type, record_id=record_id)


@dataclass
class ApplyResult:
    added: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0
    kept: int = 0
    errors: List[str] = field(default_factory=list)
    affected_keys: Set[DayKey] = field(default_factory=set)
    validation: Optional[ValidationReport] = None
    rebuilt: int = 0
    summaries_uploaded: int = 0

    @property
    def applied(self) -> int:
        return self.added + self.updated

    def to_dict(self) -> Dict[str, Any]:
        return {
            "added": self.added,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "deleted": self.deleted,
            "kept": self.kept,
            "errors": list(self.errors),
            "affected_keys": [
                {"employee_uid": emp, "date": day.isoformat()} for emp, day in sorted(self.affected_keys)
            ],
            "corrected": self.validation.corrected_records if self.validation else 0,
            "rebuilt": self.rebuilt,
            "summaries_uploaded": self.summaries_uploaded,
        }


@dataclass
class CycleReport:
    """Per-cycle summary shown to the operator."""

    started_at: datetime
    stage: ReconciliationStage = ReconciliationStage.INITIALIZING
    finished_at: Optional[datetime] = None
    checked: int = 0
    applied: int = 0
    deleted: int = 0
    corrected: int = 0
    rebuilt: int = 0
    uploaded: int = 0
    errors: List[str] = field(default_factory=list)
    error: Optional[str] = None
    failed_stage: Optional[ReconciliationStage] = None
    checkpoint: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(sep=" "),
            "finished_at": self.finished_at.isoformat(sep=" ") if self.finished_at else None,
            "stage": self.stage.value,
            "checked": self.checked,
            "applied": self.applied,
            "deleted": self.deleted,
            "corrected": self.corrected,
            "rebuilt": self.rebuilt,
            "uploaded": self.uploaded,
            "errors": list(self.errors),
            "error": self.error,
            "failed_stage": self.failed_stage.value if self.failed_stage else None,
            "checkpoint": self.checkpoint,
        }


@dataclass(frozen=True)
class SyncLogEntry:
    sync_time: datetime
    records_checked: int
    records_updated: int
    records_deleted: int
    records_uploaded: int
    success: bool
    error_message: Optional[str] = None
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sync_time": self.sync_time.isoformat(sep=" "),
            "records_checked": self.records_checked,
            "records_updated": self.records_updated,
            "records_deleted": self.records_deleted,
            "records_uploaded": self.records_uploaded,
            "success": self.success,
            "error_message": self.error_message,
        }

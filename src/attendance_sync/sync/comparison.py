"""Pure local-vs-server classification used by comparison mode."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..attendance.model import ClockEvent
from ..core.constants import DUPLICATE_WINDOW_MINUTES
from ..core.enums import ActionType, ClockType, SyncState
from .model import ComparisonEntry, ComparisonResult, DuplicateCluster


def field_differences(local: ClockEvent, server: ClockEvent) -> List[str]:
    diffs: List[str] = []
    if local.employee_id != server.employee_id:
        diffs.append("employee_uid")
    if local.clock_type != server.clock_type:
        diffs.append("clock_type")
    if local.timestamp.replace(microsecond=0) != server.timestamp.replace(microsecond=0):
        diffs.append("clock_time")
    if local.calendar_date != server.calendar_date:
        diffs.append("date")
    if round(local.regular_hours, 2) != round(server.regular_hours, 2):
        diffs.append("regular_hours")
    if round(local.overtime_hours, 2) != round(server.overtime_hours, 2):
        diffs.append("overtime_hours")
    if local.is_late != server.is_late:
        diffs.append("is_late")
    return diffs


def find_duplicates(events: Iterable[ClockEvent], *, window_minutes: int = DUPLICATE_WINDOW_MINUTES) -> List[DuplicateCluster]:
    """Chains of same-type scans where each is within ``window_minutes`` of the previous one."""

    groups: Dict[Tuple[int, date, ClockType], List[ClockEvent]] = defaultdict(list)
    for event in events:
        groups[(event.employee_id, event.calendar_date, event.clock_type)].append(event)

    window = timedelta(minutes=window_minutes)
    clusters: List[DuplicateCluster] = []
    for (employee_id, work_date, clock_type), members in sorted(groups.items(), key=lambda kv: (kv[0][0], kv[0][1], kv[0][2].value)):
        members.sort(key=lambda e: (e.timestamp, e.id))
        chain: List[ClockEvent] = [members[0]]
        for event in members[1:]:
            if event.timestamp - chain[-1].timestamp <= window:
                chain.append(event)
                continue
            if len(chain) > 1:
                clusters.append(_cluster(employee_id, work_date, clock_type, chain))
            chain = [event]
        if len(chain) > 1:
            clusters.append(_cluster(employee_id, work_date, clock_type, chain))
    return clusters


def _cluster(employee_id: int, work_date: date, clock_type: ClockType, chain: List[ClockEvent]) -> DuplicateCluster:
    return DuplicateCluster(
        employee_id=employee_id,
        work_date=work_date,
        clock_type=clock_type,
        record_ids=[e.id for e in chain],
        timestamps=[e.timestamp for e in chain],
    )


def classify(
    local: Sequence[ClockEvent],
    server: Sequence[ClockEvent],
    *,
    start_date: date,
    end_date: date,
    compared_at: Optional[datetime] = None,
) -> ComparisonResult:
    local_by_id = {e.id: e for e in local}
    server_by_id = {e.id: e for e in server}
    result = ComparisonResult(start_date=start_date, end_date=end_date, compared_at=compared_at)

    for record_id in sorted(set(local_by_id) | set(server_by_id)):
        mine = local_by_id.get(record_id)
        theirs = server_by_id.get(record_id)

        if mine is None:
            result.server_only.append(
                ComparisonEntry(record_id=record_id, server=theirs, recommendation=ActionType.ADD_FROM_SERVER)
            )
        elif theirs is None:
            if mine.sync_state == SyncState.NEVER_SYNCED:
                result.local_only.append(
                    ComparisonEntry(
                        record_id=record_id,
                        local=mine,
                        recommendation=ActionType.KEEP_LOCAL,
                        pending_upload=True,
                    )
                )
            else:
                # Acknowledged once, now gone from the server.
                result.server_deleted.append(
                    ComparisonEntry(record_id=record_id, local=mine, recommendation=ActionType.DELETE_LOCAL)
                )
        else:
            diffs = field_differences(mine, theirs)
            entry = ComparisonEntry(record_id=record_id, local=mine, server=theirs, differences=diffs)
            (result.different if diffs else result.identical).append(entry)

    merged = list(local) + [e.server for e in result.server_only if e.server is not None]
    result.duplicates = find_duplicates(merged)
    return result

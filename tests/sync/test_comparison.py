from __future__ import annotations

from datetime import date

from attendance_sync.core.enums import ActionType, ClockType, SyncState
from attendance_sync.sync.comparison import classify, find_duplicates

from conftest import make_event

DAY = date(2024, 5, 1)


def test_classification_buckets():
    local = [
        make_event(1, ClockType.MORNING_IN, "2024-05-01 08:00:00"),
        make_event(2, ClockType.MORNING_OUT, "2024-05-01 12:00:00", regular=3.5),
        make_event(3, ClockType.AFTERNOON_IN, "2024-05-01 13:00:00", state=SyncState.NEVER_SYNCED),
        make_event(4, ClockType.AFTERNOON_OUT, "2024-05-01 17:00:00", regular=4.0),
    ]
    server = [
        make_event(1, ClockType.MORNING_IN, "2024-05-01 08:00:00"),
        make_event(2, ClockType.MORNING_OUT, "2024-05-01 12:00:00", regular=4.0),
        make_event(5, ClockType.EVENING_IN, "2024-05-01 17:30:00"),
    ]

    result = classify(local, server, start_date=DAY, end_date=DAY)

    counts = result.counts()
    assert counts["identical"] == 1
    assert counts["different"] == 1
    assert counts["server_only"] == 1
    assert counts["local_only"] == 1
    assert counts["server_deleted"] == 1
    assert result.different[0].differences == ["regular_hours"]
    assert result.server_only[0].recommendation == ActionType.ADD_FROM_SERVER
    assert result.local_only[0].recommendation == ActionType.KEEP_LOCAL
    assert result.local_only[0].pending_upload
    assert result.to_dict()["local_only"][0]["pending_upload"] is True
    assert not result.server_deleted[0].pending_upload
    assert result.server_deleted[0].record_id == 4
    assert result.server_deleted[0].recommendation == ActionType.DELETE_LOCAL


def test_duplicates_chain_within_the_window():
    events = [
        make_event(1, ClockType.MORNING_IN, "2024-05-01 08:00:00"),
        make_event(2, ClockType.MORNING_IN, "2024-05-01 08:04:00"),
        make_event(3, ClockType.MORNING_IN, "2024-05-01 08:08:00"),
        make_event(4, ClockType.MORNING_IN, "2024-05-01 08:20:00"),
        make_event(5, ClockType.MORNING_OUT, "2024-05-01 08:21:00"),
    ]

    clusters = find_duplicates(events)

    assert len(clusters) == 1
    assert clusters[0].record_ids == [1, 2, 3]
    assert clusters[0].clock_type == ClockType.MORNING_IN


def test_scans_six_minutes_apart_are_not_duplicates():
    events = [
        make_event(1, ClockType.EVENING_IN, "2024-05-01 17:30:00"),
        make_event(2, ClockType.EVENING_IN, "2024-05-01 17:36:00"),
    ]

    assert find_duplicates(events) == []


def test_duplicates_consider_server_only_rows():
    local = [make_event(1, ClockType.MORNING_IN, "2024-05-01 08:00:00")]
    server = [
        make_event(1, ClockType.MORNING_IN, "2024-05-01 08:00:00"),
        make_event(9, ClockType.MORNING_IN, "2024-05-01 08:02:00"),
    ]

    result = classify(local, server, start_date=DAY, end_date=DAY)

    assert [c.record_ids for c in result.duplicates] == [[1, 9]]
    assert result.to_dict()["counts"]["duplicates"] == 1

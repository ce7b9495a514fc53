from __future__ import annotations

from datetime import date

import pytest

from attendance_sync.core.enums import ActionType, ClockType, EventType, ReconciliationStage, SyncState
from attendance_sync.core.exceptions import NetworkFailure, ServerError, TransactionFailure
from attendance_sync.sync.model import ApplyResult, RemoteChanges, SyncAction
from attendance_sync.sync.remote import parse_records

from conftest import make_event

DAY = date(2024, 5, 1)


def server_pair(regular=4.0):
    return [
        make_event(1, ClockType.MORNING_IN, "2024-05-01 08:00:00"),
        make_event(2, ClockType.MORNING_OUT, "2024-05-01 12:00:00", regular=regular),
    ]


def add_actions(events):
    return [{"type": "add_from_server", "payload": e.to_remote()} for e in events]


def test_adding_the_same_server_rows_twice_is_idempotent(container, store, remote):
    first = container.engine.apply_actions(add_actions(server_pair()))
    snapshot = dict(store.events)
    second = container.engine.apply_actions(add_actions(server_pair()))

    assert first.added == 2
    assert first.affected_keys == {(7, DAY)}
    assert first.summaries_uploaded == 1
    assert second.added == 0
    assert second.unchanged == 2
    assert store.events == snapshot
    assert store.events[2].sync_state == SyncState.SYNCED
    assert store.summaries[(7, DAY)].regular_hours == 4.0


def test_server_hours_are_revalidated_after_apply(container, store):
    container.engine.apply_actions(add_actions(server_pair(regular=3.0)))
    result = container.engine.apply_actions(add_actions(server_pair(regular=3.0)))

    assert len(store.events) == 2
    assert store.events[2].regular_hours == 4.0
    assert store.events[2].sync_state == SyncState.DIRTY
    assert result.validation.corrected_records == 1
    assert store.summaries[(7, DAY)].regular_hours == 4.0


def test_delete_local_removes_row_and_summary(container, store):
    store.seed(make_event(1, ClockType.MORNING_IN, "2024-05-01 08:00:00"))
    container.summary_builder.rebuild(7, DAY)

    result = container.engine.apply_actions([{"type": "delete_local", "id": 1}])

    assert result.deleted == 1
    assert store.events == {}
    assert (7, DAY) not in store.summaries


def test_keep_local_and_missing_delete_change_nothing(container, store):
    store.seed(make_event(3, ClockType.MORNING_IN, "2024-05-01 08:00:00", state=SyncState.NEVER_SYNCED))

    result = container.engine.apply_actions([{"type": "keep_local", "id": 3}, {"type": "delete_local", "id": 99}])

    assert result.kept == 1
    assert result.unchanged == 1
    assert result.affected_keys == set()
    assert 3 in store.events


def test_malformed_actions_are_reported_and_the_rest_applied(container, store):
    actions = [{"type": "merge_everything"}, {"type": "add_from_server"}] + add_actions(server_pair()[:1])

    result = container.engine.apply_actions(actions)

    assert len(result.errors) == 2
    assert result.added == 1
    assert 1 in store.events


def test_failed_commit_rolls_back_the_whole_batch(container, store):
    store.fail_commit = True

    with pytest.raises(TransactionFailure):
        container.engine.apply_actions(add_actions(server_pair()))

    assert store.events == {}


def test_failed_summary_push_is_queued_for_reupload(container, remote):
    remote.fail["upload_summaries"] = NetworkFailure("offline")

    result = container.engine.apply_actions(add_actions(server_pair()))

    assert result.added == 2
    assert result.summaries_uploaded == 0
    assert container.scheduler.status()["reupload_queue"] == 1


def test_compare_uses_server_range_and_caches_result(container, store, remote):
    store.seed(make_event(1, ClockType.MORNING_IN, "2024-05-01 08:00:00"))
    for event in server_pair():
        remote.server_rows[event.id] = event

    result = container.engine.compare(DAY, DAY)

    assert result.counts()["identical"] == 1
    assert result.counts()["server_only"] == 1
    assert container.engine.last_comparison is result


def test_cycle_applies_uploads_and_acknowledges(container, store, remote):
    store.seed(make_event(50, ClockType.MORNING_IN, "2024-05-02 08:00:00", employee_id=9, state=SyncState.NEVER_SYNCED))
    remote.changes = RemoteChanges(edited=server_pair(), deleted=[], cursor="2024-05-01T18:00:00")

    report = container.engine.run_cycle()

    assert report.succeeded
    assert report.stage == ReconciliationStage.IDLE
    assert report.checked == 2
    assert report.applied == 2
    assert report.rebuilt == 1
    assert report.uploaded == 2
    assert remote.marked == [([1, 2], [])]
    assert [e.id for e in remote.pushed] == [50]
    assert store.events[50].sync_state == SyncState.SYNCED
    assert container.engine.checkpoint() == "2024-05-01T18:00:00"
    assert store.sync_log[-1].success
    assert EventType.SYNC_COMPLETED in [e.type for e in container.events.drain()]

    remote.changes = RemoteChanges(edited=[], deleted=[])
    container.engine.run_cycle()
    assert remote.fetch_calls == [None, "2024-05-01T18:00:00"]


def test_cycle_applies_server_deletions(container, store, remote):
    store.seed(*server_pair())
    remote.changes = RemoteChanges(edited=[], deleted=[2], cursor="c2")

    report = container.engine.run_cycle()

    assert report.deleted == 1
    assert 2 not in store.events
    assert remote.marked == [([], [2])]


def test_fetch_failure_leaves_checkpoint_alone(container, store, remote):
    store.settings["last_sync_cursor"] = "c1"
    remote.fail["fetch_changes"] = NetworkFailure("offline")

    report = container.engine.run_cycle()

    assert not report.succeeded
    assert report.stage == ReconciliationStage.FAILED
    assert report.failed_stage == ReconciliationStage.FETCHING
    assert container.engine.checkpoint() == "c1"
    assert not store.sync_log[-1].success
    errors = [e for e in container.events.drain() if e.type == EventType.SYNC_ERROR]
    assert errors[0].payload["stage"] == "fetching"


def test_checkpoint_advances_only_after_acknowledgement(container, store, remote):
    remote.changes = RemoteChanges(edited=server_pair(), deleted=[], cursor="c2")
    remote.fail["mark_synced"] = ServerError("rejected", status=500)

    report = container.engine.run_cycle()

    assert report.failed_stage == ReconciliationStage.ACK
    assert container.engine.checkpoint() is None
    # Applied rows stay; replaying the same changes next cycle is a no-op.
    assert set(store.events) == {1, 2}

    del remote.fail["mark_synced"]
    report = container.engine.run_cycle()
    assert report.succeeded
    assert report.applied == 0
    assert container.engine.checkpoint() == "c2"


def test_only_one_pass_runs_at_a_time(container, remote):
    nested = []
    remote.on_fetch = lambda: nested.append(container.engine.run_cycle())

    report = container.engine.run_cycle()

    assert report.succeeded
    assert nested == [None]
    assert not container.engine.is_running


def test_cycle_applies_good_rows_next_to_a_malformed_one(container, store, remote):
    rows = [e.to_remote() for e in server_pair()]
    rows.append({**rows[1], "id": 3, "overtime_hours": "n/a"})
    edited, rejected = parse_records(rows)
    remote.changes = RemoteChanges(edited=edited, deleted=[], cursor="c3", rejected=rejected)

    report = container.engine.run_cycle()

    assert report.succeeded
    assert report.applied == 2
    assert len(report.errors) == 1
    assert set(store.events) == {1, 2}
    assert "Non-numeric hours" in store.sync_log[-1].error_message


def test_rolled_back_batch_reports_no_applied_rows(container, store):
    store.fail_commit = True
    result = ApplyResult()
    actions = [SyncAction(type=ActionType.ADD_FROM_SERVER, record_id=e.id, record=e) for e in server_pair()]

    with pytest.raises(TransactionFailure):
        container.engine._apply(actions, result)

    assert (result.added, result.updated, result.deleted) == (0, 0, 0)
    assert result.affected_keys == set()


def test_storage_failure_during_reupload_keeps_the_day_queued(container, store, remote):
    store.seed(make_event(1, ClockType.MORNING_IN, "2024-05-01 08:00:00", state=SyncState.DIRTY))
    container.scheduler.queue_reupload((7, DAY))
    store.fail_sync_state = RuntimeError("lost connection")

    assert container.scheduler.drain_reupload() == 0
    assert container.scheduler.status()["reupload_queue"] == 1

    store.fail_sync_state = None
    assert container.scheduler.drain_reupload() == 1
    assert store.events[1].sync_state == SyncState.SYNCED

from __future__ import annotations

from datetime import date

import pytest
import requests

from attendance_sync.core.enums import ClockType, SyncState
from attendance_sync.core.exceptions import NetworkFailure, NonJSONResponse, ServerError, ValidationError
from attendance_sync.sync.remote import HttpRemoteClient, normalize_base_url, parse_records

from conftest import make_event


class FakeResponse:
    def __init__(self, status_code=200, body=None, content_type="application/json"):
        self.status_code = status_code
        self.headers = {"Content-Type": content_type} if content_type else {}
        self._body = body

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class FakeSession:
    def __init__(self, *responses):
        self.headers = {}
        self.calls = []
        self._responses = list(responses)

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "timeout": timeout, **kwargs})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def client(*responses):
    session = FakeSession(*responses)
    return HttpRemoteClient("example.com/api/", timeout=7, session=session), session


def test_base_url_is_normalized():
    assert normalize_base_url("example.com/api/") == "https://example.com/api"
    assert normalize_base_url("http://10.0.0.5:3001") == "http://10.0.0.5:3001"
    with pytest.raises(ValidationError):
        normalize_base_url("  ")


def test_fetch_changes_parses_edits_deletes_and_cursor():
    row = make_event(1, ClockType.MORNING_OUT, "2024-05-01 12:00:00", regular=4.0).to_remote()
    body = {
        "success": True,
        "data": {
            "edited": [row, {"id": 2, "clock_type": "lunch_out"}],
            "deleted": [3, "4", "x"],
            "timestamp": "2024-05-01T18:00:00Z",
        },
    }
    remote, session = client(FakeResponse(body=body))

    changes = remote.fetch_changes(since="2024-05-01T00:00:00Z", limit=50)

    assert [e.id for e in changes.edited] == [1]
    assert changes.edited[0].regular_hours == 4.0
    assert changes.edited[0].sync_state == SyncState.SYNCED
    assert changes.deleted == [3, 4]
    assert len(changes.rejected) == 2
    assert changes.cursor == "2024-05-01T18:00:00Z"
    call = session.calls[0]
    assert call["url"] == "https://example.com/api/attendanceEdit"
    assert call["params"] == {"limit": 50, "since": "2024-05-01T00:00:00Z"}
    assert call["timeout"] == 7


def test_push_record_and_acknowledge_send_json():
    event = make_event(5, ClockType.MORNING_IN, "2024-05-01 08:00:00", is_late=True)
    remote, session = client(FakeResponse(body={"success": True}), FakeResponse(body={"success": True}))

    remote.push_record(event)
    remote.mark_synced(edited_ids=[1, 2], deleted_ids=[3])

    assert session.calls[0]["json"]["record"]["clock_time"] == "2024-05-01 08:00:00"
    assert session.calls[0]["json"]["record"]["is_late"] == 1
    assert session.calls[1]["json"] == {"editedIds": [1, 2], "deletedIds": [3]}


def test_empty_summary_upload_makes_no_request():
    remote, session = client()
    assert remote.upload_summaries([]) == 0
    assert session.calls == []


def test_fetch_range_sends_dates():
    remote, session = client(FakeResponse(body={"success": True, "data": []}))

    assert remote.fetch_range(start_date=date(2024, 5, 1), end_date=date(2024, 5, 3)) == []
    assert session.calls[0]["params"] == {"start_date": "2024-05-01", "end_date": "2024-05-03"}


@pytest.mark.parametrize(
    "response, error",
    [
        (requests.ConnectionError("refused"), NetworkFailure),
        (requests.Timeout("slow"), NetworkFailure),
        (FakeResponse(status_code=500, body={"success": False}), ServerError),
        (FakeResponse(body="<html>", content_type="text/html"), NonJSONResponse),
        (FakeResponse(body=ValueError("bad json")), NonJSONResponse),
        (FakeResponse(body={"success": False, "error": "nope"}), ServerError),
        (FakeResponse(body=["not", "a", "dict"]), ServerError),
    ],
)
def test_failures_are_classified(response, error):
    remote, _ = client(response)
    with pytest.raises(error):
        remote.fetch_changes(since=None, limit=10)


def test_http_status_is_kept_on_server_errors():
    remote, _ = client(FakeResponse(status_code=503, body={}))
    with pytest.raises(ServerError) as excinfo:
        remote.fetch_changes(since=None, limit=10)
    assert excinfo.value.status == 503


def test_malformed_values_reject_only_that_row():
    good = make_event(1, ClockType.MORNING_OUT, "2024-05-01 12:00:00", regular=4.0).to_remote()
    late = {**make_event(2, ClockType.MORNING_IN, "2024-05-01 08:20:00").to_remote(), "is_late": "true"}
    bad_hours = {**good, "id": 3, "regular_hours": "abc"}
    bad_flag = {**good, "id": 4, "is_late": "maybe"}

    events, rejected = parse_records([good, late, bad_hours, bad_flag])

    assert [e.id for e in events] == [1, 2]
    assert events[1].is_late is True
    assert len(rejected) == 2

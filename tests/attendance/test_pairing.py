from __future__ import annotations

from attendance_sync.attendance.pairing import open_clock_in, pair_sessions
from attendance_sync.core.enums import ClockType, Session

from conftest import make_event


def test_outs_pair_with_nearest_open_in_of_same_session():
    events = [
        make_event(4, ClockType.MORNING_OUT, "2024-05-01 12:00:00"),
        make_event(1, ClockType.MORNING_IN, "2024-05-01 08:00:00"),
        make_event(2, ClockType.MORNING_IN, "2024-05-01 08:02:00"),
        make_event(3, ClockType.EVENING_OUT, "2024-05-01 20:00:00"),
    ]

    pairs, orphans = pair_sessions(events)

    assert [(p.clock_in.id, p.clock_out.id) for p in pairs] == [(2, 4)]
    assert pairs[0].worked_minutes == 238
    assert [o.id for o in orphans] == [3]


def test_open_clock_in_ignores_closed_sessions():
    events = [
        make_event(1, ClockType.AFTERNOON_IN, "2024-05-01 13:00:00"),
        make_event(2, ClockType.AFTERNOON_OUT, "2024-05-01 17:00:00"),
        make_event(3, ClockType.EVENING_IN, "2024-05-01 17:30:00"),
    ]

    assert open_clock_in(events, Session.AFTERNOON) is None
    assert open_clock_in(events, Session.EVENING).id == 3

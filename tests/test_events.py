from __future__ import annotations

from attendance_sync.core.enums import EventType
from attendance_sync.core.events import EventChannel


def test_listeners_receive_events_until_unsubscribed():
    channel = EventChannel()
    seen = []
    unsubscribe = channel.subscribe(seen.append)

    channel.publish(EventType.SYNC_COMPLETED, applied=2)
    unsubscribe()
    channel.publish(EventType.SYNC_ERROR, error="offline")

    assert [(e.type, e.payload) for e in seen] == [(EventType.SYNC_COMPLETED, {"applied": 2})]
    assert [e.type for e in channel.drain()] == [EventType.SYNC_COMPLETED, EventType.SYNC_ERROR]
    assert channel.drain() == []


def test_failing_listener_does_not_stop_delivery():
    channel = EventChannel(buffer_size=2)
    seen = []

    def broken(event):
        raise RuntimeError("listener bug")

    channel.subscribe(broken)
    channel.subscribe(seen.append)
    for _ in range(3):
        channel.publish(EventType.SUMMARY_REBUILT)

    assert len(seen) == 3
    assert len(channel.drain()) == 2

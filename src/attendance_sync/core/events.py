from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List

from .enums import EventType

logger = logging.getLogger(__name__)

Listener = Callable[["EngineEvent"], None]


@dataclass(frozen=True)
class EngineEvent:
    type: EventType
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)


class EventChannel:
    """Typed outbound channel.

    The engine only publishes; whoever relays events to the UI subscribes a callable
    or periodically calls ``drain()``.
    """

    def __init__(self, *, buffer_size: int = 1000):
        self._listeners: List[Listener] = []
        self._buffer: List[EngineEvent] = []
        self._buffer_size = int(buffer_size)
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event_type: EventType, **payload: Any) -> EngineEvent:
        event = EngineEvent(type=event_type, payload=payload)
        with self._lock:
            self._buffer.append(event)
            if len(self._buffer) > self._buffer_size:
                del self._buffer[0]
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener failed for %s", event_type.value)
        return event

    def drain(self) -> List[EngineEvent]:
        with self._lock:
            events, self._buffer = self._buffer, []
        return events

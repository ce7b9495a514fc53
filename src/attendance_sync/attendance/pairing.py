from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from ..core.enums import Session
from .model import ClockEvent, SessionPair


def chronological(events: Iterable[ClockEvent]) -> List[ClockEvent]:
    return sorted(events, key=lambda e: (e.timestamp, e.id))


def pair_sessions(events: Iterable[ClockEvent]) -> Tuple[List[SessionPair], List[ClockEvent]]:
    """Pair every ``*_out`` with the nearest preceding un-paired ``*_in`` of the same session.

    Returns ``(pairs, orphans)`` where ``orphans`` are the outs with no matching in.
    """

    open_ins: Dict[Session, List[ClockEvent]] = {}
    pairs: List[SessionPair] = []
    orphans: List[ClockEvent] = []

    for event in chronological(events):
        session = event.clock_type.session
        if event.clock_type.is_in:
            open_ins.setdefault(session, []).append(event)
            continue

        stack = open_ins.get(session)
        if stack:
            pairs.append(SessionPair(clock_in=stack.pop(), clock_out=event))
        else:
            orphans.append(event)

    return pairs, orphans


def open_clock_in(events: Iterable[ClockEvent], session: Session) -> Optional[ClockEvent]:
    """Latest ``*_in`` of ``session`` that has not been closed yet."""

    stack: List[ClockEvent] = []
    for event in chronological(events):
        if event.clock_type.session != session:
            continue
        if event.clock_type.is_in:
            stack.append(event)
        elif stack:
            stack.pop()
    return stack[-1] if stack else None

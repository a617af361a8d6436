"""Append-only log of candidate actions during an attempt."""
from __future__ import annotations

import time
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .types import ACTIONS, Action, AnswerValue, NavigationEvent


class NavigationLog:
    """Ordered record of navigation events.

    Events are ordered by ``seq``, a counter that increases by one per
    append. Wall-clock timestamps are kept for reporting only, since they
    are not guaranteed to be strictly increasing.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._events: List[NavigationEvent] = []
        self._last_at: Dict[str, float] = {}

    def append(
        self,
        question_id: str,
        action: Action,
        value: Optional[AnswerValue] = None,
    ) -> NavigationEvent:
        if action not in ACTIONS:
            raise ValueError(f"unknown navigation action: {action!r}")
        now = float(self._clock())
        prev = self._last_at.get(question_id)
        # clocks can step backwards; never report a negative span
        spent = max(0.0, now - prev) if prev is not None else 0.0
        event = NavigationEvent(
            seq=len(self._events),
            timestamp=now,
            question_id=question_id,
            action=action,
            time_spent_since_last_event=spent,
            value=value if action == "answer" else None,
        )
        self._events.append(event)
        self._last_at[question_id] = now
        return event

    @classmethod
    def from_events(
        cls,
        events: Iterable[NavigationEvent],
        clock: Callable[[], float] = time.time,
    ) -> "NavigationLog":
        """Rebuild a log from stored events; ``seq`` must run 0..n-1 without gaps."""

        log = cls(clock=clock)
        for expected, evt in enumerate(sorted(events, key=lambda e: e.seq)):
            if evt.seq != expected or evt.action not in ACTIONS:
                raise ValueError(f"navigation history is not contiguous at seq {evt.seq}")
            log._events.append(evt)
            log._last_at[evt.question_id] = evt.timestamp
        return log

    def events(self) -> Tuple[NavigationEvent, ...]:
        return tuple(self._events)

    def for_question(self, question_id: str) -> Tuple[NavigationEvent, ...]:
        return tuple(e for e in self._events if e.question_id == question_id)

    def time_by_question(self) -> Dict[str, float]:
        return time_by_question(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[NavigationEvent]:
        return iter(tuple(self._events))


def time_by_question(events) -> Dict[str, float]:
    """Sum of inter-event spans per question, in ``seq`` order."""

    out: Dict[str, float] = {}
    for evt in sorted(events, key=lambda e: e.seq):
        out[evt.question_id] = out.get(evt.question_id, 0.0) + evt.time_spent_since_last_event
    return out


__all__ = ["NavigationLog", "time_by_question"]

"""Status classification of per-question trackers.

Every tracker falls into exactly one of five buckets. The decision order
below resolves the overlap between "answered" and "marked": a marked
question with an answer is ``ANSWERED_AND_MARKED``, never ``ANSWERED``.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List

from .types import QuestionStates, QuestionTracker


class State(str, Enum):
    NOT_VISITED = "notVisited"
    NOT_ANSWERED = "notAnswered"
    ANSWERED = "answered"
    MARKED_FOR_REVIEW = "markedForReview"
    ANSWERED_AND_MARKED = "markedAndAnswered"


def classify(tracker: QuestionTracker) -> State:
    answered = tracker.user_answer is not None
    if answered and tracker.is_marked:
        return State.ANSWERED_AND_MARKED
    if tracker.is_marked:
        return State.MARKED_FOR_REVIEW
    if answered:
        return State.ANSWERED
    if tracker.is_visited:
        return State.NOT_ANSWERED
    return State.NOT_VISITED


def tally(trackers: Iterable[QuestionTracker]) -> Dict[State, int]:
    counts = {state: 0 for state in State}
    for tr in trackers:
        counts[classify(tr)] += 1
    return counts


def partition(trackers: Iterable[QuestionTracker]) -> QuestionStates:
    """Bucket question ids by state, keeping tracker order within each bucket."""

    buckets: Dict[State, List[str]] = {state: [] for state in State}
    for tr in trackers:
        buckets[classify(tr)].append(tr.question_id)
    return QuestionStates(
        not_visited=tuple(buckets[State.NOT_VISITED]),
        not_answered=tuple(buckets[State.NOT_ANSWERED]),
        answered=tuple(buckets[State.ANSWERED]),
        marked_for_review=tuple(buckets[State.MARKED_FOR_REVIEW]),
        marked_and_answered=tuple(buckets[State.ANSWERED_AND_MARKED]),
    )


__all__ = ["State", "classify", "tally", "partition"]

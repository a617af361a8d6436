# attempt_core/tracker.py
from __future__ import annotations

import logging
import math
import time
from dataclasses import replace
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from .classifier import State, classify, tally
from .errors import AttemptClosedError, InvalidAnswerError, InvalidDurationError, UnknownQuestionError
from .navigation import NavigationLog
from .submission import build_submission
from .types import AnswerKey, AnswerValue, MultiChoice, NavigationEvent, Numeric, NumericKey, Question, QuestionTracker, SingleChoice, Submission


log = logging.getLogger(__name__)

_ANSWER_TYPES = (SingleChoice, MultiChoice, Numeric)


def _as_numeric(raw: Any) -> Numeric:
    if isinstance(raw, Numeric):
        return raw
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        raise InvalidAnswerError(f"numeric answer needs a number, got {raw!r}")
    try:
        v = float(raw.strip() if isinstance(raw, str) else raw)
    except ValueError:
        raise InvalidAnswerError(f"numeric answer needs a number, got {raw!r}") from None
    if not math.isfinite(v):
        raise InvalidAnswerError(f"numeric answer must be finite, got {raw!r}")
    return Numeric(v)


def coerce_answer(raw: Any, key: Optional[AnswerKey] = None) -> AnswerValue:
    """Map a loosely typed answer (as it arrives from a form or JSON body) to an answer value.

    When ``key`` is a ``NumericKey`` every scalar is read as a number, so
    ``10`` and ``"10"`` become ``Numeric(10.0)`` instead of an option index.
    """

    if isinstance(key, NumericKey) and not isinstance(raw, (SingleChoice, MultiChoice)):
        return _as_numeric(raw)
    if isinstance(raw, _ANSWER_TYPES):
        return raw
    if isinstance(raw, bool) or raw is None:
        raise InvalidAnswerError(f"unsupported answer value: {raw!r}")
    if isinstance(raw, int):
        return SingleChoice(raw)
    if isinstance(raw, float):
        if not math.isfinite(raw):
            raise InvalidAnswerError(f"numeric answer must be finite, got {raw!r}")
        return Numeric(raw)
    if isinstance(raw, (list, tuple, set, frozenset)):
        if not raw or any(isinstance(v, bool) or not isinstance(v, int) for v in raw):
            raise InvalidAnswerError(f"multi-choice answer needs option indices, got {raw!r}")
        return MultiChoice(frozenset(raw))
    if isinstance(raw, str):
        txt = raw.strip()
        try:
            if "." in txt or "e" in txt.lower():
                return coerce_answer(float(txt))
            return SingleChoice(int(txt))
        except ValueError:
            pass
    raise InvalidAnswerError(f"unsupported answer value: {raw!r}")


class Attempt:
    """One candidate's run through one test.

    Owns the per-question trackers and the navigation log. Callers mutate
    it only through the methods below; ``trackers()`` hands out copies.
    """

    def __init__(
        self,
        test_id: str,
        questions: Sequence[Question],
        *,
        clock: Callable[[], float] = time.time,
        start_time: Optional[float] = None,
    ) -> None:
        self.test_id = test_id
        self._clock = clock
        self._questions: Dict[str, Question] = {}
        for q in questions:
            if q.id in self._questions:
                raise ValueError(f"duplicate question id in test {test_id!r}: {q.id!r}")
            self._questions[q.id] = q
        self._trackers: Dict[str, QuestionTracker] = {
            qid: QuestionTracker(question_id=qid) for qid in self._questions
        }
        self.navigation = NavigationLog(clock=clock)
        self.start_time = float(start_time if start_time is not None else clock())
        self._submission: Optional[Submission] = None

    # ---- lookups ----
    @property
    def questions(self) -> Mapping[str, Question]:
        return dict(self._questions)

    @property
    def submitted(self) -> bool:
        return self._submission is not None

    def _tracker(self, question_id: str) -> QuestionTracker:
        if self._submission is not None:
            raise AttemptClosedError(f"attempt for test {self.test_id!r} was already submitted")
        tr = self._trackers.get(question_id)
        if tr is None:
            log.debug("ignored event for unknown question %s in test %s", question_id, self.test_id)
            raise UnknownQuestionError(question_id)
        return tr

    def trackers(self) -> Tuple[QuestionTracker, ...]:
        return tuple(replace(tr) for tr in self._trackers.values())

    def state_of(self, question_id: str) -> State:
        tr = self._trackers.get(question_id)
        if tr is None:
            raise UnknownQuestionError(question_id)
        return classify(tr)

    def status_counts(self) -> Dict[str, int]:
        counts = {state.value: n for state, n in tally(self._trackers.values()).items()}
        counts["visited"] = sum(1 for tr in self._trackers.values() if tr.is_visited)
        counts["total"] = len(self._trackers)
        return counts

    # ---- mutations ----
    def _mark_visited(self, tr: QuestionTracker) -> bool:
        now = float(self._clock())
        first = not tr.is_visited
        tr.is_visited = True
        tr.visits += 1
        if tr.first_visit_at is None:
            tr.first_visit_at = now
        tr.last_visit_at = now
        return first

    def visit(self, question_id: str) -> None:
        tr = self._tracker(question_id)
        if self._mark_visited(tr):
            self.navigation.append(question_id, "visit")

    def set_answer(self, question_id: str, value: Any) -> None:
        tr = self._tracker(question_id)
        answer = coerce_answer(value, self._questions[question_id].correct_answer)
        if not tr.is_visited:
            self._mark_visited(tr)
        tr.user_answer = answer
        self.navigation.append(question_id, "answer", value=answer)

    def clear_answer(self, question_id: str) -> None:
        tr = self._tracker(question_id)
        tr.user_answer = None
        self.navigation.append(question_id, "clear")

    def toggle_mark(self, question_id: str) -> bool:
        tr = self._tracker(question_id)
        if not tr.is_visited:
            self._mark_visited(tr)
        tr.is_marked = not tr.is_marked
        self.navigation.append(question_id, "mark" if tr.is_marked else "unmark")
        return tr.is_marked

    def accrue_time(self, question_id: str, delta: float) -> None:
        tr = self._tracker(question_id)
        try:
            d = float(delta)
        except (TypeError, ValueError):
            raise InvalidDurationError(delta) from None
        if not math.isfinite(d) or d < 0:
            raise InvalidDurationError(delta)
        tr.time_taken += d

    # ---- submit ----
    def submit(
        self,
        environment: Optional[Mapping[str, Any]] = None,
        *,
        end_time: Optional[float] = None,
        strict: Optional[bool] = None,
    ) -> Submission:
        if self._submission is not None:
            raise AttemptClosedError(f"attempt for test {self.test_id!r} was already submitted")
        submission = build_submission(
            self.test_id,
            list(self._trackers.values()),
            self.navigation,
            self.start_time,
            float(end_time if end_time is not None else self._clock()),
            environment,
            strict=strict,
        )
        self._submission = submission
        return submission

    # ---- snapshot ----
    def to_dict(self) -> Dict[str, Any]:
        """Snapshot of an open attempt, enough to resume it with ``from_dict``."""

        if self._submission is not None:
            raise AttemptClosedError(f"attempt for test {self.test_id!r} was already submitted")
        return {
            "testId": self.test_id,
            "startTime": self.start_time,
            "trackers": [tr.to_dict() for tr in self._trackers.values()],
            "navigationHistory": [e.to_dict() for e in self.navigation.events()],
        }

    @classmethod
    def from_dict(
        cls,
        raw: Mapping[str, Any],
        questions: Sequence[Question],
        *,
        clock: Callable[[], float] = time.time,
    ) -> "Attempt":
        """Resume an attempt from ``to_dict`` output against the current question set.

        Questions added since the snapshot start untouched. A snapshot that
        mentions a question missing from ``questions`` raises ``ValueError``.
        """

        att = cls(str(raw["testId"]), questions, clock=clock, start_time=float(raw["startTime"]))
        for item in raw.get("trackers") or []:
            tr = QuestionTracker.from_dict(item)
            if tr.question_id not in att._trackers:
                raise ValueError(f"saved attempt references unknown question {tr.question_id!r}")
            att._trackers[tr.question_id] = tr
        events = [NavigationEvent.from_dict(e) for e in raw.get("navigationHistory") or []]
        for evt in events:
            if evt.question_id not in att._trackers:
                raise ValueError(f"saved navigation references unknown question {evt.question_id!r}")
        att.navigation = NavigationLog.from_events(events, clock=clock)
        return att


__all__ = ["Attempt", "coerce_answer"]

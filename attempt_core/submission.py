"""Freezing an attempt into a submission payload."""
from __future__ import annotations

import copy
import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from . import config
from .classifier import partition
from .errors import MalformedSubmissionError, TimeConsistencyError
from .types import (
    AnswerEntry,
    NavigationEvent,
    QuestionStates,
    QuestionTracker,
    Submission,
    answer_from_wire,
    answer_to_wire,
)

log = logging.getLogger(__name__)

FLAG_TIME_CONSISTENCY = "TIME_CONSISTENCY"


def build_submission(
    test_id: str,
    trackers: Sequence[QuestionTracker],
    navigation_log: Iterable[NavigationEvent],
    start_time: float,
    end_time: float,
    environment: Optional[Mapping[str, Any]] = None,
    *,
    tolerance: Optional[float] = None,
    strict: Optional[bool] = None,
) -> Submission:
    """Snapshot trackers and the navigation log into an immutable submission.

    Every tracker yields one answer entry, attempted or not. Time consistency
    is checked against ``end_time - start_time``: an overrun beyond
    ``tolerance`` is flagged on the submission and logged, and only raised
    when ``strict`` is set. Nothing is returned unless every check passed.
    """

    tol = config.TIME_DRIFT_TOLERANCE_SEC if tolerance is None else float(tolerance)
    strict_mode = config.STRICT_TIME_CONSISTENCY if strict is None else bool(strict)

    total = float(end_time) - float(start_time)
    if total < 0:
        raise TimeConsistencyError(accrued=0.0, elapsed=total, tolerance=tol)

    seen: set[str] = set()
    answers: List[AnswerEntry] = []
    for tr in trackers:
        if tr.question_id in seen:
            raise MalformedSubmissionError(f"duplicate tracker for question {tr.question_id!r}")
        seen.add(tr.question_id)
        answers.append(
            AnswerEntry(
                question_id=tr.question_id,
                answer_value=tr.user_answer,
                time_spent=float(tr.time_taken),
                visits=int(tr.visits),
                is_marked=bool(tr.is_marked),
            )
        )

    states = partition(trackers)
    history = tuple(sorted(navigation_log, key=lambda e: e.seq))

    flags: List[str] = []
    warnings: List[str] = []
    accrued = math.fsum(a.time_spent for a in answers)
    if accrued > total + tol:
        err = TimeConsistencyError(accrued=accrued, elapsed=total, tolerance=tol)
        if strict_mode:
            raise err
        log.warning("submission for test %s: %s", test_id, err)
        flags.append(FLAG_TIME_CONSISTENCY)
        warnings.append(str(err))

    env = copy.deepcopy(dict(environment)) if environment is not None else copy.deepcopy(config.DEFAULT_ENVIRONMENT)

    submission = Submission(
        test_id=test_id,
        start_time=float(start_time),
        end_time=float(end_time),
        total_time_taken=total,
        answers=tuple(answers),
        question_states=states,
        navigation_history=history,
        environment=env,
        flags=tuple(flags),
        warnings=tuple(warnings),
    )
    log.info("built submission for test %s: %s", test_id, states.counts())
    return submission


def submission_to_dict(sub: Submission) -> Dict[str, Any]:
    return {
        "testId": sub.test_id,
        "startTime": sub.start_time,
        "endTime": sub.end_time,
        "totalTimeTaken": sub.total_time_taken,
        "answers": [
            {
                "questionId": a.question_id,
                "answerValue": answer_to_wire(a.answer_value),
                "timeSpent": a.time_spent,
                "visits": a.visits,
                "isMarked": a.is_marked,
            }
            for a in sub.answers
        ],
        "questionStates": sub.question_states.to_dict(),
        "navigationHistory": [e.to_dict() for e in sub.navigation_history],
        "environment": copy.deepcopy(sub.environment),
        "flags": list(sub.flags),
        "warnings": list(sub.warnings),
    }


def submission_from_dict(raw: Mapping[str, Any]) -> Submission:
    """Rebuild a stored submission; inverse of ``submission_to_dict``."""

    try:
        answers = tuple(
            AnswerEntry(
                question_id=str(a["questionId"]),
                answer_value=answer_from_wire(a.get("answerValue")),
                time_spent=float(a.get("timeSpent", 0.0)),
                visits=int(a.get("visits", 0)),
                is_marked=bool(a.get("isMarked", False)),
            )
            for a in raw.get("answers") or []
        )
        history = tuple(NavigationEvent.from_dict(e) for e in raw.get("navigationHistory") or [])
        return Submission(
            test_id=str(raw["testId"]),
            start_time=float(raw["startTime"]),
            end_time=float(raw["endTime"]),
            total_time_taken=float(raw["totalTimeTaken"]),
            answers=answers,
            question_states=QuestionStates.from_dict(raw.get("questionStates")),
            navigation_history=history,
            environment=copy.deepcopy(dict(raw.get("environment") or {})),
            flags=tuple(raw.get("flags") or ()),
            warnings=tuple(raw.get("warnings") or ()),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedSubmissionError(f"cannot read submission: {e}") from e


__all__ = ["build_submission", "submission_to_dict", "submission_from_dict", "FLAG_TIME_CONSISTENCY"]

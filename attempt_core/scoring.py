from __future__ import annotations
from typing import Dict, List, Mapping, Optional, Tuple
import logging
import math

from .errors import MalformedSubmissionError
from .types import (
    AnswerEntry,
    AnswerKey,
    AnswerValue,
    ChoiceKey,
    MarkingScheme,
    MultiChoice,
    Numeric,
    NumericKey,
    Outcome,
    Question,
    ScoreResult,
    SingleChoice,
    Submission,
)

log = logging.getLogger(__name__)


def _check_choice(value: AnswerValue, key: ChoiceKey) -> bool:
    # exact set equality; a subset or superset of the key is wrong
    if isinstance(value, SingleChoice):
        return key.indices == frozenset((value.index,))
    if isinstance(value, MultiChoice):
        return key.indices == value.indices
    return False


def _check_numeric(value: AnswerValue, key: NumericKey) -> bool:
    if not isinstance(value, Numeric):
        return False
    v = float(value.value)
    if key.has_range:
        return float(key.range_min) <= v <= float(key.range_max)
    if key.exact is None:
        return False
    return v == float(key.exact)


def is_correct(value: Optional[AnswerValue], key: AnswerKey) -> bool:
    """True when ``value`` fully matches ``key``. No partial credit."""

    if value is None:
        return False
    if isinstance(key, ChoiceKey):
        return _check_choice(value, key)
    if isinstance(key, NumericKey):
        return _check_numeric(value, key)
    return False


def award_marks(question: Question, scheme: MarkingScheme) -> float:
    return float(question.marks if question.marks is not None else scheme.correct)


def penalty_marks(question: Question, scheme: MarkingScheme) -> float:
    return float(question.negative_marks if question.negative_marks is not None else scheme.incorrect)


def resolve_questions(
    answers: Tuple[AnswerEntry, ...],
    questions_by_id: Mapping[str, Question],
) -> List[Tuple[AnswerEntry, Question]]:
    """Pair every answer with its question, failing on unknown or repeated ids."""

    seen: set[str] = set()
    pairs: List[Tuple[AnswerEntry, Question]] = []
    for ans in answers:
        if ans.question_id in seen:
            raise MalformedSubmissionError(f"question {ans.question_id!r} answered more than once")
        seen.add(ans.question_id)
        q = questions_by_id.get(ans.question_id)
        if q is None:
            raise MalformedSubmissionError(
                f"submission references question {ans.question_id!r} missing from the question set"
            )
        pairs.append((ans, q))
    return pairs


def outcome_of(ans: AnswerEntry, question: Question) -> Outcome:
    if ans.answer_value is None:
        return "unattempted"
    return "correct" if is_correct(ans.answer_value, question.correct_answer) else "incorrect"


def score_submission(
    submission: Submission,
    questions_by_id: Mapping[str, Question],
    scheme: MarkingScheme,
) -> ScoreResult:
    """
    Apply ``scheme`` to every answer entry of ``submission``.
    Pure: the same inputs always give an identical result.
    """
    pairs = resolve_questions(submission.answers, questions_by_id)

    parts: List[float] = []
    possible: List[float] = []
    counts: Dict[str, int] = {"correct": 0, "incorrect": 0, "unattempted": 0}
    per_question: List[Tuple[str, Outcome]] = []
    for ans, q in pairs:
        oc = outcome_of(ans, q)
        counts[oc] += 1
        per_question.append((q.id, oc))
        possible.append(award_marks(q, scheme))
        if oc == "unattempted":
            parts.append(float(scheme.unattempted))
        elif oc == "correct":
            parts.append(award_marks(q, scheme))
        else:
            parts.append(penalty_marks(q, scheme))

    score = math.fsum(parts)
    total_possible = math.fsum(possible)
    percentage = (score * 100.0) / total_possible if total_possible != 0 else 0.0

    result = ScoreResult(
        score=score,
        percentage=percentage,
        correct_count=counts["correct"],
        incorrect_count=counts["incorrect"],
        unattempted_count=counts["unattempted"],
        total_possible=total_possible,
        per_question=tuple(per_question),
    )
    log.debug("scored test %s: %s / %s (%s)", submission.test_id, score, total_possible, counts)
    return result


__all__ = ["is_correct", "score_submission", "outcome_of", "resolve_questions", "award_marks", "penalty_marks"]

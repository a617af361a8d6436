from __future__ import annotations

import pytest

from attempt_core.errors import MalformedSubmissionError
from attempt_core.scoring import is_correct, score_submission
from attempt_core.submission import build_submission
from attempt_core.types import (
    ChoiceKey,
    MarkingScheme,
    MultiChoice,
    Numeric,
    NumericKey,
    Question,
    QuestionTracker,
    SingleChoice,
)


def _submission(answers: dict, ids: list[str]):
    trackers = [
        QuestionTracker(qid, user_answer=answers.get(qid), is_visited=qid in answers) for qid in ids
    ]
    return build_submission("t", trackers, [], 0.0, 600.0)


def _mcq(qid: str, key: int, marks: float | None = 4.0, **kw) -> Question:
    return Question(id=qid, correct_answer=ChoiceKey(frozenset({key})), marks=marks, **kw)


def test_mixed_outcomes_with_negative_marking(scheme):
    questions = {f"q{i}": _mcq(f"q{i}", 1) for i in range(1, 6)}
    answers = {
        "q1": SingleChoice(1),
        "q2": SingleChoice(1),
        "q3": SingleChoice(1),
        "q4": SingleChoice(0),
    }
    result = score_submission(_submission(answers, list(questions)), questions, scheme)

    assert result.score == pytest.approx(11.0)
    assert result.percentage == pytest.approx(55.0)
    assert result.total_possible == pytest.approx(20.0)
    assert (result.correct_count, result.incorrect_count, result.unattempted_count) == (3, 1, 1)
    assert dict(result.per_question)["q5"] == "unattempted"


@pytest.mark.parametrize("value, expected", [(9.8, True), (9.7, True), (9.9, True), (9.95, False)])
def test_numeric_range_inclusive(value, expected):
    key = NumericKey(exact=9.8, range_min=9.7, range_max=9.9)
    assert is_correct(Numeric(value), key) is expected


def test_numeric_exact_without_range():
    key = NumericKey(exact=42.0)
    assert is_correct(Numeric(42.0), key)
    assert not is_correct(Numeric(42.0001), key)


def test_multi_choice_requires_exact_set():
    key = ChoiceKey(frozenset({0, 2}))
    assert is_correct(MultiChoice(frozenset({0, 2})), key)
    assert not is_correct(MultiChoice(frozenset({0})), key)
    assert not is_correct(MultiChoice(frozenset({0, 1, 2})), key)
    assert not is_correct(SingleChoice(0), key)


def test_kind_mismatch_is_incorrect():
    assert not is_correct(Numeric(1.0), ChoiceKey(frozenset({1})))
    assert not is_correct(SingleChoice(1), NumericKey(exact=1.0))


def test_zero_marks_give_zero_percentage(scheme):
    questions = {"q1": _mcq("q1", 0, marks=0.0), "q2": _mcq("q2", 0, marks=0.0)}
    result = score_submission(_submission({"q1": SingleChoice(0)}, ["q1", "q2"]), questions, scheme)
    assert result.total_possible == 0.0
    assert result.percentage == 0.0


def test_question_marks_override_scheme():
    scheme = MarkingScheme(correct=1.0, incorrect=-0.25)
    questions = {
        "q1": _mcq("q1", 0, marks=None),
        "q2": _mcq("q2", 0, marks=3.0, negative_marks=-2.0),
    }
    sub = _submission({"q1": SingleChoice(0), "q2": SingleChoice(1)}, ["q1", "q2"])
    result = score_submission(sub, questions, scheme)
    assert result.score == pytest.approx(1.0 - 2.0)
    assert result.total_possible == pytest.approx(4.0)


def test_scoring_is_repeatable(scheme):
    questions = {f"q{i}": _mcq(f"q{i}", i % 4) for i in range(8)}
    answers = {f"q{i}": SingleChoice(i % 3) for i in range(6)}
    sub = _submission(answers, list(questions))
    assert score_submission(sub, questions, scheme) == score_submission(sub, questions, scheme)


def test_unknown_question_fails_fast(scheme):
    questions = {"q1": _mcq("q1", 0)}
    sub = _submission({"q1": SingleChoice(0)}, ["q1", "ghost"])
    with pytest.raises(MalformedSubmissionError, match="ghost"):
        score_submission(sub, questions, scheme)


def test_scheme_validation():
    with pytest.raises(ValueError):
        MarkingScheme(correct=-1.0)
    with pytest.raises(ValueError):
        MarkingScheme(incorrect=0.5)
    assert MarkingScheme.from_mapping(None) == MarkingScheme(1.0, 0.0, 0.0)

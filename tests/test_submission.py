from __future__ import annotations

import pytest

from attempt_core import config
from attempt_core.errors import MalformedSubmissionError, TimeConsistencyError
from attempt_core.navigation import NavigationLog
from attempt_core.submission import (
    FLAG_TIME_CONSISTENCY,
    build_submission,
    submission_from_dict,
    submission_to_dict,
)
from attempt_core.tracker import Attempt
from attempt_core.types import MultiChoice, Numeric, QuestionTracker, SingleChoice
from tests.conftest import build_synthetic_questions


def _five_question_attempt(clock):
    questions = build_synthetic_questions(subjects=["Physics"], per_subject=5, include_numeric=False)
    return Attempt("t5", questions, clock=clock), [q.id for q in questions]


def test_every_question_has_an_answer_entry(clock):
    att, ids = _five_question_attempt(clock)
    for qid in ids[:4]:
        att.visit(qid)
        att.accrue_time(qid, 10)
        clock.advance(10)
    att.set_answer(ids[0], 0)
    att.set_answer(ids[1], [1, 3])

    sub = att.submit()

    assert [a.question_id for a in sub.answers] == ids
    q5 = sub.answers[4]
    assert q5.answer_value is None
    assert not q5.attempted
    assert ids[4] in sub.question_states.not_visited
    assert sub.question_states.total == len(ids)
    assert sub.answers[1].answer_value == MultiChoice(frozenset({1, 3}))
    assert sub.total_time_taken == pytest.approx(40.0)
    assert sub.flags == ()


def test_history_sorted_by_seq(clock):
    att, ids = _five_question_attempt(clock)
    att.visit(ids[0])
    att.set_answer(ids[0], 1)
    att.toggle_mark(ids[1])
    clock.advance(5)
    sub = att.submit()
    assert [e.seq for e in sub.navigation_history] == [0, 1, 2]


def test_submission_is_a_snapshot(clock):
    questions = build_synthetic_questions(subjects=["Physics"], per_subject=1, include_numeric=False)
    trackers = [QuestionTracker(questions[0].id, user_answer=SingleChoice(0), is_visited=True)]
    env = {"device": {"userAgent": "x"}}
    sub = build_submission("t", trackers, [], 0.0, 10.0, env)

    trackers[0].user_answer = None
    env["device"]["userAgent"] = "changed"

    assert sub.answers[0].answer_value == SingleChoice(0)
    assert sub.question_states.answered == (questions[0].id,)
    assert sub.environment["device"]["userAgent"] == "x"


def test_overrun_flagged_when_lenient(clock, caplog):
    trackers = [QuestionTracker("q1", is_visited=True, time_taken=100.0)]
    with caplog.at_level("WARNING"):
        sub = build_submission("t", trackers, [], 0.0, 50.0, strict=False)
    assert FLAG_TIME_CONSISTENCY in sub.flags
    assert sub.warnings and "exceeds" in sub.warnings[0]
    assert "exceeds" in caplog.text


def test_overrun_within_tolerance_not_flagged():
    trackers = [QuestionTracker("q1", is_visited=True, time_taken=51.0)]
    sub = build_submission("t", trackers, [], 0.0, 50.0, tolerance=2.0)
    assert sub.flags == ()


def test_overrun_raises_when_strict():
    trackers = [QuestionTracker("q1", is_visited=True, time_taken=100.0)]
    with pytest.raises(TimeConsistencyError) as exc:
        build_submission("t", trackers, [], 0.0, 50.0, strict=True)
    assert exc.value.accrued == pytest.approx(100.0)
    assert exc.value.elapsed == pytest.approx(50.0)


def test_strict_failure_leaves_attempt_open(clock):
    att, ids = _five_question_attempt(clock)
    att.accrue_time(ids[0], 500)
    clock.advance(10)
    with pytest.raises(TimeConsistencyError):
        att.submit(strict=True)
    assert not att.submitted
    att.visit(ids[1])


def test_end_before_start_always_raises():
    with pytest.raises(TimeConsistencyError):
        build_submission("t", [QuestionTracker("q1")], [], 100.0, 50.0, strict=False)


def test_duplicate_tracker_rejected():
    with pytest.raises(MalformedSubmissionError):
        build_submission("t", [QuestionTracker("q1"), QuestionTracker("q1")], [], 0.0, 1.0)


def test_default_environment_used_and_copied():
    sub = build_submission("t", [QuestionTracker("q1")], [], 0.0, 1.0)
    assert sub.environment == config.DEFAULT_ENVIRONMENT
    sub.environment["session"]["tabSwitches"] = 9
    assert config.DEFAULT_ENVIRONMENT["session"]["tabSwitches"] == 0


def test_dict_form_restores_submission(clock):
    log = NavigationLog(clock=clock)
    log.append("q1", "visit")
    clock.advance(3)
    log.append("q1", "answer", value=Numeric(9.8))
    trackers = [
        QuestionTracker("q1", user_answer=Numeric(9.8), is_visited=True, time_taken=3.0, visits=1),
        QuestionTracker("q2"),
    ]
    sub = build_submission("t", trackers, log, 1000.0, 1010.0, {"session": {"tabSwitches": 1}})

    raw = submission_to_dict(sub)
    assert raw["answers"][0]["answerValue"] == {"kind": "numeric", "value": 9.8}
    assert raw["answers"][1]["answerValue"] is None
    assert raw["questionStates"]["notVisited"] == ["q2"]
    assert submission_from_dict(raw) == sub


def test_from_dict_rejects_garbage():
    with pytest.raises(MalformedSubmissionError):
        submission_from_dict({"testId": "t", "answers": [{"answerValue": None}]})


def test_submission_is_hashable_despite_environment(clock):
    att, _ = _five_question_attempt(clock)
    clock.advance(5)
    sub = att.submit({"device": {"os": "linux"}})
    assert hash(sub) == hash(submission_from_dict(submission_to_dict(sub)))
    assert len({sub}) == 1

# attempt_core/analytics.py
from __future__ import annotations
import math
from typing import Any, Dict, List, Mapping, Optional, Tuple

from . import config
from .errors import MalformedSubmissionError
from .navigation import time_by_question
from .scoring import outcome_of, resolve_questions
from .types import AnalysisReport, AnswerEntry, AnswerValue, Question, SubjectStats, Submission, answer_to_wire


def time_bucket(seconds: float) -> str:
    lo, mid, hi = config.TIME_BUCKET_BOUNDS
    k = config.TIME_BUCKET_KEYS
    if seconds < lo: return k[0]
    if seconds < mid: return k[1]
    if seconds <= hi: return k[2]
    return k[3]


def _group_key(raw: Optional[str]) -> str:
    if raw is None:
        return config.UNKNOWN_BUCKET
    txt = str(raw).strip()
    return txt or config.UNKNOWN_BUCKET


def _group_stats(
    pairs: List[Tuple[AnswerEntry, Question]],
    outcomes: Dict[str, str],
    attr: str,
) -> Dict[str, SubjectStats]:
    acc: Dict[str, Dict[str, Any]] = {}
    for ans, q in pairs:
        key = _group_key(getattr(q, attr, None))
        row = acc.setdefault(key, {"total": 0, "attempted": 0, "correct": 0, "time": []})
        row["total"] += 1
        if ans.attempted:
            row["attempted"] += 1
        if outcomes[q.id] == "correct":
            row["correct"] += 1
        row["time"].append(ans.time_spent)
    return {
        key: SubjectStats(
            total=row["total"],
            attempted=row["attempted"],
            correct=row["correct"],
            time_spent=math.fsum(row["time"]),
        )
        for key, row in acc.items()
    }


def _question_analytics(submission: Submission, known: Mapping[str, AnswerEntry]) -> Dict[str, Dict[str, Any]]:
    """Rebuild per-question revision history from the navigation log."""

    current: Dict[str, Optional[AnswerValue]] = {qid: None for qid in known}
    out: Dict[str, Dict[str, Any]] = {
        qid: {"visits": ans.visits, "revisionCount": 0, "changeHistory": []}
        for qid, ans in known.items()
    }
    for evt in sorted(submission.navigation_history, key=lambda e: e.seq):
        if evt.question_id not in known:
            raise MalformedSubmissionError(
                f"navigation event {evt.seq} references question {evt.question_id!r} outside the submission"
            )
        if evt.action not in ("answer", "clear"):
            continue
        before = current[evt.question_id]
        after = evt.value if evt.action == "answer" else None
        row = out[evt.question_id]
        if before is not None:
            row["revisionCount"] += 1
        if before != after:
            row["changeHistory"].append(
                {
                    "seq": evt.seq,
                    "timestamp": evt.timestamp,
                    "from": answer_to_wire(before),
                    "to": answer_to_wire(after),
                }
            )
        current[evt.question_id] = after
    return out


def analyze(submission: Submission, questions_by_id: Mapping[str, Question]) -> AnalysisReport:
    """Derive the post-submission report from a submission and question metadata."""

    pairs = resolve_questions(submission.answers, questions_by_id)
    outcomes = {q.id: outcome_of(ans, q) for ans, q in pairs}
    by_id = {ans.question_id: ans for ans, _ in pairs}

    buckets: Dict[str, List[str]] = {key: [] for key in config.TIME_BUCKET_KEYS}
    for ans, _ in pairs:
        if ans.attempted:
            buckets[time_bucket(ans.time_spent)].append(ans.question_id)

    attempted_times = [ans.time_spent for ans, _ in pairs if ans.attempted]
    time_summary = {
        "totalTimeSpent": math.fsum(ans.time_spent for ans, _ in pairs),
        "averageTimePerQuestion": (
            math.fsum(attempted_times) / len(attempted_times) if attempted_times else 0.0
        ),
        "elapsed": submission.total_time_taken,
    }

    q_analytics = _question_analytics(submission, by_id)

    revisits = tuple(
        {"questionId": ans.question_id, "visitCount": ans.visits, "finalOutcome": outcomes[ans.question_id]}
        for ans, _ in pairs
        if ans.visits > 1
    )

    confidence = {
        "quickAnswers": tuple(
            ans.question_id for ans, _ in pairs if ans.attempted and ans.time_spent < config.QUICK_ANSWER_SEC
        ),
        "longDeliberations": tuple(
            ans.question_id for ans, _ in pairs if ans.time_spent > config.LONG_DELIBERATION_SEC
        ),
        "multipleRevisions": tuple(
            qid for qid, row in q_analytics.items() if row["revisionCount"] >= config.MULTI_REVISION_MIN
        ),
    }

    nav_time = time_by_question(submission.navigation_history)

    return AnalysisReport(
        time_distribution={k: tuple(v) for k, v in buckets.items()},
        subject_wise=_group_stats(pairs, outcomes, "subject"),
        question_states=submission.question_states,
        difficulty_wise=_group_stats(pairs, outcomes, "difficulty"),
        time_summary=time_summary,
        question_analytics=q_analytics,
        revisit_patterns=revisits,
        confidence=confidence,
        navigation_time={qid: nav_time.get(qid, 0.0) for qid in by_id},
    )


__all__ = ["analyze", "time_bucket"]

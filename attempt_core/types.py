from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Literal, Mapping, Optional, Tuple, Union

Action = Literal["visit", "answer", "clear", "mark", "unmark"]
Outcome = Literal["correct", "incorrect", "unattempted"]
ACTIONS: Tuple[str, ...] = ("visit", "answer", "clear", "mark", "unmark")


# ---- answer values (what the candidate gave) ----
@dataclass(frozen=True)
class SingleChoice:
    index: int


@dataclass(frozen=True)
class MultiChoice:
    indices: FrozenSet[int]


@dataclass(frozen=True)
class Numeric:
    value: float


AnswerValue = Union[SingleChoice, MultiChoice, Numeric]


# ---- answer keys (what the question expects) ----
@dataclass(frozen=True)
class ChoiceKey:
    indices: FrozenSet[int]


@dataclass(frozen=True)
class NumericKey:
    exact: Optional[float] = None
    range_min: Optional[float] = None
    range_max: Optional[float] = None

    @property
    def has_range(self) -> bool:
        return self.range_min is not None and self.range_max is not None


AnswerKey = Union[ChoiceKey, NumericKey]


def answer_to_wire(value: Optional[AnswerValue]) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    if isinstance(value, SingleChoice):
        return {"kind": "single", "value": value.index}
    if isinstance(value, MultiChoice):
        return {"kind": "multi", "value": sorted(value.indices)}
    if isinstance(value, Numeric):
        return {"kind": "numeric", "value": value.value}
    raise TypeError(f"not an answer value: {value!r}")


def answer_from_wire(raw: Optional[Mapping[str, Any]]) -> Optional[AnswerValue]:
    if raw is None:
        return None
    kind = raw.get("kind")
    val = raw.get("value")
    if kind == "single":
        return SingleChoice(int(val))
    if kind == "multi":
        return MultiChoice(frozenset(int(v) for v in val))
    if kind == "numeric":
        return Numeric(float(val))
    raise ValueError(f"unknown answer kind: {kind!r}")


@dataclass(frozen=True)
class Question:
    id: str
    correct_answer: AnswerKey
    marks: Optional[float] = None
    negative_marks: Optional[float] = None
    subject: Optional[str] = None
    difficulty: Optional[str] = None
    text: str = ""
    options: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MarkingScheme:
    correct: float = 1.0
    incorrect: float = 0.0
    unattempted: float = 0.0

    def __post_init__(self) -> None:
        if self.correct < 0:
            raise ValueError(f"marking scheme 'correct' must be >= 0, got {self.correct}")
        if self.incorrect > 0:
            raise ValueError(f"marking scheme 'incorrect' must be <= 0, got {self.incorrect}")

    @staticmethod
    def from_mapping(raw: Mapping[str, Any] | None) -> "MarkingScheme":
        raw = raw or {}
        return MarkingScheme(
            correct=float(raw.get("correct", 1.0)),
            incorrect=float(raw.get("incorrect", 0.0)),
            unattempted=float(raw.get("unattempted", 0.0)),
        )

    def to_dict(self) -> Dict[str, float]:
        return {"correct": self.correct, "incorrect": self.incorrect, "unattempted": self.unattempted}


@dataclass
class QuestionTracker:
    question_id: str
    user_answer: Optional[AnswerValue] = None
    is_visited: bool = False
    is_marked: bool = False
    time_taken: float = 0.0
    visits: int = 0
    first_visit_at: Optional[float] = None
    last_visit_at: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "questionId": self.question_id,
            "userAnswer": answer_to_wire(self.user_answer),
            "isVisited": self.is_visited,
            "isMarked": self.is_marked,
            "timeTaken": self.time_taken,
            "visits": self.visits,
            "firstVisitAt": self.first_visit_at,
            "lastVisitAt": self.last_visit_at,
        }

    @staticmethod
    def from_dict(raw: Mapping[str, Any]) -> "QuestionTracker":
        first, last = raw.get("firstVisitAt"), raw.get("lastVisitAt")
        return QuestionTracker(
            question_id=str(raw["questionId"]),
            user_answer=answer_from_wire(raw.get("userAnswer")),
            is_visited=bool(raw.get("isVisited", False)),
            is_marked=bool(raw.get("isMarked", False)),
            time_taken=float(raw.get("timeTaken", 0.0)),
            visits=int(raw.get("visits", 0)),
            first_visit_at=None if first is None else float(first),
            last_visit_at=None if last is None else float(last),
        )


@dataclass(frozen=True)
class NavigationEvent:
    seq: int
    timestamp: float
    question_id: str
    action: Action
    time_spent_since_last_event: float
    value: Optional[AnswerValue] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "seq": self.seq,
            "timestamp": self.timestamp,
            "questionId": self.question_id,
            "action": self.action,
            "timeSpentSinceLastEvent": self.time_spent_since_last_event,
        }
        if self.value is not None:
            out["value"] = answer_to_wire(self.value)
        return out

    @staticmethod
    def from_dict(raw: Mapping[str, Any]) -> "NavigationEvent":
        return NavigationEvent(
            seq=int(raw["seq"]),
            timestamp=float(raw["timestamp"]),
            question_id=str(raw["questionId"]),
            action=raw["action"],
            time_spent_since_last_event=float(raw.get("timeSpentSinceLastEvent", 0.0)),
            value=answer_from_wire(raw.get("value")),
        )


@dataclass(frozen=True)
class AnswerEntry:
    question_id: str
    answer_value: Optional[AnswerValue]
    time_spent: float
    visits: int = 0
    is_marked: bool = False

    @property
    def attempted(self) -> bool:
        return self.answer_value is not None


@dataclass(frozen=True)
class QuestionStates:
    """Partition of question ids into the five status buckets."""

    not_visited: Tuple[str, ...] = ()
    not_answered: Tuple[str, ...] = ()
    answered: Tuple[str, ...] = ()
    marked_for_review: Tuple[str, ...] = ()
    marked_and_answered: Tuple[str, ...] = ()

    @property
    def total(self) -> int:
        return sum(self.counts().values())

    def counts(self) -> Dict[str, int]:
        return {k: len(v) for k, v in self.to_dict().items()}

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "notVisited": list(self.not_visited),
            "notAnswered": list(self.not_answered),
            "answered": list(self.answered),
            "markedForReview": list(self.marked_for_review),
            "markedAndAnswered": list(self.marked_and_answered),
        }

    @staticmethod
    def from_dict(raw: Mapping[str, Any] | None) -> "QuestionStates":
        raw = raw or {}
        return QuestionStates(
            not_visited=tuple(raw.get("notVisited") or ()),
            not_answered=tuple(raw.get("notAnswered") or ()),
            answered=tuple(raw.get("answered") or ()),
            marked_for_review=tuple(raw.get("markedForReview") or ()),
            marked_and_answered=tuple(raw.get("markedAndAnswered") or ()),
        )


@dataclass(frozen=True)
class Submission:
    test_id: str
    start_time: float
    end_time: float
    total_time_taken: float
    answers: Tuple[AnswerEntry, ...]
    question_states: QuestionStates
    navigation_history: Tuple[NavigationEvent, ...]
    # mutable payload; left out of the hash
    environment: Dict[str, Any] = field(default_factory=dict, hash=False)
    flags: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ScoreResult:
    score: float
    percentage: float
    correct_count: int
    incorrect_count: int
    unattempted_count: int
    total_possible: float = 0.0
    per_question: Tuple[Tuple[str, Outcome], ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "percentage": self.percentage,
            "correctCount": self.correct_count,
            "incorrectCount": self.incorrect_count,
            "unattemptedCount": self.unattempted_count,
            "totalPossible": self.total_possible,
            "perQuestion": [{"questionId": qid, "outcome": oc} for qid, oc in self.per_question],
        }


@dataclass(frozen=True)
class SubjectStats:
    total: int = 0
    attempted: int = 0
    correct: int = 0
    time_spent: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "attempted": self.attempted,
            "correct": self.correct,
            "timeSpent": self.time_spent,
        }


@dataclass(frozen=True)
class AnalysisReport:
    time_distribution: Dict[str, Tuple[str, ...]]
    subject_wise: Dict[str, SubjectStats]
    question_states: QuestionStates
    difficulty_wise: Dict[str, SubjectStats] = field(default_factory=dict)
    time_summary: Dict[str, float] = field(default_factory=dict)
    question_analytics: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    revisit_patterns: Tuple[Dict[str, Any], ...] = ()
    confidence: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    navigation_time: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timeDistribution": {k: list(v) for k, v in self.time_distribution.items()},
            "subjectWise": {k: v.to_dict() for k, v in self.subject_wise.items()},
            "difficultyWise": {k: v.to_dict() for k, v in self.difficulty_wise.items()},
            "questionStates": self.question_states.to_dict(),
            "timeSummary": dict(self.time_summary),
            "questionAnalytics": {k: dict(v) for k, v in self.question_analytics.items()},
            "revisitPatterns": [dict(p) for p in self.revisit_patterns],
            "confidence": {k: list(v) for k, v in self.confidence.items()},
            "navigationTime": dict(self.navigation_time),
        }

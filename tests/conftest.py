from __future__ import annotations

import pytest

from attempt_core.types import ChoiceKey, MarkingScheme, NumericKey, Question


class FakeClock:
    """Manually advanced clock; pass as ``clock=`` to attempts and logs."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


def build_synthetic_questions(
    *,
    subjects: list[str] | None = None,
    per_subject: int = 2,
    marks: float | None = 4.0,
    negative_marks: float | None = -1.0,
    include_numeric: bool = True,
) -> list[Question]:
    """Create a deterministic question set for tests and smoke runs."""

    questions: list[Question] = []
    for subject in subjects or ["Physics", "Chemistry"]:
        for idx in range(per_subject):
            questions.append(
                Question(
                    id=f"{subject.lower()}_mcq_{idx}",
                    correct_answer=ChoiceKey(frozenset({idx % 4})),
                    marks=marks,
                    negative_marks=negative_marks,
                    subject=subject,
                    difficulty="easy" if idx % 2 == 0 else "hard",
                    text=f"{subject} question #{idx}",
                    options=("A", "B", "C", "D"),
                )
            )
        if include_numeric:
            questions.append(
                Question(
                    id=f"{subject.lower()}_num",
                    correct_answer=NumericKey(exact=9.8, range_min=9.7, range_max=9.9),
                    marks=marks,
                    negative_marks=negative_marks,
                    subject=subject,
                    difficulty="medium",
                    text=f"{subject} numeric",
                )
            )
    return questions


def paper_payload(test_id: str = "mock-1") -> dict:
    """A test definition in the JSON shape stored under ``DATA_DIR/tests``."""

    return {
        "testId": test_id,
        "title": "Mock test",
        "markingScheme": {"correct": 4, "incorrect": -1, "unattempted": 0},
        "questions": [
            {"id": "q1", "subject": "Physics", "difficulty": "easy", "options": ["a", "b", "c", "d"], "correctAnswer": 1},
            {"id": "q2", "subject": "Physics", "difficulty": "hard", "options": ["a", "b", "c", "d"], "correctAnswer": [0, 2]},
            {"id": "q3", "subject": "Maths", "correctAnswer": {"exactValue": 9.8, "range": {"min": 9.7, "max": 9.9}}},
        ],
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def synthetic_questions() -> list[Question]:
    return build_synthetic_questions()


@pytest.fixture
def scheme() -> MarkingScheme:
    return MarkingScheme(correct=4.0, incorrect=-1.0, unattempted=0.0)

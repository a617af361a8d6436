"""Error kinds raised by the attempt core.

All of them are synchronous and local; nothing here is retried.
"""
from __future__ import annotations


class AttemptError(Exception):
    """Base class for every error raised by ``attempt_core``."""


class UnknownQuestionError(AttemptError, KeyError):
    def __init__(self, question_id: str) -> None:
        super().__init__(question_id)
        self.question_id = question_id

    def __str__(self) -> str:
        return f"unknown question id: {self.question_id!r}"


class InvalidDurationError(AttemptError, ValueError):
    def __init__(self, delta: float) -> None:
        super().__init__(f"time delta must be a finite non-negative number, got {delta!r}")
        self.delta = delta


class InvalidAnswerError(AttemptError, ValueError):
    pass


class AttemptClosedError(AttemptError):
    pass


class TimeConsistencyError(AttemptError):
    """Accrued per-question time exceeds the elapsed wall time of the attempt.

    Usually reported rather than raised; see ``build_submission``.
    """

    def __init__(self, accrued: float, elapsed: float, tolerance: float) -> None:
        super().__init__(
            f"accrued question time {accrued:.3f}s exceeds elapsed {elapsed:.3f}s "
            f"(tolerance {tolerance:.3f}s)"
        )
        self.accrued = accrued
        self.elapsed = elapsed
        self.tolerance = tolerance


class MalformedSubmissionError(AttemptError, ValueError):
    pass


__all__ = [
    "AttemptError",
    "UnknownQuestionError",
    "InvalidDurationError",
    "InvalidAnswerError",
    "AttemptClosedError",
    "TimeConsistencyError",
    "MalformedSubmissionError",
]

from __future__ import annotations
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .config import load_config
from .types import AnswerKey, ChoiceKey, MarkingScheme, NumericKey, Question


@dataclass(frozen=True)
class ExamPaper:
    test_id: str
    questions: Tuple[Question, ...]
    marking_scheme: MarkingScheme
    title: str = ""

    def by_id(self) -> Dict[str, Question]:
        return {q.id: q for q in self.questions}


def _opt_float(raw: Any) -> Optional[float]:
    return None if raw is None else float(raw)


def parse_answer_key(raw: Any) -> AnswerKey:
    """
    Accepts the shapes question records arrive in:
      - 2                                   single option index
      - [0, 2]                              set of option indices
      - {"exactValue": 9.8, "range": {"min": 9.7, "max": 9.9}}
    """
    if isinstance(raw, bool):
        raise ValueError(f"unsupported answer key: {raw!r}")
    if isinstance(raw, int):
        return ChoiceKey(frozenset((raw,)))
    if isinstance(raw, (list, tuple)):
        return ChoiceKey(frozenset(int(v) for v in raw))
    if isinstance(raw, Mapping):
        if "options" in raw:
            return ChoiceKey(frozenset(int(v) for v in raw["options"]))
        rng = raw.get("range") or {}
        key = NumericKey(
            exact=_opt_float(raw.get("exactValue")),
            range_min=_opt_float(rng.get("min")),
            range_max=_opt_float(rng.get("max")),
        )
        if key.exact is None and not key.has_range:
            raise ValueError(f"numeric answer key needs exactValue or a full range: {raw!r}")
        return key
    raise ValueError(f"unsupported answer key: {raw!r}")


def question_from_dict(raw: Mapping[str, Any]) -> Question:
    qid = raw.get("id", raw.get("_id"))
    if qid is None or not str(qid).strip():
        raise ValueError(f"question record has no id: {raw!r}")
    key_raw = raw.get("correctAnswer")
    if key_raw is None:
        # legacy records carry correctOptions / correctOption
        key_raw = raw.get("correctOptions", raw.get("correctOption"))
    return Question(
        id=str(qid).strip(),
        correct_answer=parse_answer_key(key_raw),
        marks=_opt_float(raw.get("marks")),
        negative_marks=_opt_float(raw.get("negativeMarks")),
        subject=raw.get("subject"),
        difficulty=raw.get("difficulty"),
        text=str(raw.get("text") or raw.get("question") or ""),
        options=tuple(str(o) for o in raw.get("options") or ()),
    )


def paper_from_dict(raw: Mapping[str, Any]) -> ExamPaper:
    scheme_raw = raw.get("markingScheme")
    scheme = MarkingScheme.from_mapping(scheme_raw if scheme_raw else load_config()["MARKING_SCHEME"])
    return ExamPaper(
        test_id=str(raw.get("testId") or raw.get("id")),
        questions=tuple(question_from_dict(q) for q in raw.get("questions") or []),
        marking_scheme=scheme,
        title=str(raw.get("title") or ""),
    )


def load_paper(path: Union[str, Path]) -> ExamPaper:
    data = Path(path).read_text(encoding="utf-8")
    return paper_from_dict(json.loads(data))


def load_questions(path: Union[str, Path]) -> List[Question]:
    """Load a bare question list, or the questions of a full test definition."""

    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(raw, Mapping):
        raw = raw.get("questions") or []
    return [question_from_dict(q) for q in raw]

from __future__ import annotations

import json

import attempt_core.audit_questions as audit_questions
from attempt_core.types import ChoiceKey, NumericKey, Question
from tests.conftest import build_synthetic_questions, paper_payload


def test_clean_set_has_no_warnings(tmp_path):
    questions = build_synthetic_questions()
    summary = audit_questions.audit(questions)
    assert summary["warnings"] == []
    assert summary["totals"]["questions"] == len(questions)
    assert summary["totals"]["numeric"] == 2
    assert summary["coverage"]["Physics"]["questions"] == 3
    assert summary["coverage"]["Physics"]["difficulty"] == {"easy": 1, "hard": 1, "medium": 1}

    outfile = tmp_path / "question_audit.json"
    text = audit_questions.write_summary(summary, path=outfile)
    assert outfile.read_text(encoding="utf-8").strip() == text


def test_flags_broken_questions():
    questions = [
        Question("a", ChoiceKey(frozenset()), marks=4, subject="Physics"),
        Question("b", ChoiceKey(frozenset({5})), marks=4, subject="Physics", options=("x", "y")),
        Question("c", NumericKey(range_min=2.0, range_max=1.0), marks=0, subject="Maths"),
        Question("d", ChoiceKey(frozenset({0})), negative_marks=1.0),
        Question("d", ChoiceKey(frozenset({0})), subject="Maths"),
    ]
    summary = audit_questions.audit(questions)
    joined = "\n".join(summary["warnings"])
    assert "a has an empty choice key" in joined
    assert "b key points past its 2 options" in joined
    assert "c numeric range is inverted" in joined
    assert "c awards non-positive marks" in joined
    assert "d has positive negative marks" in joined
    assert "d has no subject" in joined
    assert "duplicate question id d" in joined
    assert "unknown" in summary["coverage"]


def test_main_returns_warning_exit(tmp_path, capsys):
    payload = paper_payload()
    payload["questions"].append({"id": "q9", "correctAnswer": 0, "marks": -1})
    src = tmp_path / "paper.json"
    src.write_text(json.dumps(payload), encoding="utf-8")
    out = tmp_path / "summary.json"

    exit_code = audit_questions.main([str(src), str(out)])
    captured = capsys.readouterr()

    assert exit_code == 2
    assert "Physics" in captured.out
    assert json.loads(out.read_text(encoding="utf-8"))["totals"]["questions"] == 4


def test_main_without_args_prints_usage(capsys):
    assert audit_questions.main([]) == 1
    assert "usage" in capsys.readouterr().out

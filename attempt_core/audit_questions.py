from __future__ import annotations

import json
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Iterable

from . import config
from .question_bank import load_questions
from .types import ChoiceKey, NumericKey, Question

log = logging.getLogger(__name__)


def _blank_group() -> dict[str, object]:
    return {"questions": 0, "marks": 0.0, "difficulty": {}}


def audit(questions: Iterable[Question]) -> dict[str, object]:
    coverage: dict[str, dict[str, object]] = {}
    totals = {"questions": 0, "marks": 0.0, "numeric": 0, "choice": 0}
    ids: Counter[str] = Counter()
    warnings: list[str] = []

    for q in questions:
        ids[q.id] += 1
        totals["questions"] += 1
        subject = (q.subject or "").strip() or config.UNKNOWN_BUCKET
        difficulty = (q.difficulty or "").strip() or config.UNKNOWN_BUCKET
        group = coverage.setdefault(subject, _blank_group())
        group["questions"] += 1  # type: ignore[operator]
        diff_map: dict[str, int] = group["difficulty"]  # type: ignore[assignment]
        diff_map[difficulty] = diff_map.get(difficulty, 0) + 1

        if q.marks is not None:
            group["marks"] += float(q.marks)  # type: ignore[operator]
            totals["marks"] += float(q.marks)
            if q.marks <= 0:
                warnings.append(f"{q.id} awards non-positive marks ({q.marks:g})")
        if q.negative_marks is not None and q.negative_marks > 0:
            warnings.append(f"{q.id} has positive negative marks ({q.negative_marks:g})")

        key = q.correct_answer
        if isinstance(key, ChoiceKey):
            totals["choice"] += 1
            if not key.indices:
                warnings.append(f"{q.id} has an empty choice key")
            elif min(key.indices) < 0:
                warnings.append(f"{q.id} has a negative option index in its key")
            elif q.options and max(key.indices) >= len(q.options):
                warnings.append(f"{q.id} key points past its {len(q.options)} options")
        elif isinstance(key, NumericKey):
            totals["numeric"] += 1
            if key.has_range and float(key.range_min) > float(key.range_max):
                warnings.append(
                    f"{q.id} numeric range is inverted ({key.range_min:g} > {key.range_max:g})"
                )

        if subject == config.UNKNOWN_BUCKET:
            warnings.append(f"{q.id} has no subject; reports will group it under '{config.UNKNOWN_BUCKET}'")

    for qid, n in sorted(ids.items()):
        if n > 1:
            warnings.append(f"duplicate question id {qid} ({n} records)")

    summary = {"coverage": coverage, "warnings": warnings, "totals": totals}
    return summary


def print_report(summary: dict[str, object]) -> None:
    coverage: dict[str, dict[str, object]] = summary["coverage"]  # type: ignore[assignment]
    print("=== Question Coverage ===")
    for subject in sorted(coverage):
        data = coverage[subject]
        print(f"\nSubject: {subject}  questions={data['questions']}  marks={data['marks']:g}")
        diff_map: dict[str, int] = data["difficulty"]  # type: ignore[assignment]
        print("  " + "  ".join(f"{d}:{n:3d}" for d, n in sorted(diff_map.items())))

    warnings: list[str] = summary["warnings"]  # type: ignore[assignment]
    if warnings:
        print("\nWarnings:")
        for msg in warnings:
            print(f" - {msg}")
    else:
        print("\nNo warnings.")

    totals = summary["totals"]
    print("\nTotals:", totals)


def write_summary(summary: dict[str, object], path: Path = Path("/tmp/question_audit.json")) -> str:
    text = json.dumps(summary, indent=2, sort_keys=True)
    path.write_text(text + "\n", encoding="utf-8")
    print(text)
    return text


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("usage: python -m attempt_core.audit_questions QUESTIONS.json [SUMMARY.json]")
        return 1
    questions = load_questions(args[0])
    log.info("auditing %d questions from %s", len(questions), args[0])
    summary = audit(questions)
    print_report(summary)
    if len(args) > 1:
        write_summary(summary, Path(args[1]))
    else:
        write_summary(summary)
    return 2 if summary["warnings"] else 0


if __name__ == "__main__":
    raise SystemExit(main())

# tools/rescore.py
from __future__ import annotations
import argparse, json, logging, sys
from pathlib import Path

from attempt_core.analytics import analyze
from attempt_core.errors import AttemptError
from attempt_core.question_bank import load_paper, load_questions
from attempt_core.scoring import score_submission
from attempt_core.submission import submission_from_dict
from attempt_core.types import MarkingScheme
from attempt_core.config import default_marking_scheme

log = logging.getLogger("rescore")


def _read_submission(path: Path) -> dict:
    raw = json.loads(path.read_text(encoding="utf-8"))
    # stored results wrap the submission next to score/analysis
    if isinstance(raw, dict) and "submission" in raw:
        return raw["submission"]
    return raw


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Re-score a stored submission against a question set.")
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--paper", help="test definition JSON (questions + markingScheme)")
    src.add_argument("--questions", help="bare question list JSON")
    ap.add_argument("--submission", required=True, help="submission or stored result JSON")
    ap.add_argument("--scheme", help='marking scheme override, e.g. \'{"correct":4,"incorrect":-1}\'')
    ap.add_argument("--no-analysis", action="store_true", help="print the score only")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

    if args.paper:
        paper = load_paper(args.paper)
        questions = paper.by_id()
        scheme = paper.marking_scheme
    else:
        questions = {q.id: q for q in load_questions(args.questions)}
        scheme = default_marking_scheme()
    if args.scheme:
        scheme = MarkingScheme.from_mapping(json.loads(args.scheme))

    try:
        submission = submission_from_dict(_read_submission(Path(args.submission)))
        score = score_submission(submission, questions, scheme)
        out = {"score": score.to_dict()}
        if not args.no_analysis:
            out["analysis"] = analyze(submission, questions).to_dict()
    except AttemptError as e:
        log.error("cannot rescore %s: %s", args.submission, e)
        return 2

    log.info("test %s: %g / %g", submission.test_id, score.score, score.total_possible)
    print(json.dumps(out, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    sys.exit(main())

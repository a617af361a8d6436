from __future__ import annotations
from fastapi import FastAPI, HTTPException, Body, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import uuid, os, logging, typing as t

# ---- Core imports ----
from attempt_core.analytics import analyze
from attempt_core.classifier import partition
from attempt_core.config import NAV_EXPORT_ENABLED, STRICT_TIME_CONSISTENCY
from attempt_core.errors import (
    AttemptClosedError,
    InvalidAnswerError,
    InvalidDurationError,
    MalformedSubmissionError,
    TimeConsistencyError,
    UnknownQuestionError,
)
from attempt_core.nav_export import to_json as nav_to_json, to_csv as nav_to_csv
from attempt_core.question_bank import ExamPaper, load_paper
from attempt_core.scoring import score_submission
from attempt_core.submission import submission_from_dict, submission_to_dict
from attempt_core.tracker import Attempt
from attempt_core.types import Question, Submission
from .storage import (
    attempts_for_user,
    delete_result,
    drop_attempt,
    load_attempt,
    load_result,
    paper_path,
    result_for_attempt,
    results_for_user,
    save_attempt,
    save_result,
    utcnow_iso,
)

log = logging.getLogger(__name__)

ATTEMPTS: dict[str, Attempt] = {}
ATTEMPT_INFO: dict[str, dict[str, t.Any]] = {}
PAPERS: dict[str, ExamPaper] = {}

app = FastAPI(title="Test Attempt API")


@app.get("/")
def root():
    return {"status": "ok", "service": "test-attempt-api"}


ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,  # keep False unless you use cookies
)

# ---- Schemas ----
class StartReq(BaseModel):
    test_id: str
    user_id: str | None = None

class QuestionReq(BaseModel):
    question_id: str

class AnswerReq(BaseModel):
    question_id: str
    value: int | float | str | list[int]

class TickReq(BaseModel):
    question_id: str
    delta: float

class SubmitReq(BaseModel):
    environment: dict[str, t.Any] | None = None
    strict: bool | None = None

# ---- Helpers ----
def _paper(test_id: str, *, fresh: bool = False) -> ExamPaper:
    # fresh=True rereads the definition from disk and refreshes the cache
    paper = None if fresh else PAPERS.get(test_id)
    if paper is not None:
        return paper
    path = paper_path(test_id)
    if not path.exists():
        raise HTTPException(404, "test not found")
    try:
        paper = load_paper(path)
    except (ValueError, KeyError) as e:
        raise HTTPException(500, f"test definition {test_id} is invalid: {e}")
    PAPERS[test_id] = paper
    return paper


def _restore(aid: str) -> Attempt | None:
    record = load_attempt(aid)
    if record is None:
        return None
    paper = _paper(str(record.get("testId")))
    try:
        att = Attempt.from_dict(record["snapshot"], paper.questions)
    except (ValueError, KeyError, TypeError) as e:
        log.error("cannot resume attempt %s: %s", aid, e)
        raise HTTPException(500, f"saved attempt {aid} cannot be resumed: {e}")
    ATTEMPTS[aid] = att
    ATTEMPT_INFO[aid] = {"user_id": record.get("userId"), "test_id": att.test_id, "started_at": record.get("startedAt")}
    log.info("resumed attempt %s (test %s, %d events)", aid, att.test_id, len(att.navigation))
    return att


def _attempt(aid: str) -> Attempt:
    att = ATTEMPTS.get(aid) or _restore(aid)
    if att is None:
        raise HTTPException(404, "attempt not found")
    return att


def _persist(aid: str, att: Attempt) -> None:
    info = ATTEMPT_INFO.get(aid, {})
    save_attempt(aid, att, user_id=info.get("user_id"), started_at=info.get("started_at") or utcnow_iso())


def _apply(aid: str, op: t.Callable[[Attempt], t.Any]) -> t.Any:
    att = _attempt(aid)
    try:
        out = op(att)
    except (UnknownQuestionError, InvalidDurationError, InvalidAnswerError) as e:
        raise HTTPException(422, str(e))
    except AttemptClosedError as e:
        raise HTTPException(409, str(e))
    _persist(aid, att)
    return out


def _serialize_question(q: Question) -> dict[str, t.Any]:
    return {
        "id": q.id,
        "text": q.text,
        "options": list(q.options),
        "subject": q.subject,
        "difficulty": q.difficulty,
        "marks": q.marks,
        "negativeMarks": q.negative_marks,
    }


def _status(aid: str, att: Attempt) -> dict[str, t.Any]:
    return {
        "attempt_id": aid,
        "counts": att.status_counts(),
        "questionStates": partition(att.trackers()).to_dict(),
    }


def _evaluate(paper: ExamPaper, submission: Submission) -> dict[str, t.Any]:
    questions = paper.by_id()
    score = score_submission(submission, questions, paper.marking_scheme)
    analysis = analyze(submission, questions)
    return {"score": score.to_dict(), "analysis": analysis.to_dict()}


# ---- Health ----
@app.get("/health")
def health():
    return {
        "nav_export_enabled": NAV_EXPORT_ENABLED,
        "strict_time_consistency": STRICT_TIME_CONSISTENCY,
        "active_attempts": len(ATTEMPTS),
    }

# ---- Attempt lifecycle ----
@app.post("/attempts/start")
def start(req: StartReq):
    paper = _paper(req.test_id)
    aid = str(uuid.uuid4())
    att = Attempt(paper.test_id, paper.questions)
    ATTEMPTS[aid] = att
    ATTEMPT_INFO[aid] = {"user_id": req.user_id, "test_id": req.test_id, "started_at": utcnow_iso()}
    _persist(aid, att)
    return {
        "attempt_id": aid,
        "test_id": paper.test_id,
        "title": paper.title,
        "questions": [_serialize_question(q) for q in paper.questions],
        "status": _status(aid, att),
    }

@app.post("/attempts/{aid}/visit")
def visit(aid: str, req: QuestionReq):
    _apply(aid, lambda att: att.visit(req.question_id))
    return {"ok": True, "state": ATTEMPTS[aid].state_of(req.question_id).value}

@app.post("/attempts/{aid}/answer")
def answer(aid: str, req: AnswerReq):
    _apply(aid, lambda att: att.set_answer(req.question_id, req.value))
    return {"ok": True, "state": ATTEMPTS[aid].state_of(req.question_id).value}

@app.post("/attempts/{aid}/clear")
def clear(aid: str, req: QuestionReq):
    _apply(aid, lambda att: att.clear_answer(req.question_id))
    return {"ok": True, "state": ATTEMPTS[aid].state_of(req.question_id).value}

@app.post("/attempts/{aid}/mark")
def mark(aid: str, req: QuestionReq):
    marked = _apply(aid, lambda att: att.toggle_mark(req.question_id))
    return {"ok": True, "marked": marked, "state": ATTEMPTS[aid].state_of(req.question_id).value}

@app.post("/attempts/{aid}/tick")
def tick(aid: str, req: TickReq):
    _apply(aid, lambda att: att.accrue_time(req.question_id, req.delta))
    return {"ok": True}

@app.get("/attempts/{aid}/status")
def status(aid: str):
    return _status(aid, _attempt(aid))

@app.post("/attempts/{aid}/submit")
def submit(aid: str, payload: SubmitReq | None = Body(None)):
    payload = payload or SubmitReq()
    att = _attempt(aid)
    info = ATTEMPT_INFO.get(aid, {})
    test_id = info.get("test_id") or att.test_id
    paper = _paper(test_id)
    try:
        submission = att.submit(payload.environment, strict=payload.strict)
    except TimeConsistencyError as e:
        raise HTTPException(422, str(e))
    except AttemptClosedError as e:
        raise HTTPException(409, str(e))

    rid = str(uuid.uuid4())
    created = utcnow_iso()
    result = {
        "id": rid,
        "resultId": rid,
        "attemptId": aid,
        "testId": test_id,
        "created_at": created,
        "markingScheme": paper.marking_scheme.to_dict(),
        "submission": submission_to_dict(submission),
        **_evaluate(paper, submission),
        "meta": {"userId": info.get("user_id"), "startedAt": info.get("started_at"), "flags": list(submission.flags)},
    }
    save_result(result)
    log.info("stored result %s for attempt %s (test %s)", rid, aid, test_id)
    drop_attempt(aid)
    ATTEMPTS.pop(aid, None)
    ATTEMPT_INFO.pop(aid, None)
    return result

@app.get("/attempts/{aid}/result")
def attempt_result(aid: str):
    stored = result_for_attempt(aid)
    if not stored:
        raise HTTPException(404, "result not found")
    return stored

# ---- Results ----
@app.get("/results/{result_id}")
def get_result(result_id: str):
    result = load_result(result_id)
    if not result:
        raise HTTPException(404, "result not found")
    return result


@app.post("/results/{result_id}/rescore")
def rescore(result_id: str):
    result = load_result(result_id)
    if not result:
        raise HTTPException(404, "result not found")
    paper = _paper(str(result.get("testId")), fresh=True)
    try:
        submission = submission_from_dict(result.get("submission") or {})
        evaluated = _evaluate(paper, submission)
    except MalformedSubmissionError as e:
        raise HTTPException(422, str(e))
    changed = evaluated["score"] != result.get("score")
    result.update(evaluated)
    result["markingScheme"] = paper.marking_scheme.to_dict()
    meta = dict(result.get("meta") or {})
    meta["rescoredAt"] = utcnow_iso()
    result["meta"] = meta
    result.setdefault("id", result_id)
    save_result(result)
    if changed:
        log.warning("rescore of %s changed the stored score", result_id)
    return {"result_id": result_id, "changed": changed, "score": evaluated["score"]}


@app.get("/results/{result_id}/navigation.json")
def get_navigation_json(result_id: str):
    if not NAV_EXPORT_ENABLED:
        raise HTTPException(404, "navigation export disabled")

    result = load_result(result_id)
    if not result:
        raise HTTPException(404, "result not found")

    events = (result.get("submission") or {}).get("navigationHistory")
    payload = nav_to_json(events or [])
    return {"result_id": result_id, **payload}


@app.get("/results/{result_id}/navigation.csv")
def get_navigation_csv(result_id: str):
    if not NAV_EXPORT_ENABLED:
        raise HTTPException(404, "navigation export disabled")

    result = load_result(result_id)
    if not result:
        raise HTTPException(404, "result not found")

    events = (result.get("submission") or {}).get("navigationHistory")
    body = nav_to_csv(events or [])
    filename = f"{result_id}_navigation.csv"
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
    )


@app.delete("/results/{result_id}")
def delete_result_endpoint(result_id: str):
    ok = delete_result(result_id)
    if not ok:
        raise HTTPException(404, "result not found")
    return {"ok": True}


@app.get("/users/{user_id}/results")
def list_results(user_id: str):
    return {"results": results_for_user(user_id)}


@app.get("/users/{user_id}/attempts/active")
def list_active_attempts(user_id: str):
    return {"attempts": attempts_for_user(user_id)}

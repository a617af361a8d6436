"""JSON-file persistence for the attempt API.

Layout under ``DATA_DIR``::

    tests/<test_id>.json          test definitions (questions + marking scheme)
    attempts/<attempt_id>.json    open attempts: owner, timestamps, ``Attempt`` snapshot
    results/<result_id>.json      scored submissions
    results_index.json            result id -> summary, for per-user listings

An open attempt is rewritten after every event, so a restarted service can
resume it from its snapshot. Submitting moves it from ``attempts/`` to
``results/``.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from attempt_core.tracker import Attempt


log = logging.getLogger(__name__)

DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()
PAPERS_DIR = DATA_ROOT / "tests"
ATTEMPTS_DIR = DATA_ROOT / "attempts"
RESULTS_DIR = DATA_ROOT / "results"
RESULT_INDEX_PATH = DATA_ROOT / "results_index.json"

# guards the shared index; per-record files are replaced atomically
_INDEX_LOCK = threading.Lock()


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _load(path: Path) -> Optional[Any]:
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        log.warning("unreadable store file %s", path)
        return None


def _dump(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


# ---- test definitions ----
def paper_path(test_id: str) -> Path:
    return PAPERS_DIR / f"{test_id}.json"


def save_paper(test_id: str, paper: Dict[str, Any]) -> None:
    _dump(paper_path(test_id), paper)


# ---- open attempts ----
def _attempt_path(attempt_id: str) -> Path:
    return ATTEMPTS_DIR / f"{attempt_id}.json"


def save_attempt(attempt_id: str, attempt: Attempt, *, user_id: Optional[str], started_at: str) -> Dict[str, Any]:
    """Write the attempt's current snapshot; returns the record without it."""

    summary = {
        "attemptId": attempt_id,
        "userId": user_id,
        "testId": attempt.test_id,
        "startedAt": started_at,
        "lastUpdated": utcnow_iso(),
        "events": len(attempt.navigation),
        "counts": attempt.status_counts(),
    }
    _dump(_attempt_path(attempt_id), {**summary, "snapshot": attempt.to_dict()})
    return summary


def load_attempt(attempt_id: str) -> Optional[Dict[str, Any]]:
    """Stored record for an open attempt, snapshot included, or ``None``."""

    record = _load(_attempt_path(attempt_id))
    if not isinstance(record, dict) or "snapshot" not in record:
        return None
    return record


def drop_attempt(attempt_id: str) -> bool:
    path = _attempt_path(attempt_id)
    if not path.exists():
        return False
    path.unlink()
    return True


def attempts_for_user(user_id: str) -> List[Dict[str, Any]]:
    if not ATTEMPTS_DIR.exists():
        return []
    out: List[Dict[str, Any]] = []
    for path in ATTEMPTS_DIR.glob("*.json"):
        record = _load(path)
        if isinstance(record, dict) and record.get("userId") == user_id:
            out.append({k: v for k, v in record.items() if k != "snapshot"})
    out.sort(key=lambda r: r.get("startedAt", ""), reverse=True)
    return out


# ---- results ----
def _result_path(result_id: str) -> Path:
    return RESULTS_DIR / f"{result_id}.json"


def _result_summary(result: Dict[str, Any]) -> Dict[str, Any]:
    score = result.get("score") or {}
    meta = result.get("meta") or {}
    return {
        "attemptId": result.get("attemptId"),
        "userId": meta.get("userId"),
        "testId": result.get("testId"),
        "createdAt": result.get("created_at"),
        "score": score.get("score"),
        "percentage": score.get("percentage"),
        "flags": list(meta.get("flags") or []),
    }


def save_result(result: Dict[str, Any]) -> None:
    """Persist a scored result under its ``id`` and refresh its index entry."""

    result_id = result["id"]
    _dump(_result_path(result_id), result)
    with _INDEX_LOCK:
        index: Dict[str, Dict[str, Any]] = _load(RESULT_INDEX_PATH) or {}
        index[result_id] = _result_summary(result)
        _dump(RESULT_INDEX_PATH, index)


def load_result(result_id: str) -> Optional[Dict[str, Any]]:
    return _load(_result_path(result_id))


def delete_result(result_id: str) -> bool:
    with _INDEX_LOCK:
        index: Dict[str, Dict[str, Any]] = _load(RESULT_INDEX_PATH) or {}
        removed = index.pop(result_id, None) is not None
        if removed:
            _dump(RESULT_INDEX_PATH, index)
    path = _result_path(result_id)
    if path.exists():
        path.unlink()
    return removed


def results_for_user(user_id: str) -> List[Dict[str, Any]]:
    index: Dict[str, Dict[str, Any]] = _load(RESULT_INDEX_PATH) or {}
    out = [{"id": rid, **meta} for rid, meta in index.items() if meta.get("userId") == user_id]
    out.sort(key=lambda r: r.get("createdAt") or "", reverse=True)
    return out


def result_for_attempt(attempt_id: str) -> Optional[Dict[str, Any]]:
    index: Dict[str, Dict[str, Any]] = _load(RESULT_INDEX_PATH) or {}
    for rid, meta in index.items():
        if meta.get("attemptId") == attempt_id:
            return load_result(rid)
    return None

"""Helpers to export navigation history in JSON/CSV formats."""
from __future__ import annotations

from typing import Iterable, List, Dict, Any, Union
import csv
import io

from .types import NavigationEvent

_FIELDS: tuple[str, ...] = (
    "seq",
    "timestamp",
    "question_id",
    "action",
    "time_spent_since_last_event",
)

_WIRE_ALIASES: dict[str, str] = {
    "question_id": "questionId",
    "time_spent_since_last_event": "timeSpentSinceLastEvent",
}


def _normalize_event(event: Union[NavigationEvent, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(event, NavigationEvent):
        event = event.to_dict()
    out: Dict[str, Any] = {}
    for key in _FIELDS:
        val = event.get(key, event.get(_WIRE_ALIASES.get(key, key)))
        if key == "seq":
            try:
                out[key] = int(val)
            except (TypeError, ValueError):
                out[key] = 0
        elif key in {"timestamp", "time_spent_since_last_event"}:
            try:
                out[key] = float(val)
            except (TypeError, ValueError):
                out[key] = 0.0
        else:
            out[key] = "" if val is None else str(val)
    return out


def to_json(events: Iterable[Union[NavigationEvent, Dict[str, Any]]]) -> Dict[str, Any]:
    """Return a JSON-safe payload for navigation export."""

    normalized: List[Dict[str, Any]] = [_normalize_event(evt or {}) for evt in events]
    normalized.sort(key=lambda e: e["seq"])
    return {"events": normalized}


def to_csv(events: Iterable[Union[NavigationEvent, Dict[str, Any]]]) -> str:
    """Render navigation events as CSV with a fixed header."""

    normalized = to_json(events)["events"]
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=_FIELDS)
    writer.writeheader()
    for row in normalized:
        writer.writerow(row)
    return buf.getvalue()


__all__ = ["to_json", "to_csv"]

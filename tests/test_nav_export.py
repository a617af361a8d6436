from __future__ import annotations

from attempt_core.nav_export import to_csv, to_json
from attempt_core.navigation import NavigationLog
from attempt_core.types import SingleChoice


def test_json_export_from_events(clock):
    log = NavigationLog(clock=clock)
    log.append("q1", "visit")
    clock.advance(12)
    log.append("q1", "answer", value=SingleChoice(2))

    body = to_json(log.events())
    events = body["events"]
    assert [e["seq"] for e in events] == [0, 1]
    assert events[1] == {
        "seq": 1,
        "timestamp": 1012.0,
        "question_id": "q1",
        "action": "answer",
        "time_spent_since_last_event": 12.0,
    }


def test_wire_dicts_accepted_and_sorted():
    stored = [
        {"seq": 1, "timestamp": 5.0, "questionId": "q2", "action": "mark", "timeSpentSinceLastEvent": 0},
        {"seq": 0, "timestamp": 4.0, "questionId": "q1", "action": "visit", "timeSpentSinceLastEvent": 0},
    ]
    events = to_json(stored)["events"]
    assert [e["question_id"] for e in events] == ["q1", "q2"]


def test_csv_has_header_and_one_row_per_event(clock):
    log = NavigationLog(clock=clock)
    for qid in ("q1", "q2", "q3"):
        log.append(qid, "visit")
    lines = [ln for ln in to_csv(log.events()).strip().splitlines() if ln]
    assert len(lines) == 4
    header = lines[0].split(",")
    assert header[0] == "seq"
    assert header[-1] == "time_spent_since_last_event"


def test_empty_export():
    assert to_json([]) == {"events": []}
    assert to_csv([]).strip() == "seq,timestamp,question_id,action,time_spent_since_last_event"

from __future__ import annotations

import random
from typing import Any

import pendulum
import pytest

from matchsim.core import (
    DecisionAction,
    DecisionFailure,
    DecisionLedger,
    DecisionOutcome,
    DecisionRecord,
    DecisionState,
    LedgerConfig,
    QueueCurator,
    QueueCursor,
    ScoreEngine,
    classify_outcome,
)
from matchsim.schemas import CandidateProfile, MatchCriteria

FIXED_NOW = pendulum.datetime(2024, 5, 1, 12, 0, tz="UTC")
CRITERIA = MatchCriteria(quest_id="Q-7", acceptable_genders=("female",))


def build_candidate(candidate_id: str, gender: str) -> CandidateProfile:
    return CandidateProfile(
        candidate_id=candidate_id,
        name=f"Name {candidate_id}",
        age=31,
        gender=gender,
    )


MATCH_A = build_candidate("F-1", "female")
MATCH_B = build_candidate("F-2", "female")
MISS_A = build_candidate("M-1", "male")
MISS_B = build_candidate("M-2", "male")


def build_session(auto_advance: bool = True) -> tuple[QueueCurator, QueueCursor, DecisionLedger]:
    engine = ScoreEngine()
    curator = QueueCurator(engine, rng=random.Random(3))
    cursor = QueueCursor(curator)
    ledger = DecisionLedger(
        engine,
        curator,
        cursor=cursor,
        config=LedgerConfig(auto_advance=auto_advance),
        now_provider=lambda: FIXED_NOW,
    )
    curator.populate_for_quest(CRITERIA, [MATCH_A, MATCH_B, MISS_A, MISS_B], target_count=4)
    return curator, cursor, ledger


@pytest.mark.parametrize(
    ("action", "was_match", "expected"),
    [
        (DecisionAction.ACCEPT, True, DecisionOutcome.TRUE_POSITIVE),
        (DecisionAction.ACCEPT, False, DecisionOutcome.FALSE_POSITIVE),
        (DecisionAction.REJECT, True, DecisionOutcome.FALSE_NEGATIVE),
        (DecisionAction.REJECT, False, DecisionOutcome.TRUE_NEGATIVE),
    ],
)
def test_classify_outcome(action, was_match, expected):
    assert classify_outcome(action, was_match) is expected


def test_decisions_update_confusion_matrix_and_accuracy():
    curator, _, ledger = build_session()

    tp = ledger.decide(MATCH_A, "accept")
    assert isinstance(tp, DecisionRecord)
    assert tp.outcome is DecisionOutcome.TRUE_POSITIVE
    assert tp.is_correct is True
    assert ledger.accuracy == pytest.approx(100.0)

    tn = ledger.decide(MISS_A, DecisionAction.REJECT)
    assert tn.outcome is DecisionOutcome.TRUE_NEGATIVE
    assert ledger.accuracy == pytest.approx(100.0)

    fp = ledger.decide(MISS_B, "accept")
    assert fp.outcome is DecisionOutcome.FALSE_POSITIVE
    assert fp.is_correct is False
    assert ledger.accuracy == pytest.approx(66.6667, rel=1e-4)

    fn = ledger.decide(MATCH_B, "reject")
    assert fn.outcome is DecisionOutcome.FALSE_NEGATIVE

    assert ledger.counts() == {
        "true_positive": 1,
        "true_negative": 1,
        "false_positive": 1,
        "false_negative": 1,
    }
    assert ledger.total_decisions == 4
    assert ledger.total_correct + ledger.total_incorrect == ledger.total_decisions
    assert ledger.accuracy == pytest.approx(50.0)
    assert curator.accepted_count == 2
    assert curator.rejected_count == 2
    assert [record.sequence for record in ledger.records] == [1, 2, 3, 4]


def test_record_captures_reason_score_and_timestamp():
    _, _, ledger = build_session()

    accepted = ledger.decide(MATCH_A, "accept")
    rejected = ledger.decide(MISS_A, "reject")

    assert accepted.match_reason == f"Valid match (score: {accepted.match_score:.0f})"
    assert accepted.candidate_name == "Name F-1"
    assert rejected.match_reason == "Gender preference not met"
    assert rejected.match_score == 0.0
    assert accepted.decided_at == FIXED_NOW
    payload = accepted.to_dict()
    assert payload["action"] == "accept"
    assert payload["outcome"] == "true_positive"
    assert payload["decided_at"].startswith("2024-05-01T12:00:00")


@pytest.mark.parametrize(
    ("candidate", "action", "code"),
    [
        (None, "accept", "missing_candidate"),
        (build_candidate("X-9", "female"), "accept", "not_in_queue"),
        (MATCH_A, "maybe", "unknown_action"),
    ],
)
def test_precondition_violations_change_nothing(candidate, action, code):
    curator, _, ledger = build_session()

    outcome = ledger.decide(candidate, action)

    assert isinstance(outcome, DecisionFailure)
    assert outcome.ok is False
    assert outcome.code == code
    assert ledger.total_decisions == 0
    assert curator.pending_count == 4


def test_deciding_twice_is_rejected():
    curator, _, ledger = build_session()
    ledger.decide(MATCH_A, "accept")

    again = ledger.decide(MATCH_A.candidate_id, "reject")

    assert isinstance(again, DecisionFailure)
    assert again.code == "already_decided"
    assert ledger.total_decisions == 1
    assert curator.get_decision(MATCH_A) is DecisionState.ACCEPTED
    assert ledger.record_for(MATCH_A).action is DecisionAction.ACCEPT


def test_completion_fires_once_after_last_record():
    curator, _, ledger = build_session()
    events: list[str] = []
    ledger.decision_recorded.connect(lambda record: events.append(f"recorded:{record.candidate_id}"))
    ledger.all_decisions_complete.connect(lambda: events.append("complete"))

    for candidate in (MATCH_A, MISS_A, MISS_B, MATCH_B):
        ledger.decide(candidate, "reject")

    assert events[-2:] == ["recorded:F-2", "complete"]
    assert events.count("complete") == 1

    curator.reset_decision(MATCH_B)
    ledger.decide(MATCH_B, "accept")
    assert events.count("complete") == 1


def test_completion_rearms_after_repopulation():
    curator, _, ledger = build_session()
    completions: list[int] = []
    ledger.all_decisions_complete.connect(lambda: completions.append(ledger.total_decisions))

    for candidate in curator.candidates:
        ledger.decide(candidate, "reject")
    curator.populate_for_quest(CRITERIA, [MATCH_A, MISS_A], target_count=2)
    for candidate in curator.candidates:
        ledger.decide(candidate, "accept")

    assert completions == [4, 6]


def test_auto_advance_moves_cursor_to_next_pending():
    curator, cursor, ledger = build_session()
    cursor.select_first()
    first = cursor.current

    ledger.decide(first, "accept")

    assert cursor.current is not None
    assert cursor.current != first
    assert curator.get_decision(cursor.current) is DecisionState.PENDING


def test_auto_advance_disabled_keeps_selection():
    _, cursor, ledger = build_session(auto_advance=False)
    cursor.select_first()
    first = cursor.current

    ledger.decide(first, "accept")

    assert cursor.current == first


def test_reset_session_clears_tally_but_not_queue():
    curator, _, ledger = build_session()
    ledger.decide(MATCH_A, "accept")

    ledger.reset_session()

    assert ledger.total_decisions == 0
    assert ledger.accuracy == 0.0
    assert ledger.records == ()
    assert ledger.has_decision_for(MATCH_A) is False
    assert curator.get_decision(MATCH_A) is DecisionState.ACCEPTED
    assert curator.count == 4


def test_listener_errors_propagate():
    _, _, ledger = build_session()

    def explode(record: Any) -> None:
        raise RuntimeError("listener failed")

    ledger.decision_recorded.connect(explode)

    with pytest.raises(RuntimeError):
        ledger.decide(MATCH_A, "accept")

from __future__ import annotations

import random

from matchsim.core import DecisionState, QueueCurator, QueueCursor, ScoreEngine
from matchsim.schemas import CandidateProfile, MatchCriteria

CRITERIA = MatchCriteria(quest_id="Q-2")
POOL = [
    CandidateProfile(candidate_id=f"C-{idx}", age=25 + idx, gender="nonbinary")
    for idx in range(4)
]


def build_cursor() -> tuple[QueueCurator, QueueCursor]:
    curator = QueueCurator(ScoreEngine(), rng=random.Random(1))
    cursor = QueueCursor(curator)
    curator.populate_for_quest(CRITERIA, POOL, target_count=4)
    return curator, cursor


def test_navigation_within_bounds():
    curator, cursor = build_cursor()

    assert cursor.has_selection is False
    assert cursor.select_first() is True
    assert cursor.current == curator.candidates[0]
    assert cursor.has_previous is False
    assert cursor.select_previous() is False

    assert cursor.select_next() is True
    assert cursor.current_index == 1
    assert cursor.select_index(3) is True
    assert cursor.has_next is False
    assert cursor.select_next() is False
    assert cursor.select_index(9) is False
    assert cursor.current_index == 3


def test_select_candidate_by_reference_or_id():
    curator, cursor = build_cursor()
    target = curator.candidates[2]

    assert cursor.select_candidate(target.candidate_id) is True
    assert cursor.current_index == 2
    assert cursor.select_candidate("missing") is False
    assert cursor.current_index == 2


def test_select_next_pending_wraps_around():
    curator, cursor = build_cursor()
    candidates = curator.candidates
    curator.set_decision(candidates[0], DecisionState.ACCEPTED)
    curator.set_decision(candidates[3], DecisionState.REJECTED)
    cursor.select_index(2)
    curator.set_decision(candidates[2], DecisionState.REJECTED)

    assert cursor.select_next_pending() is True
    assert cursor.current_index == 1

    curator.set_decision(candidates[1], DecisionState.ACCEPTED)
    assert cursor.select_next_pending() is False
    assert cursor.current_index == 1


def test_selection_changed_fires_only_on_moves():
    curator, cursor = build_cursor()
    seen: list[object] = []
    cursor.selection_changed.connect(seen.append)

    cursor.select_first()
    cursor.select_first()
    cursor.select_next()

    assert seen == [curator.candidates[0], curator.candidates[1]]


def test_queue_change_clears_selection():
    curator, cursor = build_cursor()
    seen: list[object] = []
    cursor.select_index(1)
    cursor.selection_changed.connect(seen.append)

    curator.populate_for_quest(CRITERIA, POOL, target_count=2)

    assert cursor.current is None
    assert cursor.current_index == -1
    assert seen == [None]

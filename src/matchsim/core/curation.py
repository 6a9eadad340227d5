"\"\"\"Quest queue curation and per-candidate decision state.\"\"\""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable

import structlog

from ..schemas import CandidateProfile, MatchCriteria
from .events import Signal

if TYPE_CHECKING:
    from . import MatchEvaluator

CandidateRef = CandidateProfile | str


class DecisionState(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(slots=True)
class QueueEntry:
    """A queued candidate and where its decision stands."""

    candidate: CandidateProfile
    decision: DecisionState = DecisionState.PENDING

    @property
    def candidate_id(self) -> str:
        return self.candidate.candidate_id

    @property
    def is_pending(self) -> bool:
        return self.decision is DecisionState.PENDING


@dataclass
class QueueConfig:
    """Queue sizing defaults."""

    default_queue_size: int = 5
    min_good_matches: int = 1


class QueueCurator:
    """Select and order the candidates a player reviews for one quest.

    Owns the active queue and its decision map. Both are replaced wholesale on
    every population and ``queue_changed`` fires afterwards.
    """

    def __init__(
        self,
        engine: MatchEvaluator,
        *,
        config: QueueConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._engine = engine
        self._config = config or QueueConfig()
        self._rng = rng or random.Random()
        self._entries: list[QueueEntry] = []
        self._by_id: dict[str, QueueEntry] = {}
        self._criteria: MatchCriteria | None = None
        self._logger = structlog.get_logger(__name__)

        self.queue_changed = Signal("queue_changed")
        self.decision_changed = Signal("decision_changed")

    def populate_for_quest(
        self,
        criteria: MatchCriteria | None,
        pool: Iterable[CandidateProfile | None],
        target_count: int | None = None,
        min_good_matches: int | None = None,
    ) -> list[CandidateProfile]:
        """Build a queue holding at least ``min_good_matches`` true matches.

        Remaining slots go to non-matching candidates first so the queue stays
        challenging, then to leftover matches when distractors run out.
        """
        if criteria is None:
            self._logger.warning("queue.missing_criteria", fallback="random")
            return self.populate_random(pool, target_count)

        candidates = self._prepare_pool(pool)
        count = self._resolve_count(target_count, len(candidates))
        floor = self._config.min_good_matches if min_good_matches is None else min_good_matches

        good: list[CandidateProfile] = []
        bad: list[CandidateProfile] = []
        for candidate in candidates:
            result = self._engine.evaluate(candidate, criteria)
            (good if result.is_match else bad).append(candidate)

        self._rng.shuffle(good)
        self._rng.shuffle(bad)

        good_to_take = min(max(floor, 0), len(good), count)
        selected = good[:good_to_take]
        selected.extend(bad[: count - len(selected)])
        still_needed = count - len(selected)
        if still_needed > 0:
            selected.extend(good[good_to_take : good_to_take + still_needed])

        self._rng.shuffle(selected)
        self._replace(selected, criteria)

        self._logger.info(
            "queue.populated",
            quest_id=criteria.quest_id,
            pool_size=len(candidates),
            queue_size=len(selected),
            good_available=len(good),
            good_guaranteed=good_to_take,
        )
        return list(selected)

    def populate_random(
        self,
        pool: Iterable[CandidateProfile | None],
        target_count: int | None = None,
    ) -> list[CandidateProfile]:
        """Fill the queue with an unconstrained random sample."""
        candidates = self._prepare_pool(pool)
        count = self._resolve_count(target_count, len(candidates))
        selected = self._rng.sample(candidates, count)
        self._replace(selected, None)
        self._logger.info(
            "queue.populated_random", pool_size=len(candidates), queue_size=len(selected)
        )
        return list(selected)

    def clear(self) -> None:
        self._replace([], None)

    @property
    def active_criteria(self) -> MatchCriteria | None:
        return self._criteria

    @property
    def entries(self) -> tuple[QueueEntry, ...]:
        return tuple(self._entries)

    @property
    def candidates(self) -> tuple[CandidateProfile, ...]:
        return tuple(entry.candidate for entry in self._entries)

    @property
    def count(self) -> int:
        return len(self._entries)

    @property
    def has_candidates(self) -> bool:
        return bool(self._entries)

    @property
    def pending_count(self) -> int:
        return self._count_state(DecisionState.PENDING)

    @property
    def accepted_count(self) -> int:
        return self._count_state(DecisionState.ACCEPTED)

    @property
    def rejected_count(self) -> int:
        return self._count_state(DecisionState.REJECTED)

    @property
    def all_decided(self) -> bool:
        return bool(self._entries) and self.pending_count == 0

    def is_in_queue(self, candidate: CandidateRef | None) -> bool:
        return self._entry_for(candidate) is not None

    def get_decision(self, candidate: CandidateRef | None) -> DecisionState | None:
        """Decision state of a queued candidate; ``None`` when not queued."""
        entry = self._entry_for(candidate)
        return entry.decision if entry is not None else None

    def get_candidate(self, candidate_id: str) -> CandidateProfile | None:
        entry = self._by_id.get(candidate_id)
        return entry.candidate if entry is not None else None

    def candidate_at(self, index: int) -> CandidateProfile | None:
        if 0 <= index < len(self._entries):
            return self._entries[index].candidate
        return None

    def index_of(self, candidate: CandidateRef | None) -> int:
        entry = self._entry_for(candidate)
        if entry is None:
            return -1
        return self._entries.index(entry)

    def pending_candidates(self) -> list[CandidateProfile]:
        return self._with_state(DecisionState.PENDING)

    def accepted_candidates(self) -> list[CandidateProfile]:
        return self._with_state(DecisionState.ACCEPTED)

    def rejected_candidates(self) -> list[CandidateProfile]:
        return self._with_state(DecisionState.REJECTED)

    def set_decision(self, candidate: CandidateRef | None, state: DecisionState) -> bool:
        """Close a pending decision; returns ``False`` without changes otherwise."""
        entry = self._entry_for(candidate)
        if entry is None:
            self._logger.warning("queue.decision_not_queued", candidate=_ref_id(candidate))
            return False
        if state is DecisionState.PENDING or not entry.is_pending:
            self._logger.warning(
                "queue.decision_invalid_transition",
                candidate_id=entry.candidate_id,
                current=entry.decision.value,
                requested=DecisionState(state).value,
            )
            return False

        entry.decision = state
        self._logger.debug(
            "queue.decision_set", candidate_id=entry.candidate_id, decision=state.value
        )
        self.decision_changed.emit(entry.candidate, state)
        return True

    def reset_decision(self, candidate: CandidateRef | None) -> bool:
        entry = self._entry_for(candidate)
        if entry is None:
            return False
        if entry.is_pending:
            return True
        entry.decision = DecisionState.PENDING
        self.decision_changed.emit(entry.candidate, DecisionState.PENDING)
        return True

    def _replace(self, selected: list[CandidateProfile], criteria: MatchCriteria | None) -> None:
        self._entries = [QueueEntry(candidate=candidate) for candidate in selected]
        self._by_id = {entry.candidate_id: entry for entry in self._entries}
        self._criteria = criteria
        self.queue_changed.emit()

    def _prepare_pool(self, pool: Iterable[CandidateProfile | None] | None) -> list[CandidateProfile]:
        candidates: list[CandidateProfile] = []
        seen: set[str] = set()
        for item in pool or ():
            if not isinstance(item, CandidateProfile):
                self._logger.warning("queue.invalid_pool_entry", entry_type=type(item).__name__)
                continue
            if item.candidate_id in seen:
                self._logger.warning("queue.duplicate_candidate", candidate_id=item.candidate_id)
                continue
            seen.add(item.candidate_id)
            candidates.append(item)
        return candidates

    def _resolve_count(self, target_count: int | None, pool_size: int) -> int:
        count = target_count if target_count and target_count > 0 else self._config.default_queue_size
        return max(0, min(count, pool_size))

    def _entry_for(self, candidate: CandidateRef | None) -> QueueEntry | None:
        candidate_id = _ref_id(candidate)
        if candidate_id is None:
            return None
        return self._by_id.get(candidate_id)

    def _count_state(self, state: DecisionState) -> int:
        return sum(1 for entry in self._entries if entry.decision is state)

    def _with_state(self, state: DecisionState) -> list[CandidateProfile]:
        return [entry.candidate for entry in self._entries if entry.decision is state]


def _ref_id(candidate: CandidateRef | None) -> str | None:
    if candidate is None:
        return None
    if isinstance(candidate, CandidateProfile):
        return candidate.candidate_id
    if isinstance(candidate, str):
        return candidate
    return None

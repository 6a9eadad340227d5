"\"\"\"Decision judgement and running session statistics.\"\"\""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

import pendulum
import structlog

from ..schemas import CandidateProfile, MatchCriteria
from .curation import DecisionState, QueueCurator
from .events import Signal
from .selection import QueueCursor

if TYPE_CHECKING:
    from . import MatchEvaluator


class DecisionAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class DecisionOutcome(str, Enum):
    """Confusion-matrix cell for one decision."""

    TRUE_POSITIVE = "true_positive"
    TRUE_NEGATIVE = "true_negative"
    FALSE_POSITIVE = "false_positive"
    FALSE_NEGATIVE = "false_negative"


_CORRECT_OUTCOMES = frozenset({DecisionOutcome.TRUE_POSITIVE, DecisionOutcome.TRUE_NEGATIVE})


def classify_outcome(action: DecisionAction, was_actual_match: bool) -> DecisionOutcome:
    if action is DecisionAction.ACCEPT:
        return DecisionOutcome.TRUE_POSITIVE if was_actual_match else DecisionOutcome.FALSE_POSITIVE
    return DecisionOutcome.FALSE_NEGATIVE if was_actual_match else DecisionOutcome.TRUE_NEGATIVE


@dataclass(frozen=True, slots=True)
class DecisionRecord:
    """A judged decision as appended to the ledger log."""

    sequence: int
    candidate_id: str
    candidate_name: str
    action: DecisionAction
    was_actual_match: bool
    is_correct: bool
    outcome: DecisionOutcome
    match_score: float
    match_reason: str
    decided_at: pendulum.DateTime

    @property
    def ok(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["action"] = self.action.value
        payload["outcome"] = self.outcome.value
        payload["decided_at"] = self.decided_at.to_iso8601_string()
        return payload


@dataclass(frozen=True, slots=True)
class DecisionFailure:
    """A rejected decision request; nothing was changed."""

    code: str
    reason: str
    candidate_id: str | None = None

    @property
    def ok(self) -> bool:
        return False


@dataclass
class LedgerConfig:
    auto_advance: bool = True


class DecisionLedger:
    """Judge player decisions against ground truth and keep the tally.

    The ledger is the only writer of closed decisions: it validates the
    request, re-evaluates the candidate, closes the queue entry through the
    curator and appends a :class:`DecisionRecord`. ``decision_recorded`` fires
    for every record; ``all_decisions_complete`` fires once per queue
    population, right after the record that closed the last pending entry.
    """

    def __init__(
        self,
        engine: MatchEvaluator,
        curator: QueueCurator,
        *,
        cursor: QueueCursor | None = None,
        config: LedgerConfig | None = None,
        now_provider: Callable[[], pendulum.DateTime] | None = None,
    ) -> None:
        self._engine = engine
        self._curator = curator
        self._cursor = cursor
        self._config = config or LedgerConfig()
        self._now = now_provider or (lambda: pendulum.now("UTC"))
        self._logger = structlog.get_logger(__name__)

        self._records: list[DecisionRecord] = []
        self._by_candidate: dict[str, DecisionRecord] = {}
        self._counts: Counter[DecisionOutcome] = Counter()
        self._completion_sent = False

        self.decision_recorded = Signal("decision_recorded")
        self.all_decisions_complete = Signal("all_decisions_complete")
        curator.queue_changed.connect(self._on_queue_changed)

    def decide(
        self,
        candidate: CandidateProfile | str | None,
        action: DecisionAction | str,
        *,
        criteria: MatchCriteria | None = None,
    ) -> DecisionRecord | DecisionFailure:
        """Record an accept/reject decision for a pending queued candidate."""
        candidate_id = candidate.candidate_id if isinstance(candidate, CandidateProfile) else candidate
        if not candidate_id or not isinstance(candidate_id, str):
            return self._reject("missing_candidate", "No candidate given", None)

        try:
            action = DecisionAction(action)
        except ValueError:
            return self._reject("unknown_action", f"Unknown action: {action!r}", candidate_id)

        profile = self._curator.get_candidate(candidate_id)
        if profile is None:
            return self._reject("not_in_queue", "Candidate is not in the active queue", candidate_id)

        current = self._curator.get_decision(profile)
        if current is not DecisionState.PENDING:
            return self._reject(
                "already_decided", f"Candidate already decided ({current.value})", candidate_id
            )

        result = self._engine.evaluate(profile, criteria or self._curator.active_criteria)
        was_actual_match = result.is_match
        outcome = classify_outcome(action, was_actual_match)
        reason = (
            f"Valid match (score: {result.score:.0f})"
            if was_actual_match
            else result.failure_reason or "Not a match"
        )

        state = DecisionState.ACCEPTED if action is DecisionAction.ACCEPT else DecisionState.REJECTED
        if not self._curator.set_decision(profile, state):
            return self._reject("transition_failed", "Queue refused the decision", candidate_id)

        record = DecisionRecord(
            sequence=len(self._records) + 1,
            candidate_id=profile.candidate_id,
            candidate_name=profile.display_name,
            action=action,
            was_actual_match=was_actual_match,
            is_correct=outcome in _CORRECT_OUTCOMES,
            outcome=outcome,
            match_score=result.score,
            match_reason=reason,
            decided_at=self._now(),
        )
        self._records.append(record)
        self._by_candidate[record.candidate_id] = record
        self._counts[outcome] += 1

        self._logger.info(
            "decision.recorded",
            candidate_id=record.candidate_id,
            action=action.value,
            outcome=outcome.value,
            is_correct=record.is_correct,
            accuracy=round(self.accuracy, 1),
        )
        self.decision_recorded.emit(record)

        if self._curator.all_decided:
            if not self._completion_sent:
                self._completion_sent = True
                self._logger.info(
                    "decision.all_complete",
                    total=self.total_decisions,
                    accuracy=round(self.accuracy, 1),
                )
                self.all_decisions_complete.emit()
        elif self._config.auto_advance and self._cursor is not None:
            self._cursor.select_next_pending()

        return record

    def accept(self, candidate: CandidateProfile | str | None, **kwargs: Any) -> DecisionRecord | DecisionFailure:
        return self.decide(candidate, DecisionAction.ACCEPT, **kwargs)

    def reject(self, candidate: CandidateProfile | str | None, **kwargs: Any) -> DecisionRecord | DecisionFailure:
        return self.decide(candidate, DecisionAction.REJECT, **kwargs)

    @property
    def true_positives(self) -> int:
        return self._counts[DecisionOutcome.TRUE_POSITIVE]

    @property
    def true_negatives(self) -> int:
        return self._counts[DecisionOutcome.TRUE_NEGATIVE]

    @property
    def false_positives(self) -> int:
        return self._counts[DecisionOutcome.FALSE_POSITIVE]

    @property
    def false_negatives(self) -> int:
        return self._counts[DecisionOutcome.FALSE_NEGATIVE]

    @property
    def total_correct(self) -> int:
        return self.true_positives + self.true_negatives

    @property
    def total_incorrect(self) -> int:
        return self.false_positives + self.false_negatives

    @property
    def total_decisions(self) -> int:
        return self.total_correct + self.total_incorrect

    @property
    def accuracy(self) -> float:
        """Percentage of correct decisions, 0 when nothing was decided."""
        if self.total_decisions == 0:
            return 0.0
        return 100.0 * self.total_correct / self.total_decisions

    @property
    def records(self) -> tuple[DecisionRecord, ...]:
        return tuple(self._records)

    def counts(self) -> dict[str, int]:
        return {outcome.value: self._counts[outcome] for outcome in DecisionOutcome}

    def record_for(self, candidate: CandidateProfile | str | None) -> DecisionRecord | None:
        candidate_id = candidate.candidate_id if isinstance(candidate, CandidateProfile) else candidate
        if not isinstance(candidate_id, str):
            return None
        return self._by_candidate.get(candidate_id)

    def has_decision_for(self, candidate: CandidateProfile | str | None) -> bool:
        return self.record_for(candidate) is not None

    def reset_session(self) -> None:
        """Clear counters and the log; queue membership is left alone."""
        self._records.clear()
        self._by_candidate.clear()
        self._counts.clear()
        self._completion_sent = False
        self._logger.debug("decision.session_reset")

    def _reject(self, code: str, reason: str, candidate_id: str | None) -> DecisionFailure:
        self._logger.warning(
            "decision.rejected_precondition", code=code, reason=reason, candidate_id=candidate_id
        )
        return DecisionFailure(code=code, reason=reason, candidate_id=candidate_id)

    def _on_queue_changed(self) -> None:
        self._completion_sent = False

"\"\"\"Matchmaking decision core components.\"\"\""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

from ..schemas import CandidateProfile, MatchCriteria

# NOTE: keep imports explicit for export clarity.
from .scoring import (
    FailureKind,
    MatchResult,
    RequirementMode,
    ScoreBreakdown,
    ScoreConfig,
    ScoreEngine,
)
from .curation import DecisionState, QueueConfig, QueueCurator, QueueEntry
from .selection import QueueCursor
from .evidence import ELIGIBLE_POST_TYPES, EvidenceSampler, SamplerConfig
from .ledger import (
    DecisionAction,
    DecisionFailure,
    DecisionLedger,
    DecisionOutcome,
    DecisionRecord,
    LedgerConfig,
    classify_outcome,
)
from .events import Signal


@runtime_checkable
class MatchEvaluator(Protocol):
    """Ground-truth contract shared by the curator and the ledger."""

    def evaluate(
        self,
        candidate: CandidateProfile | Mapping[str, Any] | None,
        criteria: MatchCriteria | Mapping[str, Any] | None,
    ) -> MatchResult:
        """Return the verdict for a candidate under the given criteria."""


__all__ = [
    "MatchEvaluator",
    "ScoreEngine",
    "ScoreConfig",
    "ScoreBreakdown",
    "MatchResult",
    "RequirementMode",
    "FailureKind",
    "QueueCurator",
    "QueueConfig",
    "QueueEntry",
    "DecisionState",
    "QueueCursor",
    "EvidenceSampler",
    "SamplerConfig",
    "ELIGIBLE_POST_TYPES",
    "DecisionLedger",
    "LedgerConfig",
    "DecisionAction",
    "DecisionOutcome",
    "DecisionRecord",
    "DecisionFailure",
    "classify_outcome",
    "Signal",
]

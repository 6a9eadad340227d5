"\"\"\"Single-session orchestration and result writers.\"\"\""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable

import pendulum
import structlog

from . import __version__
from .content import ContentStore
from .core import (
    DecisionAction,
    DecisionFailure,
    DecisionLedger,
    DecisionRecord,
    EvidenceSampler,
    QueueCurator,
    QueueCursor,
    ScoreEngine,
)
from .schemas import CandidateProfile, GeneratedPost, MatchCriteria, PostTemplate


@dataclass(slots=True)
class SessionSummary:
    quest_id: str | None
    queue_size: int
    pending: int
    true_positives: int
    true_negatives: int
    false_positives: int
    false_negatives: int
    accuracy: float
    records: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "quest_id": self.quest_id,
            "queue_size": self.queue_size,
            "pending": self.pending,
            "counts": {
                "true_positive": self.true_positives,
                "true_negative": self.true_negatives,
                "false_positive": self.false_positives,
                "false_negative": self.false_negatives,
            },
            "accuracy": round(self.accuracy, 1),
            "records": list(self.records),
        }


class MatchSession:
    """Run one quest: populate the queue, serve feeds and collect decisions."""

    def __init__(
        self,
        *,
        engine: ScoreEngine,
        curator: QueueCurator,
        sampler: EvidenceSampler,
        ledger: DecisionLedger,
        cursor: QueueCursor,
        content: ContentStore | None = None,
        now_provider: Callable[[], pendulum.DateTime] | None = None,
    ) -> None:
        self._engine = engine
        self._curator = curator
        self._sampler = sampler
        self._ledger = ledger
        self._cursor = cursor
        self._content = content or ContentStore()
        self._now = now_provider or (lambda: pendulum.now("UTC"))
        self._logger = structlog.get_logger(__name__)
        self._started_at: pendulum.DateTime | None = None

    @property
    def curator(self) -> QueueCurator:
        return self._curator

    @property
    def ledger(self) -> DecisionLedger:
        return self._ledger

    @property
    def cursor(self) -> QueueCursor:
        return self._cursor

    @property
    def sampler(self) -> EvidenceSampler:
        return self._sampler

    @property
    def content(self) -> ContentStore:
        return self._content

    def start_quest(
        self,
        criteria: MatchCriteria,
        *,
        candidates: Iterable[CandidateProfile] | None = None,
        posts: Iterable[PostTemplate] | None = None,
        target_count: int | None = None,
        min_good_matches: int | None = None,
    ) -> list[CandidateProfile]:
        """Start a quest with fresh evidence, an empty ledger and a new queue."""
        pool = list(candidates) if candidates is not None else self._content.candidates
        if posts is not None:
            self._sampler.load_pool(posts)
        elif self._content.posts:
            self._sampler.load_pool(self._content.posts)
        else:
            self._sampler.reset_session()
        self._ledger.reset_session()

        queue = self._curator.populate_for_quest(
            criteria, pool, target_count=target_count, min_good_matches=min_good_matches
        )
        self._cursor.select_first()
        self._started_at = self._now()
        self._logger.info(
            "session.quest_started",
            quest_id=criteria.quest_id,
            queue_size=len(queue),
            pool_size=len(pool),
        )
        return queue

    @property
    def current_candidate(self) -> CandidateProfile | None:
        return self._cursor.current

    def current_posts(self) -> tuple[GeneratedPost, ...]:
        return self._sampler.posts_for(self._cursor.current)

    def posts_for(self, candidate: CandidateProfile | str) -> tuple[GeneratedPost, ...]:
        if isinstance(candidate, str):
            resolved = self._curator.get_candidate(candidate) or self._content.find(candidate)
            return self._sampler.posts_for(resolved)
        return self._sampler.posts_for(candidate)

    def decide(
        self, candidate: CandidateProfile | str | None, action: DecisionAction | str
    ) -> DecisionRecord | DecisionFailure:
        if isinstance(candidate, str) and not self._curator.is_in_queue(candidate):
            resolved = self._content.find(candidate)
            if resolved is not None:
                candidate = resolved
        return self._ledger.decide(candidate, action)

    def decide_current(self, action: DecisionAction | str) -> DecisionRecord | DecisionFailure:
        current = self._cursor.current
        if current is None:
            self._logger.warning("session.no_selection")
            return DecisionFailure(code="no_selection", reason="No candidate is selected")
        return self._ledger.decide(current, action)

    def summary(self) -> SessionSummary:
        ledger = self._ledger
        criteria = self._curator.active_criteria
        return SessionSummary(
            quest_id=criteria.quest_id if criteria is not None else None,
            queue_size=self._curator.count,
            pending=self._curator.pending_count,
            true_positives=ledger.true_positives,
            true_negatives=ledger.true_negatives,
            false_positives=ledger.false_positives,
            false_negatives=ledger.false_negatives,
            accuracy=ledger.accuracy,
            records=[record.to_dict() for record in ledger.records],
        )

    def summary_payload(self) -> dict[str, Any]:
        """Summary wrapped with run metadata, ready for :class:`OutputWriter`."""
        metadata = {
            "started_at": self._started_at,
            "timestamp": self._now(),
            "app_version": __version__,
        }
        payload = {"metadata": metadata, "summary": self.summary().to_dict()}
        return json.loads(json.dumps(payload, default=json_default, ensure_ascii=False))


class OutputWriter:
    """Persist session outcomes."""

    def write(self, path: Path, payload: dict | list[dict]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2, default=json_default),
            encoding="utf-8",
        )


def json_default(value):  # type: ignore[override]
    if isinstance(value, pendulum.DateTime):
        return value.to_iso8601_string()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class AuditLogger:
    """Append-only audit logger writing JSON lines."""

    def __init__(self, path: Path):
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, record: DecisionRecord | dict) -> None:
        payload = record.to_dict() if isinstance(record, DecisionRecord) else record
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, ensure_ascii=False, default=json_default))
            handle.write("\n")

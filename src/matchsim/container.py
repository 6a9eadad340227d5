"\"\"\"Dependency injection container for the matchmaking session.\"\"\""

from __future__ import annotations

import random

from dependency_injector import containers, providers

from .content import ContentStore
from .core import (
    DecisionLedger,
    EvidenceSampler,
    LedgerConfig,
    QueueConfig,
    QueueCurator,
    QueueCursor,
    SamplerConfig,
    ScoreConfig,
    ScoreEngine,
)
from .session import MatchSession


class MatchContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    config = providers.Configuration()

    rng = providers.Singleton(random.Random, config.seed)

    content_store = providers.Singleton(ContentStore)

    score_engine = providers.Singleton(ScoreEngine)

    queue_curator = providers.Singleton(QueueCurator, engine=score_engine, rng=rng)

    queue_cursor = providers.Singleton(QueueCursor, curator=queue_curator)

    evidence_sampler = providers.Singleton(EvidenceSampler, rng=rng)

    decision_ledger = providers.Singleton(
        DecisionLedger,
        engine=score_engine,
        curator=queue_curator,
        cursor=queue_cursor,
    )

    session = providers.Factory(
        MatchSession,
        engine=score_engine,
        curator=queue_curator,
        sampler=evidence_sampler,
        ledger=decision_ledger,
        cursor=queue_cursor,
        content=content_store,
    )


def create_container(*, settings: dict | None = None) -> MatchContainer:
    """Instantiate container with optional overrides."""

    container = MatchContainer()

    if not settings:
        return container

    if settings.get("seed") is not None:
        container.config.from_dict({"seed": settings["seed"]})

    if "scoring" in settings:
        score_config = ScoreConfig(**settings["scoring"])
        container.score_engine.override(providers.Singleton(ScoreEngine, config=score_config))

    if "queue" in settings:
        queue_config = QueueConfig(**settings["queue"])
        container.queue_curator.override(
            providers.Singleton(
                QueueCurator,
                engine=container.score_engine,
                config=queue_config,
                rng=container.rng,
            )
        )

    if "evidence" in settings:
        sampler_config = SamplerConfig(**settings["evidence"])
        container.evidence_sampler.override(
            providers.Singleton(EvidenceSampler, config=sampler_config, rng=container.rng)
        )

    if "ledger" in settings:
        ledger_config = LedgerConfig(**settings["ledger"])
        container.decision_ledger.override(
            providers.Singleton(
                DecisionLedger,
                engine=container.score_engine,
                curator=container.queue_curator,
                cursor=container.queue_cursor,
                config=ledger_config,
            )
        )

    return container

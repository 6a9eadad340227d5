"\"\"\"Typer CLI entrypoint for the matchmaking simulation core.\"\"\""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional

import pendulum
import structlog
import typer
import yaml
from pydantic import ValidationError

from . import __version__
from .container import MatchContainer, create_container
from .content import CandidateLoadError, CandidateLoader, ContentStore, CriteriaLoader, PostPoolLoader
from .core import RequirementMode
from .logging import configure_logging
from .schemas import CandidateProfile, MatchCriteria
from .schemas.config import load_config
from .session import AuditLogger, OutputWriter, json_default

app = typer.Typer(help="Matchmaking decision simulation CLI.")

_logger = structlog.get_logger(__name__)


def _load_settings(
    config: Path | None,
    *,
    seed: int | None = None,
    mode: RequirementMode | None = None,
) -> dict[str, Any]:
    raw: Any = None
    if config:
        with config.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle)
    try:
        settings = load_config(raw).to_settings()
    except ValidationError as exc:
        raise typer.BadParameter(f"Invalid config: {exc}", param_hint="config") from exc

    if seed is not None:
        settings["seed"] = seed
    if mode is not None:
        settings["scoring"] = {**settings.get("scoring", {}), "mode": mode.value}
    return settings


def _build_container(settings: dict[str, Any]) -> MatchContainer:
    try:
        return create_container(settings=settings)
    except (TypeError, ValueError) as exc:
        raise typer.BadParameter(f"Invalid config section: {exc}", param_hint="config") from exc


def _load_candidates(path: Path) -> list[CandidateProfile]:
    try:
        return CandidateLoader().load(path)
    except CandidateLoadError as exc:
        _logger.warning("candidates.partial_load", errors=exc.errors)
        return exc.partial


def _load_criteria(path: Path) -> MatchCriteria:
    try:
        return CriteriaLoader().load(path)
    except (ValueError, ValidationError) as exc:
        raise typer.BadParameter(str(exc), param_hint="criteria") from exc


@app.command()
def evaluate(
    candidates: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Candidates JSONL path."),
    criteria: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Criteria YAML/JSON path."),
    output: Path = typer.Option(..., dir_okay=False, resolve_path=True, help="Output JSON path."),
    mode: Optional[RequirementMode] = typer.Option(None, help="Override the Required requirement policy."),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: str = typer.Option("INFO", help="Log level for structured logging."),
) -> None:
    """Score every candidate against the criteria."""
    settings = _load_settings(config, mode=mode)
    configure_logging(log_level)

    container = _build_container(settings)
    engine = container.score_engine()
    quest = _load_criteria(criteria)
    profiles = _load_candidates(candidates)

    results = []
    for profile, result in zip(profiles, engine.evaluate_many(profiles, quest)):
        entry = asdict(result)
        entry["candidate_name"] = profile.display_name
        results.append(entry)

    payload = {
        "metadata": {
            "quest_id": quest.quest_id,
            "mode": engine.mode.value,
            "candidate_count": len(profiles),
            "match_count": sum(1 for entry in results if entry["is_match"]),
            "timestamp": pendulum.now("UTC").to_iso8601_string(),
            "app_version": __version__,
        },
        "results": json.loads(json.dumps(results, default=json_default, ensure_ascii=False)),
    }
    OutputWriter().write(output, payload)
    typer.echo(f"Evaluated {len(profiles)} candidates. Results saved to {output}.")


@app.command()
def queue(
    candidates: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Candidates JSONL path."),
    criteria: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Criteria YAML/JSON path."),
    size: Optional[int] = typer.Option(None, help="Queue size (defaults to the configured size)."),
    min_good: Optional[int] = typer.Option(None, help="Minimum number of true matches."),
    seed: Optional[int] = typer.Option(None, help="Random seed for reproducible queues."),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: str = typer.Option("WARNING", help="Log level for structured logging."),
) -> None:
    """Populate a quest queue and print it."""
    settings = _load_settings(config, seed=seed)
    configure_logging(log_level)

    container = _build_container(settings)
    engine = container.score_engine()
    curator = container.queue_curator()
    quest = _load_criteria(criteria)

    selected = curator.populate_for_quest(
        quest, _load_candidates(candidates), target_count=size, min_good_matches=min_good
    )
    for position, candidate in enumerate(selected, start=1):
        result = engine.evaluate(candidate, quest)
        verdict = "match" if result.is_match else result.failure_reason
        typer.echo(f"{position}. {candidate.candidate_id} {candidate.display_name}: {verdict}")


@app.command()
def play(
    candidates: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Candidates JSONL path."),
    criteria: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Criteria YAML/JSON path."),
    decisions: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Decisions JSONL path."),
    output: Path = typer.Option(..., dir_okay=False, resolve_path=True, help="Summary JSON path."),
    posts: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="Post pool JSON path."),
    size: Optional[int] = typer.Option(None, help="Queue size (defaults to the configured size)."),
    min_good: Optional[int] = typer.Option(None, help="Minimum number of true matches."),
    seed: Optional[int] = typer.Option(None, help="Random seed for reproducible sessions."),
    mode: Optional[RequirementMode] = typer.Option(None, help="Override the Required requirement policy."),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    audit_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Audit log output (JSONL)."),
    log_level: str = typer.Option("INFO", help="Log level for structured logging."),
) -> None:
    """Run a scripted session from a decisions file."""
    settings = _load_settings(config, seed=seed, mode=mode)
    configure_logging(log_level)

    quest = _load_criteria(criteria)
    try:
        pool_posts = PostPoolLoader().load(posts) if posts else []
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="posts") from exc
    store = ContentStore(
        _load_candidates(candidates),
        pool_posts,
        min_similarity=settings.get("fuzzy_min_similarity", 80.0),
    )

    container = _build_container(settings)
    session = container.session(content=store)
    audit_logger = AuditLogger(audit_log) if audit_log else None

    session.start_quest(quest, target_count=size, min_good_matches=min_good)

    failures: list[dict[str, Any]] = []
    for idx, step in enumerate(_read_decisions(decisions), start=1):
        if session.current_candidate is not None:
            session.current_posts()
        target = step.get("candidate")
        outcome = (
            session.decide(target, step.get("action"))
            if target
            else session.decide_current(step.get("action"))
        )
        if not outcome.ok:
            failures.append({"line": idx, **asdict(outcome)})
            continue
        if audit_logger:
            audit_logger.append(outcome)

    payload = session.summary_payload()
    payload["failures"] = failures
    OutputWriter().write(output, payload)

    summary = payload["summary"]
    typer.echo(
        f"Recorded {len(summary['records'])} decisions "
        f"(accuracy {summary['accuracy']}%). Summary saved to {output}."
    )


def _read_decisions(path: Path) -> list[dict[str, Any]]:
    steps: list[dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as handle:
        for idx, line in enumerate(handle, start=1):
            raw = line.strip()
            if not raw:
                continue
            try:
                record = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise typer.BadParameter(f"line {idx}: invalid JSON ({exc})", param_hint="decisions") from exc
            if not isinstance(record, dict):
                raise typer.BadParameter(f"line {idx}: expected an object", param_hint="decisions")
            steps.append(record)
    return steps


def main() -> None:
    app()


if __name__ == "__main__":
    main()

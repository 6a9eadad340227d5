"\"\"\"Content store and file loaders for candidates, posts and criteria.\"\"\""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

import structlog
import yaml
from pydantic import ValidationError
from rapidfuzz import fuzz

from .schemas import CandidateProfile, MatchCriteria, PostTemplate


class CandidateLoadError(ValueError):
    """Raised when candidate loading encounters invalid records."""

    def __init__(self, errors: list[str], partial: list[CandidateProfile]):
        super().__init__("Candidate loading failed")
        self.errors = errors
        self.partial = partial

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Candidate loading failed: {self.errors}"


class CandidateLoader:
    """Load candidate profiles from JSON lines."""

    def load(self, path: Path) -> list[CandidateProfile]:
        candidates: list[CandidateProfile] = []
        errors: list[str] = []
        seen: set[str] = set()
        with path.open("r", encoding="utf-8") as handle:
            for idx, line in enumerate(handle, start=1):
                raw = line.strip()
                if not raw:
                    continue
                try:
                    record = json.loads(raw)
                except json.JSONDecodeError as exc:
                    errors.append(f"line {idx}: invalid JSON ({exc})")
                    continue
                try:
                    candidate = CandidateProfile.model_validate(record)
                except ValidationError as exc:
                    errors.append(f"line {idx}: {exc}")
                    continue
                if candidate.candidate_id in seen:
                    errors.append(f"line {idx}: duplicate candidate_id '{candidate.candidate_id}'")
                    continue
                seen.add(candidate.candidate_id)
                candidates.append(candidate)
        if errors:
            raise CandidateLoadError(errors, candidates)
        return candidates


class PostPoolLoader:
    """Load the post pool from a JSON array, a ``{"posts": [...]}`` object or JSON lines.

    A single-line JSON lines file parses as one object and is read as a
    one-post pool.
    """

    def load(self, path: Path) -> list[PostTemplate]:
        text = path.read_text(encoding="utf-8")
        try:
            data: Any = json.loads(text)
        except json.JSONDecodeError:
            data = self._parse_lines(text)
        if isinstance(data, dict):
            data = data["posts"] if "posts" in data else [data]
        if not isinstance(data, list):
            raise ValueError("Post pool must be a JSON array or an object with a 'posts' list")
        try:
            return [PostTemplate.model_validate(item) for item in data]
        except ValidationError as exc:
            raise ValueError(f"Invalid post pool entry: {exc}") from exc

    @staticmethod
    def _parse_lines(text: str) -> list[Any]:
        records: list[Any] = []
        for idx, line in enumerate(text.splitlines(), start=1):
            raw = line.strip()
            if not raw:
                continue
            try:
                records.append(json.loads(raw))
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid post pool JSON at line {idx}: {exc}") from exc
        return records


class CriteriaLoader:
    """Load quest match criteria from a YAML or JSON document."""

    def load(self, path: Path) -> MatchCriteria:
        with path.open("r", encoding="utf-8") as handle:
            try:
                data = yaml.safe_load(handle)
            except yaml.YAMLError as exc:
                raise ValueError(f"Invalid criteria document: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError("Criteria document must be a mapping")
        return MatchCriteria.model_validate(data)


class ContentStore:
    """In-memory candidates and post pool for one session."""

    def __init__(
        self,
        candidates: Iterable[CandidateProfile] = (),
        posts: Iterable[PostTemplate] = (),
        *,
        min_similarity: float = 80.0,
    ) -> None:
        self._candidates: dict[str, CandidateProfile] = {}
        for candidate in candidates:
            self._candidates.setdefault(candidate.candidate_id, candidate)
        self._posts = tuple(posts)
        self._min_similarity = min_similarity
        self._logger = structlog.get_logger(__name__)

    @property
    def candidates(self) -> list[CandidateProfile]:
        return list(self._candidates.values())

    @property
    def posts(self) -> tuple[PostTemplate, ...]:
        return self._posts

    def get(self, candidate_id: str) -> CandidateProfile | None:
        return self._candidates.get(candidate_id)

    def find(self, query: str) -> CandidateProfile | None:
        """Resolve a candidate by id, exact name, then closest fuzzy name."""
        query = query.strip()
        if not query:
            return None
        direct = self._candidates.get(query)
        if direct is not None:
            return direct

        lowered = query.casefold()
        for candidate in self._candidates.values():
            if candidate.name and candidate.name.casefold() == lowered:
                return candidate

        best: CandidateProfile | None = None
        best_ratio = 0.0
        for candidate in self._candidates.values():
            if not candidate.name:
                continue
            ratio = fuzz.token_set_ratio(lowered, candidate.name.casefold())
            if ratio > best_ratio:
                best, best_ratio = candidate, ratio
        if best is not None and best_ratio >= self._min_similarity:
            self._logger.debug(
                "content.fuzzy_match", query=query, candidate_id=best.candidate_id, ratio=best_ratio
            )
            return best
        return None

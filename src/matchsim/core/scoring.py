"\"\"\"Candidate scoring against client match criteria.\"\"\""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from ..schemas import (
    CandidateProfile,
    MatchCriteria,
    RequirementLevel,
    TraitCategory,
    TraitSet,
)

_ModelT = TypeVar("_ModelT", bound=BaseModel)


class RequirementMode(str, Enum):
    """Policy deciding whether Required requirements can fail a candidate."""

    EXPLICIT_THRESHOLD = "explicit_threshold"
    IMPLICIT_SOFTENING = "implicit_softening"
    SCORING_ONLY = "scoring_only"


class FailureKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    GENDER_MISMATCH = "gender_mismatch"
    DEALBREAKER = "dealbreaker"
    TOO_MANY_RED_FLAGS = "too_many_red_flags"
    NOT_ENOUGH_GREEN_FLAGS = "not_enough_green_flags"
    REQUIRED_NOT_MET = "required_not_met"


@dataclass
class ScoreConfig:
    """Scoring constants and the active requirement policy."""

    mode: RequirementMode = RequirementMode.EXPLICIT_THRESHOLD
    base_score: float = 50.0
    category_scale: float = 0.5
    neutral_category_score: float = 50.0
    preferred_bonus: float = 5.0
    required_bonus: float = 15.0
    required_penalty: float = 10.0
    avoid_penalty: float = 10.0
    age_penalty_per_year: float = 3.0
    min_score: float = 0.0
    max_score: float = 100.0

    def __post_init__(self) -> None:
        self.mode = RequirementMode(self.mode)


@dataclass(slots=True)
class ScoreBreakdown:
    """How a passing candidate's score was assembled."""

    personality_score: float = 0.0
    interests_score: float = 0.0
    lifestyle_score: float = 0.0
    personality_weight: float = 0.0
    interests_weight: float = 0.0
    lifestyle_weight: float = 0.0
    preferred_bonus: float = 0.0
    avoid_penalty: float = 0.0
    required_bonus: float = 0.0
    required_penalty: float = 0.0
    age_penalty: float = 0.0

    @property
    def weighted_score(self) -> float:
        return (
            self.personality_score * self.personality_weight
            + self.interests_score * self.interests_weight
            + self.lifestyle_score * self.lifestyle_weight
        )


@dataclass(slots=True)
class MatchResult:
    """Verdict, score and explanation for one candidate under one criteria."""

    is_match: bool = False
    score: float = 0.0
    candidate_id: str | None = None
    mode: RequirementMode | None = None
    failure: FailureKind | None = None
    failure_reason: str | None = None
    dealbreaker_trait: str | None = None
    age_mismatch: bool = False
    years_outside_age_range: int = 0
    red_flag_count: int = 0
    green_flag_count: int = 0
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)
    requirements_met: list[str] = field(default_factory=list)
    requirements_failed: list[str] = field(default_factory=list)
    preferences_met: list[str] = field(default_factory=list)
    avoids_triggered: list[str] = field(default_factory=list)

    @property
    def can_evaluate(self) -> bool:
        return self.failure is not FailureKind.INVALID_INPUT


class ScoreEngine:
    """Evaluate a candidate against match criteria.

    Gates run in a fixed order (gender, dealbreakers, flag tolerance, the
    Required policy) and the first one that fails decides the reason. A
    candidate passing every gate is scored from trait overlap with the client
    plus requirement bonuses and penalties. Age never fails a candidate; it
    only lowers the score.
    """

    method = "trait_match"

    def __init__(self, *, config: ScoreConfig | None = None) -> None:
        self._config = config or ScoreConfig()
        self._logger = structlog.get_logger(__name__)

    @property
    def mode(self) -> RequirementMode:
        return self._config.mode

    def evaluate(
        self,
        candidate: CandidateProfile | Mapping[str, Any] | None,
        criteria: MatchCriteria | Mapping[str, Any] | None,
        *,
        mode: RequirementMode | str | None = None,
    ) -> MatchResult:
        try:
            active_mode = RequirementMode(mode) if mode is not None else self._config.mode
        except ValueError:
            self._logger.warning("match.invalid_mode", mode=mode)
            return MatchResult(
                candidate_id=getattr(candidate, "candidate_id", None),
                mode=self._config.mode,
                failure=FailureKind.INVALID_INPUT,
                failure_reason=f"Cannot evaluate: unknown requirement mode {mode!r}",
            )

        profile, candidate_problem = self._coerce(candidate, CandidateProfile, "candidate")
        match_criteria, criteria_problem = self._coerce(criteria, MatchCriteria, "criteria")
        if profile is None or match_criteria is None:
            problem = candidate_problem or criteria_problem
            self._logger.warning("match.invalid_input", problem=problem)
            return MatchResult(
                candidate_id=profile.candidate_id if profile is not None else None,
                mode=active_mode,
                failure=FailureKind.INVALID_INPUT,
                failure_reason=f"Cannot evaluate: {problem}",
            )

        result = MatchResult(candidate_id=profile.candidate_id, mode=active_mode)
        result.years_outside_age_range = self._years_outside_range(
            profile.age, match_criteria.min_age, match_criteria.max_age
        )
        result.age_mismatch = result.years_outside_age_range > 0
        result.red_flag_count = profile.red_flag_count
        result.green_flag_count = profile.green_flag_count
        self._classify_requirements(profile, match_criteria, active_mode, result)

        if not self._gender_accepted(profile, match_criteria):
            return self._fail(result, FailureKind.GENDER_MISMATCH, "Gender preference not met")

        dealbreaker = self._find_dealbreaker(profile.traits, match_criteria.dealbreakers)
        if dealbreaker is not None:
            result.dealbreaker_trait = dealbreaker
            return self._fail(result, FailureKind.DEALBREAKER, f"Dealbreaker: {dealbreaker}")

        if result.red_flag_count > match_criteria.max_red_flags:
            return self._fail(
                result,
                FailureKind.TOO_MANY_RED_FLAGS,
                f"Too many red flags ({result.red_flag_count})",
            )
        if result.green_flag_count < match_criteria.min_green_flags:
            return self._fail(
                result,
                FailureKind.NOT_ENOUGH_GREEN_FLAGS,
                f"Not enough green flags ({result.green_flag_count})",
            )

        if not self._required_gate_passes(match_criteria, result, active_mode):
            return self._fail(
                result, FailureKind.REQUIRED_NOT_MET, self._required_reason(result)
            )

        self._score(profile, match_criteria, active_mode, result)
        result.is_match = True
        self._logger.debug(
            "match.evaluated",
            candidate_id=profile.candidate_id,
            score=result.score,
            mode=active_mode.value,
        )
        return result

    def evaluate_many(
        self,
        candidates: Iterable[CandidateProfile | Mapping[str, Any] | None],
        criteria: MatchCriteria | Mapping[str, Any] | None,
        *,
        mode: RequirementMode | str | None = None,
    ) -> list[MatchResult]:
        return [self.evaluate(candidate, criteria, mode=mode) for candidate in candidates]

    @staticmethod
    def _coerce(
        value: Any, model: type[_ModelT], label: str
    ) -> tuple[_ModelT | None, str | None]:
        if value is None:
            return None, f"missing {label}"
        if isinstance(value, model):
            return value, None
        if isinstance(value, Mapping):
            try:
                return model.model_validate(dict(value)), None
            except ValidationError as exc:
                return None, f"invalid {label} ({exc.error_count()} validation errors)"
        return None, f"unsupported {label} type {type(value).__name__}"

    @staticmethod
    def _fail(result: MatchResult, kind: FailureKind, reason: str) -> MatchResult:
        result.is_match = False
        result.score = 0.0
        result.failure = kind
        result.failure_reason = reason
        return result

    @staticmethod
    def _years_outside_range(age: int, min_age: int, max_age: int) -> int:
        if age < min_age:
            return min_age - age
        if age > max_age:
            return age - max_age
        return 0

    @staticmethod
    def _gender_accepted(profile: CandidateProfile, criteria: MatchCriteria) -> bool:
        if not criteria.acceptable_genders:
            return True
        return profile.gender in criteria.acceptable_genders

    @staticmethod
    def _find_dealbreaker(traits: TraitSet, dealbreakers: TraitSet) -> str | None:
        for category, trait in dealbreakers.iter_all():
            if traits.has(category, trait.name):
                return trait.name
        return None

    @staticmethod
    def _classify_requirements(
        profile: CandidateProfile,
        criteria: MatchCriteria,
        mode: RequirementMode,
        result: MatchResult,
    ) -> None:
        required_count = len(criteria.requirements_at(RequirementLevel.REQUIRED))
        # A lone Required requirement scores like a Preferred one under softening.
        soften_single = mode is RequirementMode.IMPLICIT_SOFTENING and required_count == 1

        for requirement in criteria.trait_requirements:
            level = requirement.level
            if soften_single and level is RequirementLevel.REQUIRED:
                level = RequirementLevel.PREFERRED
            met = requirement.is_met_by(profile.traits)

            if level is RequirementLevel.REQUIRED:
                target = result.requirements_met if met else result.requirements_failed
                target.append(requirement.label)
            elif level is RequirementLevel.PREFERRED and met:
                result.preferences_met.append(requirement.label)
            elif level is RequirementLevel.AVOID and met:
                result.avoids_triggered.append(requirement.label)

    @staticmethod
    def _required_gate_passes(
        criteria: MatchCriteria, result: MatchResult, mode: RequirementMode
    ) -> bool:
        met_count = len(result.requirements_met)
        total = met_count + len(result.requirements_failed)
        if total == 0:
            return True

        if mode is RequirementMode.SCORING_ONLY:
            return True
        if mode is RequirementMode.IMPLICIT_SOFTENING:
            return met_count >= 1

        threshold = criteria.min_required_met
        if threshold <= 0:
            return not result.requirements_failed
        return met_count >= threshold

    @staticmethod
    def _required_reason(result: MatchResult) -> str:
        if result.requirements_failed:
            return f"Missing required trait: {result.requirements_failed[0]}"
        return f"Only {len(result.requirements_met)} required traits met"

    def _score(
        self,
        profile: CandidateProfile,
        criteria: MatchCriteria,
        mode: RequirementMode,
        result: MatchResult,
    ) -> None:
        config = self._config
        breakdown = result.breakdown

        breakdown.personality_weight = criteria.personality_weight
        breakdown.interests_weight = criteria.interests_weight
        breakdown.lifestyle_weight = criteria.lifestyle_weight
        breakdown.personality_score = self._category_score(
            profile, criteria, TraitCategory.PERSONALITY
        )
        breakdown.interests_score = self._category_score(
            profile, criteria, TraitCategory.INTERESTS
        )
        breakdown.lifestyle_score = self._category_score(
            profile, criteria, TraitCategory.LIFESTYLE
        )

        breakdown.preferred_bonus = len(result.preferences_met) * config.preferred_bonus
        breakdown.avoid_penalty = len(result.avoids_triggered) * config.avoid_penalty
        breakdown.required_bonus = len(result.requirements_met) * config.required_bonus
        breakdown.required_penalty = (
            len(result.requirements_failed) * config.required_penalty
            if mode is RequirementMode.SCORING_ONLY
            else 0.0
        )
        breakdown.age_penalty = result.years_outside_age_range * config.age_penalty_per_year

        raw_score = (
            config.base_score
            + breakdown.weighted_score * config.category_scale
            + breakdown.preferred_bonus
            - breakdown.avoid_penalty
            + breakdown.required_bonus
            - breakdown.required_penalty
            - breakdown.age_penalty
        )
        result.score = min(max(raw_score, config.min_score), config.max_score)

    def _category_score(
        self,
        profile: CandidateProfile,
        criteria: MatchCriteria,
        category: TraitCategory,
    ) -> float:
        client_total = criteria.client_traits.total_weight(category)
        if client_total > 0:
            shared = profile.traits.shared_with(criteria.client_traits, category)
            matched = sum(trait.weight for trait in shared)
            return min(100.0, 100.0 * matched / client_total)
        return self._requirement_overlap(profile, criteria, category)

    def _requirement_overlap(
        self,
        profile: CandidateProfile,
        criteria: MatchCriteria,
        category: TraitCategory,
    ) -> float:
        relevant = [
            requirement
            for requirement in criteria.trait_requirements
            if requirement.level is not RequirementLevel.AVOID
            and requirement.names_category(category)
        ]
        if not relevant or not profile.traits.in_category(category):
            return self._config.neutral_category_score

        met = sum(
            1
            for requirement in relevant
            if any(
                profile.traits.has(category, trait.name)
                for trait in requirement.acceptable.in_category(category)
            )
        )
        return 100.0 * met / len(relevant)

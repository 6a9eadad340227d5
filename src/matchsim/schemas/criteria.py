from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .profile import Gender, TraitCategory, TraitSet


class RequirementLevel(str, Enum):
    """How strongly a client cares about a trait requirement."""

    REQUIRED = "required"
    PREFERRED = "preferred"
    AVOID = "avoid"


class TraitRequirement(BaseModel):
    """A requirement satisfied by holding at least one acceptable trait."""

    acceptable: TraitSet = Field(default_factory=TraitSet)
    level: RequirementLevel = RequirementLevel.PREFERRED
    hints: tuple[str, ...] = ()

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def label(self) -> str:
        """Stable player-facing text for explanations."""
        if self.hints:
            return self.hints[0]
        names = [trait.name for _, trait in self.acceptable.iter_all()]
        if not names:
            return "(no hint)"
        return "Any of: " + ", ".join(names)

    def names_category(self, category: TraitCategory) -> bool:
        return bool(self.acceptable.in_category(category))

    def is_met_by(self, traits: TraitSet) -> bool:
        return any(
            traits.has(category, trait.name)
            for category, trait in self.acceptable.iter_all()
        )


class MatchCriteria(BaseModel):
    """Per-quest client requirements."""

    quest_id: str | None = None
    client_name: str | None = None
    acceptable_genders: tuple[Gender, ...] = ()
    min_age: int = 18
    max_age: int = 50
    trait_requirements: tuple[TraitRequirement, ...] = ()
    dealbreakers: TraitSet = Field(default_factory=TraitSet)
    max_red_flags: int = 2
    min_green_flags: int = 0
    personality_weight: float = 0.33
    interests_weight: float = 0.33
    lifestyle_weight: float = 0.34
    min_required_met: int = 0
    client_traits: TraitSet = Field(default_factory=TraitSet)

    model_config = ConfigDict(extra="forbid", frozen=True)

    def weight_for(self, category: TraitCategory) -> float:
        weights = {
            TraitCategory.PERSONALITY: self.personality_weight,
            TraitCategory.INTERESTS: self.interests_weight,
            TraitCategory.LIFESTYLE: self.lifestyle_weight,
        }
        return weights[TraitCategory(category)]

    def requirements_at(self, level: RequirementLevel) -> tuple[TraitRequirement, ...]:
        return tuple(req for req in self.trait_requirements if req.level is level)

"\"\"\"Pydantic schema definitions for profiles, posts and match criteria.\"\"\""

from __future__ import annotations

from .criteria import MatchCriteria, RequirementLevel, TraitRequirement
from .profile import (
    CandidateProfile,
    Gender,
    GeneratedPost,
    PostTemplate,
    PostType,
    Trait,
    TraitCategory,
    TraitSet,
    trait_key,
)

__all__ = [
    "CandidateProfile",
    "Gender",
    "GeneratedPost",
    "MatchCriteria",
    "PostTemplate",
    "PostType",
    "RequirementLevel",
    "Trait",
    "TraitCategory",
    "TraitRequirement",
    "TraitSet",
    "trait_key",
]

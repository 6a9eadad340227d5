from __future__ import annotations

from enum import Enum
from typing import Any, Iterator

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def trait_key(name: str) -> str:
    """Normalize a trait name for comparisons."""
    return name.strip().casefold()


class TraitCategory(str, Enum):
    """Trait families shared by candidates, clients and posts."""

    PERSONALITY = "personality"
    INTERESTS = "interests"
    LIFESTYLE = "lifestyle"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    NONBINARY = "nonbinary"


class PostType(str, Enum):
    """Presentation type of a social post."""

    PHOTO = "photo"
    TEXT_ONLY = "text_only"
    VIDEO = "video"
    STORY = "story"
    SHARED_POST = "shared_post"
    POLL = "poll"


class Trait(BaseModel):
    """Catalog trait with its match weight."""

    name: str = Field(min_length=1)
    weight: int = Field(default=5, ge=1, le=10)
    description: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"name": value}
        return value

    @property
    def key(self) -> str:
        return trait_key(self.name)


class TraitSet(BaseModel):
    """Personality, interest and lifestyle traits grouped by category.

    Traits are compared by name within a category. Duplicate names inside a
    category are dropped, keeping the first occurrence.
    """

    personality: tuple[Trait, ...] = ()
    interests: tuple[Trait, ...] = ()
    lifestyle: tuple[Trait, ...] = ()

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("personality", "interests", "lifestyle")
    @classmethod
    def _drop_duplicates(cls, traits: tuple[Trait, ...]) -> tuple[Trait, ...]:
        seen: set[str] = set()
        unique: list[Trait] = []
        for trait in traits:
            if trait.key in seen:
                continue
            seen.add(trait.key)
            unique.append(trait)
        return tuple(unique)

    @property
    def is_empty(self) -> bool:
        return not (self.personality or self.interests or self.lifestyle)

    def in_category(self, category: TraitCategory) -> tuple[Trait, ...]:
        return getattr(self, TraitCategory(category).value)

    def keys(self, category: TraitCategory) -> frozenset[str]:
        return frozenset(trait.key for trait in self.in_category(category))

    def has(self, category: TraitCategory, name: str) -> bool:
        return trait_key(name) in self.keys(category)

    def shared_with(self, other: TraitSet, category: TraitCategory) -> tuple[Trait, ...]:
        """Traits of this set whose names also appear in ``other`` for ``category``."""
        other_keys = other.keys(category)
        return tuple(trait for trait in self.in_category(category) if trait.key in other_keys)

    def total_weight(self, category: TraitCategory) -> int:
        return sum(trait.weight for trait in self.in_category(category))

    def iter_all(self) -> Iterator[tuple[TraitCategory, Trait]]:
        for category in TraitCategory:
            for trait in self.in_category(category):
                yield category, trait


class PostTemplate(BaseModel):
    """Immutable social post content, as stored in the global post pool."""

    post_type: PostType = PostType.TEXT_ONLY
    content: str = ""
    media_ref: str | None = None
    related: TraitSet = Field(default_factory=TraitSet)
    is_red_flag: bool = False
    is_green_flag: bool = False

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def shows_image(self) -> bool:
        return self.post_type is PostType.PHOTO


class GeneratedPost(PostTemplate):
    """Post as shown in a candidate feed, with engagement and recency."""

    days_since_posted: int = Field(default=1, ge=0)
    likes: int = Field(default=0, ge=0)
    comments: int = Field(default=0, ge=0)
    pool_index: int | None = None

    @property
    def from_pool(self) -> bool:
        return self.pool_index is not None


class CandidateProfile(BaseModel):
    """Read-only candidate document supplied by the content store."""

    candidate_id: str = Field(min_length=1)
    name: str = ""
    age: int = Field(ge=0)
    gender: Gender
    traits: TraitSet = Field(default_factory=TraitSet)
    guaranteed_posts: tuple[GeneratedPost, ...] = ()
    random_post_min: int = Field(default=2, ge=0)
    random_post_max: int = Field(default=5, ge=0)
    friends_count_min: int = Field(default=100, ge=0)
    friends_count_max: int = Field(default=500, ge=0)
    bio: str | None = None
    archetype: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def display_name(self) -> str:
        return self.name or self.candidate_id

    @property
    def red_flag_count(self) -> int:
        return sum(1 for post in self.guaranteed_posts if post.is_red_flag)

    @property
    def green_flag_count(self) -> int:
        return sum(1 for post in self.guaranteed_posts if post.is_green_flag)

"\"\"\"Evidence post sampling from the shared post pool.\"\"\""

from __future__ import annotations

import random
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import ValidationError

from ..schemas import CandidateProfile, GeneratedPost, PostTemplate, PostType

ELIGIBLE_POST_TYPES = (PostType.PHOTO, PostType.TEXT_ONLY)


@dataclass
class SamplerConfig:
    """Draw and engagement tuning for the evidence sampler."""

    wild_card_chance: float = 0.1
    photo_weight: float = 0.1
    base_engagement_multiplier: float = 0.1
    comment_to_like_ratio: float = 0.1
    green_flag_multiplier: float = 1.3
    photo_multiplier: float = 1.2
    red_flag_multiplier_range: tuple[float, float] = (0.5, 2.0)
    engagement_jitter: tuple[float, float] = (0.5, 1.5)
    min_window_days: int = 30
    window_padding_days: int = 14
    recency_jitter_days: int = 3
    default_guaranteed_span_days: int = 7

    def __post_init__(self) -> None:
        self.red_flag_multiplier_range = tuple(self.red_flag_multiplier_range)
        self.engagement_jitter = tuple(self.engagement_jitter)


class EvidenceSampler:
    """Build each candidate's social feed for the current session.

    Pool entries are drawn without replacement across all candidates until
    :meth:`reset_pool` or :meth:`reset_session`. The first feed generated for a
    candidate is cached, so repeated requests show the same posts.
    """

    def __init__(
        self,
        pool: Iterable[PostTemplate | Mapping[str, Any]] | None = None,
        *,
        config: SamplerConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config or SamplerConfig()
        self._rng = rng or random.Random()
        self._logger = structlog.get_logger(__name__)
        self._pool: tuple[PostTemplate, ...] = ()
        self._used: set[int] = set()
        self._feeds: dict[str, tuple[GeneratedPost, ...]] = {}
        self._friends: dict[str, int] = {}
        self.load_pool(pool or ())

    def load_pool(self, pool: Iterable[PostTemplate | Mapping[str, Any]]) -> None:
        """Replace the post pool and start a fresh session."""
        templates: list[PostTemplate] = []
        for position, item in enumerate(pool):
            template = self._coerce_template(item)
            if template is None:
                self._logger.warning("evidence.invalid_pool_entry", position=position)
                continue
            templates.append(template)
        self._pool = tuple(templates)
        self.reset_session()
        self._logger.info("evidence.pool_loaded", pool_size=len(self._pool))

    @property
    def pool(self) -> tuple[PostTemplate, ...]:
        return self._pool

    @property
    def pool_size(self) -> int:
        return len(self._pool)

    @property
    def used_indices(self) -> frozenset[int]:
        return frozenset(self._used)

    @property
    def available_count(self) -> int:
        return len(self._eligible_indices())

    def reset_pool(self) -> None:
        self._used.clear()
        self._logger.debug("evidence.pool_reset")

    def reset_session(self) -> None:
        self._used.clear()
        self._feeds.clear()
        self._friends.clear()
        self._logger.debug("evidence.session_reset")

    def has_posts_for(self, candidate: CandidateProfile) -> bool:
        return candidate.candidate_id in self._feeds

    def posts_for(self, candidate: CandidateProfile | None) -> tuple[GeneratedPost, ...]:
        """Guaranteed plus drawn posts, most recent first."""
        if not isinstance(candidate, CandidateProfile):
            self._logger.warning("evidence.invalid_candidate")
            return ()

        cached = self._feeds.get(candidate.candidate_id)
        if cached is not None:
            return cached

        drawn = self.draw_posts(candidate)
        feed = sorted(
            (*candidate.guaranteed_posts, *drawn),
            key=lambda post: post.days_since_posted,
        )
        self._feeds[candidate.candidate_id] = tuple(feed)
        return self._feeds[candidate.candidate_id]

    def draw_posts(self, candidate: CandidateProfile) -> list[GeneratedPost]:
        """Draw fresh pool posts for ``candidate`` without caching them."""
        count = self._post_count(candidate)
        friends = self._friends_count(candidate)
        span = self._guaranteed_span(candidate)

        posts: list[GeneratedPost] = []
        for position in range(count):
            index = self._select_index(candidate)
            if index is None:
                self._logger.warning(
                    "evidence.pool_exhausted",
                    candidate_id=candidate.candidate_id,
                    requested=count,
                    drawn=len(posts),
                )
                break
            self._used.add(index)
            template = self._pool[index]
            likes, comments = self._engagement(template, friends)
            posts.append(
                GeneratedPost(
                    **template.model_dump(),
                    days_since_posted=self._days_since_posted(span, position, count),
                    likes=likes,
                    comments=comments,
                    pool_index=index,
                )
            )

        self._logger.debug(
            "evidence.drawn",
            candidate_id=candidate.candidate_id,
            requested=count,
            drawn=len(posts),
            friends=friends,
        )
        return posts

    def trait_match_score(self, template: PostTemplate, candidate: CandidateProfile) -> int:
        """Sum of candidate trait weights the post is associated with."""
        score = 0
        for category, trait in template.related.iter_all():
            for own in candidate.traits.in_category(category):
                if own.key == trait.key:
                    score += own.weight
        return score

    def _coerce_template(self, item: Any) -> PostTemplate | None:
        if type(item) is PostTemplate:
            return item
        if isinstance(item, PostTemplate):
            return PostTemplate(**item.model_dump(include=set(PostTemplate.model_fields)))
        if isinstance(item, Mapping):
            try:
                return PostTemplate.model_validate(dict(item))
            except ValidationError as exc:
                self._logger.warning("evidence.template_validation_failed", errors=exc.errors())
        return None

    def _eligible_indices(self) -> list[int]:
        return [
            index
            for index, template in enumerate(self._pool)
            if index not in self._used and template.post_type in ELIGIBLE_POST_TYPES
        ]

    def _post_count(self, candidate: CandidateProfile) -> int:
        low = max(0, candidate.random_post_min)
        high = max(low, candidate.random_post_max)
        high = min(high, self.available_count)
        low = min(low, high)
        return self._rng.randint(low, high)

    def _friends_count(self, candidate: CandidateProfile) -> int:
        cached = self._friends.get(candidate.candidate_id)
        if cached is not None:
            return cached
        low = max(1, candidate.friends_count_min)
        high = max(low, candidate.friends_count_max)
        friends = self._rng.randint(low, high)
        self._friends[candidate.candidate_id] = friends
        return friends

    def _select_index(self, candidate: CandidateProfile) -> int | None:
        eligible = self._eligible_indices()
        if not eligible:
            return None

        if self._rng.random() < self._config.wild_card_chance:
            return self._rng.choice(eligible)

        biased = self._bias_by_type(eligible)
        weights = [self.trait_match_score(self._pool[index], candidate) + 1 for index in biased]
        return self._rng.choices(biased, weights=weights, k=1)[0]

    def _bias_by_type(self, indices: list[int]) -> list[int]:
        photos = [index for index in indices if self._pool[index].post_type is PostType.PHOTO]
        texts = [index for index in indices if self._pool[index].post_type is PostType.TEXT_ONLY]
        if not photos:
            return texts
        if not texts:
            return photos
        return photos if self._rng.random() < self._config.photo_weight else texts

    def _engagement(self, template: PostTemplate, friends: int) -> tuple[int, int]:
        config = self._config
        likes = round(friends * config.base_engagement_multiplier * self._rng.uniform(*config.engagement_jitter))
        if template.is_green_flag:
            likes = round(likes * config.green_flag_multiplier)
        if template.is_red_flag:
            likes = round(likes * self._rng.uniform(*config.red_flag_multiplier_range))
        if template.post_type is PostType.PHOTO:
            likes = round(likes * config.photo_multiplier)
        likes = max(1, likes)

        comments = round(likes * config.comment_to_like_ratio * self._rng.uniform(*config.engagement_jitter))
        return likes, max(0, comments)

    def _guaranteed_span(self, candidate: CandidateProfile) -> int:
        if not candidate.guaranteed_posts:
            return self._config.default_guaranteed_span_days
        return max(post.days_since_posted for post in candidate.guaranteed_posts)

    def _days_since_posted(self, span: int, position: int, count: int) -> int:
        config = self._config
        window = max(span + config.window_padding_days, config.min_window_days)
        base = round((position + 1) / (count + 1) * window)
        jitter = self._rng.randint(-config.recency_jitter_days, config.recency_jitter_days)
        return min(max(base + jitter, 1), window)

from __future__ import annotations

import pytest
from pydantic import ValidationError

from matchsim.schemas import (
    CandidateProfile,
    GeneratedPost,
    MatchCriteria,
    RequirementLevel,
    TraitCategory,
    TraitRequirement,
    TraitSet,
)


def test_trait_set_accepts_bare_names_and_drops_duplicates():
    traits = TraitSet.model_validate(
        {"personality": ["Kind", {"name": "kind", "weight": 9}, "Funny"]}
    )

    assert [trait.name for trait in traits.personality] == ["Kind", "Funny"]
    assert traits.personality[0].weight == 5
    assert traits.has(TraitCategory.PERSONALITY, "  KIND ")
    assert traits.has(TraitCategory.INTERESTS, "Kind") is False


def test_trait_weight_bounds():
    with pytest.raises(ValidationError):
        TraitSet.model_validate({"interests": [{"name": "Chess", "weight": 11}]})


def test_shared_with_returns_own_traits():
    mine = TraitSet.model_validate({"interests": [{"name": "Chess", "weight": 8}, "Golf"]})
    theirs = TraitSet.model_validate({"interests": ["chess"]})

    shared = mine.shared_with(theirs, TraitCategory.INTERESTS)

    assert [(trait.name, trait.weight) for trait in shared] == [("Chess", 8)]
    assert theirs.total_weight(TraitCategory.INTERESTS) == 5


def test_candidate_profile_flag_counts_and_defaults():
    candidate = CandidateProfile.model_validate(
        {
            "candidate_id": "C-1",
            "age": 40,
            "gender": "male",
            "guaranteed_posts": [
                {"content": "rant", "is_red_flag": True, "days_since_posted": 3},
                {"content": "charity run", "is_green_flag": True},
            ],
        }
    )

    assert candidate.red_flag_count == 1
    assert candidate.green_flag_count == 1
    assert candidate.random_post_min == 2
    assert candidate.random_post_max == 5
    assert candidate.friends_count_min == 100
    assert candidate.friends_count_max == 500
    assert candidate.display_name == "C-1"
    assert all(isinstance(post, GeneratedPost) for post in candidate.guaranteed_posts)
    assert candidate.guaranteed_posts[1].from_pool is False


def test_candidate_profile_rejects_unknown_fields_and_is_frozen():
    with pytest.raises(ValidationError):
        CandidateProfile.model_validate(
            {"candidate_id": "C-1", "age": 40, "gender": "male", "salary": 1}
        )

    candidate = CandidateProfile(candidate_id="C-2", age=22, gender="female")
    with pytest.raises(ValidationError):
        candidate.age = 23


def test_requirement_label_and_matching():
    hinted = TraitRequirement.model_validate(
        {"acceptable": {"interests": ["Hiking"]}, "hints": ["Outdoorsy", "Likes trails"]}
    )
    unhinted = TraitRequirement.model_validate(
        {"acceptable": {"interests": ["Hiking"], "lifestyle": ["Early riser"]}, "level": "required"}
    )
    empty = TraitRequirement()

    assert hinted.label == "Outdoorsy"
    assert hinted.level is RequirementLevel.PREFERRED
    assert unhinted.label == "Any of: Hiking, Early riser"
    assert empty.label == "(no hint)"
    assert unhinted.is_met_by(TraitSet.model_validate({"lifestyle": ["early riser"]}))
    assert not unhinted.is_met_by(TraitSet.model_validate({"interests": ["Early riser"]}))


def test_match_criteria_defaults_and_weights():
    criteria = MatchCriteria()

    assert criteria.min_age == 18
    assert criteria.max_age == 50
    assert criteria.max_red_flags == 2
    assert criteria.min_green_flags == 0
    assert criteria.weight_for(TraitCategory.LIFESTYLE) == 0.34
    assert criteria.weight_for("interests") == 0.33


def test_match_criteria_weights_are_not_normalized():
    criteria = MatchCriteria(personality_weight=2.0, interests_weight=0.0, lifestyle_weight=5.0)

    assert criteria.weight_for(TraitCategory.PERSONALITY) == 2.0

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from matchsim.content import (
    CandidateLoadError,
    CandidateLoader,
    ContentStore,
    CriteriaLoader,
    PostPoolLoader,
)
from matchsim.schemas import CandidateProfile, Gender, PostType


def write_lines(path: Path, lines: list[str]) -> Path:
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def test_candidate_loader_reads_jsonl(tmp_path: Path):
    path = write_lines(
        tmp_path / "candidates.jsonl",
        [
            json.dumps({"candidate_id": "C-1", "name": "Ada", "age": 30, "gender": "female"}),
            "",
            json.dumps({"candidate_id": "C-2", "age": 33, "gender": "male"}),
        ],
    )

    candidates = CandidateLoader().load(path)

    assert [candidate.candidate_id for candidate in candidates] == ["C-1", "C-2"]
    assert candidates[0].gender is Gender.FEMALE


def test_candidate_loader_collects_errors_with_partial_result(tmp_path: Path):
    path = write_lines(
        tmp_path / "candidates.jsonl",
        [
            json.dumps({"candidate_id": "C-1", "age": 30, "gender": "female"}),
            "{not json",
            json.dumps({"candidate_id": "C-2", "gender": "male"}),
            json.dumps({"candidate_id": "C-1", "age": 41, "gender": "male"}),
        ],
    )

    with pytest.raises(CandidateLoadError) as excinfo:
        CandidateLoader().load(path)

    error = excinfo.value
    assert [candidate.candidate_id for candidate in error.partial] == ["C-1"]
    assert len(error.errors) == 3
    assert error.errors[0].startswith("line 2: invalid JSON")
    assert error.errors[1].startswith("line 3:")
    assert "duplicate candidate_id" in error.errors[2]


@pytest.mark.parametrize(
    "payload",
    [
        [{"post_type": "photo", "content": "beach"}, {"content": "thoughts"}],
        {"posts": [{"post_type": "photo", "content": "beach"}, {"content": "thoughts"}]},
    ],
)
def test_post_pool_loader_accepts_json_documents(tmp_path: Path, payload):
    path = tmp_path / "posts.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    posts = PostPoolLoader().load(path)

    assert [post.post_type for post in posts] == [PostType.PHOTO, PostType.TEXT_ONLY]


def test_post_pool_loader_accepts_jsonl_and_reports_bad_entries(tmp_path: Path):
    good = write_lines(
        tmp_path / "posts.jsonl",
        [json.dumps({"content": "one"}), json.dumps({"content": "two", "is_red_flag": True})],
    )
    bad = write_lines(tmp_path / "bad.jsonl", [json.dumps({"content": "x", "likes": "many"})])

    posts = PostPoolLoader().load(good)

    assert [post.is_red_flag for post in posts] == [False, True]
    with pytest.raises(ValueError, match="Invalid post pool entry"):
        PostPoolLoader().load(bad)


def test_criteria_loader_reads_yaml(tmp_path: Path):
    path = tmp_path / "criteria.yaml"
    path.write_text(
        "\n".join(
            [
                "quest_id: Q-3",
                "client_name: Morgan",
                "acceptable_genders: [female, nonbinary]",
                "max_red_flags: 1",
                "trait_requirements:",
                "  - acceptable:",
                "      interests: [Hiking]",
                "    level: required",
                "    hints: [Lives for the trail]",
            ]
        ),
        encoding="utf-8",
    )

    criteria = CriteriaLoader().load(path)

    assert criteria.quest_id == "Q-3"
    assert criteria.acceptable_genders == (Gender.FEMALE, Gender.NONBINARY)
    assert criteria.trait_requirements[0].label == "Lives for the trail"


def test_criteria_loader_rejects_non_mapping_and_invalid_fields(tmp_path: Path):
    listing = tmp_path / "list.yaml"
    listing.write_text("- a\n- b\n", encoding="utf-8")
    invalid = tmp_path / "invalid.json"
    invalid.write_text(json.dumps({"min_age": "old"}), encoding="utf-8")

    with pytest.raises(ValueError, match="mapping"):
        CriteriaLoader().load(listing)
    with pytest.raises(ValidationError):
        CriteriaLoader().load(invalid)


def test_content_store_find_by_id_name_and_fuzzy_name():
    store = ContentStore(
        [
            CandidateProfile(candidate_id="C-1", name="Jordan Smith", age=30, gender="male"),
            CandidateProfile(candidate_id="C-2", name="Priya Nair", age=27, gender="female"),
        ]
    )

    assert store.find("C-2").name == "Priya Nair"
    assert store.find("priya nair").candidate_id == "C-2"
    assert store.find("Jordan Smyth").candidate_id == "C-1"
    assert store.find("Zed") is None
    assert store.find("   ") is None
    assert store.get("C-1").name == "Jordan Smith"
    assert len(store.candidates) == 2

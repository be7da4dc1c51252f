"""Tests for EntityNormalizer and its naming/classification helpers."""

from __future__ import annotations

import pytest

from storyledger.ingestion.record_lookup import build_record_lookups
from storyledger.normalization.entity_normalizer import (
    EntityNormalizer,
    categorize_theme,
    derive_theme_name,
    normalize_role,
)
from storyledger.storage.schemas import StorytellerRole
from storyledger.utils.config import NormalizationConfig


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Volunteer", StorytellerRole.VOLUNTEER),
        ("Friend of Orange Sky", StorytellerRole.FRIEND),
        ("Volunteer and friend", StorytellerRole.VOLUNTEER),
        ("SERVICE PROVIDER", StorytellerRole.SERVICE_PROVIDER),
        ("Staff", StorytellerRole.OTHER),
        (None, StorytellerRole.OTHER),
    ],
)
def test_normalize_role(raw, expected) -> None:
    assert normalize_role(raw) is expected


def test_theme_name_uses_first_sentence() -> None:
    assert derive_theme_name("Belonging matters. More detail here.") == "Belonging matters"


def test_theme_name_falls_back_to_text_before_connective() -> None:
    description = "Building trust " + "x" * 120 + " through regular conversations"

    assert derive_theme_name(description) == "Building trust " + "x" * 120


def test_theme_name_connective_must_be_a_whole_word() -> None:
    # "bypass" contains "by" but is not the connective.
    description = "bypass " + "y" * 120 + " with care"

    assert derive_theme_name(description) == "bypass " + "y" * 120


def test_theme_name_truncates_when_no_tier_matches() -> None:
    description = "z" * 150

    assert derive_theme_name(description) == "z" * 50 + "..."


def test_theme_name_leading_connective_skips_to_truncation() -> None:
    description = "With " + "w" * 150

    assert derive_theme_name(description) == description[:50] + "..."


def test_theme_name_empty_description() -> None:
    assert derive_theme_name("") is None
    assert derive_theme_name("   ") is None


def test_category_first_table_match_wins() -> None:
    categories = NormalizationConfig().theme_categories

    # Matches both Support ("help") and Hope ("hope"); Support comes first.
    assert categorize_theme("Help that brings HOPE", categories) == "Support"
    assert categorize_theme("Feeling a deep BOND", categories) == "Connection"
    assert categorize_theme("Laundry logistics", categories) == "Other"
    assert categorize_theme("", categories) == "Other"


def test_normalize_full_collections(sample_raw) -> None:
    entities = EntityNormalizer().normalize(build_record_lookups(sample_raw))

    assert [s.id for s in entities.stories] == ["S1", "S2", "S3"]
    story = entities.stories[0]
    assert story.body == "Alex started volunteering in 2019."
    assert story.excerpt == "Alex started volunteering in 2019."
    assert story.has_video is True
    assert story.created_at == "2024-03-05T10:00:00.000Z"
    # Links are carried as declared until resolution.
    assert entities.stories[1].storyteller_ids == ["ST2", "ST-missing"]

    by_id = {s.id: s for s in entities.storytellers}
    assert by_id["ST1"].role is StorytellerRole.VOLUNTEER
    assert by_id["ST1"].bio == "Helps every Tuesday."
    assert by_id["ST2"].location == "Sydney"
    assert by_id["ST3"].location == "Unknown"

    themes = {t.id: t for t in entities.themes}
    assert themes["T1"].name == "Connection"
    assert themes["T1"].category == "Connection"
    assert themes["T2"].name == "Support for people doing it hard"
    assert themes["T2"].category == "Support"
    assert themes["T3"].category == "Hope"
    assert themes["T3"].parent_id == "T2"
    assert themes["T4"].name == "Unnamed Theme"
    assert themes["T4"].category == "Other"

    media = {m.id: m for m in entities.media}
    assert media["M1"].quotes == ["It feels like family."]
    assert media["M1"].transcript == "We talk [00:01:02] a lot."
    assert media["M2"].location == "Sydney"


def test_records_without_id_or_duplicated_are_dropped() -> None:
    raw = {
        "stories": [
            {"fields": {"Title": "No id"}},
            {"id": "S1", "fields": {"Title": "First"}},
            {"id": "S1", "fields": {"Title": "Again"}},
        ]
    }

    entities = EntityNormalizer().normalize(build_record_lookups(raw))

    assert [(s.id, s.title) for s in entities.stories] == [("S1", "First")]


def test_sentinels_for_empty_records() -> None:
    raw = {
        "stories": [{"id": "S1"}],
        "storytellers": [{"id": "ST1", "fields": {"Name": 42.5}}],
        "media": [{"id": "M1", "fields": {"Quotes": "inline quote"}}],
    }

    entities = EntityNormalizer().normalize(build_record_lookups(raw))

    story = entities.stories[0]
    assert story.title == ""
    assert story.body == ""
    assert story.excerpt == ""
    assert story.location == "Unknown"
    assert story.storyteller_ids == []
    assert entities.storytellers[0].name == "42.5"
    # Without a quote collection the raw values are the quote texts.
    assert entities.media[0].quotes == ["inline quote"]
    assert entities.media[0].file_name == "Untitled"


def test_project_filter_applies_to_storytellers_and_media() -> None:
    raw = {
        "storytellers": [
            {"id": "ST1", "fields": {"Name": "In", "Project": ["Orange Sky"]}},
            {"id": "ST2", "fields": {"Name": "Out", "Project": "Other Org"}},
        ],
        "media": [
            {"id": "M1", "fields": {"Project": "orange sky australia"}},
            {"id": "M2", "fields": {}},
        ],
    }
    normalizer = EntityNormalizer(NormalizationConfig(project_filter="Orange Sky"))

    entities = normalizer.normalize(build_record_lookups(raw))

    assert [s.id for s in entities.storytellers] == ["ST1"]
    assert [m.id for m in entities.media] == ["M1"]


def test_normalize_is_deterministic(sample_raw) -> None:
    normalizer = EntityNormalizer()
    lookups = build_record_lookups(sample_raw)

    assert normalizer.normalize(lookups) == normalizer.normalize(lookups)

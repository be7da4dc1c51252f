"""Tests for the field fallback tables."""

from __future__ import annotations

from storyledger.normalization.field_rules import (
    LOCATION_RULES,
    STORY_RULES,
    FieldRule,
    as_bool,
    as_id_list,
    attachment_url,
    first_token,
    resolve_chain,
    resolve_field,
    resolve_rules,
)


def test_first_non_empty_field_wins() -> None:
    rule = FieldRule("file_name", ("File Name", "Name"), default="Untitled")

    assert resolve_field({"File Name": "  ", "Name": "Fallback"}, rule) == "Fallback"
    assert resolve_field({"File Name": "Main", "Name": "Fallback"}, rule) == "Main"
    assert resolve_field({}, rule) == "Untitled"


def test_transform_errors_count_as_miss() -> None:
    def explode(value):
        raise ValueError("bad")

    rule = FieldRule("x", ("A", "B"), transform=explode, default="sentinel")

    assert resolve_field({"A": "1", "B": "2"}, rule) == "sentinel"


def test_list_defaults_are_not_shared() -> None:
    rule = FieldRule("ids", ("Ids",), transform=as_id_list, default=[])

    first = resolve_field({}, rule)
    first.append("X")

    assert resolve_field({}, rule) == []


def test_location_chain_order() -> None:
    assert resolve_chain({"Location": "Perth", "City": "Adelaide"}, LOCATION_RULES) == "Perth"
    assert resolve_chain({"Location City": "Adelaide"}, LOCATION_RULES) == "Adelaide"
    assert resolve_chain({"Location - City": "Hobart"}, LOCATION_RULES) == "Hobart"
    assert (
        resolve_chain({"Location Rollup (from Media)": ["Cairns"]}, LOCATION_RULES) == "Cairns"
    )
    assert resolve_chain({"Shift": "Melbourne Tuesday Night"}, LOCATION_RULES) == "Melbourne"
    assert resolve_chain({"Shifts": ["Darwin Morning"]}, LOCATION_RULES) == "Darwin"
    assert resolve_chain({}, LOCATION_RULES) == "Unknown"


def test_transforms() -> None:
    assert as_id_list(["a", " b ", "a", 3, ""]) == ["a", "b"]
    assert as_id_list("solo") == ["solo"]
    assert as_id_list({"a": 1}) == []
    assert as_bool("yes") is True
    assert as_bool(0) is False
    assert as_bool("maybe") is None
    assert first_token("  ") is None
    assert attachment_url([{"url": "https://img/1.jpg"}, {"url": "https://img/2.jpg"}]) == (
        "https://img/1.jpg"
    )
    assert attachment_url("https://img/3.jpg") == "https://img/3.jpg"


def test_story_rule_table() -> None:
    values = resolve_rules(
        {
            "Name": "Named only",
            "Content": "<p>Body</p>",
            "Storyteller": ["ST1", "ST1", "ST2"],
            "Featured": "true",
        },
        STORY_RULES,
    )

    assert values["title"] == "Named only"
    assert values["body"] == "<p>Body</p>"
    assert values["transcript"] == ""
    assert values["storyteller_ids"] == ["ST1", "ST2"]
    assert values["media_ids"] == []
    assert values["featured"] is True
    assert values["video_url"] is None
    assert resolve_rules({}, STORY_RULES)["title"] is None

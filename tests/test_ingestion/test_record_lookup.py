"""Tests for raw record lookups."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from storyledger.ingestion.record_lookup import (
    RawRecord,
    build_lookup,
    build_record_lookups,
    load_raw_dump,
)


def test_accepts_plain_list_and_records_wrapper() -> None:
    lookups = build_record_lookups(
        {
            "stories": [{"id": "S1", "fields": {"Title": "A"}}],
            "themes": {"records": [{"id": "T1", "fields": {}}, {"id": "T2", "fields": {}}]},
        }
    )

    assert len(lookups.stories) == 1
    assert lookups.stories.get("S1").fields["Title"] == "A"
    assert "T2" in lookups.themes
    assert lookups.counts()["themes"] == 2


def test_missing_collections_are_empty() -> None:
    lookups = build_record_lookups({})

    assert lookups.counts() == {
        "stories": 0,
        "storytellers": 0,
        "themes": 0,
        "media": 0,
        "quotes": 0,
    }
    assert lookups.media.present is False
    assert lookups.has_quotes is False


def test_malformed_collection_degrades_to_empty() -> None:
    lookup = build_lookup("media", "not a collection")

    assert len(lookup) == 0
    assert list(lookup) == []
    assert lookup.present is False


def test_non_mapping_entries_are_skipped() -> None:
    lookup = build_lookup("stories", [{"id": "S1"}, "junk", 42, None])

    assert [r.id for r in lookup] == ["S1"]


def test_first_duplicate_wins_in_id_map() -> None:
    lookup = build_lookup(
        "stories",
        [
            {"id": "S1", "fields": {"Title": "first"}},
            {"id": "S1", "fields": {"Title": "second"}},
        ],
    )

    assert lookup.get("S1").fields["Title"] == "first"
    assert len(lookup.records) == 2
    assert len(lookup) == 1


def test_raw_record_coerces_loose_shapes() -> None:
    rec = RawRecord.model_validate({"id": "  ", "fields": ["bad"], "createdTime": 123})

    assert rec.id is None
    assert rec.fields == {}
    assert rec.created_time == ""


def test_quote_collection_presence_is_tracked() -> None:
    lookups = build_record_lookups({"quotes": {"records": []}})

    assert lookups.has_quotes is True


def test_non_mapping_root_raises() -> None:
    with pytest.raises(ValueError, match="must be a mapping"):
        build_record_lookups([{"id": "S1"}])


def test_load_raw_dump(tmp_path: Path) -> None:
    dump = tmp_path / "raw.json"
    dump.write_text(json.dumps({"stories": {"records": []}}), encoding="utf-8")

    assert load_raw_dump(dump) == {"stories": {"records": []}}

    with pytest.raises(FileNotFoundError):
        load_raw_dump(tmp_path / "missing.json")

    dump.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_raw_dump(dump)

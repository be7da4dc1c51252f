"""Tests for the materialization pipeline and view assembly."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any, Dict, List, Mapping

import pytest

from storyledger.pipeline.materialization_pipeline import MaterializationPipeline, PipelineStage
from storyledger.pipeline.views import is_path_safe_id
from storyledger.storage.view_writer import JsonViewWriter
from storyledger.utils.config import Config

GENERATED_AT = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

EXPECTED_FIXED_VIEWS = {
    "stories.json",
    "storytellers.json",
    "themes.json",
    "media.json",
    "indexes/stories-by-theme.json",
    "indexes/stories-by-storyteller.json",
    "indexes/stories-by-location.json",
    "indexes/stories-by-date.json",
    "indexes/theme-hierarchy.json",
    "indexes/storytellers-by-location.json",
    "indexes/storytellers-by-role.json",
    "analytics.json",
    "analytics/overview.json",
    "analytics/themes.json",
    "analytics/locations.json",
    "analytics/time-series.json",
    "search/index.json",
    "metadata.json",
}


class RecordingWriter:
    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []

    def write_all(self, views: Mapping[str, Any]) -> List[str]:
        self.calls.append(dict(views))
        return list(views)


def _run(raw, **kwargs):
    return MaterializationPipeline(Config()).run(raw, generated_at=GENERATED_AT, **kwargs)


def test_view_paths(sample_raw) -> None:
    views = _run(sample_raw).views

    detail = {path for path in views if "/full/" in path}
    assert set(views) - detail == EXPECTED_FIXED_VIEWS
    assert detail == {
        "stories/full/S1.json",
        "stories/full/S2.json",
        "stories/full/S3.json",
        "storytellers/full/ST1.json",
        "storytellers/full/ST2.json",
        "storytellers/full/ST3.json",
    }


def test_views_use_camel_case_and_counters(sample_raw) -> None:
    views = _run(sample_raw).views

    story = views["stories/full/S2.json"]
    assert story["storytellerIds"] == ["ST2"]
    assert story["themeIds"] == ["T2", "T3", "T1"]
    assert story["hasVideo"] is False
    theme = next(t for t in views["themes.json"] if t["id"] == "T1")
    assert theme["storyCount"] == 2
    assert theme["storytellerCount"] == 2
    assert views["analytics/overview.json"] == views["analytics.json"]["overview"]
    assert views["analytics/time-series.json"] == {"2024-03": 2, "2024-04": 1}


def test_metadata(sample_raw) -> None:
    metadata = _run(sample_raw).views["metadata.json"]

    assert metadata == {
        "version": "4.0",
        "generated": "2024-05-01T12:00:00+00:00",
        "counts": {"stories": 3, "storytellers": 3, "themes": 4, "media": 3, "locations": 2},
        "lastStoryDate": "2024-04-11T08:30:00.000Z",
    }


def test_run_is_idempotent(sample_raw) -> None:
    first = json.dumps(_run(sample_raw).views, sort_keys=True)
    second = json.dumps(_run(sample_raw).views, sort_keys=True)

    assert first == second


def test_stages_without_writer(sample_raw) -> None:
    result = _run(sample_raw)

    assert result.stages == [
        PipelineStage.LOADED,
        PipelineStage.NORMALIZED,
        PipelineStage.RESOLVED,
        PipelineStage.INDEXED,
    ]
    assert result.stage is PipelineStage.INDEXED
    assert result.written == []


def test_writer_receives_views_and_run_is_persisted(sample_raw) -> None:
    writer = RecordingWriter()

    result = _run(sample_raw, writer=writer)

    assert result.stage is PipelineStage.PERSISTED
    assert writer.calls == [result.views]
    assert len(result.written) == len(result.views)


@pytest.mark.parametrize(
    ("entity_id", "expected"),
    [
        ("S1", True),
        ("a..b", True),
        ("..", False),
        (".", False),
        ("", False),
        ("a/b", False),
        ("a\\b", False),
    ],
)
def test_is_path_safe_id(entity_id, expected) -> None:
    assert is_path_safe_id(entity_id) is expected


def test_unsafe_ids_get_no_detail_view(tmp_path) -> None:
    raw = {
        "stories": [
            {"id": "S1", "fields": {"Title": "Safe"}},
            {"id": "../escape", "fields": {"Title": "Parent dir"}},
            {"id": "nested/id", "fields": {"Title": "Nested"}},
        ],
        "storytellers": [{"id": "..", "fields": {"Name": "Dots"}}],
    }

    result = _run(raw, writer=JsonViewWriter(tmp_path))

    detail = sorted(path for path in result.views if "/full/" in path)
    assert detail == ["stories/full/S1.json"]
    assert [s["id"] for s in result.views["stories.json"]] == ["S1", "../escape", "nested/id"]
    assert result.stage is PipelineStage.PERSISTED
    assert (tmp_path / "stories" / "full" / "S1.json").exists()
    assert not (tmp_path / "stories" / "nested").exists()


def test_index_ids_resolve_to_entities(sample_raw) -> None:
    views = _run(sample_raw).views
    story_ids = {s["id"] for s in views["stories.json"]}
    storyteller_ids = {s["id"] for s in views["storytellers.json"]}
    theme_ids = {t["id"] for t in views["themes.json"]}

    for path in (
        "indexes/stories-by-theme.json",
        "indexes/stories-by-storyteller.json",
        "indexes/stories-by-location.json",
        "indexes/stories-by-date.json",
    ):
        for ids in views[path].values():
            assert set(ids) <= story_ids
    for ids in views["indexes/storytellers-by-location.json"].values():
        assert set(ids) <= storyteller_ids
    for parent, children in views["indexes/theme-hierarchy.json"].items():
        assert parent in theme_ids
        assert set(children) <= theme_ids


def test_empty_stories_boundary() -> None:
    views = _run({"stories": [], "storytellers": [{"id": "ST1", "fields": {"Name": "A"}}]}).views

    assert views["stories.json"] == []
    assert views["indexes/stories-by-theme.json"] == {}
    assert views["indexes/stories-by-storyteller.json"] == {}
    assert views["analytics/overview.json"]["totalStories"] == 0
    assert views["analytics/overview.json"]["averageStoriesPerStoryteller"] == 0
    assert views["metadata.json"]["lastStoryDate"] is None


def test_storyteller_primary_mode_from_config(scenario_raw) -> None:
    config = Config()
    config.resolution.primary_entity = "storyteller"
    scenario_raw["stories"].append({"id": "S2", "fields": {"Media": ["M1"]}})

    views = MaterializationPipeline(config).run(scenario_raw, generated_at=GENERATED_AT).views

    assert [s["id"] for s in views["stories.json"]] == ["S1"]


def test_malformed_root_is_fatal() -> None:
    with pytest.raises(ValueError):
        MaterializationPipeline(Config()).run(["not", "a", "mapping"])

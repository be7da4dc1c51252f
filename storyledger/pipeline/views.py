"""Assemble the named output views.

The view map is the pipeline's only product: ``{relative_path: json_value}``. Paths are stable
and consumed directly by the static front end.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from loguru import logger

from storyledger.analytics.aggregator import AnalyticsReport
from storyledger.extraction.relationship_resolver import ResolvedGraph
from storyledger.indexing.index_builder import IndexSet
from storyledger.storage.schemas import Theme

STORIES_VIEW = "stories.json"
STORYTELLERS_VIEW = "storytellers.json"
THEMES_VIEW = "themes.json"
MEDIA_VIEW = "media.json"
STORY_DETAIL_VIEW = "stories/full/{id}.json"
STORYTELLER_DETAIL_VIEW = "storytellers/full/{id}.json"
ANALYTICS_VIEW = "analytics.json"
SEARCH_VIEW = "search/index.json"
METADATA_VIEW = "metadata.json"

INDEX_VIEWS = {
    "indexes/stories-by-theme.json": "stories_by_theme",
    "indexes/stories-by-storyteller.json": "stories_by_storyteller",
    "indexes/stories-by-location.json": "stories_by_location",
    "indexes/stories-by-date.json": "stories_by_date",
    "indexes/theme-hierarchy.json": "theme_hierarchy",
    "indexes/storytellers-by-location.json": "storytellers_by_location",
    "indexes/storytellers-by-role.json": "storytellers_by_role",
}

ANALYTICS_FACET_VIEWS = {
    "analytics/overview.json": "overview",
    "analytics/themes.json": "themes",
    "analytics/locations.json": "locations",
    "analytics/time-series.json": "timeSeries",
}


def is_path_safe_id(entity_id: str) -> bool:
    """True when ``entity_id`` can be used as a single file name."""
    return bool(entity_id) and entity_id not in (".", "..") and not any(
        sep in entity_id for sep in ("/", "\\")
    )


def build_metadata(
    graph: ResolvedGraph,
    themes: Sequence[Theme],
    analytics: AnalyticsReport,
    *,
    version: str,
    generated: str,
) -> Dict[str, Any]:
    """Version tag, generation timestamp and entity counts for staleness checks."""
    story_dates = [story.created_at for story in graph.stories if story.created_at]
    return {
        "version": version,
        "generated": generated,
        "counts": {
            "stories": len(graph.stories),
            "storytellers": len(graph.storytellers),
            "themes": len(themes),
            "media": len(graph.media),
            "locations": analytics.overview.get("locationsCount", 0),
        },
        "lastStoryDate": max(story_dates) if story_dates else None,
    }


def assemble_views(
    graph: ResolvedGraph,
    themes: Sequence[Theme],
    indexes: IndexSet,
    analytics: AnalyticsReport,
    search_index: Sequence[Dict[str, Any]],
    *,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build the full view map.

    ``themes`` are the counter-carrying themes; ``graph.themes`` is ignored for output.
    ``metadata`` is added as ``metadata.json`` when given.
    """
    story_views = [story.to_view() for story in graph.stories]
    storyteller_views = [storyteller.to_view() for storyteller in graph.storytellers]

    views: Dict[str, Any] = {
        STORIES_VIEW: story_views,
        STORYTELLERS_VIEW: storyteller_views,
        THEMES_VIEW: [theme.to_view() for theme in themes],
        MEDIA_VIEW: [item.to_view() for item in graph.media],
    }
    skipped = 0
    for template, entity_views in (
        (STORY_DETAIL_VIEW, story_views),
        (STORYTELLER_DETAIL_VIEW, storyteller_views),
    ):
        for view in entity_views:
            if not is_path_safe_id(view["id"]):
                skipped += 1
                logger.debug("No detail view for id '{}': not usable as a file name", view["id"])
                continue
            views[template.format(id=view["id"])] = view
    if skipped:
        logger.warning("Skipped {} detail views with ids unusable as file names", skipped)

    index_map = indexes.as_dict()
    for path, name in INDEX_VIEWS.items():
        views[path] = index_map[name]

    analytics_view = analytics.to_view()
    views[ANALYTICS_VIEW] = analytics_view
    for path, facet in ANALYTICS_FACET_VIEWS.items():
        views[path] = analytics_view[facet]

    views[SEARCH_VIEW] = list(search_index)
    if metadata is not None:
        views[METADATA_VIEW] = metadata
    return views

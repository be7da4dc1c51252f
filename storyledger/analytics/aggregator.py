"""Aggregate analytics over the resolved graph and its indexes.

Everything here is computed from canonical entities and built indexes, never from raw records.
Averages and percentages are rounded to fixed decimal places; every division is guarded so empty
inputs produce ``0``.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from itertools import combinations
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from storyledger.extraction.relationship_resolver import ResolvedGraph
from storyledger.indexing.index_builder import IndexSet
from storyledger.storage.schemas import UNKNOWN_LOCATION, Story, StorytellerRole, Theme
from storyledger.utils.config import AnalyticsConfig


def safe_ratio(numerator: float, denominator: float, digits: int) -> float:
    if not denominator:
        return 0
    return round(numerator / denominator, digits)


@dataclass(frozen=True)
class AnalyticsParameters:
    top_themes: int = 10
    top_themes_by_storytellers: int = 20
    top_theme_pairs: int = 20

    @classmethod
    def from_config(cls, config: AnalyticsConfig) -> "AnalyticsParameters":
        return cls(
            top_themes=config.top_themes,
            top_themes_by_storytellers=config.top_themes_by_storytellers,
            top_theme_pairs=config.top_theme_pairs,
        )


class AnalyticsReport(BaseModel):
    """Serialized analytics; each top-level facet is also published on its own."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    overview: Dict[str, Any] = Field(default_factory=dict)
    themes: Dict[str, Any] = Field(default_factory=dict)
    locations: Dict[str, Any] = Field(default_factory=dict)
    roles: Dict[str, int] = Field(default_factory=dict)
    time_series: Dict[str, int] = Field(default_factory=dict)
    media: Dict[str, Any] = Field(default_factory=dict)
    engagement: Dict[str, Any] = Field(default_factory=dict)
    storytellers: Dict[str, Any] = Field(default_factory=dict)
    quotes: Dict[str, Any] = Field(default_factory=dict)

    def to_view(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_markdown(self) -> str:
        lines: list[str] = []
        lines.append("# Storyledger Analytics")
        lines.append("")
        lines.append("## Overview")
        lines.append("")
        for key, value in self.overview.items():
            lines.append(f"- `{key}`: {value}")

        top = self.themes.get("top", [])
        if top:
            lines.append("")
            lines.append("## Top Themes")
            lines.append("")
            lines.append("| Theme | Stories | % |")
            lines.append("|---|---:|---:|")
            for row in top:
                lines.append(f"| {row['name']} | {row['count']} | {row['percentage']} |")

        pairs = self.themes.get("cooccurrence", [])
        if pairs:
            lines.append("")
            lines.append("## Theme Co-occurrence")
            lines.append("")
            for row in pairs:
                left, right = row["themes"]
                lines.append(f"- `{left}` + `{right}`: {row['count']}")

        sorted_locations = self.locations.get("sorted", [])
        if sorted_locations:
            lines.append("")
            lines.append("## Locations")
            lines.append("")
            for row in sorted_locations:
                lines.append(f"- {row['location']}: {row['count']}")

        lines.append("")
        return "\n".join(lines)


def rank_themes(themes: Sequence[Theme], *, key: str = "story_count") -> List[Theme]:
    """Themes by counter descending; ties keep input order."""
    return sorted(themes, key=lambda theme: getattr(theme, key), reverse=True)


def compute_theme_cooccurrence(
    stories: Sequence[Story], *, top_k: int = 20
) -> List[Tuple[Tuple[str, str], int]]:
    """Count theme pairs sharing a story, keyed by the sorted pair."""
    pair_counts: Counter[Tuple[str, str]] = Counter()
    for story in stories:
        for pair in combinations(sorted(set(story.theme_ids)), 2):
            pair_counts[pair] += 1
    return pair_counts.most_common(top_k)


def compute_theme_analytics(
    themes: Sequence[Theme],
    stories: Sequence[Story],
    *,
    params: AnalyticsParameters,
) -> Dict[str, Any]:
    total_stories = len(stories)
    active = [theme for theme in rank_themes(themes) if theme.story_count > 0]

    categories: Counter[str] = Counter(theme.category for theme in themes)

    return {
        "total": len(active),
        "top": [
            {
                "id": theme.id,
                "name": theme.name,
                "count": theme.story_count,
                "percentage": safe_ratio(theme.story_count * 100, total_stories, 1),
            }
            for theme in active[: params.top_themes]
        ],
        "distribution": {theme.id: theme.story_count for theme in active},
        "byCategory": dict(categories.most_common()),
        "topByStorytellers": [
            {
                "id": theme.id,
                "name": theme.name,
                "category": theme.category,
                "storytellerCount": theme.storyteller_count,
            }
            for theme in rank_themes(themes, key="storyteller_count")[
                : params.top_themes_by_storytellers
            ]
        ],
        "cooccurrence": [
            {"themes": list(pair), "count": count}
            for pair, count in compute_theme_cooccurrence(stories, top_k=params.top_theme_pairs)
        ],
    }


def known_locations(graph: ResolvedGraph) -> List[str]:
    """Distinct story and storyteller locations, excluding the ``Unknown`` sentinel."""
    seen: Dict[str, None] = {}
    for location in [s.location for s in graph.stories] + [s.location for s in graph.storytellers]:
        if location != UNKNOWN_LOCATION:
            seen.setdefault(location, None)
    return list(seen)


def compute_location_analytics(
    locations: Sequence[str], stories_by_location: Mapping[str, List[str]]
) -> Dict[str, Any]:
    distribution = {location: len(stories_by_location.get(location, [])) for location in locations}
    return {
        "total": len(locations),
        "distribution": distribution,
        "sorted": [
            {"location": location, "count": count}
            for location, count in sorted(
                distribution.items(), key=lambda item: item[1], reverse=True
            )
        ],
    }


def compute_quote_statistics(quotes: Sequence[str]) -> Dict[str, Any]:
    total_characters = sum(len(quote) for quote in quotes)
    return {
        "total": len(quotes),
        "averageLength": round(total_characters / len(quotes)) if quotes else 0,
        "totalCharacters": total_characters,
    }


class AnalyticsAggregator:
    """Compute every analytics facet for one pipeline run."""

    def __init__(self, params: AnalyticsParameters | None = None) -> None:
        self.params = params or AnalyticsParameters()

    @classmethod
    def from_config(cls, config: AnalyticsConfig | None = None) -> "AnalyticsAggregator":
        return cls(AnalyticsParameters.from_config(config or AnalyticsConfig()))

    def aggregate(
        self, graph: ResolvedGraph, themes: Sequence[Theme], indexes: IndexSet
    ) -> AnalyticsReport:
        """Build the report.

        Args:
            graph: Resolved entities
            themes: Themes carrying counters computed from ``indexes``
            indexes: Secondary indexes for the same graph
        """
        stories = graph.stories
        storytellers = graph.storytellers
        locations = known_locations(graph)
        quotes = [quote for item in graph.media for quote in item.quotes]
        active_themes = sum(1 for theme in themes if theme.story_count > 0)

        stories_per_storyteller: Counter[int] = Counter(len(s.story_ids) for s in storytellers)

        report = AnalyticsReport(
            overview={
                "totalStories": len(stories),
                "totalStorytellers": len(storytellers),
                "totalThemes": len(themes),
                "activeThemes": active_themes,
                "totalMedia": len(graph.media),
                "totalQuotes": len(quotes),
                "locationsCount": len(locations),
                "averageStoriesPerStoryteller": safe_ratio(len(stories), len(storytellers), 2),
            },
            themes=compute_theme_analytics(themes, stories, params=self.params),
            locations=compute_location_analytics(locations, indexes.stories_by_location),
            roles={
                role.value: len(indexes.storytellers_by_role.get(role.value, []))
                for role in StorytellerRole
            },
            time_series={
                month: len(indexes.stories_by_date[month])
                for month in sorted(indexes.stories_by_date)
            },
            media={
                "total": len(graph.media),
                "byType": dict(Counter(item.type for item in graph.media).most_common()),
                "withVideo": sum(1 for story in stories if story.has_video),
                "withTranscript": sum(1 for item in graph.media if item.transcript),
            },
            engagement={
                "storiesPerStoryteller": {
                    str(count): stories_per_storyteller[count]
                    for count in sorted(stories_per_storyteller)
                },
                "storytellersWithStories": sum(1 for s in storytellers if s.story_ids),
                "averageThemesPerStory": safe_ratio(
                    sum(len(story.theme_ids) for story in stories), len(stories), 2
                ),
            },
            storytellers={
                "averageQuotesPerStoryteller": safe_ratio(
                    sum(len(s.quotes) for s in storytellers), len(storytellers), 1
                ),
                "averageThemesPerStoryteller": safe_ratio(
                    sum(len(s.theme_ids) for s in storytellers), len(storytellers), 1
                ),
            },
            quotes=compute_quote_statistics(quotes),
        )

        logger.info(
            "Computed analytics ({} active themes, {} locations, {} quotes)",
            active_themes,
            len(locations),
            len(quotes),
        )
        return report

"""Sparse secondary indexes over the resolved graph.

Every index maps a key (entity id, location label, role, or ``YYYY-MM`` bucket) to the ordered
ids of one related kind. Buckets are only created when an id is appended, so no index ever holds
an empty list. Ids appear in the order their owning entity was processed, which makes the build
deterministic.
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import DefaultDict, Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from storyledger.extraction.models import RelationType
from storyledger.extraction.relationship_resolver import ResolvedGraph
from storyledger.storage.schemas import EntityKind, Theme

Index = Dict[str, List[str]]

_YEAR_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})")


def year_month(timestamp: Optional[str]) -> Optional[str]:
    """``YYYY-MM`` bucket for an ISO-like timestamp, or None when it doesn't parse."""
    if not timestamp:
        return None
    match = _YEAR_MONTH_RE.match(timestamp.strip())
    if not match:
        return None
    return f"{match.group(1)}-{match.group(2)}"


def _collect(pairs: Iterable[Tuple[str, str]]) -> Index:
    buckets: DefaultDict[str, List[str]] = defaultdict(list)
    for key, value in pairs:
        bucket = buckets[key]
        if value not in bucket:
            bucket.append(value)
    return dict(buckets)


@dataclass(frozen=True)
class IndexSet:
    """All secondary indexes for one pipeline run."""

    stories_by_theme: Index = field(default_factory=dict)
    stories_by_storyteller: Index = field(default_factory=dict)
    stories_by_location: Index = field(default_factory=dict)
    stories_by_date: Index = field(default_factory=dict)
    storytellers_by_location: Index = field(default_factory=dict)
    storytellers_by_role: Index = field(default_factory=dict)
    theme_hierarchy: Index = field(default_factory=dict)
    media_by_theme: Index = field(default_factory=dict)
    storytellers_by_theme: Index = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Index]:
        return {
            "stories_by_theme": self.stories_by_theme,
            "stories_by_storyteller": self.stories_by_storyteller,
            "stories_by_location": self.stories_by_location,
            "stories_by_date": self.stories_by_date,
            "storytellers_by_location": self.storytellers_by_location,
            "storytellers_by_role": self.storytellers_by_role,
            "theme_hierarchy": self.theme_hierarchy,
            "media_by_theme": self.media_by_theme,
            "storytellers_by_theme": self.storytellers_by_theme,
        }


def build_indexes(graph: ResolvedGraph) -> IndexSet:
    """Build every index from a resolved graph.

    Relation indexes are read off the typed edges; dimension indexes (location, date, role) off
    the entities themselves.
    """
    relationships = graph.relationships

    def edges(relation: RelationType, source_kind: EntityKind) -> List[Tuple[str, str]]:
        return [
            (rel.target, rel.source)
            for rel in relationships
            if rel.type is relation and rel.source_kind is source_kind
        ]

    indexes = IndexSet(
        stories_by_theme=_collect(edges(RelationType.HAS_THEME, EntityKind.STORY)),
        stories_by_storyteller=_collect(edges(RelationType.TOLD_BY, EntityKind.STORY)),
        stories_by_location=_collect((story.location, story.id) for story in graph.stories),
        stories_by_date=_collect(
            (bucket, story_id)
            for bucket, story_id in (
                (year_month(story.created_at), story.id) for story in graph.stories
            )
            if bucket is not None
        ),
        storytellers_by_location=_collect(
            (storyteller.location, storyteller.id) for storyteller in graph.storytellers
        ),
        storytellers_by_role=_collect(
            (storyteller.role.value, storyteller.id) for storyteller in graph.storytellers
        ),
        theme_hierarchy=_collect(edges(RelationType.CHILD_OF, EntityKind.THEME)),
        media_by_theme=_collect(edges(RelationType.TAGGED_WITH, EntityKind.MEDIA)),
        storytellers_by_theme=_collect(edges(RelationType.HAS_THEME, EntityKind.STORYTELLER)),
    )

    logger.info(
        "Built indexes: {}",
        ", ".join(f"{name}={len(index)}" for name, index in indexes.as_dict().items()),
    )
    return indexes


def apply_theme_counters(themes: Sequence[Theme], indexes: IndexSet) -> List[Theme]:
    """Return new themes whose counters equal the cardinality of their index entries."""
    return [
        theme.model_copy(
            update={
                "story_count": len(indexes.stories_by_theme.get(theme.id, [])),
                "media_count": len(indexes.media_by_theme.get(theme.id, [])),
                "storyteller_count": len(indexes.storytellers_by_theme.get(theme.id, [])),
            }
        )
        for theme in themes
    ]

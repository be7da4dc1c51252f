"""Resolve declared links and derive theme membership.

Resolution runs in a fixed order: media first (themes are declared there), then a base pass over
storytellers, then stories, then a final storyteller pass that picks up story links. Every id is
checked against the normalized entities; unknown ids are dropped and counted, never kept as
placeholders.

A single resolver covers both pipeline modes. ``PrimaryEntity`` selects the canonical
``ThemePropagation`` rules, which can be overridden individually from configuration.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Container, DefaultDict, Dict, Iterable, List, Mapping, Optional, Sequence

from loguru import logger

from storyledger.extraction.models import RelationType, ResolvedRelationship
from storyledger.normalization.entity_normalizer import NormalizedEntities
from storyledger.storage.schemas import (
    UNKNOWN_LOCATION,
    EntityKind,
    Media,
    Story,
    Storyteller,
    Theme,
)
from storyledger.utils.config import ResolutionConfig


class PrimaryEntity(str, Enum):
    """Which entity anchors theme propagation."""

    MEDIA = "media"
    STORYTELLER = "storyteller"


@dataclass(frozen=True)
class ThemePropagation:
    """Which derived theme links are computed."""

    story_from_media: bool = True
    story_from_storytellers: bool = False
    storyteller_from_media: bool = True
    storyteller_from_stories: bool = True

    @classmethod
    def for_primary(cls, primary: PrimaryEntity | str) -> "ThemePropagation":
        if PrimaryEntity(primary) is PrimaryEntity.STORYTELLER:
            return cls(story_from_storytellers=True)
        return cls()

    @classmethod
    def from_config(cls, config: ResolutionConfig) -> "ThemePropagation":
        rules = cls.for_primary(config.primary_entity)
        overrides = {
            name: value
            for name, value in config.propagation.model_dump().items()
            if value is not None
        }
        return replace(rules, **overrides) if overrides else rules


def _unique(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


def story_title(storyteller_names: Sequence[str], location: str) -> str:
    """Title for a story whose record carries none."""
    if storyteller_names:
        return f"{storyteller_names[0]}'s Story from {location}"
    return f"A Story from {location}"


@dataclass
class ResolvedGraph:
    """Entities with resolved links plus the typed edges between them."""

    stories: List[Story] = field(default_factory=list)
    storytellers: List[Storyteller] = field(default_factory=list)
    themes: List[Theme] = field(default_factory=list)
    media: List[Media] = field(default_factory=list)
    relationships: List[ResolvedRelationship] = field(default_factory=list)
    dropped_references: Dict[str, int] = field(default_factory=dict)
    primary_entity: PrimaryEntity = PrimaryEntity.MEDIA

    def relationships_of(self, relation_type: RelationType) -> List[ResolvedRelationship]:
        return [rel for rel in self.relationships if rel.type is relation_type]

    def theme_names(self) -> Dict[str, str]:
        return {theme.id: theme.name for theme in self.themes}


class RelationshipResolver:
    """Resolve direct links and derive story/storyteller theme sets."""

    def __init__(
        self,
        primary_entity: PrimaryEntity | str = PrimaryEntity.MEDIA,
        propagation: Optional[ThemePropagation] = None,
    ) -> None:
        self.primary_entity = PrimaryEntity(primary_entity)
        self.propagation = propagation or ThemePropagation.for_primary(self.primary_entity)
        self._dropped: Counter[str] = Counter()

    @classmethod
    def from_config(cls, config: Optional[ResolutionConfig] = None) -> "RelationshipResolver":
        config = config or ResolutionConfig()
        return cls(
            primary_entity=config.primary_entity,
            propagation=ThemePropagation.from_config(config),
        )

    def resolve(self, entities: NormalizedEntities) -> ResolvedGraph:
        """Resolve all links. Pure: the input entities are never mutated."""
        self._dropped = Counter()

        themes = self._resolve_themes(entities.themes)
        theme_ids = {theme.id for theme in themes}
        storyteller_ids = {storyteller.id for storyteller in entities.storytellers}

        media = self._resolve_media(
            entities.media, theme_ids, storyteller_ids, entities.storytellers
        )
        media_by_id = {item.id: item for item in media}

        storytellers = self._resolve_storytellers_base(entities.storytellers, media)
        storyteller_by_id = {storyteller.id: storyteller for storyteller in storytellers}

        stories = self._resolve_stories(entities.stories, storyteller_by_id, media_by_id)
        storytellers = self._resolve_storytellers_final(storytellers, stories, media_by_id)

        graph = ResolvedGraph(
            stories=stories,
            storytellers=storytellers,
            themes=themes,
            media=media,
            relationships=self._build_relationships(stories, storytellers, themes, media),
            dropped_references=dict(sorted(self._dropped.items())),
            primary_entity=self.primary_entity,
        )

        if self._dropped:
            logger.warning(
                "Dropped {} unresolvable references ({})",
                sum(self._dropped.values()),
                ", ".join(f"{key}={count}" for key, count in graph.dropped_references.items()),
            )
        logger.info(
            "Resolved graph in {}-primary mode: {} stories, {} storytellers, {} relationships",
            self.primary_entity.value,
            len(stories),
            len(storytellers),
            len(graph.relationships),
        )
        return graph

    def _filter_known(self, ids: Sequence[str], known: Container[str], label: str) -> List[str]:
        kept: List[str] = []
        for entity_id in ids:
            if entity_id in known:
                kept.append(entity_id)
            else:
                self._dropped[label] += 1
                logger.debug("Dropping unresolvable {} reference '{}'", label, entity_id)
        return _unique(kept)

    def _resolve_themes(self, themes: Sequence[Theme]) -> List[Theme]:
        known = {theme.id for theme in themes}
        resolved: List[Theme] = []
        for theme in themes:
            parent_id = theme.parent_id
            if parent_id is not None and (parent_id not in known or parent_id == theme.id):
                self._dropped["theme.parent"] += 1
                parent_id = None
            if parent_id != theme.parent_id:
                theme = theme.model_copy(update={"parent_id": parent_id})
            resolved.append(theme)
        return resolved

    def _resolve_media(
        self,
        media: Sequence[Media],
        theme_ids: Container[str],
        storyteller_ids: Container[str],
        storytellers: Sequence[Storyteller],
    ) -> List[Media]:
        # Storyteller -> media declarations also count as media -> storyteller links.
        declared_by_storytellers: DefaultDict[str, List[str]] = defaultdict(list)
        for storyteller in storytellers:
            for media_id in storyteller.media_ids:
                declared_by_storytellers[media_id].append(storyteller.id)

        resolved: List[Media] = []
        for item in media:
            linked = self._filter_known(item.storyteller_ids, storyteller_ids, "media.storytellers")
            resolved.append(
                item.model_copy(
                    update={
                        "theme_ids": self._filter_known(item.theme_ids, theme_ids, "media.themes"),
                        "storyteller_ids": _unique([*linked, *declared_by_storytellers[item.id]]),
                    }
                )
            )
        return resolved

    def _resolve_storytellers_base(
        self, storytellers: Sequence[Storyteller], media: Sequence[Media]
    ) -> List[Storyteller]:
        media_ids = {item.id for item in media}
        media_by_id = {item.id: item for item in media}
        linked_from_media: DefaultDict[str, List[str]] = defaultdict(list)
        for item in media:
            for storyteller_id in item.storyteller_ids:
                linked_from_media[storyteller_id].append(item.id)

        resolved: List[Storyteller] = []
        for storyteller in storytellers:
            declared = self._filter_known(storyteller.media_ids, media_ids, "storyteller.media")
            linked = _unique([*declared, *linked_from_media[storyteller.id]])

            theme_ids: List[str] = []
            if self.propagation.storyteller_from_media:
                theme_ids = _unique(
                    t for media_id in linked for t in media_by_id[media_id].theme_ids
                )

            location = storyteller.location
            if location == UNKNOWN_LOCATION:
                location = next(
                    (
                        media_by_id[media_id].location
                        for media_id in linked
                        if media_by_id[media_id].location != UNKNOWN_LOCATION
                    ),
                    UNKNOWN_LOCATION,
                )

            resolved.append(
                storyteller.model_copy(
                    update={"media_ids": linked, "theme_ids": theme_ids, "location": location}
                )
            )
        return resolved

    def _resolve_stories(
        self,
        stories: Sequence[Story],
        storyteller_by_id: Mapping[str, Storyteller],
        media_by_id: Mapping[str, Media],
    ) -> List[Story]:
        resolved: List[Story] = []
        orphaned = 0
        for story in stories:
            storyteller_ids = self._filter_known(
                story.storyteller_ids, storyteller_by_id, "story.storytellers"
            )
            media_ids = self._filter_known(story.media_ids, media_by_id, "story.media")

            if self.primary_entity is PrimaryEntity.STORYTELLER and not storyteller_ids:
                orphaned += 1
                continue

            theme_ids: List[str] = []
            if self.propagation.story_from_media:
                theme_ids.extend(
                    t for media_id in media_ids for t in media_by_id[media_id].theme_ids
                )
            if self.propagation.story_from_storytellers:
                theme_ids.extend(
                    t
                    for storyteller_id in storyteller_ids
                    for t in storyteller_by_id[storyteller_id].theme_ids
                )

            location = story.location
            if location == UNKNOWN_LOCATION:
                candidates = [storyteller_by_id[s].location for s in storyteller_ids] + [
                    media_by_id[m].location for m in media_ids
                ]
                location = next((c for c in candidates if c != UNKNOWN_LOCATION), UNKNOWN_LOCATION)

            names = [storyteller_by_id[s].name for s in storyteller_ids]
            resolved.append(
                story.model_copy(
                    update={
                        "title": story.title or story_title(names, location),
                        "storyteller_ids": storyteller_ids,
                        "storyteller_names": names,
                        "media_ids": media_ids,
                        "theme_ids": _unique(theme_ids),
                        "location": location,
                    }
                )
            )

        if orphaned:
            logger.info("Skipped {} stories without a resolvable storyteller", orphaned)
        return resolved

    def _resolve_storytellers_final(
        self,
        storytellers: Sequence[Storyteller],
        stories: Sequence[Story],
        media_by_id: Mapping[str, Media],
    ) -> List[Storyteller]:
        stories_by_storyteller: DefaultDict[str, List[Story]] = defaultdict(list)
        for story in stories:
            for storyteller_id in story.storyteller_ids:
                stories_by_storyteller[storyteller_id].append(story)

        resolved: List[Storyteller] = []
        for storyteller in storytellers:
            linked_stories = stories_by_storyteller[storyteller.id]
            theme_ids = list(storyteller.theme_ids)
            if self.propagation.storyteller_from_stories:
                theme_ids.extend(t for story in linked_stories for t in story.theme_ids)

            resolved.append(
                storyteller.model_copy(
                    update={
                        "story_ids": [story.id for story in linked_stories],
                        "theme_ids": _unique(theme_ids),
                        "quotes": [
                            quote
                            for media_id in storyteller.media_ids
                            for quote in media_by_id[media_id].quotes
                        ],
                    }
                )
            )
        return resolved

    def _build_relationships(
        self,
        stories: Sequence[Story],
        storytellers: Sequence[Storyteller],
        themes: Sequence[Theme],
        media: Sequence[Media],
    ) -> List[ResolvedRelationship]:
        edges: List[ResolvedRelationship] = []

        def add(
            source: str,
            source_kind: EntityKind,
            relation: RelationType,
            target: str,
            target_kind: EntityKind,
            derived: bool = False,
        ) -> None:
            edges.append(
                ResolvedRelationship(
                    source=source,
                    source_kind=source_kind,
                    type=relation,
                    target=target,
                    target_kind=target_kind,
                    derived=derived,
                )
            )

        for item in media:
            for theme_id in item.theme_ids:
                add(item.id, EntityKind.MEDIA, RelationType.TAGGED_WITH, theme_id, EntityKind.THEME)
            for storyteller_id in item.storyteller_ids:
                add(
                    item.id,
                    EntityKind.MEDIA,
                    RelationType.FEATURES,
                    storyteller_id,
                    EntityKind.STORYTELLER,
                )

        for story in stories:
            for storyteller_id in story.storyteller_ids:
                add(
                    story.id,
                    EntityKind.STORY,
                    RelationType.TOLD_BY,
                    storyteller_id,
                    EntityKind.STORYTELLER,
                )
            for media_id in story.media_ids:
                add(story.id, EntityKind.STORY, RelationType.USES_MEDIA, media_id, EntityKind.MEDIA)
            for theme_id in story.theme_ids:
                add(
                    story.id,
                    EntityKind.STORY,
                    RelationType.HAS_THEME,
                    theme_id,
                    EntityKind.THEME,
                    derived=True,
                )

        for storyteller in storytellers:
            for theme_id in storyteller.theme_ids:
                add(
                    storyteller.id,
                    EntityKind.STORYTELLER,
                    RelationType.HAS_THEME,
                    theme_id,
                    EntityKind.THEME,
                    derived=True,
                )

        for theme in themes:
            if theme.parent_id is not None:
                add(
                    theme.id,
                    EntityKind.THEME,
                    RelationType.CHILD_OF,
                    theme.parent_id,
                    EntityKind.THEME,
                )

        return edges

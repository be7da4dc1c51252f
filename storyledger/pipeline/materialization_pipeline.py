"""End-to-end materialization pipeline.

Raw collections go through lookup building, normalization, relationship resolution, indexing,
analytics and search corpus construction, and come out as a ``{relative_path: value}`` view map.
Writing the views is optional and delegated to a writer object.

Stages advance strictly forward: Loaded -> Normalized -> Resolved -> Indexed -> Persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from loguru import logger

from storyledger.analytics.aggregator import AnalyticsAggregator, AnalyticsReport
from storyledger.extraction.relationship_resolver import RelationshipResolver, ResolvedGraph
from storyledger.indexing.index_builder import IndexSet, apply_theme_counters, build_indexes
from storyledger.indexing.search_indexer import build_search_index
from storyledger.ingestion.record_lookup import RecordLookups, build_record_lookups
from storyledger.normalization.entity_normalizer import EntityNormalizer, NormalizedEntities
from storyledger.normalization.text_cleaner import TextCleaner
from storyledger.pipeline.views import assemble_views, build_metadata
from storyledger.storage.schemas import Theme
from storyledger.utils.config import Config


class PipelineStage(str, Enum):
    LOADED = "loaded"
    NORMALIZED = "normalized"
    RESOLVED = "resolved"
    INDEXED = "indexed"
    PERSISTED = "persisted"


STAGE_ORDER = list(PipelineStage)


class ViewWriter(Protocol):
    def write_all(self, views: Mapping[str, Any]) -> Sequence[Path]: ...


@dataclass
class PipelineResult:
    """Everything one run produced."""

    views: Dict[str, Any]
    graph: ResolvedGraph
    themes: List[Theme]
    indexes: IndexSet
    analytics: AnalyticsReport
    stages: List[PipelineStage] = field(default_factory=list)
    written: List[Path] = field(default_factory=list)

    @property
    def stage(self) -> PipelineStage:
        return self.stages[-1]


class MaterializationPipeline:
    """Run the full transform for one point-in-time snapshot."""

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or Config()
        self.normalizer = EntityNormalizer(
            self.config.normalization, TextCleaner(self.config.normalization)
        )
        self.resolver = RelationshipResolver.from_config(self.config.resolution)
        self.aggregator = AnalyticsAggregator.from_config(self.config.analytics)

    def run(
        self,
        raw: Mapping[str, Any],
        *,
        writer: Optional[ViewWriter] = None,
        generated_at: Optional[datetime] = None,
    ) -> PipelineResult:
        """Materialize all views from raw collections.

        Args:
            raw: Mapping of collection kind (``stories``, ``storytellers``, ``themes``,
                ``media``, optional ``quotes``) to raw records
            writer: Optional writer; when given, the run ends in the Persisted stage
            generated_at: Timestamp for ``metadata.json``; defaults to now (UTC)

        Returns:
            PipelineResult with the view map and intermediate products

        Raises:
            ValueError: If ``raw`` is not a mapping
        """
        stages: List[PipelineStage] = []

        lookups: RecordLookups = build_record_lookups(raw)
        self._advance(stages, PipelineStage.LOADED)

        entities: NormalizedEntities = self.normalizer.normalize(lookups)
        self._advance(stages, PipelineStage.NORMALIZED)

        graph = self.resolver.resolve(entities)
        self._advance(stages, PipelineStage.RESOLVED)

        indexes = build_indexes(graph)
        themes = apply_theme_counters(graph.themes, indexes)
        analytics = self.aggregator.aggregate(graph, themes, indexes)
        search_index = build_search_index(graph)
        self._advance(stages, PipelineStage.INDEXED)

        generated = (generated_at or datetime.now(UTC)).isoformat()
        views = assemble_views(
            graph,
            themes,
            indexes,
            analytics,
            search_index,
            metadata=build_metadata(
                graph,
                themes,
                analytics,
                version=self.config.pipeline.version,
                generated=generated,
            ),
        )

        result = PipelineResult(
            views=views,
            graph=graph,
            themes=themes,
            indexes=indexes,
            analytics=analytics,
            stages=stages,
        )

        if writer is not None:
            result.written = list(writer.write_all(views))
            self._advance(stages, PipelineStage.PERSISTED)

        logger.info(
            "Pipeline finished in stage '{}' with {} views", result.stage.value, len(views)
        )
        return result

    @staticmethod
    def _advance(stages: List[PipelineStage], stage: PipelineStage) -> None:
        expected = STAGE_ORDER[len(stages)]
        if stage is not expected:
            raise RuntimeError(f"Invalid stage transition to '{stage.value}'")
        stages.append(stage)
        logger.debug("Pipeline stage: {}", stage.value)

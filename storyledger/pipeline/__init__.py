"""Pipeline orchestration and view assembly."""

from storyledger.pipeline.materialization_pipeline import (
    MaterializationPipeline,
    PipelineResult,
    PipelineStage,
)
from storyledger.pipeline.views import assemble_views, build_metadata

__all__ = [
    "MaterializationPipeline",
    "PipelineResult",
    "PipelineStage",
    "assemble_views",
    "build_metadata",
]

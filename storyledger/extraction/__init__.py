"""Extraction package exports."""

from storyledger.extraction.models import RelationType, ResolvedRelationship
from storyledger.extraction.relationship_resolver import (
    PrimaryEntity,
    RelationshipResolver,
    ResolvedGraph,
    ThemePropagation,
)

__all__ = [
    "PrimaryEntity",
    "RelationType",
    "RelationshipResolver",
    "ResolvedGraph",
    "ResolvedRelationship",
    "ThemePropagation",
]

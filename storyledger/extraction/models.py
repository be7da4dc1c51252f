"""Shared data models for relationship resolution."""

from enum import Enum

from pydantic import BaseModel, ConfigDict

from storyledger.storage.schemas import EntityKind


class RelationType(str, Enum):
    """Typed edges between canonical entities."""

    TOLD_BY = "TOLD_BY"  # story -> storyteller
    USES_MEDIA = "USES_MEDIA"  # story -> media
    FEATURES = "FEATURES"  # media -> storyteller
    TAGGED_WITH = "TAGGED_WITH"  # media -> theme
    HAS_THEME = "HAS_THEME"  # story/storyteller -> theme, always derived
    CHILD_OF = "CHILD_OF"  # theme -> parent theme


class ResolvedRelationship(BaseModel):
    """One resolved edge. Both endpoints are known entities."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    source: str
    source_kind: EntityKind
    type: RelationType
    target: str
    target_kind: EntityKind
    derived: bool = False

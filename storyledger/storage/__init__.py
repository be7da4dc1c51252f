"""Canonical entity models and the view writer."""

from storyledger.storage.schemas import (
    ANONYMOUS,
    UNKNOWN_LOCATION,
    CanonicalEntity,
    EntityKind,
    Media,
    Story,
    Storyteller,
    StorytellerRole,
    Theme,
)
from storyledger.storage.view_writer import JsonViewWriter, safe_relative_path

__all__ = [
    "ANONYMOUS",
    "UNKNOWN_LOCATION",
    "CanonicalEntity",
    "EntityKind",
    "JsonViewWriter",
    "Media",
    "Story",
    "Storyteller",
    "StorytellerRole",
    "Theme",
    "safe_relative_path",
]

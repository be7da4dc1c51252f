"""Normalization package."""

from storyledger.normalization.entity_normalizer import (
    EntityNormalizer,
    NormalizedEntities,
    categorize_theme,
    derive_theme_name,
    normalize_role,
)
from storyledger.normalization.field_rules import (
    LOCATION_RULES,
    MEDIA_RULES,
    QUOTE_TEXT_RULE,
    STORY_RULES,
    STORYTELLER_RULES,
    THEME_RULES,
    FieldRule,
    resolve_chain,
    resolve_field,
    resolve_rules,
)
from storyledger.normalization.text_cleaner import TextCleaner

__all__ = [
    "EntityNormalizer",
    "FieldRule",
    "LOCATION_RULES",
    "MEDIA_RULES",
    "NormalizedEntities",
    "QUOTE_TEXT_RULE",
    "STORY_RULES",
    "STORYTELLER_RULES",
    "THEME_RULES",
    "TextCleaner",
    "categorize_theme",
    "derive_theme_name",
    "normalize_role",
    "resolve_chain",
    "resolve_field",
    "resolve_rules",
]

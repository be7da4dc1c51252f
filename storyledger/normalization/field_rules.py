"""Ordered field-fallback rules for mapping raw record fields to canonical fields.

Record-store fields are untyped and optional. Each canonical field is described by a
``FieldRule``: the raw field names to try in order, a transform applied to each candidate value,
and a default used when every candidate is missing or transforms to nothing. The rule tables
below are the single source of truth for fallback order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from storyledger.storage.schemas import ANONYMOUS, UNKNOWN_LOCATION

Transform = Callable[[Any], Any]

_WHITESPACE_RE = re.compile(r"\s+")


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


# Transforms
def as_text(value: Any) -> Optional[str]:
    """A stripped string; lists contribute their first usable string."""
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, (list, tuple)):
        for item in value:
            text = as_text(item)
            if text:
                return text
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def as_raw_text(value: Any) -> Optional[str]:
    """Like ``as_text`` but without stripping, for text cleaned later."""
    if isinstance(value, str):
        return value if value.strip() else None
    if isinstance(value, (list, tuple)):
        parts = [item for item in value if isinstance(item, str) and item.strip()]
        return "\n".join(parts) if parts else None
    return None


def as_id_list(value: Any) -> List[str]:
    """Ordered, de-duplicated list of id strings."""
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    ids: Dict[str, None] = {}
    for item in value:
        if isinstance(item, str) and item.strip():
            ids.setdefault(item.strip(), None)
    return list(ids)


def as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "y", "1", "checked"}:
            return True
        if lowered in {"false", "no", "n", "0", ""}:
            return False
    return None


def first_token(value: Any) -> Optional[str]:
    """First whitespace-delimited token of a label (e.g. ``"Brisbane Morning Shift"``)."""
    text = as_text(value)
    if not text:
        return None
    return _WHITESPACE_RE.split(text, maxsplit=1)[0] or None


def attachment_url(value: Any) -> Optional[str]:
    """URL of the first attachment in a record-store attachment list."""
    if isinstance(value, (list, tuple)) and value:
        first = value[0]
        if isinstance(first, Mapping):
            url = first.get("url")
            return url if isinstance(url, str) and url else None
        return as_text(first)
    return as_text(value)


@dataclass(frozen=True)
class FieldRule:
    """Ordered fallback chain for one canonical field."""

    name: str
    try_fields: Tuple[str, ...]
    transform: Transform = as_text
    default: Any = None

    def default_value(self) -> Any:
        # Fresh containers so callers never share a mutable default.
        if isinstance(self.default, list):
            return list(self.default)
        return self.default


def resolve_field(fields: Mapping[str, Any], rule: FieldRule) -> Any:
    """Apply ``rule`` to a raw fields bag.

    Each candidate field is tried in order; the first one whose transformed value is non-empty
    wins. Transform errors count as a miss for that candidate.
    """
    for field_name in rule.try_fields:
        if field_name not in fields:
            continue
        raw = fields[field_name]
        if _is_empty(raw):
            continue
        try:
            value = rule.transform(raw)
        except (TypeError, ValueError, AttributeError):
            continue
        if not _is_empty(value):
            return value
    return rule.default_value()


def resolve_chain(fields: Mapping[str, Any], rules: Sequence[FieldRule]) -> Any:
    """First non-empty result across several rules, else the last rule's default."""
    for rule in rules:
        value = resolve_field(fields, FieldRule(rule.name, rule.try_fields, rule.transform))
        if not _is_empty(value):
            return value
    return rules[-1].default_value() if rules else None


def resolve_rules(fields: Mapping[str, Any], rules: Sequence[FieldRule]) -> Dict[str, Any]:
    """Resolve a whole rule table into ``{canonical_name: value}``."""
    return {rule.name: resolve_field(fields, rule) for rule in rules}


# Location: explicit location, then city fields, then the media rollup, then the shift label.
LOCATION_RULES: Tuple[FieldRule, ...] = (
    FieldRule("location", ("Location",)),
    FieldRule("location", ("City", "Location City", "Location - City")),
    FieldRule("location", ("Location Rollup (from Media)",)),
    FieldRule("location", ("Shift", "Shifts"), transform=first_token, default=UNKNOWN_LOCATION),
)

QUOTE_TEXT_RULE = FieldRule("quote", ("Quote", "Text", "Content", "Quote Text"))

STORY_RULES: Tuple[FieldRule, ...] = (
    FieldRule("title", ("Title", "Name")),
    FieldRule("body", ("Story copy", "Content", "Body"), transform=as_raw_text, default=""),
    FieldRule(
        "transcript", ("Story Transcript", "Transcript"), transform=as_raw_text, default=""
    ),
    FieldRule("video_url", ("Video Story Link", "Video URL")),
    FieldRule("featured", ("Featured",), transform=as_bool, default=False),
    FieldRule("storyteller_ids", ("Storytellers", "Storyteller"), transform=as_id_list, default=[]),
    FieldRule("media_ids", ("Media",), transform=as_id_list, default=[]),
    FieldRule("created_at", ("Created", "Created At"), default=""),
)

STORYTELLER_RULES: Tuple[FieldRule, ...] = (
    FieldRule("name", ("Name", "Full Name"), default=ANONYMOUS),
    FieldRule("role", ("Role",), default="Unknown"),
    FieldRule(
        "bio", ("Bio", "Journey", "Summary (from Media)"), transform=as_raw_text, default=""
    ),
    FieldRule("profile_image", ("File Profile Image", "Files"), transform=attachment_url),
    FieldRule("media_ids", ("Media",), transform=as_id_list, default=[]),
    FieldRule("project", ("Project",), transform=as_raw_text, default=""),
    FieldRule("created_at", ("Created", "Created At"), default=""),
)

THEME_RULES: Tuple[FieldRule, ...] = (
    FieldRule("name", ("Theme Name", "Name")),
    FieldRule("description", ("Description",), transform=as_raw_text, default=""),
    FieldRule("parent_id", ("Parent", "Parent Theme"), transform=as_text),
)

MEDIA_RULES: Tuple[FieldRule, ...] = (
    FieldRule("file_name", ("File Name", "Name"), default="Untitled"),
    FieldRule("type", ("Type",), default="Unknown"),
    FieldRule("transcript", ("Transcript", "Transcription"), transform=as_raw_text, default=""),
    FieldRule("summary", ("Summary",), transform=as_raw_text, default=""),
    FieldRule("quotes", ("Quotes",), transform=as_id_list, default=[]),
    FieldRule("theme_ids", ("Themes",), transform=as_id_list, default=[]),
    FieldRule("storyteller_ids", ("Storyteller", "Storytellers"), transform=as_id_list, default=[]),
    FieldRule("project", ("Project",), transform=as_raw_text, default=""),
    FieldRule("created_at", ("Created", "Created At"), default=""),
)

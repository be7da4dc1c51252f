"""Map raw record-store records onto canonical entities.

The normalizer applies the per-kind fallback tables from ``field_rules`` and the text policies
(cleanup, excerpts, theme naming, theme categories, role classification). Links are carried
through exactly as declared; resolving them against known entities is the resolver's job.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from loguru import logger

from storyledger.ingestion.record_lookup import RawRecord, RecordLookup, RecordLookups
from storyledger.normalization.field_rules import (
    LOCATION_RULES,
    MEDIA_RULES,
    QUOTE_TEXT_RULE,
    STORY_RULES,
    STORYTELLER_RULES,
    THEME_RULES,
    resolve_chain,
    resolve_field,
    resolve_rules,
)
from storyledger.normalization.text_cleaner import TextCleaner
from storyledger.storage.schemas import Media, Story, Storyteller, StorytellerRole, Theme
from storyledger.utils.config import NormalizationConfig

# Substring checks run in this order; the first hit wins.
ROLE_PRIORITY = (
    ("volunteer", StorytellerRole.VOLUNTEER),
    ("friend", StorytellerRole.FRIEND),
    ("service provider", StorytellerRole.SERVICE_PROVIDER),
)

_SENTENCE_END_RE = re.compile(r"[.!?]")


def normalize_role(raw_role: Any) -> StorytellerRole:
    """Classify a free-text role; unmatched or missing roles become ``other``."""
    role = raw_role.lower() if isinstance(raw_role, str) else ""
    for needle, normalized in ROLE_PRIORITY:
        if needle in role:
            return normalized
    return StorytellerRole.OTHER


def categorize_theme(
    description: str,
    categories: Mapping[str, Iterable[str]],
    default: str = "Other",
) -> str:
    """First category (in table order) with a keyword contained in the description."""
    lowered = (description or "").lower()
    if not lowered:
        return default
    for category, keywords in categories.items():
        if any(keyword.lower() in lowered for keyword in keywords if keyword):
            return category
    return default


def derive_theme_name(
    description: str,
    *,
    max_length: int = 100,
    fallback_length: int = 50,
    connectives: Iterable[str] = ("through", "by", "via", "with", "for"),
    ellipsis: str = "...",
) -> Optional[str]:
    """Derive a display name from a theme description.

    Tiers, evaluated in order:
    1. Text before the first ``.``, ``!`` or ``?`` when non-empty and shorter than
       ``max_length`` characters.
    2. Text preceding the first connective word.
    3. The first ``fallback_length`` characters plus the ellipsis.
    """
    if not description or not description.strip():
        return None

    first_sentence = _SENTENCE_END_RE.split(description, maxsplit=1)[0].strip()
    if 0 < len(first_sentence) < max_length:
        return first_sentence

    pattern = r"^(.*?)\b(?:" + "|".join(re.escape(word) for word in connectives) + r")\b"
    match = re.match(pattern, description, flags=re.IGNORECASE | re.DOTALL)
    if match and match.group(1).strip():
        return match.group(1).strip()

    return description[:fallback_length] + ellipsis


@dataclass
class NormalizedEntities:
    """Canonical entities with declared (unresolved) links."""

    stories: List[Story] = field(default_factory=list)
    storytellers: List[Storyteller] = field(default_factory=list)
    themes: List[Theme] = field(default_factory=list)
    media: List[Media] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {
            "stories": len(self.stories),
            "storytellers": len(self.storytellers),
            "themes": len(self.themes),
            "media": len(self.media),
        }


class EntityNormalizer:
    """Normalize every raw collection into canonical entities."""

    def __init__(
        self,
        config: Optional[NormalizationConfig] = None,
        cleaner: Optional[TextCleaner] = None,
    ) -> None:
        self.config = config or NormalizationConfig()
        self.cleaner = cleaner or TextCleaner(self.config)
        self._dropped: Counter[str] = Counter()

    def normalize(self, lookups: RecordLookups) -> NormalizedEntities:
        """Normalize all collections. Pure: the same lookups always give the same result."""
        self._dropped = Counter()

        entities = NormalizedEntities(
            themes=[self.normalize_theme(r) for r in self._unique_records(lookups.themes)],
            media=[
                media
                for media in (
                    self.normalize_media(r, lookups) for r in self._unique_records(lookups.media)
                )
                if media is not None
            ],
            storytellers=[
                storyteller
                for storyteller in (
                    self.normalize_storyteller(r)
                    for r in self._unique_records(lookups.storytellers)
                )
                if storyteller is not None
            ],
            stories=[self.normalize_story(r) for r in self._unique_records(lookups.stories)],
        )

        if self._dropped:
            logger.warning(
                "Dropped records during normalization: {}",
                ", ".join(f"{reason}={count}" for reason, count in sorted(self._dropped.items())),
            )
        logger.info(
            "Normalized {} stories, {} storytellers, {} themes, {} media",
            len(entities.stories),
            len(entities.storytellers),
            len(entities.themes),
            len(entities.media),
        )
        return entities

    def _unique_records(self, lookup: RecordLookup) -> List[RawRecord]:
        seen: set[str] = set()
        records: List[RawRecord] = []
        for record in lookup:
            if record.id is None:
                self._dropped[f"{lookup.kind}_missing_id"] += 1
                continue
            if record.id in seen:
                self._dropped[f"{lookup.kind}_duplicate_id"] += 1
                continue
            seen.add(record.id)
            records.append(record)
        return records

    def _matches_project(self, project: str, kind: str) -> bool:
        wanted = self.config.project_filter
        if not wanted:
            return True
        if wanted.lower() in (project or "").lower():
            return True
        self._dropped[f"{kind}_outside_project"] += 1
        return False

    def extract_location(self, fields: Mapping[str, Any]) -> str:
        return resolve_chain(fields, LOCATION_RULES)

    def normalize_story(self, record: RawRecord) -> Story:
        values = resolve_rules(record.fields, STORY_RULES)
        body_raw = values["body"]
        transcript_raw = values["transcript"]
        video_url = values["video_url"]

        return Story(
            id=record.id,
            title=self.cleaner.clean(values["title"]),
            body=self.cleaner.clean(body_raw),
            transcript=self.cleaner.clean(transcript_raw),
            excerpt=self.cleaner.excerpt(body_raw or transcript_raw),
            video_url=video_url,
            has_video=bool(video_url),
            featured=bool(values["featured"]),
            storyteller_ids=values["storyteller_ids"],
            media_ids=values["media_ids"],
            location=self.extract_location(record.fields),
            created_at=record.created_time or values["created_at"],
        )

    def normalize_storyteller(self, record: RawRecord) -> Optional[Storyteller]:
        values = resolve_rules(record.fields, STORYTELLER_RULES)
        if not self._matches_project(values["project"], "storytellers"):
            return None

        return Storyteller(
            id=record.id,
            name=self.cleaner.clean(values["name"]) or "Anonymous",
            role=normalize_role(values["role"]),
            location=self.extract_location(record.fields),
            bio=self.cleaner.clean(values["bio"]),
            profile_image=values["profile_image"],
            media_ids=values["media_ids"],
            created_at=record.created_time or values["created_at"],
        )

    def normalize_theme(self, record: RawRecord) -> Theme:
        values = resolve_rules(record.fields, THEME_RULES)
        description = self.cleaner.clean(values["description"])

        name = self.cleaner.clean(values["name"])
        if not name:
            name = (
                derive_theme_name(
                    description,
                    max_length=self.config.theme_name_max_length,
                    fallback_length=self.config.theme_name_fallback_length,
                    connectives=self.config.theme_name_connectives,
                    ellipsis=self.config.ellipsis,
                )
                or "Unnamed Theme"
            )
            logger.debug("Theme {} has no explicit name; derived '{}'", record.id, name)

        return Theme(
            id=record.id,
            name=name,
            description=description,
            category=categorize_theme(
                description,
                self.config.theme_categories,
                default=self.config.default_category,
            ),
            parent_id=values["parent_id"],
        )

    def normalize_media(self, record: RawRecord, lookups: RecordLookups) -> Optional[Media]:
        values = resolve_rules(record.fields, MEDIA_RULES)
        if not self._matches_project(values["project"], "media"):
            return None

        return Media(
            id=record.id,
            file_name=self.cleaner.clean(values["file_name"]) or "Untitled",
            type=self.cleaner.clean(values["type"]) or "Unknown",
            transcript=self.cleaner.clean(values["transcript"]),
            summary=self.cleaner.clean(values["summary"]),
            quotes=self.resolve_quotes(values["quotes"], lookups),
            theme_ids=values["theme_ids"],
            location=self.extract_location(record.fields),
            storyteller_ids=values["storyteller_ids"],
            created_at=record.created_time or values["created_at"],
        )

    def resolve_quotes(self, values: List[str], lookups: RecordLookups) -> List[str]:
        """Quote ids -> quote text when a quote collection exists, else the values as text."""
        if not lookups.has_quotes:
            return [text for text in (self.cleaner.clean(v) for v in values) if text]

        quotes: List[str] = []
        for quote_id in values:
            record = lookups.quotes.get(quote_id)
            if record is None:
                self._dropped["quotes_unresolved"] += 1
                continue
            text = self.cleaner.clean(resolve_field(record.fields, QUOTE_TEXT_RULE))
            if text:
                quotes.append(text)
            else:
                self._dropped["quotes_empty"] += 1
        return quotes

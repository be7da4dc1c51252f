"""Id-keyed lookups over raw record-store collections.

Raw collections arrive either as a plain list of records or wrapped as
``{"records": [...]}`` (the shape the record-store export writes). Each record is a loosely
typed ``{id, fields, createdTime}`` bag. Nothing is validated here beyond the overall shape:
a missing or malformed collection simply produces an empty lookup so later stages degrade
instead of aborting.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

COLLECTION_KINDS = ("stories", "storytellers", "themes", "media", "quotes")


class RawRecord(BaseModel):
    """One raw record from the record store."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    id: Optional[str] = None
    fields: Dict[str, Any] = Field(default_factory=dict)
    created_time: str = Field(default="", alias="createdTime")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("fields", mode="before")
    @classmethod
    def _coerce_fields(cls, value: Any) -> Dict[str, Any]:
        return dict(value) if isinstance(value, Mapping) else {}

    @field_validator("created_time", mode="before")
    @classmethod
    def _coerce_created(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""


@dataclass
class RecordLookup:
    """Ordered records of one kind plus an id -> record map."""

    kind: str
    records: List[RawRecord] = field(default_factory=list)
    by_id: Dict[str, RawRecord] = field(default_factory=dict)
    present: bool = False

    def get(self, record_id: str) -> RawRecord | None:
        return self.by_id.get(record_id)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self.by_id

    def __iter__(self) -> Iterator[RawRecord]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.by_id)


@dataclass(frozen=True)
class RecordLookups:
    """Lookups for every collection kind."""

    stories: RecordLookup
    storytellers: RecordLookup
    themes: RecordLookup
    media: RecordLookup
    quotes: RecordLookup

    @property
    def has_quotes(self) -> bool:
        return self.quotes.present

    def counts(self) -> Dict[str, int]:
        return {kind: len(getattr(self, kind)) for kind in COLLECTION_KINDS}


def _unwrap_collection(kind: str, value: Any) -> Optional[List[Any]]:
    if value is None:
        return None
    if isinstance(value, Mapping):
        value = value.get("records")
    if isinstance(value, list):
        return value
    logger.warning(
        "Collection '{}' is malformed ({}); treating as empty", kind, type(value).__name__
    )
    return None


def build_lookup(kind: str, collection: Any) -> RecordLookup:
    """Build the lookup for a single collection. Never raises."""
    items = _unwrap_collection(kind, collection)
    if items is None:
        return RecordLookup(kind=kind, present=False)

    records: List[RawRecord] = []
    by_id: Dict[str, RawRecord] = {}
    skipped = 0
    for item in items:
        if not isinstance(item, Mapping):
            skipped += 1
            continue
        record = RawRecord.model_validate(item)
        records.append(record)
        if record.id is not None:
            by_id.setdefault(record.id, record)

    if skipped:
        logger.warning("Skipped {} non-record entries in '{}'", skipped, kind)
    return RecordLookup(kind=kind, records=records, by_id=by_id, present=True)


def build_record_lookups(raw: Any) -> RecordLookups:
    """Build id-keyed lookups for every collection in a raw export.

    Args:
        raw: Mapping of collection kind to raw collection.

    Returns:
        RecordLookups with one (possibly empty) lookup per kind.

    Raises:
        ValueError: If the raw export root is not a mapping.
    """
    if not isinstance(raw, Mapping):
        raise ValueError(
            f"Raw collections root must be a mapping/dict, got {type(raw).__name__}"
        )

    lookups = {kind: build_lookup(kind, raw.get(kind)) for kind in COLLECTION_KINDS}
    for kind, lookup in lookups.items():
        if not lookup.present and kind != "quotes":
            logger.warning("Collection '{}' missing from input; continuing with none", kind)

    result = RecordLookups(**lookups)
    logger.info(
        "Built lookups: {}",
        ", ".join(f"{count} {kind}" for kind, count in result.counts().items()),
    )
    return result


def load_raw_dump(path: str | Path) -> Dict[str, Any]:
    """Load a raw record-store export from a JSON file.

    Raises:
        FileNotFoundError: If the dump doesn't exist
        ValueError: If the dump root is not a mapping
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Raw data dump not found: {path}")

    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Raw data dump root must be a mapping/dict: {path}")
    logger.debug("Loaded raw dump from {}", path)
    return payload

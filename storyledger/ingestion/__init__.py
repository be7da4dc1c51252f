"""Ingestion of raw record-store collections."""

from storyledger.ingestion.record_lookup import (
    COLLECTION_KINDS,
    RawRecord,
    RecordLookup,
    RecordLookups,
    build_lookup,
    build_record_lookups,
    load_raw_dump,
)

__all__ = [
    "COLLECTION_KINDS",
    "RawRecord",
    "RecordLookup",
    "RecordLookups",
    "build_lookup",
    "build_record_lookups",
    "load_raw_dump",
]

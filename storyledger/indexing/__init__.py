"""Secondary indexes and the search corpus."""

from storyledger.indexing.index_builder import (
    IndexSet,
    apply_theme_counters,
    build_indexes,
    year_month,
)
from storyledger.indexing.search_indexer import SearchDocument, build_search_index

__all__ = [
    "IndexSet",
    "SearchDocument",
    "apply_theme_counters",
    "build_indexes",
    "build_search_index",
    "year_month",
]

"""Analytics over the resolved graph."""

from storyledger.analytics.aggregator import (
    AnalyticsAggregator,
    AnalyticsParameters,
    AnalyticsReport,
    compute_location_analytics,
    compute_quote_statistics,
    compute_theme_cooccurrence,
    rank_themes,
)

__all__ = [
    "AnalyticsAggregator",
    "AnalyticsParameters",
    "AnalyticsReport",
    "compute_location_analytics",
    "compute_quote_statistics",
    "compute_theme_cooccurrence",
    "rank_themes",
]

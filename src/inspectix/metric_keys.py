"""Metric keys shared by the cache, the loader state and change watches."""

from __future__ import annotations

from enum import StrEnum

CACHE_KEY_SEPARATOR = ":"


class MetricKey(StrEnum):
    DASHBOARD_METRICS = "dashboard_metrics"
    INSPECTION_COUNTS = "inspection_counts"
    USER_METRICS = "user_metrics"
    AI_METRICS = "ai_metrics"
    REVENUE_METRICS = "revenue_metrics"
    KPIS = "kpis"
    TRENDS = "trends"
    REGIONAL = "regional"
    HEALTH = "health"


class TimeRange(StrEnum):
    """Trend windows accepted by the trends RPC."""

    SEVEN_DAYS = "7d"
    THIRTY_DAYS = "30d"
    NINETY_DAYS = "90d"
    ONE_YEAR = "1y"

    @property
    def days(self) -> int:
        return _TIME_RANGE_DAYS[self]


_TIME_RANGE_DAYS = {
    TimeRange.SEVEN_DAYS: 7,
    TimeRange.THIRTY_DAYS: 30,
    TimeRange.NINETY_DAYS: 90,
    TimeRange.ONE_YEAR: 365,
}

# Keys written into state by a single consolidated load.
CONSOLIDATED_SLICES = (
    MetricKey.INSPECTION_COUNTS,
    MetricKey.USER_METRICS,
    MetricKey.AI_METRICS,
    MetricKey.REVENUE_METRICS,
    MetricKey.KPIS,
)


def cache_key(key: str, qualifier: str | None = None) -> str:
    """Return the cache key for a metric, optionally scoped by a qualifier."""
    if qualifier is None:
        return str(key)
    return f"{key}{CACHE_KEY_SEPARATOR}{qualifier}"


def matches_cache_key(candidate: str, key_or_prefix: str) -> bool:
    """Return True when ``candidate`` is ``key_or_prefix`` or one of its qualified keys."""
    return candidate == key_or_prefix or candidate.startswith(
        f"{key_or_prefix}{CACHE_KEY_SEPARATOR}"
    )

"""Coerce trend and regional RPC payloads into typed rows."""

from __future__ import annotations

from collections.abc import Mapping

from inspectix.errors import MetricValidationError
from inspectix.models import RegionBreakdown, TrendPoint
from inspectix.safe_numbers import safe_float, safe_integer
from inspectix.transform_raw_metrics__validation import coerce_payload


def _rows(raw: object, *, name: str) -> list[Mapping[str, object]]:
    payload = coerce_payload(raw, name=name)
    if payload is None:
        return []
    if isinstance(payload, Mapping):
        # Some RPCs wrap the rows: {"trends": [...]} / {"regions": [...]}
        nested = next((value for value in payload.values() if isinstance(value, list)), None)
        if nested is None:
            raise MetricValidationError(f"{name} payload has no row list")
        payload = nested
    if not isinstance(payload, list):
        raise MetricValidationError(
            f"{name} payload must be a list",
            details={"type": type(payload).__name__},
        )
    return [row for row in payload if isinstance(row, Mapping)]


def transform_trends(raw: object) -> list[TrendPoint]:
    """Return trend buckets in backend order; rows without a label are dropped."""
    points: list[TrendPoint] = []
    for row in _rows(raw, name="trend"):
        label = row.get("name") or row.get("date")
        if not label:
            continue
        points.append(
            TrendPoint(
                name=str(label),
                inspections=safe_integer(row.get("inspections", row.get("count"))),
                revenue=safe_float(row.get("revenue")),
                satisfaction=safe_float(row.get("satisfaction")),
            )
        )
    return points


def transform_regional(raw: object, *, limit: int = 5) -> list[RegionBreakdown]:
    """Return the busiest regions first, at most ``limit`` of them."""
    regions = [
        RegionBreakdown(
            region=str(row.get("region") or "Unknown"),
            inspections=safe_integer(row.get("inspections")),
            revenue=safe_float(row.get("revenue")),
            growth=safe_float(row.get("growth")),
        )
        for row in _rows(raw, name="regional")
    ]
    regions.sort(key=lambda region: region.inspections, reverse=True)
    return regions[: max(0, limit)]

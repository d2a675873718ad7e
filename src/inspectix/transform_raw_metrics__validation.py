"""Coerce the loose consolidated-metrics RPC payload into ``DashboardMetrics``."""

from __future__ import annotations

import json
from collections.abc import Mapping

from pydantic import ValidationError

from inspectix.errors import MetricValidationError
from inspectix.models import DashboardMetrics
from inspectix.safe_numbers import safe_float, safe_integer
from inspectix.utils.logger import get_logger

logger = get_logger(__name__)

_INT_FIELDS = {
    "inspection_counts": ("draft", "in_progress", "completed", "auditing", "total"),
    "time_analytics": ("total_with_times",),
    "ai_metrics": ("total_predictions",),
    "user_metrics": ("active_inspectors", "total_users", "auditors", "admins"),
    "revenue_metrics": ("completed_this_month",),
    "property_metrics": ("total_properties", "active_properties", "properties_with_inspections"),
    "media_metrics": ("total_photos",),
}
_FLOAT_FIELDS = {
    "inspection_counts": (),
    "time_analytics": ("avg_duration_minutes", "median_duration_minutes"),
    "ai_metrics": ("accuracy_rate", "ai_pass_rate", "human_pass_rate"),
    "user_metrics": (),
    "revenue_metrics": ("monthly_revenue", "total_revenue", "avg_revenue_per_day"),
    "property_metrics": (),
    "media_metrics": ("avg_photos_per_inspection",),
}
_REQUIRED_SECTIONS = ("inspection_counts", "user_metrics", "revenue_metrics")


def coerce_payload(raw: object, *, name: str) -> object:
    """Decode JSON text payloads; pass anything else through."""
    if isinstance(raw, str | bytes):
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise MetricValidationError(f"{name} payload is not valid JSON") from exc
    return raw


def _coerce_section(section: str, raw_section: object) -> dict[str, object] | None:
    if not isinstance(raw_section, Mapping):
        return None
    coerced: dict[str, object] = {}
    for field_name in _INT_FIELDS[section]:
        coerced[field_name] = safe_integer(raw_section.get(field_name))
    for field_name in _FLOAT_FIELDS[section]:
        coerced[field_name] = safe_float(raw_section.get(field_name))
    return coerced


def transform_raw_metrics(raw: object) -> DashboardMetrics:
    """Return typed metrics with safe numeric defaults for missing fields.

    Missing required sections become all-zero sections and missing optional
    sections become ``None``. Only a payload that is not an object at all is
    rejected.

    Raises:
        MetricValidationError: If the payload is not a JSON object.
    """
    payload = coerce_payload(raw, name="dashboard metrics")
    if not isinstance(payload, Mapping):
        logger.error(
            "Dashboard metrics payload has unexpected type %s", type(payload).__name__
        )
        raise MetricValidationError(
            "Invalid dashboard metrics data",
            details={"type": type(payload).__name__},
        )
    transformed: dict[str, object] = {}
    for section in _INT_FIELDS:
        coerced = _coerce_section(section, payload.get(section))
        if coerced is None and section in _REQUIRED_SECTIONS:
            coerced = _coerce_section(section, {})
        transformed[section] = coerced
    try:
        return DashboardMetrics.model_validate(transformed)
    except ValidationError as exc:
        raise MetricValidationError(
            "Failed to transform raw metrics",
            details=exc.errors(),
        ) from exc

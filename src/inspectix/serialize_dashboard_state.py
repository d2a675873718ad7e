"""JSON payloads for the dashboard API."""

from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder

from inspectix.metric_loader import DashboardMetricLoader
from inspectix.models import HealthSnapshot


def serialize_health(health: HealthSnapshot | None) -> dict[str, Any] | None:
    if health is None:
        return None
    payload = jsonable_encoder(health)
    payload["is_healthy"] = health.is_healthy
    return payload


def serialize_metric(loader: DashboardMetricLoader, key: str) -> dict[str, Any]:
    """Return one metric key's value and bookkeeping."""
    updated = loader.last_updated.get(key)
    return {
        "key": key,
        "value": jsonable_encoder(loader.metrics.get(key)),
        "loading": loader.loading_states.get(key, False),
        "error": loader.errors.get(key),
        "last_updated": updated.isoformat() if updated else None,
    }


def serialize_dashboard_state(loader: DashboardMetricLoader) -> dict[str, Any]:
    """Return the whole dashboard state as a JSON-ready dict."""
    return {
        "metrics": jsonable_encoder(loader.metrics),
        "health": serialize_health(loader.health),
        "is_loading": loader.is_loading,
        "is_initial_load": loader.is_initial_load,
        "loading_states": dict(loader.loading_states),
        "errors": dict(loader.errors),
        "has_errors": loader.has_errors,
        "last_updated": {key: value.isoformat() for key, value in loader.last_updated.items()},
        "data_issues": list(loader.state.data_issues),
        "time_range": loader.time_range.value,
    }

"""INSPECTIX dashboard data layer."""

from inspectix.app.wiring import build_dashboard_session
from inspectix.dashboard_session import DashboardSession
from inspectix.keyed_cache import KeyedCache
from inspectix.metric_keys import MetricKey, TimeRange
from inspectix.metric_loader import DashboardMetricLoader
from inspectix.priority import Priority
from inspectix.realtime_invalidator import RealtimeInvalidator

__all__ = [
    "DashboardMetricLoader",
    "DashboardSession",
    "KeyedCache",
    "MetricKey",
    "Priority",
    "RealtimeInvalidator",
    "TimeRange",
    "build_dashboard_session",
]


def main() -> None:
    """Run the dashboard API server."""
    from inspectix.api import main as serve

    serve()

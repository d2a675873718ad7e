"""Typed payload models exchanged with the backend and the API."""

from inspectix.models.breakdowns import RegionBreakdown, TrendPoint
from inspectix.models.dashboard_health import (
    DashboardHealth,
    DatabaseHealth,
    HealthSnapshot,
    PerformanceIndicators,
)
from inspectix.models.dashboard_metrics import (
    AIMetrics,
    DashboardMetrics,
    InspectionCounts,
    MediaMetrics,
    PropertyMetrics,
    RevenueMetrics,
    TimeAnalytics,
    UserMetrics,
)
from inspectix.models.kpis import DashboardKpis

__all__ = [
    "AIMetrics",
    "DashboardHealth",
    "DashboardKpis",
    "DashboardMetrics",
    "DatabaseHealth",
    "HealthSnapshot",
    "InspectionCounts",
    "MediaMetrics",
    "PerformanceIndicators",
    "PropertyMetrics",
    "RegionBreakdown",
    "RevenueMetrics",
    "TimeAnalytics",
    "TrendPoint",
    "UserMetrics",
]

"""Typed shape of the consolidated dashboard metrics RPC."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class InspectionCounts(_Frozen):
    draft: int = 0
    in_progress: int = 0
    completed: int = 0
    auditing: int = 0
    total: int = 0


class TimeAnalytics(_Frozen):
    avg_duration_minutes: float = 0.0
    median_duration_minutes: float = 0.0
    total_with_times: int = 0


class AIMetrics(_Frozen):
    accuracy_rate: float = 0.0
    total_predictions: int = 0
    ai_pass_rate: float = 0.0
    human_pass_rate: float = 0.0


class UserMetrics(_Frozen):
    active_inspectors: int = 0
    total_users: int = 0
    auditors: int = 0
    admins: int = 0


class RevenueMetrics(_Frozen):
    monthly_revenue: float = 0.0
    completed_this_month: int = 0
    total_revenue: float = 0.0
    avg_revenue_per_day: float = 0.0


class PropertyMetrics(_Frozen):
    total_properties: int = 0
    active_properties: int = 0
    properties_with_inspections: int = 0


class MediaMetrics(_Frozen):
    total_photos: int = 0
    avg_photos_per_inspection: float = 0.0


class DashboardMetrics(_Frozen):
    """Consolidated admin metrics after coercion.

    Only types are enforced here. Range and consistency problems are left to
    the data health check so that best-effort values still render.
    """

    inspection_counts: InspectionCounts
    time_analytics: TimeAnalytics | None = None
    ai_metrics: AIMetrics | None = None
    user_metrics: UserMetrics
    revenue_metrics: RevenueMetrics
    property_metrics: PropertyMetrics | None = None
    media_metrics: MediaMetrics | None = None

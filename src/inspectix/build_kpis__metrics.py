"""Derive headline KPIs from consolidated metrics."""

from __future__ import annotations

from inspectix.models import DashboardKpis, DashboardMetrics
from inspectix.safe_numbers import compute_rate


def build_kpis(metrics: DashboardMetrics) -> DashboardKpis:
    counts = metrics.inspection_counts
    users = metrics.user_metrics
    return DashboardKpis(
        total_inspections=counts.total,
        completed_inspections=counts.completed,
        completion_rate=compute_rate(counts.completed, counts.total),
        pending_audits=counts.in_progress + counts.auditing,
        avg_inspection_minutes=(
            round(metrics.time_analytics.avg_duration_minutes, 1)
            if metrics.time_analytics is not None
            else 0.0
        ),
        ai_accuracy=(
            round(metrics.ai_metrics.accuracy_rate, 1) if metrics.ai_metrics is not None else 0.0
        ),
        active_inspectors=users.active_inspectors,
        inspector_share=compute_rate(users.active_inspectors, users.total_users),
        monthly_revenue=metrics.revenue_metrics.monthly_revenue,
    )

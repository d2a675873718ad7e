"""Headline KPIs derived from consolidated metrics."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class DashboardKpis(BaseModel):
    """Card values for the overview. Rates are 0-100 percentages."""

    model_config = ConfigDict(frozen=True)

    total_inspections: int
    completed_inspections: int
    completion_rate: float
    pending_audits: int
    avg_inspection_minutes: float
    ai_accuracy: float
    active_inspectors: int
    inspector_share: float
    monthly_revenue: float

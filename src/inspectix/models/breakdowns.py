"""Trend series and regional breakdown rows."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class TrendPoint(BaseModel):
    """One bucket of the inspection/revenue/satisfaction trend."""

    model_config = ConfigDict(frozen=True)

    name: str
    inspections: int = 0
    revenue: float = 0.0
    satisfaction: float = 0.0


class RegionBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    region: str
    inspections: int = 0
    revenue: float = 0.0
    growth: float = 0.0

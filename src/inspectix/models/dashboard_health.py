"""Health RPC payload and the point-in-time snapshot built from it."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

_HEALTHY_STATUSES = frozenset({"connected", "healthy", "ok"})


class DatabaseHealth(BaseModel):
    model_config = ConfigDict(frozen=True)

    connection_status: str
    total_inspections: int = 0
    total_users: int = 0
    total_properties: int = 0
    total_checklist_items: int = 0
    rls_enabled: bool | None = None


class PerformanceIndicators(BaseModel):
    model_config = ConfigDict(frozen=True)

    query_duration_ms: float | None = None
    avg_query_time_ms: float = 0.0
    cache_hit_rate: float = 0.0
    concurrent_connections: int = 0


class DashboardHealth(BaseModel):
    """Validated body of the health RPC."""

    model_config = ConfigDict(frozen=True)

    database_health: DatabaseHealth
    performance_indicators: PerformanceIndicators = PerformanceIndicators()


class HealthSnapshot(BaseModel):
    """Backend connectivity as observed by one health check. Never mutated."""

    model_config = ConfigDict(frozen=True)

    connection_status: str
    query_duration_ms: float
    checked_at: datetime
    database: DatabaseHealth | None = None
    performance: PerformanceIndicators | None = None
    issues: tuple[str, ...] = ()
    paused_channels: tuple[str, ...] = ()

    @property
    def is_healthy(self) -> bool:
        return (
            self.connection_status.lower() in _HEALTHY_STATUSES
            and not self.issues
            and not self.paused_channels
        )

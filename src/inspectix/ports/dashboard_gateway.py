"""Remote data gateway port."""

from __future__ import annotations

from typing import Any, Protocol

RPC_DASHBOARD_METRICS = "get_admin_dashboard_metrics"
RPC_DASHBOARD_TRENDS = "get_admin_dashboard_trends"
RPC_REGIONAL_BREAKDOWN = "get_admin_regional_breakdown"
RPC_DASHBOARD_HEALTH = "get_admin_dashboard_health"


class DashboardGateway(Protocol):
    """Remote procedures backing the admin dashboard.

    Implementations return the decoded, still untyped RPC body and raise
    ``GatewayError`` on transport or query failures.
    """

    async def fetch_dashboard_metrics(self) -> Any:
        """Return consolidated counts, time, AI, user and revenue metrics."""

    async def fetch_trends(self, time_range: str) -> Any:
        """Return per-bucket inspection, revenue and satisfaction figures."""

    async def fetch_regional(self) -> Any:
        """Return per-region inspection count, revenue and growth."""

    async def fetch_health(self) -> Any:
        """Return the backend health-check payload."""

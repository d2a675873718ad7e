"""Gateway used when no backend is configured."""

from __future__ import annotations

from typing import Any, NoReturn

from inspectix.errors import GatewayError
from inspectix.ports.dashboard_gateway import (
    RPC_DASHBOARD_HEALTH,
    RPC_DASHBOARD_METRICS,
    RPC_DASHBOARD_TRENDS,
    RPC_REGIONAL_BREAKDOWN,
)

_MESSAGE = "No dashboard backend configured; set INSPECTIX_RPC_URL or INSPECTIX_POSTGRES_*"


def _fail(rpc: str) -> NoReturn:
    raise GatewayError(_MESSAGE, rpc=rpc)


class UnconfiguredGateway:
    async def fetch_dashboard_metrics(self) -> Any:
        _fail(RPC_DASHBOARD_METRICS)

    async def fetch_trends(self, time_range: str) -> Any:
        _fail(RPC_DASHBOARD_TRENDS)

    async def fetch_regional(self) -> Any:
        _fail(RPC_REGIONAL_BREAKDOWN)

    async def fetch_health(self) -> Any:
        _fail(RPC_DASHBOARD_HEALTH)

"""Dashboard gateway over a PostgREST-style ``/rest/v1/rpc`` endpoint."""

from __future__ import annotations

import asyncio
from typing import Any

import requests

from inspectix.build_rpc_retrying__gateway import build_rpc_retrying
from inspectix.config import Settings
from inspectix.errors import GatewayError, RateLimitError
from inspectix.ports.dashboard_gateway import (
    RPC_DASHBOARD_HEALTH,
    RPC_DASHBOARD_METRICS,
    RPC_DASHBOARD_TRENDS,
    RPC_REGIONAL_BREAKDOWN,
)
from inspectix.utils.logger import get_logger

logger = get_logger(__name__)

HTTP_STATUS_TOO_MANY_REQUESTS = 429
RPC_PATH = "/rest/v1/rpc"

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    RateLimitError,
    requests.ConnectionError,
    requests.Timeout,
)


def _auth_headers(api_key: str | None) -> dict[str, str]:
    headers = {"Accept": "application/json", "Content-Type": "application/json"}
    if api_key:
        headers["apikey"] = api_key
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


class RestRpcGateway:
    """POST each RPC as JSON and decode the JSON body."""

    def __init__(self, settings: Settings, *, session: requests.Session | None = None) -> None:
        if not settings.rpc_url:
            raise ValueError("rpc_url is required for the REST gateway")
        self.settings = settings
        self._session = session or requests.Session()
        self._base_url = f"{settings.rpc_url.rstrip('/')}{RPC_PATH}"

    async def fetch_dashboard_metrics(self) -> Any:
        return await self._call(RPC_DASHBOARD_METRICS)

    async def fetch_trends(self, time_range: str) -> Any:
        return await self._call(RPC_DASHBOARD_TRENDS, p_time_range=time_range)

    async def fetch_regional(self) -> Any:
        return await self._call(RPC_REGIONAL_BREAKDOWN)

    async def fetch_health(self) -> Any:
        return await self._call(RPC_DASHBOARD_HEALTH)

    def close(self) -> None:
        self._session.close()

    async def _call(self, rpc: str, **params: Any) -> Any:
        try:
            async for attempt in build_rpc_retrying(self.settings, TRANSIENT_ERRORS, logger):
                with attempt:
                    return await asyncio.to_thread(self._post, rpc, params)
        except RateLimitError:
            raise
        except requests.RequestException as exc:
            raise GatewayError(f"{rpc} request failed: {exc}", rpc=rpc) from exc
        raise GatewayError(f"{rpc} was not attempted", rpc=rpc)

    def _post(self, rpc: str, params: dict[str, Any]) -> Any:
        """Send one RPC request.

        Raises:
            RateLimitError: On HTTP 429.
            GatewayError: On any other non-success status or a non-JSON body.
        """

        response = self._session.post(
            f"{self._base_url}/{rpc}",
            json=params,
            headers=_auth_headers(self.settings.rpc_api_key),
            timeout=self.settings.rpc_timeout_s,
        )
        if response.status_code == HTTP_STATUS_TOO_MANY_REQUESTS:
            raise RateLimitError(f"{rpc} rate limited", response=response)
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise GatewayError(f"{rpc} returned HTTP {response.status_code}", rpc=rpc) from exc
        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError(f"{rpc} returned a non-JSON body", rpc=rpc) from exc

"""Dashboard gateway that calls the backend functions directly over psycopg2."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import connection as PgConnection  # noqa: N812

from inspectix.build_rpc_retrying__gateway import build_rpc_retrying
from inspectix.config import Settings
from inspectix.db.postgres_unit_of_work import PostgresUnitOfWork
from inspectix.errors import GatewayError
from inspectix.ports.dashboard_gateway import (
    RPC_DASHBOARD_HEALTH,
    RPC_DASHBOARD_METRICS,
    RPC_DASHBOARD_TRENDS,
    RPC_REGIONAL_BREAKDOWN,
)
from inspectix.utils.logger import get_logger

logger = get_logger(__name__)

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    psycopg2.OperationalError,
    psycopg2.InterfaceError,
)


def _function_call(rpc: str, params: dict[str, Any]) -> sql.Composed:
    arguments = sql.SQL(", ").join(
        sql.SQL("{} => %s").format(sql.Identifier(name)) for name in params
    )
    return sql.SQL("SELECT {}({})").format(sql.Identifier(rpc), arguments)


class PostgresRpcGateway:
    """Run each RPC as ``SELECT fn(...)`` on a short-lived read transaction."""

    def __init__(
        self,
        settings: Settings,
        *,
        connection_factory: Callable[..., PgConnection] = psycopg2.connect,
    ) -> None:
        self.settings = settings
        self._connection_factory = connection_factory

    async def fetch_dashboard_metrics(self) -> Any:
        return await self._call(RPC_DASHBOARD_METRICS)

    async def fetch_trends(self, time_range: str) -> Any:
        return await self._call(RPC_DASHBOARD_TRENDS, p_time_range=time_range)

    async def fetch_regional(self) -> Any:
        return await self._call(RPC_REGIONAL_BREAKDOWN)

    async def fetch_health(self) -> Any:
        return await self._call(RPC_DASHBOARD_HEALTH)

    async def _call(self, rpc: str, **params: Any) -> Any:
        try:
            async for attempt in build_rpc_retrying(self.settings, TRANSIENT_ERRORS, logger):
                with attempt:
                    return await asyncio.to_thread(self._call_sync, rpc, params)
        except psycopg2.Error as exc:
            raise GatewayError(f"{rpc} failed: {exc}", rpc=rpc) from exc
        raise GatewayError(f"{rpc} was not attempted", rpc=rpc)

    def _call_sync(self, rpc: str, params: dict[str, Any]) -> Any:
        unit_of_work = PostgresUnitOfWork(
            self.settings.postgres,
            connection_factory=self._connection_factory,
        )
        with unit_of_work as conn, conn.cursor() as cur:
            cur.execute(_function_call(rpc, params), tuple(params.values()))
            row = cur.fetchone()
        logger.debug("RPC %s returned %s", rpc, "no rows" if row is None else "a row")
        return None if row is None else row[0]

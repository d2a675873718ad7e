"""Compose a dashboard session from settings."""

from __future__ import annotations

from inspectix.config import Settings, get_settings
from inspectix.dashboard_session import DashboardSession
from inspectix.db.postgres_change_feed import PostgresChangeFeed
from inspectix.db.postgres_rpc_gateway import PostgresRpcGateway
from inspectix.infra.clients.rest_rpc_gateway import RestRpcGateway
from inspectix.infra.clients.unconfigured_gateway import UnconfiguredGateway
from inspectix.infra.in_memory_change_feed import InMemoryChangeFeed
from inspectix.keyed_cache import KeyedCache
from inspectix.metric_loader import DashboardMetricLoader
from inspectix.ports.change_feed import ChangeFeed
from inspectix.ports.dashboard_gateway import DashboardGateway
from inspectix.priority import Priority
from inspectix.realtime_invalidator import RealtimeInvalidator
from inspectix.utils.logger import get_logger

logger = get_logger(__name__)


def build_gateway(settings: Settings) -> DashboardGateway:
    if settings.rpc_url:
        return RestRpcGateway(settings)
    if settings.postgres_enabled:
        return PostgresRpcGateway(settings)
    logger.warning("No dashboard backend configured; every load will fail")
    return UnconfiguredGateway()


def build_change_feed(settings: Settings) -> ChangeFeed:
    if settings.postgres_enabled:
        return PostgresChangeFeed(settings)
    return InMemoryChangeFeed()


def build_dashboard_session(
    settings: Settings | None = None,
    *,
    gateway: DashboardGateway | None = None,
    feed: ChangeFeed | None = None,
) -> DashboardSession:
    """Wire a fresh cache, loader and invalidator into one session."""

    settings = settings or get_settings()
    cache = KeyedCache(
        capacity=settings.cache_capacity,
        default_ttl_s=settings.ttl_for(Priority.NORMAL),
        serve_stale_on_error=settings.cache_serve_stale,
    )
    loader = DashboardMetricLoader(gateway or build_gateway(settings), cache, settings)
    invalidator = RealtimeInvalidator(loader, feed or build_change_feed(settings), settings)
    return DashboardSession(loader, invalidator, settings)

"""Load dashboard metrics through the cache into per-session state."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from inspectix.build_kpis__metrics import build_kpis
from inspectix.config import Settings
from inspectix.dashboard_state import DashboardState
from inspectix.data_health_check__validation import (
    perform_data_health_check,
    validate_dashboard_health,
)
from inspectix.errors import StaleValueError
from inspectix.keyed_cache import KeyedCache
from inspectix.metric_keys import CONSOLIDATED_SLICES, MetricKey, TimeRange, cache_key
from inspectix.models import DashboardMetrics, HealthSnapshot
from inspectix.ports.dashboard_gateway import DashboardGateway
from inspectix.priority import Priority
from inspectix.transform_breakdowns__validation import transform_regional, transform_trends
from inspectix.transform_raw_metrics__validation import transform_raw_metrics
from inspectix.utils.logger import get_logger
from inspectix.utils.now import Now

logger = get_logger(__name__)

Loader = Callable[[], Awaitable[Any]]
MetricListener = Callable[[str], None]

_DEDICATED_LOADS = frozenset(
    {
        MetricKey.USER_METRICS,
        MetricKey.AI_METRICS,
        MetricKey.TRENDS,
        MetricKey.REGIONAL,
        MetricKey.HEALTH,
    }
)


@dataclass(frozen=True)
class LoaderPerformance:
    average_load_time_ms: float
    total_queries: int
    cache_hit_rate: float
    cache_size: int
    recent_load_times_ms: tuple[float, ...] = field(default_factory=tuple)
    health_status: str = "unknown"

    def as_dict(self) -> dict[str, Any]:
        return {
            "average_load_time_ms": self.average_load_time_ms,
            "total_queries": self.total_queries,
            "cache_hit_rate": self.cache_hit_rate,
            "cache_size": self.cache_size,
            "recent_load_times_ms": list(self.recent_load_times_ms),
            "health_status": self.health_status,
        }


class DashboardMetricLoader:
    """Fetch, validate and publish dashboard metrics for one mounted session.

    Every load of a key takes the next sequence number for that key; its
    result is written only while that number is still the newest and the
    loader has not been closed. Failures are recorded in ``errors`` and
    never raised to the caller; when the cache falls back to an expired
    value, that value is returned and kept while the error is still recorded.
    """

    def __init__(
        self,
        gateway: DashboardGateway,
        cache: KeyedCache,
        settings: Settings,
        *,
        clock: Callable[[], float] = Now.monotonic,
    ) -> None:
        self._gateway = gateway
        self._cache = cache
        self.settings = settings
        self._clock = clock
        self._state = DashboardState()
        self._sequences: dict[str, int] = {}
        self._alive = True
        self._listeners: list[MetricListener] = []
        self._load_times: deque[float] = deque(maxlen=max(1, settings.max_load_samples))
        self._total_queries = 0
        self._time_range = settings.time_range
        self._paused_channels: tuple[str, ...] = ()

    # Read-only exposure

    @property
    def state(self) -> DashboardState:
        return self._state

    @property
    def metrics(self) -> dict[str, Any]:
        return self._state.metrics

    @property
    def health(self) -> HealthSnapshot | None:
        return self._state.health

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def is_initial_load(self) -> bool:
        return self._state.is_initial_load

    @property
    def loading_states(self) -> dict[str, bool]:
        return self._state.loading_states

    @property
    def errors(self) -> dict[str, str | None]:
        return self._state.errors

    @property
    def has_errors(self) -> bool:
        return self._state.has_errors

    @property
    def last_updated(self) -> dict[str, datetime]:
        return self._state.last_updated

    @property
    def time_range(self) -> TimeRange:
        return self._time_range

    @property
    def is_alive(self) -> bool:
        return self._alive

    @property
    def cache(self) -> KeyedCache:
        return self._cache

    def add_listener(self, listener: MetricListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: MetricListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # Loads

    async def load_consolidated_metrics(
        self,
        *,
        skip_cache: bool = False,
        priority: Priority | str = Priority.NORMAL,
    ) -> DashboardMetrics | None:
        """Load the aggregate metrics and write every slice derived from them."""

        key = MetricKey.DASHBOARD_METRICS
        ttl_s = self.settings.ttl_for(priority)
        slice_sequences: dict[str, int] = {}

        async def produce() -> DashboardMetrics:
            # Slices taken here supersede older dedicated slice loads.
            for slice_key in CONSOLIDATED_SLICES:
                slice_sequences[slice_key] = self._supersede(slice_key)
            return await self._cached(key, self._fetch_consolidated, ttl_s, skip_cache)

        def apply(metrics: DashboardMetrics) -> None:
            report = perform_data_health_check(metrics)
            if report.issues:
                logger.warning("Data health issues: %s", "; ".join(report.issues))
            slices = {
                MetricKey.INSPECTION_COUNTS: metrics.inspection_counts,
                MetricKey.USER_METRICS: metrics.user_metrics,
                MetricKey.AI_METRICS: metrics.ai_metrics,
                MetricKey.REVENUE_METRICS: metrics.revenue_metrics,
                MetricKey.KPIS: build_kpis(metrics),
            }
            for slice_key, value in slices.items():
                if self._sequences.get(slice_key) == slice_sequences.get(slice_key):
                    self._write(slice_key, value)
                    if self._state.errors.get(slice_key):
                        self._state.errors[slice_key] = None
            self._write(key, metrics)
            self._state.data_issues = report.issues
            if self._state.health is not None:
                self._state.health = self._state.health.model_copy(
                    update={"issues": report.issues}
                )
            self._state.is_initial_load = False

        return await self._guarded_load(key, produce, apply=apply)

    async def load_metric_safely(
        self,
        key: str,
        loader: Loader,
        fallback: Any | None = None,
    ) -> Any | None:
        """Run ``loader`` for ``key`` and publish its result.

        Args:
            key: State key the result is written under.
            loader: Zero-argument coroutine function producing the value.
            fallback: Value published under ``key`` when ``loader`` fails.

        Returns:
            The loaded value, the fallback after a failure, or None.
        """

        return await self._guarded_load(str(key), loader, fallback=fallback)

    async def load_health_metrics(
        self, paused_channels: Iterable[str] | None = None
    ) -> HealthSnapshot | None:
        """Run the backend health check and replace the health snapshot.

        Failures are recorded under ``errors["health"]``; the previous
        snapshot stays in place. Health checks do not touch ``loading_states``.
        """

        if paused_channels is not None:
            self._paused_channels = tuple(sorted(paused_channels))

        async def produce() -> HealthSnapshot:
            started = self._clock()
            raw = await self._query(self._gateway.fetch_health)
            health = validate_dashboard_health(raw)
            return HealthSnapshot(
                connection_status=health.database_health.connection_status,
                query_duration_ms=round((self._clock() - started) * 1000, 2),
                checked_at=Now.as_datetime(),
                database=health.database_health,
                performance=health.performance_indicators,
                issues=self._state.data_issues,
                paused_channels=self._paused_channels,
            )

        def apply(snapshot: HealthSnapshot) -> None:
            self._state.health = snapshot
            if not snapshot.is_healthy:
                logger.warning(
                    "Dashboard health degraded: status=%s issues=%s paused=%s",
                    snapshot.connection_status,
                    len(snapshot.issues),
                    ",".join(snapshot.paused_channels) or "-",
                )

        return await self._guarded_load(
            MetricKey.HEALTH, produce, apply=apply, track_loading=False
        )

    async def load_trends(
        self,
        time_range: TimeRange | str | None = None,
        *,
        skip_cache: bool = False,
    ) -> list | None:
        if time_range is not None:
            self._time_range = TimeRange(time_range)
        selected = self._time_range

        async def fetch() -> list:
            return transform_trends(await self._query(self._gateway.fetch_trends, selected.value))

        async def produce() -> list:
            return await self._cached(
                cache_key(MetricKey.TRENDS, selected.value),
                fetch,
                self.settings.ttl_for(Priority.NORMAL),
                skip_cache,
            )

        return await self._guarded_load(MetricKey.TRENDS, produce)

    async def load_regional(self, *, skip_cache: bool = False) -> list | None:
        async def fetch() -> list:
            return transform_regional(
                await self._query(self._gateway.fetch_regional),
                limit=self.settings.regional_limit,
            )

        async def produce() -> list:
            return await self._cached(
                MetricKey.REGIONAL, fetch, self.settings.ttl_for(Priority.LOW), skip_cache
            )

        return await self._guarded_load(MetricKey.REGIONAL, produce)

    async def load_user_metrics(
        self, priority: Priority | str = Priority.NORMAL, *, skip_cache: bool = False
    ) -> Any | None:
        return await self._load_slice(
            MetricKey.USER_METRICS, lambda metrics: metrics.user_metrics, priority, skip_cache
        )

    async def load_ai_metrics(
        self, priority: Priority | str = Priority.NORMAL, *, skip_cache: bool = False
    ) -> Any | None:
        return await self._load_slice(
            MetricKey.AI_METRICS, lambda metrics: metrics.ai_metrics, priority, skip_cache
        )

    async def reload(
        self,
        key: str,
        priority: Priority | str = Priority.NORMAL,
        *,
        skip_cache: bool = False,
    ) -> Any | None:
        """Reload one metric key; keys without a dedicated load reload the aggregate."""

        if key == MetricKey.USER_METRICS:
            return await self.load_user_metrics(priority, skip_cache=skip_cache)
        if key == MetricKey.AI_METRICS:
            return await self.load_ai_metrics(priority, skip_cache=skip_cache)
        if key == MetricKey.TRENDS:
            return await self.load_trends(skip_cache=skip_cache)
        if key == MetricKey.REGIONAL:
            return await self.load_regional(skip_cache=skip_cache)
        if key == MetricKey.HEALTH:
            return await self.load_health_metrics()
        return await self.load_consolidated_metrics(skip_cache=skip_cache, priority=priority)

    async def refresh_metrics(self, keys: Iterable[str] = ()) -> None:
        """Invalidate and reload ``keys``, or everything when none are given."""

        if not self._alive:
            return
        requested = list(dict.fromkeys(str(key) for key in keys))
        if not requested:
            self.clear_cache()
            await asyncio.gather(
                self.load_consolidated_metrics(skip_cache=True, priority=Priority.HIGH),
                self.load_trends(skip_cache=True),
                self.load_regional(skip_cache=True),
            )
            return
        for key in requested:
            self._cache.invalidate(key)
        targets = list(dict.fromkeys(self._reload_target(key) for key in requested))
        logger.info("Refreshing %s", ", ".join(targets))
        await asyncio.gather(
            *(self.reload(key, Priority.HIGH, skip_cache=True) for key in targets)
        )

    async def retry_failed_metrics(self) -> None:
        failed = self._state.failed_keys()
        if not failed:
            return
        logger.info("Retrying failed metrics: %s", ", ".join(failed))
        await self.refresh_metrics(failed)

    def clear_cache(self) -> int:
        removed = self._cache.invalidate()
        logger.info("Dashboard cache cleared")
        return removed

    def performance(self) -> LoaderPerformance:
        samples = list(self._load_times)
        average = round(sum(samples) / len(samples), 2) if samples else 0.0
        cache_metrics = self._cache.metrics()
        health = self._state.health
        return LoaderPerformance(
            average_load_time_ms=average,
            total_queries=self._total_queries,
            cache_hit_rate=cache_metrics.hit_rate,
            cache_size=cache_metrics.cache_size,
            recent_load_times_ms=tuple(samples[-self.settings.recent_load_samples :]),
            health_status="unknown" if health is None else health.connection_status,
        )

    def close(self) -> None:
        """Stop publishing; completions that arrive later are dropped."""

        if not self._alive:
            return
        self._alive = False
        self._listeners.clear()
        logger.debug("Metric loader closed")

    # Internals

    async def _fetch_consolidated(self) -> DashboardMetrics:
        return transform_raw_metrics(await self._query(self._gateway.fetch_dashboard_metrics))

    async def _load_slice(
        self,
        key: MetricKey,
        select: Callable[[DashboardMetrics], Any],
        priority: Priority | str,
        skip_cache: bool,
    ) -> Any | None:
        async def fetch() -> Any:
            return select(await self._fetch_consolidated())

        async def produce() -> Any:
            return await self._cached(key, fetch, self.settings.ttl_for(priority), skip_cache)

        return await self._guarded_load(key, produce)

    async def _cached(self, key: str, fetch: Loader, ttl_s: float, skip_cache: bool) -> Any:
        if not skip_cache:
            return await self._cache.get(key, fetch, ttl_s=ttl_s)
        value = await fetch()
        if self._alive:
            self._cache.set(key, value, ttl_s)
        return value

    async def _query(self, call: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        self._total_queries += 1
        return await call(*args)

    async def _guarded_load(
        self,
        key: str,
        produce: Loader,
        *,
        apply: Callable[[Any], None] | None = None,
        fallback: Any | None = None,
        track_loading: bool = True,
    ) -> Any | None:
        if not self._alive:
            return None
        sequence = self._begin(key, track_loading=track_loading)
        started = self._clock()
        try:
            value = await produce()
        except asyncio.CancelledError:
            self._abandon(key, sequence)
            raise
        except Exception as exc:
            return self._fail(key, sequence, exc, started, fallback)
        if not self._is_current(key, sequence):
            logger.debug("Discarding superseded result for %s", key)
            return value
        elapsed_ms = (self._clock() - started) * 1000
        if apply is None:
            self._write(key, value)
        else:
            apply(value)
        self._state.errors[key] = None
        if track_loading:
            self._state.loading_states[key] = False
        self._load_times.append(round(elapsed_ms, 2))
        logger.debug("Loaded %s in %.1fms", key, elapsed_ms)
        self._notify(key)
        return value

    def _begin(self, key: str, *, track_loading: bool = True) -> int:
        sequence = self._sequences.get(key, 0) + 1
        self._sequences[key] = sequence
        if track_loading:
            self._state.loading_states[key] = True
        return sequence

    def _supersede(self, key: str) -> int:
        sequence = self._sequences.get(key, 0) + 1
        self._sequences[key] = sequence
        if self._state.loading_states.get(key):
            self._state.loading_states[key] = False
        return sequence

    def _is_current(self, key: str, sequence: int) -> bool:
        return self._alive and self._sequences.get(key) == sequence

    def _write(self, key: str, value: Any) -> None:
        self._state.metrics[key] = value
        self._state.last_updated[key] = Now.as_datetime()

    def _fail(
        self,
        key: str,
        sequence: int,
        exc: Exception,
        started: float,
        fallback: Any | None,
    ) -> Any | None:
        if not self._is_current(key, sequence):
            logger.debug("Discarding superseded failure for %s: %s", key, exc)
            return None
        elapsed_ms = (self._clock() - started) * 1000
        logger.error("Failed to load %s after %.1fms: %s", key, elapsed_ms, exc)
        self._state.errors[key] = str(exc) or type(exc).__name__
        if key in self._state.loading_states:
            self._state.loading_states[key] = False
        if isinstance(exc, StaleValueError):
            # Last known value stays published; last_updated keeps its old time.
            self._state.metrics.setdefault(key, exc.value)
            self._notify(key)
            return exc.value
        if fallback is None:
            return None
        self._write(key, fallback)
        self._notify(key)
        return fallback

    def _abandon(self, key: str, sequence: int) -> None:
        if self._is_current(key, sequence) and key in self._state.loading_states:
            self._state.loading_states[key] = False

    def _notify(self, key: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(key)
            except Exception:
                logger.exception("Metric listener failed for %s", key)

    @staticmethod
    def _reload_target(key: str) -> str:
        if key in _DEDICATED_LOADS:
            return key
        return MetricKey.DASHBOARD_METRICS

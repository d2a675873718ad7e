"""Lifecycle of one mounted dashboard: initial loads, subscriptions, health checks."""

from __future__ import annotations

import asyncio
import contextlib

from inspectix.config import Settings
from inspectix.metric_keys import TimeRange
from inspectix.metric_loader import DashboardMetricLoader
from inspectix.models import HealthSnapshot
from inspectix.priority import Priority
from inspectix.realtime_invalidator import RealtimeInvalidator
from inspectix.utils.logger import get_logger

logger = get_logger(__name__)


class DashboardSession:
    """Own the loader, the invalidator and the periodic health task.

    ``mount`` and ``unmount`` may each be called more than once; a session
    that has been unmounted cannot be mounted again.
    """

    def __init__(
        self,
        loader: DashboardMetricLoader,
        invalidator: RealtimeInvalidator,
        settings: Settings,
    ) -> None:
        self.loader = loader
        self.invalidator = invalidator
        self.settings = settings
        self._health_task: asyncio.Task | None = None
        self._mounted = False
        self._unmounted = False

    @property
    def is_mounted(self) -> bool:
        return self._mounted and not self._unmounted

    async def mount(self) -> None:
        if self._mounted or self._unmounted:
            return
        self._mounted = True
        logger.info("Mounting dashboard session")
        await self.loader.load_health_metrics()
        await asyncio.gather(
            self.loader.load_consolidated_metrics(priority=Priority.HIGH),
            self.loader.load_trends(),
            self.loader.load_regional(),
        )
        if self._unmounted:
            return
        await self.invalidator.start()
        if self._unmounted:
            await self.invalidator.stop()
            return
        if self.settings.health_check_interval_s > 0:
            self._health_task = asyncio.create_task(self._health_loop())

    async def unmount(self) -> None:
        if self._unmounted:
            return
        self._unmounted = True
        if self._health_task is not None:
            self._health_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._health_task
            self._health_task = None
        await self.invalidator.stop()
        self.loader.close()
        logger.info("Dashboard session unmounted")

    async def change_time_range(self, time_range: TimeRange | str) -> list | None:
        return await self.loader.load_trends(TimeRange(time_range))

    async def check_health(self) -> HealthSnapshot | None:
        """Resume paused channels, then record a health snapshot listing the rest."""

        await self.invalidator.reconnect_paused()
        return await self.loader.load_health_metrics(
            paused_channels=self.invalidator.paused_tables()
        )

    async def _health_loop(self) -> None:
        while True:
            await asyncio.sleep(self.settings.health_check_interval_s)
            try:
                await self.check_health()
            except Exception:
                logger.exception("Periodic health check failed")

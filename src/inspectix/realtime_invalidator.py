"""Turn table change notifications into cache invalidations and debounced reloads."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from functools import partial

from inspectix.config import Settings
from inspectix.errors import ChannelError
from inspectix.metric_loader import DashboardMetricLoader
from inspectix.ports.change_feed import ChangeChannel, ChangeEvent, ChangeFeed, ChannelStatus
from inspectix.priority import Priority
from inspectix.table_watch import DEFAULT_TABLE_WATCHES, TableWatch
from inspectix.utils.logger import get_logger

logger = get_logger(__name__)

_PRIORITY_RANK = {Priority.HIGH: 0, Priority.NORMAL: 1, Priority.LOW: 2}


class InvalidatorState(StrEnum):
    UNINITIALIZED = "uninitialized"
    SUBSCRIBED = "subscribed"
    UNSUBSCRIBED = "unsubscribed"


@dataclass
class _PendingReload:
    handle: asyncio.TimerHandle
    priority: Priority
    skip_cache: bool


class RealtimeInvalidator:
    """Subscribe to the watched tables for the lifetime of one session.

    Each change invalidates the dependent cache keys at once and schedules
    the reloads after a per-priority debounce. A burst of changes for the
    same key collapses into a single reload; high-priority changes reload
    immediately. ``stop`` is terminal.
    """

    def __init__(
        self,
        loader: DashboardMetricLoader,
        feed: ChangeFeed,
        settings: Settings,
        watches: Iterable[TableWatch] = DEFAULT_TABLE_WATCHES,
    ) -> None:
        self._loader = loader
        self._feed = feed
        self.settings = settings
        self._watches = {watch.table: watch for watch in watches}
        self._state = InvalidatorState.UNINITIALIZED
        self._channels: dict[str, ChangeChannel] = {}
        self._unopened: set[str] = set()
        self._pending: dict[str, _PendingReload] = {}
        self._reloads: set[asyncio.Task] = set()

    @property
    def state(self) -> InvalidatorState:
        return self._state

    @property
    def open_channel_count(self) -> int:
        return sum(
            1 for channel in self._channels.values() if channel.status is not ChannelStatus.CLOSED
        )

    @property
    def pending_reloads(self) -> tuple[str, ...]:
        return tuple(self._pending)

    def paused_tables(self) -> list[str]:
        paused = {
            table
            for table, channel in self._channels.items()
            if channel.status is ChannelStatus.PAUSED
        }
        return sorted(paused | self._unopened)

    async def start(self) -> None:
        if self._state is not InvalidatorState.UNINITIALIZED:
            return
        self._state = InvalidatorState.SUBSCRIBED
        for table in self._watches:
            await self._open(table)
            if self._state is not InvalidatorState.SUBSCRIBED:
                return
        logger.info(
            "Subscribed to %s/%s change channels", self.open_channel_count, len(self._watches)
        )

    async def stop(self) -> None:
        if self._state is InvalidatorState.UNSUBSCRIBED:
            return
        self._state = InvalidatorState.UNSUBSCRIBED
        for pending in self._pending.values():
            pending.handle.cancel()
        self._pending.clear()
        channels = list(self._channels.values())
        self._channels.clear()
        self._unopened.clear()
        for channel in channels:
            try:
                await channel.close()
            except Exception:
                logger.exception("Closing change channel for %s failed", channel.table)
        logger.info("Unsubscribed from %s change channels", len(channels))

    async def reconnect_paused(self) -> list[str]:
        """Try to resume paused channels and open the ones that never opened.

        Each resumed table is treated as changed, since events may have been
        missed while it was paused.

        Returns:
            Tables that are subscribed again.
        """

        if self._state is not InvalidatorState.SUBSCRIBED:
            return []
        resumed: list[str] = []
        for table in self.paused_tables():
            channel = self._channels.get(table)
            if channel is None:
                ok = await self._open(table)
            else:
                ok = await channel.reconnect()
            if self._state is not InvalidatorState.SUBSCRIBED:
                return resumed
            if ok:
                logger.info("Change channel for %s resumed", table)
                resumed.append(table)
                self._apply(self._watches[table])
        return resumed

    async def drain(self) -> None:
        """Wait for reloads that have already been launched."""

        while self._reloads:
            await asyncio.gather(*list(self._reloads), return_exceptions=True)

    async def _open(self, table: str) -> bool:
        watch = self._watches[table]
        try:
            channel = await self._feed.open(table, partial(self._on_change, watch))
        except ChannelError as exc:
            logger.warning("Change channel for %s unavailable: %s", table, exc)
            self._unopened.add(table)
            return False
        if self._state is not InvalidatorState.SUBSCRIBED:
            await channel.close()
            return False
        self._unopened.discard(table)
        self._channels[table] = channel
        return True

    def _on_change(self, watch: TableWatch, event: ChangeEvent) -> None:
        if self._state is not InvalidatorState.SUBSCRIBED:
            return
        logger.debug(
            "%s change on %s (row %s)", event.event_type, event.table, event.row_id or "-"
        )
        self._apply(watch)

    def _apply(self, watch: TableWatch) -> None:
        for key in watch.invalidates:
            self._loader.cache.invalidate(key)
        for key in watch.reloads:
            self._schedule(key, watch.priority, watch.skip_cache)

    def _schedule(self, key: str, priority: Priority, skip_cache: bool) -> None:
        pending = self._pending.pop(key, None)
        if pending is not None:
            pending.handle.cancel()
            skip_cache = skip_cache or pending.skip_cache
            if _PRIORITY_RANK[pending.priority] < _PRIORITY_RANK[priority]:
                priority = pending.priority
        delay = self.settings.debounce_for(priority)
        if delay <= 0:
            self._launch(key, priority, skip_cache)
            return
        handle = asyncio.get_running_loop().call_later(delay, self._fire, key)
        self._pending[key] = _PendingReload(handle=handle, priority=priority, skip_cache=skip_cache)

    def _fire(self, key: str) -> None:
        pending = self._pending.pop(key, None)
        if pending is None or self._state is not InvalidatorState.SUBSCRIBED:
            return
        self._launch(key, pending.priority, pending.skip_cache)

    def _launch(self, key: str, priority: Priority, skip_cache: bool) -> None:
        task = asyncio.ensure_future(self._loader.reload(key, priority, skip_cache=skip_cache))
        self._reloads.add(task)
        task.add_done_callback(self._reload_done)

    def _reload_done(self, task: asyncio.Task) -> None:
        self._reloads.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Reload task failed", exc_info=task.exception())

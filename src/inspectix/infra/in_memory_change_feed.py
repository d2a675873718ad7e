"""Process-local change feed for tests and backend-less runs."""

from __future__ import annotations

from collections import defaultdict

from inspectix.errors import ChannelError
from inspectix.ports.change_feed import ChangeEvent, ChangeHandler, ChangeType, ChannelStatus
from inspectix.utils.logger import get_logger

logger = get_logger(__name__)


class InMemoryChangeChannel:
    def __init__(self, feed: InMemoryChangeFeed, table: str, handler: ChangeHandler) -> None:
        self.table = table
        self._feed = feed
        self._handler = handler
        self._status = ChannelStatus.SUBSCRIBED

    @property
    def status(self) -> ChannelStatus:
        return self._status

    async def reconnect(self) -> bool:
        if self._status is ChannelStatus.PAUSED and self._feed.is_available(self.table):
            self._status = ChannelStatus.SUBSCRIBED
        return self._status is ChannelStatus.SUBSCRIBED

    async def close(self) -> None:
        self._status = ChannelStatus.CLOSED
        self._feed._discard(self)

    def deliver(self, event: ChangeEvent) -> bool:
        if self._status is not ChannelStatus.SUBSCRIBED:
            return False
        try:
            self._handler(event)
        except Exception:
            logger.exception("Change handler for %s failed", self.table)
        return True

    def pause(self) -> None:
        if self._status is ChannelStatus.SUBSCRIBED:
            self._status = ChannelStatus.PAUSED


class InMemoryChangeFeed:
    """Deliver published changes synchronously to subscribed channels.

    ``drop`` simulates a lost connection and ``set_available`` controls
    whether new subscriptions and reconnects succeed for a table.
    """

    def __init__(self) -> None:
        self._channels: dict[str, list[InMemoryChangeChannel]] = defaultdict(list)
        self._unavailable: set[str] = set()

    async def open(self, table: str, handler: ChangeHandler) -> InMemoryChangeChannel:
        if not self.is_available(table):
            raise ChannelError(f"Change feed for {table} is unavailable", table=table)
        channel = InMemoryChangeChannel(self, table, handler)
        self._channels[table].append(channel)
        return channel

    def publish(
        self,
        table: str,
        event_type: ChangeType | str = ChangeType.UPDATE,
        row_id: str | None = None,
    ) -> int:
        """Deliver one change to every subscribed channel on ``table``.

        Returns:
            Number of channels that received the event.
        """

        event = ChangeEvent(table=table, event_type=ChangeType(event_type), row_id=row_id)
        return sum(channel.deliver(event) for channel in list(self._channels.get(table, ())))

    def drop(self, table: str) -> None:
        for channel in self._channels.get(table, ()):
            channel.pause()

    def set_available(self, table: str, available: bool) -> None:
        if available:
            self._unavailable.discard(table)
        else:
            self._unavailable.add(table)

    def is_available(self, table: str) -> bool:
        return table not in self._unavailable

    @property
    def open_channel_count(self) -> int:
        return sum(len(channels) for channels in self._channels.values())

    def _discard(self, channel: InMemoryChangeChannel) -> None:
        channels = self._channels.get(channel.table)
        if channels and channel in channels:
            channels.remove(channel)

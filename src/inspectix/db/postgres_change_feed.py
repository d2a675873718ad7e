"""Change notifications over Postgres LISTEN/NOTIFY."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import connection as PgConnection  # noqa: N812

from inspectix.config import Settings
from inspectix.db._connection_kwargs import LISTEN_APPLICATION_NAME, _connection_kwargs
from inspectix.errors import ChannelError
from inspectix.ports.change_feed import ChangeEvent, ChangeHandler, ChannelStatus
from inspectix.utils.logger import get_logger

logger = get_logger(__name__)


def _decode_payload(payload: str) -> dict[str, Any]:
    if not payload:
        return {}
    try:
        body = json.loads(payload)
    except json.JSONDecodeError:
        logger.warning("Ignoring non-JSON notification payload: %r", payload[:200])
        return {}
    return body if isinstance(body, dict) else {}


class PostgresChangeChannel:
    """One listening connection for one table, read from the event loop."""

    def __init__(
        self,
        table: str,
        channel_name: str,
        handler: ChangeHandler,
        connect: Callable[[], PgConnection],
    ) -> None:
        self.table = table
        self.channel_name = channel_name
        self._handler = handler
        self._connect = connect
        self._conn: PgConnection | None = None
        self._fd: int | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._status = ChannelStatus.PAUSED

    @property
    def status(self) -> ChannelStatus:
        return self._status

    async def subscribe(self) -> None:
        """Open the connection and start listening.

        Raises:
            psycopg2.Error: If the connection or ``LISTEN`` fails.
        """

        conn = await asyncio.to_thread(self._listen)
        if self._status is ChannelStatus.CLOSED:
            conn.close()
            return
        self._loop = asyncio.get_running_loop()
        self._conn = conn
        self._fd = conn.fileno()
        self._loop.add_reader(self._fd, self._on_readable)
        self._status = ChannelStatus.SUBSCRIBED
        logger.info("Listening on %s for %s changes", self.channel_name, self.table)

    async def reconnect(self) -> bool:
        if self._status is ChannelStatus.CLOSED:
            return False
        if self._status is ChannelStatus.SUBSCRIBED:
            return True
        try:
            await self.subscribe()
        except (psycopg2.Error, ChannelError) as exc:
            logger.warning("Reconnect for %s failed: %s", self.table, exc)
            return False
        return self._status is ChannelStatus.SUBSCRIBED

    async def close(self) -> None:
        self._detach()
        self._status = ChannelStatus.CLOSED

    def _listen(self) -> PgConnection:
        conn = self._connect()
        conn.autocommit = True
        try:
            with conn.cursor() as cur:
                cur.execute(sql.SQL("LISTEN {}").format(sql.Identifier(self.channel_name)))
        except psycopg2.Error:
            conn.close()
            raise
        return conn

    def _on_readable(self) -> None:
        conn = self._conn
        if conn is None:
            return
        try:
            conn.poll()
        except psycopg2.Error as exc:
            self._pause(exc)
            return
        while conn.notifies:
            notify = conn.notifies.pop(0)
            event = ChangeEvent.from_payload(self.table, _decode_payload(notify.payload))
            try:
                self._handler(event)
            except Exception:
                logger.exception("Change handler for %s failed", self.table)

    def _pause(self, exc: Exception) -> None:
        logger.warning("Change channel for %s dropped: %s", self.table, exc)
        self._detach()
        self._status = ChannelStatus.PAUSED

    def _detach(self) -> None:
        conn, self._conn = self._conn, None
        fd, self._fd = self._fd, None
        if conn is None:
            return
        if fd is not None and self._loop is not None and not self._loop.is_closed():
            self._loop.remove_reader(fd)
        try:
            conn.close()
        except psycopg2.Error:
            logger.debug("Closing listener for %s failed", self.table, exc_info=True)


class PostgresChangeFeed:
    """Open one ``LISTEN <prefix>_<table>`` connection per watched table."""

    def __init__(
        self,
        settings: Settings,
        *,
        connection_factory: Callable[..., PgConnection] = psycopg2.connect,
    ) -> None:
        self.settings = settings
        self._connection_factory = connection_factory

    def channel_name(self, table: str) -> str:
        return f"{self.settings.notify_channel_prefix}_{table}"

    async def open(self, table: str, handler: ChangeHandler) -> PostgresChangeChannel:
        channel = PostgresChangeChannel(table, self.channel_name(table), handler, self._connect)
        try:
            await channel.subscribe()
        except psycopg2.Error as exc:
            raise ChannelError(f"Could not listen for {table} changes: {exc}", table=table) from exc
        return channel

    def _connect(self) -> PgConnection:
        kwargs = _connection_kwargs(
            self.settings.postgres, application_name=LISTEN_APPLICATION_NAME
        )
        if not kwargs:
            raise ChannelError("Postgres is not configured")
        return self._connection_factory(**kwargs)

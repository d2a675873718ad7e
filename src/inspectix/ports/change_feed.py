"""Change-notification channel abstraction."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Protocol

from inspectix.utils.now import Now


class ChangeType(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ChannelStatus(StrEnum):
    SUBSCRIBED = "subscribed"
    PAUSED = "paused"
    CLOSED = "closed"


@dataclass(frozen=True)
class ChangeEvent:
    """A row-level change pushed by the backend for one watched table."""

    table: str
    event_type: ChangeType
    row_id: str | None = None
    received_at: datetime = field(default_factory=Now.as_datetime)

    @classmethod
    def from_payload(cls, table: str, payload: Mapping[str, object]) -> ChangeEvent:
        """Build an event from a ``{"type": ..., "id": ...}`` notification body."""
        raw_type = str(payload.get("type") or payload.get("eventType") or "update").lower()
        try:
            event_type = ChangeType(raw_type)
        except ValueError:
            event_type = ChangeType.UPDATE
        row_id = payload.get("id")
        return cls(
            table=table,
            event_type=event_type,
            row_id=None if row_id is None else str(row_id),
        )


ChangeHandler = Callable[[ChangeEvent], None]


class ChangeChannel(Protocol):
    """Live subscription to one table's change notifications."""

    table: str

    @property
    def status(self) -> ChannelStatus:
        """Return whether notifications are flowing, paused or closed."""

    async def reconnect(self) -> bool:
        """Try to resume a paused channel; return True when subscribed again."""

    async def close(self) -> None:
        """Stop delivering notifications and release the connection."""


class ChangeFeed(Protocol):
    """Factory for per-table change channels."""

    async def open(self, table: str, handler: ChangeHandler) -> ChangeChannel:
        """Subscribe ``handler`` to changes on ``table``.

        Raises:
            ChannelError: If the subscription cannot be established.
        """

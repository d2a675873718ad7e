"""Load priority levels."""

from __future__ import annotations

from enum import StrEnum


class Priority(StrEnum):
    """Urgency of a load; maps to cache TTL and reload debounce via settings."""

    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

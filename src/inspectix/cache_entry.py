"""Cached value with its storage time and TTL."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True, frozen=True)
class CacheEntry:
    value: Any
    stored_at: float
    ttl_s: float

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at >= self.ttl_s

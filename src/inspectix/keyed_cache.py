"""Bounded TTL cache that coalesces concurrent fetches for the same key."""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from typing import Any

from inspectix.cache_entry import CacheEntry
from inspectix.cache_metrics import CacheMetrics
from inspectix.errors import StaleValueError
from inspectix.metric_keys import matches_cache_key
from inspectix.safe_numbers import compute_rate
from inspectix.utils.logger import get_logger
from inspectix.utils.now import Now

logger = get_logger(__name__)

Fetcher = Callable[[], Awaitable[Any]]

DEFAULT_CAPACITY = 100
DEFAULT_TTL_S = 300.0
_MISSING = object()


class KeyedCache:
    """In-process TTL cache owned by one dashboard session.

    Expired entries stay in place until they are replaced, invalidated or
    evicted so they can serve as a last-known-good fallback when a refetch
    fails. The fallback is delivered as a ``StaleValueError`` so callers
    can tell it apart from a fresh value. Eviction is oldest-stored first
    once ``capacity`` is exceeded.
    """

    def __init__(
        self,
        *,
        capacity: int = DEFAULT_CAPACITY,
        default_ttl_s: float = DEFAULT_TTL_S,
        serve_stale_on_error: bool = True,
        clock: Callable[[], float] = Now.monotonic,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._default_ttl_s = default_ttl_s
        self._serve_stale_on_error = serve_stale_on_error
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._in_flight: dict[str, asyncio.Task[Any]] = {}
        self._background: set[asyncio.Task[Any]] = set()
        self._hits = 0
        self._misses = 0
        self._coalesced = 0
        self._stale_served = 0
        self._evictions = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str, fetcher: Fetcher, ttl_s: float | None = None) -> Any:
        """Return the live value for ``key`` or fetch it once for all concurrent callers.

        Args:
            key: Cache key.
            fetcher: Zero-argument coroutine function producing the value.
            ttl_s: Lifetime of a freshly fetched value; the cache default if omitted.

        Returns:
            The cached or freshly fetched value.

        Raises:
            StaleValueError: The fetch failed and an expired value is available;
                the value is carried on the error.
            Exception: Whatever ``fetcher`` raised when there is no fallback.
        """
        entry = self._entries.get(key)
        if entry is not None and not entry.is_expired(self._clock()):
            self._hits += 1
            return entry.value
        task = self._in_flight.get(key)
        if task is None:
            self._misses += 1
            task = asyncio.ensure_future(self._fetch(key, fetcher, ttl_s))
            self._in_flight[key] = task
            self._background.add(task)
            task.add_done_callback(self._forget)
        else:
            self._coalesced += 1
        return await asyncio.shield(task)

    def peek(self, key: str) -> Any | None:
        """Return the live value for ``key`` without touching the counters."""
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl_s: float | None = None) -> None:
        """Store ``value`` unconditionally, superseding any in-flight fetch for ``key``."""
        self._in_flight.pop(key, None)
        self._store(key, value, ttl_s)

    def invalidate(self, key_or_prefix: str | None = None) -> int:
        """Remove one key and its qualified keys, or everything when no key is given.

        Returns:
            Number of removed entries.
        """
        if key_or_prefix is None:
            removed = len(self._entries)
            self._entries.clear()
            self._in_flight.clear()
            logger.info("Cache cleared (%s entries)", removed)
            return removed
        matched = [key for key in self._entries if matches_cache_key(key, key_or_prefix)]
        for key in matched:
            del self._entries[key]
        for key in [key for key in self._in_flight if matches_cache_key(key, key_or_prefix)]:
            del self._in_flight[key]
        if matched:
            logger.debug("Invalidated %s cache entries for %s", len(matched), key_or_prefix)
        return len(matched)

    def metrics(self) -> CacheMetrics:
        return CacheMetrics(
            hits=self._hits,
            misses=self._misses,
            coalesced=self._coalesced,
            stale_served=self._stale_served,
            hit_rate=compute_rate(self._hits, self._hits + self._misses),
            cache_size=len(self._entries),
            evictions=self._evictions,
        )

    async def _fetch(self, key: str, fetcher: Fetcher, ttl_s: float | None) -> Any:
        task = asyncio.current_task()
        try:
            value = await fetcher()
        except Exception as exc:
            if self._in_flight.get(key) is task:
                fallback = self._stale_value(key)
                if fallback is not _MISSING:
                    self._stale_served += 1
                    logger.warning("Fetch for %s failed; serving last known value: %s", key, exc)
                    raise StaleValueError(fallback, exc) from exc
            raise
        else:
            # A detached fetch (invalidated or superseded by set) must not store.
            if self._in_flight.get(key) is task:
                self._store(key, value, ttl_s)
            return value
        finally:
            if self._in_flight.get(key) is task:
                del self._in_flight[key]

    def _stale_value(self, key: str) -> Any:
        if not self._serve_stale_on_error:
            return _MISSING
        entry = self._entries.get(key)
        return _MISSING if entry is None else entry.value

    def _store(self, key: str, value: Any, ttl_s: float | None) -> None:
        ttl = self._default_ttl_s if ttl_s is None else ttl_s
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock(), ttl_s=ttl)
        self._entries.move_to_end(key)
        while len(self._entries) > self._capacity:
            evicted, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug("Evicted oldest cache entry %s", evicted)

    def _forget(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if not task.cancelled():
            # Mark the exception retrieved when every caller was cancelled.
            task.exception()

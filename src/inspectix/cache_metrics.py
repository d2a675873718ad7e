"""Counters reported by the keyed cache."""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass(slots=True, frozen=True)
class CacheMetrics:
    """Point-in-time cache counters.

    ``coalesced`` counts callers that joined an in-flight fetch; they are
    neither hits nor misses. ``hit_rate`` is a 0-100 percentage of hits over
    hits plus misses.
    """

    hits: int
    misses: int
    coalesced: int
    stale_served: int
    hit_rate: float
    cache_size: int
    evictions: int

    def as_dict(self) -> dict[str, object]:
        return asdict(self)

from __future__ import annotations

import asyncio
import copy
from collections import Counter

from inspectix.config import Settings, get_settings

SAMPLE_METRICS: dict[str, dict[str, object]] = {
    "inspection_counts": {
        "draft": 5,
        "in_progress": 10,
        "completed": 80,
        "auditing": 5,
        "total": 100,
    },
    "time_analytics": {
        "avg_duration_minutes": 45.5,
        "median_duration_minutes": 40,
        "total_with_times": 80,
    },
    "ai_metrics": {
        "accuracy_rate": 92.5,
        "total_predictions": 400,
        "ai_pass_rate": 88,
        "human_pass_rate": 90,
    },
    "user_metrics": {"active_inspectors": 12, "total_users": 40, "auditors": 3, "admins": 2},
    "revenue_metrics": {
        "monthly_revenue": 12500.0,
        "completed_this_month": 25,
        "total_revenue": 150000,
        "avg_revenue_per_day": 416.67,
    },
}

SAMPLE_HEALTH: dict[str, dict[str, object]] = {
    "database_health": {
        "connection_status": "connected",
        "total_inspections": 100,
        "total_users": 40,
    },
    "performance_indicators": {"avg_query_time_ms": 12.5, "cache_hit_rate": 97.0},
}

SAMPLE_TRENDS: list[dict[str, object]] = [
    {"name": "2026-10-01", "inspections": 4, "revenue": 1000, "satisfaction": 4.5},
    {"name": "2026-10-02", "inspections": 6, "revenue": 1500, "satisfaction": 4.7},
    {"date": "2026-10-03", "count": 3, "revenue": "750.5", "satisfaction": None},
]

SAMPLE_REGIONAL: list[dict[str, object]] = [
    {"region": "North", "inspections": 12, "revenue": 3000, "growth": 4.0},
    {"region": "South", "inspections": 30, "revenue": 7200, "growth": 9.5},
    {"region": "East", "inspections": 7, "revenue": 1600, "growth": -2.0},
    {"region": "West", "inspections": 22, "revenue": 5400, "growth": 1.5},
    {"region": "Central", "inspections": 3, "revenue": 800, "growth": 0.0},
    {"region": "Coast", "inspections": 18, "revenue": 4300, "growth": 6.1},
]


def make_settings(**overrides: object) -> Settings:
    defaults: dict[str, object] = {
        "rpc_url": "",
        "rpc_max_retries": 0,
        "rpc_retry_backoff_ms": 0,
        "default_time_range": "30d",
        "debounce_high_ms": 0,
        "debounce_normal_ms": 20,
        "debounce_low_ms": 40,
        "health_check_interval_s": 0,
        "cache_serve_stale": True,
        "api_token": "test-token",
    }
    defaults.update(overrides)
    return get_settings(**defaults)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGateway:
    """In-memory dashboard gateway with per-RPC failures and gates."""

    def __init__(
        self,
        metrics: object | None = None,
        *,
        health: object | None = None,
        trends: object | None = None,
        regional: object | None = None,
    ) -> None:
        self.payloads: dict[str, object] = {
            "metrics": copy.deepcopy(SAMPLE_METRICS) if metrics is None else metrics,
            "health": copy.deepcopy(SAMPLE_HEALTH) if health is None else health,
            "trends": copy.deepcopy(SAMPLE_TRENDS) if trends is None else trends,
            "regional": copy.deepcopy(SAMPLE_REGIONAL) if regional is None else regional,
        }
        self.calls: Counter[str] = Counter()
        self.failures: dict[str, Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.trend_ranges: list[str] = []

    async def fetch_dashboard_metrics(self) -> object:
        return await self._respond("metrics")

    async def fetch_trends(self, time_range: str) -> object:
        self.trend_ranges.append(time_range)
        return await self._respond("trends")

    async def fetch_regional(self) -> object:
        return await self._respond("regional")

    async def fetch_health(self) -> object:
        return await self._respond("health")

    async def _respond(self, name: str) -> object:
        self.calls[name] += 1
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        failure = self.failures.get(name)
        if failure is not None:
            raise failure
        return copy.deepcopy(self.payloads[name])


async def wait_until(predicate, timeout: float = 1.0, interval: float = 0.005) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()

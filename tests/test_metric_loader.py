import asyncio
import copy
import unittest

from inspectix.errors import GatewayError
from inspectix.keyed_cache import KeyedCache
from inspectix.metric_keys import MetricKey, TimeRange
from inspectix.metric_loader import DashboardMetricLoader
from inspectix.priority import Priority
from tests.dashboard_fakes import SAMPLE_METRICS, FakeClock, FakeGateway, make_settings


class MetricLoaderTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.settings = make_settings()
        self.clock = FakeClock()
        self.gateway = FakeGateway()
        self.cache = KeyedCache(capacity=100, default_ttl_s=300, clock=self.clock)
        self.loader = DashboardMetricLoader(
            self.gateway, self.cache, self.settings, clock=self.clock
        )


class ConsolidatedLoadTests(MetricLoaderTestCase):
    async def test_thirty_day_scenario(self) -> None:
        self.assertIs(self.loader.time_range, TimeRange.THIRTY_DAYS)

        first = await self.loader.load_consolidated_metrics()
        self.assertEqual(self.loader.metrics[MetricKey.KPIS].completion_rate, 80)

        second = await self.loader.load_consolidated_metrics()
        self.assertIs(first, second)
        self.assertEqual(self.gateway.calls["metrics"], 1)

        self.cache.invalidate(MetricKey.DASHBOARD_METRICS)
        await self.loader.load_consolidated_metrics()
        self.assertEqual(self.gateway.calls["metrics"], 2)

    async def test_writes_slices_and_bookkeeping(self) -> None:
        metrics = await self.loader.load_consolidated_metrics(priority=Priority.HIGH)

        state = self.loader.state
        self.assertIs(state.metrics[MetricKey.DASHBOARD_METRICS], metrics)
        self.assertIs(state.metrics[MetricKey.USER_METRICS], metrics.user_metrics)
        self.assertIs(state.metrics[MetricKey.INSPECTION_COUNTS], metrics.inspection_counts)
        self.assertFalse(self.loader.is_initial_load)
        self.assertFalse(self.loader.is_loading)
        self.assertIsNone(self.loader.errors[MetricKey.DASHBOARD_METRICS])
        self.assertIn(MetricKey.KPIS, self.loader.last_updated)
        self.assertEqual(state.data_issues, ())

    async def test_priority_selects_ttl(self) -> None:
        await self.loader.load_consolidated_metrics(priority=Priority.HIGH)
        self.clock.advance(61)
        await self.loader.load_consolidated_metrics(priority=Priority.HIGH)

        self.assertEqual(self.gateway.calls["metrics"], 2)

    async def test_skip_cache_fetches_and_stores_fresh_value(self) -> None:
        await self.loader.load_consolidated_metrics()
        fresh = await self.loader.load_consolidated_metrics(skip_cache=True)

        self.assertEqual(self.gateway.calls["metrics"], 2)
        self.assertIs(self.cache.peek(MetricKey.DASHBOARD_METRICS), fresh)

    async def test_failure_keeps_previous_data_and_records_error(self) -> None:
        previous = await self.loader.load_consolidated_metrics()
        self.cache.invalidate()
        self.gateway.failures["metrics"] = GatewayError("connection refused")

        with self.assertLogs("inspectix.metric_loader", level="ERROR"):
            result = await self.loader.load_consolidated_metrics()

        self.assertIsNone(result)
        self.assertIs(self.loader.metrics[MetricKey.DASHBOARD_METRICS], previous)
        self.assertEqual(self.loader.errors[MetricKey.DASHBOARD_METRICS], "connection refused")
        self.assertFalse(self.loader.loading_states[MetricKey.DASHBOARD_METRICS])
        self.assertTrue(self.loader.has_errors)

    async def test_stale_value_kept_with_error_when_refetch_fails(self) -> None:
        previous = await self.loader.load_consolidated_metrics()
        loaded_at = self.loader.last_updated[MetricKey.DASHBOARD_METRICS]
        self.clock.advance(301)
        self.gateway.failures["metrics"] = GatewayError("timeout")

        with self.assertLogs("inspectix.metric_loader", level="ERROR"):
            result = await self.loader.load_consolidated_metrics()

        self.assertIs(result, previous)
        self.assertIs(self.loader.metrics[MetricKey.DASHBOARD_METRICS], previous)
        self.assertEqual(self.loader.errors[MetricKey.DASHBOARD_METRICS], "timeout")
        self.assertTrue(self.loader.has_errors)
        self.assertIs(self.loader.last_updated[MetricKey.DASHBOARD_METRICS], loaded_at)
        self.assertFalse(self.loader.loading_states[MetricKey.DASHBOARD_METRICS])
        self.assertEqual(self.cache.metrics().stale_served, 1)

    async def test_retry_after_stale_fallback_clears_error(self) -> None:
        await self.loader.load_consolidated_metrics()
        self.clock.advance(301)
        self.gateway.failures["metrics"] = GatewayError("timeout")
        with self.assertLogs("inspectix.metric_loader", level="ERROR"):
            await self.loader.load_consolidated_metrics()

        del self.gateway.failures["metrics"]
        await self.loader.retry_failed_metrics()

        self.assertIsNone(self.loader.errors[MetricKey.DASHBOARD_METRICS])
        self.assertEqual(self.gateway.calls["metrics"], 3)

    async def test_data_issues_are_recorded_without_blocking(self) -> None:
        payload = copy.deepcopy(SAMPLE_METRICS)
        payload["inspection_counts"]["total"] = 50
        self.gateway.payloads["metrics"] = payload

        with self.assertLogs("inspectix.metric_loader", level="WARNING"):
            metrics = await self.loader.load_consolidated_metrics()

        self.assertIsNotNone(metrics)
        self.assertEqual(len(self.loader.state.data_issues), 1)
        self.assertEqual(self.loader.metrics[MetricKey.KPIS].completion_rate, 160.0)


class LoadMetricSafelyTests(MetricLoaderTestCase):
    async def test_fallback_is_published_on_failure(self) -> None:
        async def failing() -> dict[str, int]:
            raise RuntimeError("rpc failed")

        result = await self.loader.load_metric_safely("media", failing, fallback={"photos": 0})

        self.assertEqual(result, {"photos": 0})
        self.assertEqual(self.loader.metrics["media"], {"photos": 0})
        self.assertEqual(self.loader.errors["media"], "rpc failed")
        self.assertFalse(self.loader.loading_states["media"])

    async def test_loading_flag_tracks_newest_load(self) -> None:
        release = asyncio.Event()

        async def slow() -> str:
            await release.wait()
            return "done"

        task = asyncio.create_task(self.loader.load_metric_safely("media", slow))
        await asyncio.sleep(0)
        self.assertTrue(self.loader.loading_states["media"])
        self.assertTrue(self.loader.is_loading)

        release.set()
        self.assertEqual(await task, "done")
        self.assertFalse(self.loader.loading_states["media"])

    async def test_older_completion_does_not_overwrite_newer(self) -> None:
        old_release = asyncio.Event()
        new_release = asyncio.Event()

        async def old_load() -> str:
            await old_release.wait()
            return "old"

        async def new_load() -> str:
            await new_release.wait()
            return "new"

        old_task = asyncio.create_task(self.loader.load_metric_safely("media", old_load))
        await asyncio.sleep(0)
        new_task = asyncio.create_task(self.loader.load_metric_safely("media", new_load))
        await asyncio.sleep(0)

        new_release.set()
        await new_task
        self.assertEqual(self.loader.metrics["media"], "new")
        self.assertFalse(self.loader.loading_states["media"])

        old_release.set()
        await old_task
        self.assertEqual(self.loader.metrics["media"], "new")
        self.assertFalse(self.loader.loading_states["media"])

    async def test_superseded_failure_is_not_recorded(self) -> None:
        old_release = asyncio.Event()

        async def old_load() -> str:
            await old_release.wait()
            raise RuntimeError("stale failure")

        async def new_load() -> str:
            return "new"

        old_task = asyncio.create_task(self.loader.load_metric_safely("media", old_load))
        await asyncio.sleep(0)
        await self.loader.load_metric_safely("media", new_load)
        old_release.set()

        self.assertIsNone(await old_task)
        self.assertIsNone(self.loader.errors["media"])

    async def test_close_discards_late_results(self) -> None:
        release = asyncio.Event()

        async def slow() -> str:
            await release.wait()
            return "late"

        task = asyncio.create_task(self.loader.load_metric_safely("media", slow))
        await asyncio.sleep(0)
        self.loader.close()
        release.set()
        await task

        self.assertNotIn("media", self.loader.metrics)
        self.assertNotIn("media", self.loader.errors)
        called = False

        async def never() -> str:
            nonlocal called
            called = True
            return "x"

        self.assertIsNone(await self.loader.load_metric_safely("other", never))
        self.assertFalse(called)

    async def test_cancelled_load_clears_loading_flag(self) -> None:
        async def forever() -> str:
            await asyncio.Event().wait()
            return "never"

        task = asyncio.create_task(self.loader.load_metric_safely("media", forever))
        await asyncio.sleep(0)
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

        self.assertFalse(self.loader.loading_states["media"])

    async def test_listeners_receive_changed_keys(self) -> None:
        seen: list[str] = []
        self.loader.add_listener(seen.append)

        async def value() -> int:
            return 1

        await self.loader.load_metric_safely("media", value)
        self.loader.remove_listener(seen.append)
        await self.loader.load_metric_safely("media", value)

        self.assertEqual(seen, ["media"])


class HealthAndBreakdownTests(MetricLoaderTestCase):
    async def test_health_snapshot_lists_paused_channels_and_issues(self) -> None:
        payload = copy.deepcopy(SAMPLE_METRICS)
        payload["user_metrics"]["active_inspectors"] = 99
        self.gateway.payloads["metrics"] = payload
        await self.loader.load_consolidated_metrics()

        snapshot = await self.loader.load_health_metrics(paused_channels=["users"])

        self.assertEqual(snapshot.connection_status, "connected")
        self.assertEqual(snapshot.paused_channels, ("users",))
        self.assertEqual(len(snapshot.issues), 1)
        self.assertFalse(snapshot.is_healthy)
        self.assertNotIn(MetricKey.HEALTH, self.loader.loading_states)

    async def test_health_failure_keeps_previous_snapshot(self) -> None:
        previous = await self.loader.load_health_metrics()
        self.gateway.failures["health"] = GatewayError("health rpc failed")

        result = await self.loader.load_health_metrics()

        self.assertIsNone(result)
        self.assertIs(self.loader.health, previous)
        self.assertEqual(self.loader.errors["health"], "health rpc failed")

    async def test_health_snapshot_is_replaced_with_new_issues(self) -> None:
        first = await self.loader.load_health_metrics()
        payload = copy.deepcopy(SAMPLE_METRICS)
        payload["inspection_counts"]["total"] = 1
        self.gateway.payloads["metrics"] = payload
        await self.loader.load_consolidated_metrics()

        self.assertIsNot(self.loader.health, first)
        self.assertEqual(first.issues, ())
        self.assertEqual(len(self.loader.health.issues), 1)

    async def test_trends_are_cached_per_time_range(self) -> None:
        await self.loader.load_trends()
        await self.loader.load_trends(TimeRange.SEVEN_DAYS)
        await self.loader.load_trends("7d")

        self.assertEqual(self.gateway.trend_ranges, ["30d", "7d"])
        self.assertIs(self.loader.time_range, TimeRange.SEVEN_DAYS)
        self.assertEqual(len(self.loader.metrics[MetricKey.TRENDS]), 3)
        self.assertIsNotNone(self.cache.peek("trends:30d"))

    async def test_regional_is_limited_to_top_regions(self) -> None:
        regions = await self.loader.load_regional()

        self.assertEqual(len(regions), 5)
        self.assertEqual(regions[0].region, "South")


class RefreshTests(MetricLoaderTestCase):
    async def test_refresh_all_bypasses_cache(self) -> None:
        await self.loader.load_consolidated_metrics()
        await self.loader.load_trends()

        await self.loader.refresh_metrics()

        self.assertEqual(self.gateway.calls["metrics"], 2)
        self.assertEqual(self.gateway.calls["trends"], 2)
        self.assertEqual(self.gateway.calls["regional"], 1)

    async def test_refresh_selected_keys(self) -> None:
        await self.loader.load_consolidated_metrics()
        await self.loader.load_user_metrics()

        await self.loader.refresh_metrics([MetricKey.USER_METRICS, MetricKey.KPIS])

        self.assertEqual(self.gateway.calls["metrics"], 4)
        self.assertEqual(self.gateway.calls["trends"], 0)

    async def test_retry_failed_metrics(self) -> None:
        self.gateway.failures["metrics"] = GatewayError("down")
        await self.loader.load_consolidated_metrics()
        self.assertEqual(self.loader.state.failed_keys(), [MetricKey.DASHBOARD_METRICS])

        del self.gateway.failures["metrics"]
        await self.loader.retry_failed_metrics()

        self.assertFalse(self.loader.has_errors)
        self.assertIn(MetricKey.DASHBOARD_METRICS, self.loader.metrics)

    async def test_clear_cache(self) -> None:
        await self.loader.load_consolidated_metrics()
        await self.loader.load_regional()

        self.assertEqual(self.loader.clear_cache(), 2)
        self.assertEqual(len(self.cache), 0)

    async def test_performance_report(self) -> None:
        await self.loader.load_health_metrics()
        for _ in range(12):
            await self.loader.load_consolidated_metrics()

        report = self.loader.performance()

        self.assertEqual(report.total_queries, 2)
        self.assertEqual(len(report.recent_load_times_ms), 10)
        self.assertEqual(report.health_status, "connected")
        self.assertEqual(report.cache_hit_rate, 91.67)
        self.assertEqual(report.cache_size, 1)
        self.assertEqual(report.as_dict()["recent_load_times_ms"], [0.0] * 10)


if __name__ == "__main__":
    unittest.main()

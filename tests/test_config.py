import os
import unittest
from unittest.mock import patch

from inspectix.config import PostgresSettings, get_settings
from inspectix.db._connection_kwargs import _connection_kwargs
from inspectix.metric_keys import TimeRange, cache_key, matches_cache_key
from inspectix.priority import Priority


class SettingsTests(unittest.TestCase):
    def test_priority_maps_to_ttl_and_debounce(self) -> None:
        settings = get_settings(
            ttl_high_s=60,
            ttl_normal_s=300,
            debounce_high_ms=0,
            debounce_normal_ms=250,
            debounce_low_ms=1000,
        )

        self.assertEqual(settings.ttl_for(Priority.HIGH), 60)
        self.assertEqual(settings.ttl_for("normal"), 300)
        self.assertEqual(settings.debounce_for(Priority.HIGH), 0)
        self.assertEqual(settings.debounce_for(Priority.NORMAL), 0.25)
        self.assertEqual(settings.debounce_for(Priority.LOW), 1.0)

    def test_get_settings_rejects_unknown_overrides(self) -> None:
        with self.assertRaises(TypeError):
            get_settings(not_a_setting=1)
        with self.assertRaises(TypeError):
            get_settings(time_range="7d")

    def test_environment_is_read_when_settings_are_built(self) -> None:
        env = {
            "INSPECTIX_CACHE_CAPACITY": "7",
            "INSPECTIX_CACHE_SERVE_STALE": "off",
            "INSPECTIX_TTL_HIGH_S": "12.5",
            "INSPECTIX_RPC_URL": "  https://backend.example.com  ",
            "INSPECTIX_POSTGRES_HOST": "db.internal",
            "INSPECTIX_POSTGRES_PORT": "6543",
        }
        with patch.dict(os.environ, env):
            settings = get_settings()

        self.assertEqual(settings.cache_capacity, 7)
        self.assertFalse(settings.cache_serve_stale)
        self.assertEqual(settings.ttl_for(Priority.HIGH), 12.5)
        self.assertEqual(settings.rpc_url, "https://backend.example.com")
        self.assertEqual(settings.postgres.host, "db.internal")
        self.assertEqual(settings.postgres.port, 6543)

    def test_environment_changes_apply_to_later_settings(self) -> None:
        with patch.dict(os.environ, {"INSPECTIX_REGIONAL_LIMIT": "3"}):
            first = get_settings()
        with patch.dict(os.environ, {"INSPECTIX_REGIONAL_LIMIT": "8"}):
            second = get_settings()

        self.assertEqual(first.regional_limit, 3)
        self.assertEqual(second.regional_limit, 8)

    def test_overrides_win_over_environment(self) -> None:
        with patch.dict(os.environ, {"INSPECTIX_CACHE_CAPACITY": "7"}):
            settings = get_settings(cache_capacity=50)

        self.assertEqual(settings.cache_capacity, 50)

    def test_time_range_property(self) -> None:
        settings = get_settings(default_time_range="90d")

        self.assertIs(settings.time_range, TimeRange.NINETY_DAYS)
        self.assertEqual(settings.time_range.days, 90)


class ConnectionKwargsTests(unittest.TestCase):
    def test_dsn_wins(self) -> None:
        settings = PostgresSettings(
            dsn="postgresql://user@db/inspections", host="ignored", connect_timeout_s=5
        )

        self.assertEqual(
            _connection_kwargs(settings),
            {
                "dsn": "postgresql://user@db/inspections",
                "application_name": "inspectix-rpc",
                "connect_timeout": 5,
            },
        )

    def test_unset_credentials_are_left_to_libpq(self) -> None:
        settings = PostgresSettings(
            dsn=None, host="db.internal", db="inspections", user=None, password=None
        )

        kwargs = _connection_kwargs(settings, application_name="inspectix-listen")

        self.assertNotIn("user", kwargs)
        self.assertNotIn("password", kwargs)
        self.assertEqual(kwargs["application_name"], "inspectix-listen")
        self.assertEqual(kwargs["sslmode"], settings.sslmode)

    def test_host_and_database(self) -> None:
        settings = PostgresSettings(
            dsn=None,
            host="db.internal",
            port=6543,
            db="inspections",
            user="reader",
            password="secret",
        )

        kwargs = _connection_kwargs(settings)

        self.assertEqual(kwargs["host"], "db.internal")
        self.assertEqual(kwargs["port"], 6543)
        self.assertEqual(kwargs["dbname"], "inspections")
        self.assertEqual(kwargs["user"], "reader")
        self.assertEqual(kwargs["application_name"], "inspectix-rpc")
        self.assertTrue(settings.is_configured)

    def test_unconfigured(self) -> None:
        settings = PostgresSettings(dsn=None, host=None, db=None)

        self.assertIsNone(_connection_kwargs(settings))
        self.assertFalse(settings.is_configured)


class CacheKeyTests(unittest.TestCase):
    def test_qualified_keys(self) -> None:
        self.assertEqual(cache_key("trends", "30d"), "trends:30d")
        self.assertEqual(cache_key("regional"), "regional")
        self.assertTrue(matches_cache_key("trends:30d", "trends"))
        self.assertTrue(matches_cache_key("trends", "trends"))
        self.assertFalse(matches_cache_key("trends_daily", "trends"))


if __name__ == "__main__":
    unittest.main()

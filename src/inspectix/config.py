from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from dotenv import load_dotenv

from inspectix.metric_keys import TimeRange
from inspectix.priority import Priority

load_dotenv()


def _env(name: str, default: str | None = None, cast: Callable[[str], Any] = str) -> Any:
    """Return a dataclass field whose default is read from the environment per instance."""

    def read() -> Any:
        raw = os.getenv(name, default)
        return None if raw is None else cast(raw)

    return field(default_factory=read)


def _flag(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(slots=True)
class PostgresSettings:
    """PostgreSQL connection settings."""

    dsn: str | None = _env("INSPECTIX_POSTGRES_DSN")
    host: str | None = _env("INSPECTIX_POSTGRES_HOST")
    port: int = _env("INSPECTIX_POSTGRES_PORT", "5432", int)
    db: str | None = _env("INSPECTIX_POSTGRES_DB")
    user: str | None = _env("INSPECTIX_POSTGRES_USER")
    password: str | None = _env("INSPECTIX_POSTGRES_PASSWORD")
    sslmode: str = _env("INSPECTIX_POSTGRES_SSLMODE", "require")
    connect_timeout_s: int = _env("INSPECTIX_POSTGRES_CONNECT_TIMEOUT", "5", int)

    @property
    def is_configured(self) -> bool:
        """Return True when a DSN or a host and database name are set."""
        return bool(self.dsn or (self.host and self.db))


@dataclass(slots=True)
class Settings:
    """Central configuration for the dashboard data layer and its API."""

    api_token: str = _env("INSPECTIX_API_TOKEN", "local-dev-token")
    api_host: str = _env("INSPECTIX_API_HOST", "127.0.0.1")
    api_port: int = _env("INSPECTIX_API_PORT", "8000", int)

    rpc_url: str = _env("INSPECTIX_RPC_URL", "", str.strip)
    rpc_api_key: str | None = _env("INSPECTIX_RPC_API_KEY")
    rpc_timeout_s: int = _env("INSPECTIX_RPC_TIMEOUT_S", "15", int)
    rpc_max_retries: int = _env("INSPECTIX_RPC_MAX_RETRIES", "2", int)
    rpc_retry_backoff_ms: int = _env("INSPECTIX_RPC_RETRY_BACKOFF_MS", "250", int)

    postgres: PostgresSettings = field(default_factory=PostgresSettings)

    cache_capacity: int = _env("INSPECTIX_CACHE_CAPACITY", "100", int)
    cache_serve_stale: bool = _env("INSPECTIX_CACHE_SERVE_STALE", "1", _flag)
    ttl_high_s: float = _env("INSPECTIX_TTL_HIGH_S", "60", float)
    ttl_normal_s: float = _env("INSPECTIX_TTL_NORMAL_S", "300", float)
    ttl_low_s: float = _env("INSPECTIX_TTL_LOW_S", "900", float)

    debounce_high_ms: int = _env("INSPECTIX_DEBOUNCE_HIGH_MS", "0", int)
    debounce_normal_ms: int = _env("INSPECTIX_DEBOUNCE_NORMAL_MS", "250", int)
    debounce_low_ms: int = _env("INSPECTIX_DEBOUNCE_LOW_MS", "1000", int)

    health_check_interval_s: float = _env("INSPECTIX_HEALTH_INTERVAL_S", "60", float)
    default_time_range: str = _env("INSPECTIX_TIME_RANGE", TimeRange.THIRTY_DAYS.value)
    regional_limit: int = _env("INSPECTIX_REGIONAL_LIMIT", "5", int)
    recent_load_samples: int = 10
    max_load_samples: int = 500
    notify_channel_prefix: str = _env("INSPECTIX_NOTIFY_PREFIX", "dashboard_changes")
    log_level: str = _env("INSPECTIX_LOG_LEVEL", "INFO")

    def ttl_for(self, priority: Priority | str) -> float:
        """Return the cache TTL in seconds for a load priority."""
        return {
            Priority.HIGH: self.ttl_high_s,
            Priority.NORMAL: self.ttl_normal_s,
            Priority.LOW: self.ttl_low_s,
        }[Priority(priority)]

    def debounce_for(self, priority: Priority | str) -> float:
        """Return the reload debounce delay in seconds for a load priority."""
        delay_ms = {
            Priority.HIGH: self.debounce_high_ms,
            Priority.NORMAL: self.debounce_normal_ms,
            Priority.LOW: self.debounce_low_ms,
        }[Priority(priority)]
        return max(0, delay_ms) / 1000

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(self.default_time_range)

    @property
    def postgres_enabled(self) -> bool:
        return self.postgres.is_configured


def get_settings(**overrides: object) -> Settings:
    """Build settings from the environment, applying keyword overrides."""
    load_dotenv()
    settings = Settings()
    for name, value in overrides.items():
        if name not in Settings.__dataclass_fields__:
            raise TypeError(f"get_settings() got an unexpected keyword argument '{name}'")
        setattr(settings, name, value)
    return settings

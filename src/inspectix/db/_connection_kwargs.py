"""Build Postgres connection keyword arguments."""

from typing import Any

from inspectix.config import PostgresSettings

RPC_APPLICATION_NAME = "inspectix-rpc"
LISTEN_APPLICATION_NAME = "inspectix-listen"


def _connection_kwargs(
    settings: PostgresSettings, *, application_name: str = RPC_APPLICATION_NAME
) -> dict[str, Any] | None:
    """Return ``psycopg2.connect`` kwargs, or None when Postgres is not configured.

    A DSN wins over the discrete fields but still gets the connect timeout and
    the application name, so RPC and LISTEN sessions are told apart in
    ``pg_stat_activity``. Unset credentials are omitted to let libpq fall back
    to ``PGUSER``/``PGPASSWORD`` or ``.pgpass``.
    """
    if not settings.is_configured:
        return None
    kwargs: dict[str, Any] = {
        "application_name": application_name,
        "connect_timeout": settings.connect_timeout_s,
    }
    if settings.dsn:
        kwargs["dsn"] = settings.dsn
        return kwargs
    kwargs.update(host=settings.host, port=settings.port, dbname=settings.db)
    kwargs["sslmode"] = settings.sslmode
    if settings.user:
        kwargs["user"] = settings.user
    if settings.password:
        kwargs["password"] = settings.password
    return kwargs

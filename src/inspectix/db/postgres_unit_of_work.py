"""Postgres unit-of-work implementation."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import psycopg2
from psycopg2.extensions import connection as PgConnection  # noqa: N812

from inspectix.config import PostgresSettings
from inspectix.db._connection_kwargs import _connection_kwargs
from inspectix.errors import GatewayError


@dataclass
class PostgresUnitOfWork:
    """Run dashboard RPCs inside one read-only transaction per connection."""

    settings: PostgresSettings
    connection_factory: Callable[..., PgConnection] = psycopg2.connect
    _conn: PgConnection | None = None
    _active: bool = False

    def begin(self) -> PgConnection:
        if self._conn is not None:
            return self._conn
        kwargs = _connection_kwargs(self.settings)
        if not kwargs:
            raise GatewayError("Postgres is not configured")
        self._conn = self.connection_factory(**kwargs)
        self._conn.set_session(readonly=True, autocommit=False)
        self._active = True
        return self._conn

    def commit(self) -> None:
        if self._conn is None or not self._active:
            return
        self._conn.commit()
        self._active = False

    def rollback(self) -> None:
        if self._conn is None or not self._active:
            return
        self._conn.rollback()
        self._active = False

    def close(self) -> None:
        if self._conn is None:
            return
        if self._active:
            self.rollback()
        self._conn.close()
        self._conn = None

    def __enter__(self) -> PgConnection:
        return self.begin()

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self.close()

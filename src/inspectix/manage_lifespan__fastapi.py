"""FastAPI lifespan hook that mounts one dashboard session per application."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI

from inspectix.app.wiring import build_dashboard_session
from inspectix.config import Settings, get_settings
from inspectix.dashboard_session import DashboardSession
from inspectix.utils.logger import set_level

SessionFactory = Callable[[Settings], DashboardSession]


def build_lifespan(
    session_factory: SessionFactory = build_dashboard_session,
    settings: Settings | None = None,
):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Mount the dashboard session on startup and unmount it on shutdown."""
        resolved = settings or get_settings()
        set_level(resolved.log_level)
        session = session_factory(resolved)
        app.state.settings = resolved
        app.state.session = session
        await session.mount()
        try:
            yield
        finally:
            await session.unmount()

    return lifespan


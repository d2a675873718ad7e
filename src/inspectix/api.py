from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import cast

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.responses import StreamingResponse
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware

from inspectix.app.wiring import build_dashboard_session
from inspectix.config import Settings, get_settings
from inspectix.dashboard_session import DashboardSession
from inspectix.format_sse__api_streaming import KEEP_ALIVE, _format_sse
from inspectix.manage_lifespan__fastapi import SessionFactory, build_lifespan
from inspectix.metric_keys import MetricKey, TimeRange
from inspectix.require_api_token__request_auth import require_api_token
from inspectix.serialize_dashboard_state import serialize_dashboard_state, serialize_metric
from inspectix.utils.logger import get_logger
from inspectix.utils.now import Now

logger = get_logger(__name__)

_HEALTH_SERVICE = "inspectix"
_HEALTH_VERSION = "0.1.0"
_STREAM_KEEP_ALIVE_S = 15.0

router = APIRouter(prefix="/api")


def _get_session(request: Request) -> DashboardSession:
    return request.app.state.session


@router.get("/health")
def health() -> dict[str, str]:
    return {
        "status": "ok",
        "service": _HEALTH_SERVICE,
        "version": _HEALTH_VERSION,
        "timestamp": Now.as_datetime().isoformat(),
    }


@router.get("/dashboard")
def dashboard(session: DashboardSession = Depends(_get_session)) -> dict[str, object]:
    return serialize_dashboard_state(session.loader)


@router.get("/dashboard/performance")
def dashboard_performance(
    session: DashboardSession = Depends(_get_session),
) -> dict[str, object]:
    payload = session.loader.performance().as_dict()
    payload["cache"] = session.loader.cache.metrics().as_dict()
    payload["paused_channels"] = session.invalidator.paused_tables()
    return payload


@router.post("/dashboard/refresh")
async def refresh_dashboard(
    keys: list[str] | None = Query(None),
    session: DashboardSession = Depends(_get_session),
) -> dict[str, object]:
    await session.loader.refresh_metrics(keys or ())
    return serialize_dashboard_state(session.loader)


@router.post("/dashboard/retry")
async def retry_dashboard(session: DashboardSession = Depends(_get_session)) -> dict[str, object]:
    await session.loader.retry_failed_metrics()
    return serialize_dashboard_state(session.loader)


@router.delete("/dashboard/cache")
def clear_dashboard_cache(
    session: DashboardSession = Depends(_get_session),
) -> dict[str, object]:
    removed = session.loader.clear_cache()
    return {"status": "ok", "removed": removed}


@router.get("/dashboard/trends")
async def dashboard_trends(
    time_range: TimeRange | None = Query(None),
    session: DashboardSession = Depends(_get_session),
) -> dict[str, object]:
    if time_range is not None:
        await session.change_time_range(time_range)
    elif MetricKey.TRENDS not in session.loader.metrics:
        await session.loader.load_trends()
    payload = serialize_metric(session.loader, MetricKey.TRENDS)
    payload["time_range"] = session.loader.time_range.value
    return payload


@router.get("/dashboard/regional")
async def dashboard_regional(
    session: DashboardSession = Depends(_get_session),
) -> dict[str, object]:
    await session.loader.load_regional()
    return serialize_metric(session.loader, MetricKey.REGIONAL)


async def _dashboard_events(
    request: Request,
    session: DashboardSession,
    keep_alive_s: float = _STREAM_KEEP_ALIVE_S,
) -> AsyncIterator[bytes]:
    """Yield a state snapshot, then one event per metric key that changes."""
    queue: asyncio.Queue[str] = asyncio.Queue()
    session.loader.add_listener(queue.put_nowait)
    try:
        yield _format_sse("snapshot", serialize_dashboard_state(session.loader))
        while not await request.is_disconnected():
            try:
                key = await asyncio.wait_for(queue.get(), timeout=keep_alive_s)
            except TimeoutError:
                yield KEEP_ALIVE
                continue
            yield _format_sse("metric_update", serialize_metric(session.loader, key))
    finally:
        session.loader.remove_listener(queue.put_nowait)


@router.get("/dashboard/stream")
def stream_dashboard(
    request: Request,
    session: DashboardSession = Depends(_get_session),
) -> StreamingResponse:
    return StreamingResponse(
        _dashboard_events(request, session),
        media_type="text/event-stream",
    )


def create_app(
    session_factory: SessionFactory = build_dashboard_session,
    settings: Settings | None = None,
) -> FastAPI:
    """Build the dashboard API with its own session lifecycle."""
    application = FastAPI(
        title="inspectix",
        version=_HEALTH_VERSION,
        dependencies=[Depends(require_api_token)],
        lifespan=build_lifespan(session_factory, settings),
        middleware=[
            Middleware(
                cast("type[object]", CORSMiddleware),
                allow_origins=["*"],
                allow_methods=["*"],
                allow_headers=["*"],
            )
        ],
    )
    application.include_router(router)
    return application


app = create_app()


def main() -> None:
    """Serve the dashboard API with uvicorn."""
    settings = get_settings()
    logger.info("Starting inspectix API on %s:%s", settings.api_host, settings.api_port)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()

"""Request authentication for the dashboard API."""

from __future__ import annotations

import secrets

from fastapi import HTTPException, Request, status

from inspectix.config import Settings, get_settings
from inspectix.extract_api_token__request_auth import _extract_api_token

PUBLIC_PATHS = frozenset({"/api/health"})


def require_api_token(request: Request) -> None:
    """Raise HTTP 401 when the request token is missing or invalid."""
    if request.url.path in PUBLIC_PATHS:
        return
    settings: Settings = getattr(request.app.state, "settings", None) or get_settings()
    supplied = _extract_api_token(request)
    if not supplied or not secrets.compare_digest(supplied, settings.api_token):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

"""Format Server-Sent Events payloads."""

from __future__ import annotations

import json

from fastapi.encoders import jsonable_encoder

KEEP_ALIVE = b": keep-alive\n\n"


def _format_sse(event: str, payload: dict[str, object]) -> bytes:
    """Return an SSE-formatted payload as bytes."""
    return f"event: {event}\ndata: {json.dumps(jsonable_encoder(payload))}\n\n".encode()

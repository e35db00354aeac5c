"""Server-Sent Events framing."""

import json
from typing import Any

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

DONE_FRAME = "data: [DONE]\n\n"


def _dumps(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False)


def data_frame(payload: Any) -> str:
    """Frame an unnamed event: ``data: <json>``."""
    return f"data: {_dumps(payload)}\n\n"


def event_frame(event: str, payload: Any) -> str:
    """Frame a named event: ``event: <name>`` followed by ``data: <json>``."""
    return f"event: {event}\ndata: {_dumps(payload)}\n\n"

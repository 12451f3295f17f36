# accountshop/core/sse.py
import json
from typing import Any

from fastapi.encoders import jsonable_encoder

KEEPALIVE_SECONDS = 15.0


def sse_event(data: Any, event: str | None = None) -> str:
    """Format one Server-Sent Events frame."""
    lines = []
    if event:
        lines.append(f"event: {event}")
    lines.append(f"data: {json.dumps(jsonable_encoder(data))}")
    return "\n".join(lines) + "\n\n"


def sse_comment(text: str = "keep-alive") -> str:
    return f": {text}\n\n"

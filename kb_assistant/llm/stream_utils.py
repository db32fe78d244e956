# FILE: kb_assistant/llm/stream_utils.py
"""
Stream utilities - SSE framing helpers for stream_router.py
"""

import json
from typing import Any, Dict

SSE_DONE = "data: [DONE]\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

# Shown to clients; the real cause goes to the log
GENERIC_ERROR = "Something went wrong"


def sse_frame(payload: Dict[str, Any]) -> str:
    """One `data: <json>` frame."""
    return "data: " + json.dumps(payload) + "\n\n"


def content_frame(text: str) -> str:
    return sse_frame({"content": text})


def error_frame(message: str) -> str:
    return sse_frame({"error": message})

"""Stream frames sent to the storefront over SSE.

Each frame is one JSON object in an SSE ``data:`` line. The stream ends
with the ``[DONE]`` sentinel after a successful turn, or with a single
error frame when the turn fails.
"""

from typing import Any

DONE = "[DONE]"

Frame = dict[str, Any] | str


def text_frame(text: str) -> dict[str, Any]:
    return {"text": text}


def visual_frame(data: dict[str, Any]) -> dict[str, Any]:
    return {"type": "visual", "data": data}


def error_frame(message: str) -> dict[str, Any]:
    return {"error": message}

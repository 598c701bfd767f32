"""Event frame codec for the completion gateway stream.

Every frame is one ``data: <payload>\\n\\n`` unit. Payloads are either a JSON
object with a ``content`` or ``error`` key, or the literal ``[DONE]``
sentinel that always ends the stream.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

FRAME_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
DONE_FRAME = f"{FRAME_PREFIX}{DONE_SENTINEL}\n\n"


class FrameKind(str, Enum):
    CONTENT = "content"
    ERROR = "error"
    DONE = "done"


@dataclass(frozen=True)
class Frame:
    """Decoded event frame."""

    kind: FrameKind
    text: str = ""


class MalformedFrameError(ValueError):
    """Raised when a data line carries a payload that cannot be decoded."""


def format_frame(payload: dict[str, Any]) -> str:
    """Format a JSON payload as an event frame.

    Example:
        >>> format_frame({"content": "Hi"})
        'data: {"content": "Hi"}\\n\\n'
    """
    return f"{FRAME_PREFIX}{json.dumps(payload, ensure_ascii=False)}\n\n"


def content_frame(fragment: str) -> str:
    return format_frame({"content": fragment})


def error_frame(message: str) -> str:
    return format_frame({"error": message})


def parse_frame(line: str) -> Frame | None:
    """Decode one line of the stream.

    Args:
        line: A single line with the trailing newline removed

    Returns:
        The decoded frame, or None for blank lines, lines without the data
        prefix, and payloads that carry neither content nor an error

    Raises:
        MalformedFrameError: If the payload is not valid JSON or not an object
    """
    if not line.startswith(FRAME_PREFIX):
        return None

    data = line[len(FRAME_PREFIX) :].strip()
    if not data:
        return None
    if data == DONE_SENTINEL:
        return Frame(FrameKind.DONE)

    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        raise MalformedFrameError(f"Invalid frame payload: {data[:80]!r}") from e

    if not isinstance(payload, dict):
        raise MalformedFrameError(f"Frame payload is not an object: {data[:80]!r}")

    if payload.get("content"):
        return Frame(FrameKind.CONTENT, str(payload["content"]))
    if payload.get("error"):
        return Frame(FrameKind.ERROR, str(payload["error"]))
    return None

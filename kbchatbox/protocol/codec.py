"""Line-delimited JSON codec for the keybase chat API."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from loguru import logger

from kbchatbox.bus.events import OutboundRequest
from kbchatbox.errors import TransportError


@dataclass(frozen=True)
class ParseFailure:
    """A line that is not valid JSON."""

    line: str
    reason: str


def parse_line(text: str) -> Any | ParseFailure:
    """Parse one line of output. Malformed input is logged and returned as a ParseFailure."""
    try:
        return json.loads(text.strip())
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning("Parse error: {} (line: {!r})", e, text[:200])
        return ParseFailure(line=text, reason=str(e))


def serialize(request: OutboundRequest) -> str:
    """Render a request as one compact JSON line, newline-terminated."""
    try:
        line = json.dumps(request.payload, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise TransportError(f"Cannot serialize request: {e}") from e
    return line + "\n"


def describe(value: Any) -> str:
    """Pretty JSON for log output."""
    try:
        return json.dumps(value, indent=2, ensure_ascii=False)
    except (TypeError, ValueError):
        return "[unserializable]"

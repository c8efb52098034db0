"""Shared fixtures: fake keybase processes, sample payloads, log capture."""

from __future__ import annotations

import json
import sys
import textwrap
from pathlib import Path
from typing import Any, Callable

import pytest
from loguru import logger

from kbchatbox.config.schema import Config, KeybaseConfig, NotificationConfig


# ============================================================================
# Fake keybase processes
# ============================================================================

# Writes the lines of argv[1] to stdout, then stays alive for argv[2] seconds.
LISTENER_SOURCE = """
import sys
import time

with open(sys.argv[1], encoding="utf-8") as f:
    for line in f:
        sys.stdout.write(line)
        sys.stdout.flush()
time.sleep(float(sys.argv[2]))
"""

# Answers each request line with the reply stored under its method in argv[1]
# and appends every received line to argv[2].
API_SOURCE = """
import json
import sys

with open(sys.argv[1], encoding="utf-8") as f:
    replies = json.load(f)

while True:
    line = sys.stdin.readline()
    if not line:
        break
    with open(sys.argv[2], "a", encoding="utf-8") as log:
        log.write(line)
    method = json.loads(line).get("method", "")
    reply = replies.get(method, {"result": {"message": "ok"}})
    sys.stdout.write(reply if isinstance(reply, str) else json.dumps(reply))
    sys.stdout.write("\\n")
    sys.stdout.flush()
"""


class FakeKeybase:
    """Builds commands running the fake listener/API scripts in a temp dir."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.listener_script = root / "fake_listener.py"
        self.api_script = root / "fake_api.py"
        self.listener_script.write_text(textwrap.dedent(LISTENER_SOURCE), encoding="utf-8")
        self.api_script.write_text(textwrap.dedent(API_SOURCE), encoding="utf-8")
        self.request_log = root / "requests.jsonl"
        self.request_log.touch()

    def listener_args(self, lines: list[str], hold: float = 0.0) -> list[str]:
        events = self.root / "events.jsonl"
        events.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
        return [str(self.listener_script), str(events), str(hold)]

    def listener_command(self, lines: list[str], hold: float = 0.0) -> list[str]:
        return [sys.executable, *self.listener_args(lines, hold)]

    def api_args(self, replies: dict[str, Any] | None = None) -> list[str]:
        path = self.root / "replies.json"
        path.write_text(json.dumps(replies or {}), encoding="utf-8")
        return [str(self.api_script), str(path), str(self.request_log)]

    def api_command(self, replies: dict[str, Any] | None = None) -> list[str]:
        return [sys.executable, *self.api_args(replies)]

    def received(self) -> list[dict[str, Any]]:
        text = self.request_log.read_text(encoding="utf-8")
        return [json.loads(line) for line in text.splitlines() if line]

    def config(
        self,
        events: list[str] | None = None,
        replies: dict[str, Any] | None = None,
        hold: float = 5.0,
    ) -> Config:
        """A Config whose keybase binary is the Python interpreter running the fakes."""
        return Config(
            keybase=KeybaseConfig(
                binary=sys.executable,
                listen_args=self.listener_args(events or [], hold),
                api_args=self.api_args(replies),
            ),
            notification=NotificationConfig(enabled=False),
        )


@pytest.fixture
def fake_keybase(tmp_path: Path) -> FakeKeybase:
    return FakeKeybase(tmp_path)


# ============================================================================
# Payload fixtures
# ============================================================================


def _chat_msg(
    conversation_id: str = "C1",
    username: str = "alice",
    body: str = "hello",
    sent_at: Any = 1_600_000_000,
) -> dict[str, Any]:
    return {
        "sent_at": sent_at,
        "sender": {"username": username},
        "content": {"type": "text", "text": {"body": body}},
        "conversation_id": conversation_id,
    }


@pytest.fixture
def chat_msg() -> Callable[..., dict[str, Any]]:
    """Factory for a keybase `msg` object."""
    return _chat_msg


@pytest.fixture
def chat_event() -> Callable[..., dict[str, Any]]:
    """Factory for an api-listen chat event."""

    def make(**kwargs: Any) -> dict[str, Any]:
        return {"type": "chat", "msg": _chat_msg(**kwargs)}

    return make


@pytest.fixture
def conversation() -> Callable[..., dict[str, Any]]:
    """Factory for one entry of a `list` result."""

    def make(name: str = "alice,bob", id: str = "0000abcd", unread: bool = False) -> dict[str, Any]:
        return {"channel": {"name": name}, "id": id, "unread": unread}

    return make


# ============================================================================
# Log capture
# ============================================================================


@pytest.fixture
def log_records():
    """Collect loguru records emitted during the test."""
    records: list[dict[str, Any]] = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)

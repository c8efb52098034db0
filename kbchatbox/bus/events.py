"""Typed messages flowing through the bus."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union


@dataclass(frozen=True)
class OutboundRequest:
    """A request for the `keybase chat api` process.

    An empty payload is a no-op: it is never written to the process and only
    exists to wake up the request/reply thread.
    """

    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def is_noop(self) -> bool:
        return not self.payload

    @property
    def method(self) -> str | None:
        return self.payload.get("method")


@dataclass(frozen=True)
class ChatMessage:
    """A single text message in a conversation."""

    timestamp: datetime  # always UTC
    channel: str  # sender display name
    conversation_id: str
    text: str


@dataclass(frozen=True)
class ChatMessageBatch:
    """Messages returned by a `read` request, in received order."""

    messages: list[ChatMessage] = field(default_factory=list)

    def for_display(self) -> list[ChatMessage]:
        """Oldest first, regardless of the order keybase returned them in."""
        return sorted(self.messages, key=lambda m: m.timestamp)


@dataclass(frozen=True)
class Channel:
    """One conversation from a `list` request."""

    name: str
    id: str
    has_unread: bool = False


@dataclass(frozen=True)
class ChannelList:
    """Conversations returned by a `list` request, in received order."""

    channels: list[Channel] = field(default_factory=list)

    def find(self, key: str) -> Channel | None:
        """Look up a channel by id, then by name."""
        for chan in self.channels:
            if chan.id == key:
                return chan
        for chan in self.channels:
            if chan.name == key:
                return chan
        return None


InboundReply = Union[ChatMessage, ChatMessageBatch, ChannelList]

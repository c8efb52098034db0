"""Error taxonomy for the bridge."""

from __future__ import annotations

from enum import Enum


class MessageErrorKind(str, Enum):
    """Why a payload could not be turned into a typed reply."""

    UNKNOWN_MESSAGE = "unknown_message"
    PARSE_ERROR = "parse_error"
    INVALID_MESSAGE_FORMAT = "invalid_message_format"


class KbChatError(Exception):
    """Base class for all kbchatbox errors."""


class TransportError(KbChatError):
    """The transport to a child process is unusable.

    Raised for read/write failures, a child process that is gone or could not
    be spawned, and disconnected queues. Always fatal for the thread that
    observes it; nothing retries.
    """


class BusClosedError(TransportError):
    """A queue endpoint was used after the bus was closed."""


class ClassificationError(KbChatError):
    """A payload was well-formed JSON but not a usable reply."""

    def __init__(self, kind: MessageErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)

"""Keybase chat API wire format: codec, classifier and request builders."""

from kbchatbox.protocol.classifier import MessageKind, classify, message_kind
from kbchatbox.protocol.codec import ParseFailure, describe, parse_line, serialize

__all__ = [
    "MessageKind",
    "ParseFailure",
    "classify",
    "describe",
    "message_kind",
    "parse_line",
    "serialize",
]

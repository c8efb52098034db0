"""Turns parsed keybase JSON payloads into typed replies."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from loguru import logger

from kbchatbox.bus.events import Channel, ChannelList, ChatMessage, ChatMessageBatch, InboundReply
from kbchatbox.errors import ClassificationError, MessageErrorKind
from kbchatbox.protocol.codec import describe


class MessageKind(str, Enum):
    """Shape of a payload, decided before any field is extracted."""

    CHAT_MESSAGE = "chat_message"
    CHAT_MESSAGE_BATCH = "chat_message_batch"
    CHANNEL_LIST = "channel_list"
    UNKNOWN = "unknown"


def _dig(value: Any, *path: str) -> Any:
    """Follow dict keys, returning None as soon as a step is missing."""
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def message_kind(value: Any) -> MessageKind:
    """Detect the payload shape. Checks run in priority order."""
    if _dig(value, "type") == "chat" and _dig(value, "msg", "content", "type") == "text":
        return MessageKind.CHAT_MESSAGE
    if isinstance(_dig(value, "result", "messages"), list):
        return MessageKind.CHAT_MESSAGE_BATCH
    if isinstance(_dig(value, "result", "conversations"), list):
        return MessageKind.CHANNEL_LIST
    return MessageKind.UNKNOWN


def _parse_error(detail: str) -> ClassificationError:
    return ClassificationError(MessageErrorKind.PARSE_ERROR, detail)


def parse_chat_message(msg: Any) -> ChatMessage:
    """Extract a ChatMessage from a keybase `msg` object.

    Raises ClassificationError(PARSE_ERROR) if any field is missing or has
    the wrong type; nothing is returned for a partially valid message.
    """
    if _dig(msg, "content", "type") != "text":
        raise _parse_error("not a text message")

    sent_at = _dig(msg, "sent_at")
    # bool is an int subclass but never a valid epoch
    if not isinstance(sent_at, int) or isinstance(sent_at, bool):
        raise _parse_error(f"sent_at is not an integer: {sent_at!r}")
    try:
        timestamp = datetime.fromtimestamp(sent_at, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise _parse_error(f"sent_at out of range: {sent_at}") from e

    channel = _dig(msg, "sender", "username")
    if not isinstance(channel, str) or not channel:
        raise _parse_error("missing sender.username")

    body = _dig(msg, "content", "text", "body")
    if not isinstance(body, str):
        raise _parse_error("missing content.text.body")

    conversation_id = _dig(msg, "conversation_id")
    if not isinstance(conversation_id, str) or not conversation_id:
        raise _parse_error("missing conversation_id")

    return ChatMessage(
        timestamp=timestamp,
        channel=channel,
        conversation_id=conversation_id,
        text=body.strip(),
    )


def _parse_chat_event(value: Any) -> ChatMessage:
    try:
        return parse_chat_message(_dig(value, "msg"))
    except ClassificationError:
        logger.debug("Not a chat msg: {}", describe(value))
        raise


def _parse_batch(value: Any) -> ChatMessageBatch:
    entries = _dig(value, "result", "messages")
    if not isinstance(entries, list):
        raise ClassificationError(
            MessageErrorKind.INVALID_MESSAGE_FORMAT, "result.messages is not an array"
        )

    messages: list[ChatMessage] = []
    for entry in entries:
        # `read` wraps every message as {"msg": {...}}
        msg = entry["msg"] if isinstance(entry, dict) and isinstance(entry.get("msg"), dict) else entry
        try:
            messages.append(parse_chat_message(msg))
        except ClassificationError as e:
            logger.warning("Skipped message ({}): {}", e.detail, describe(entry))
    return ChatMessageBatch(messages=messages)


def _parse_channel_list(value: Any) -> ChannelList:
    conversations = _dig(value, "result", "conversations")
    if not isinstance(conversations, list):
        raise ClassificationError(
            MessageErrorKind.INVALID_MESSAGE_FORMAT, "result.conversations is not an array"
        )

    channels: list[Channel] = []
    for index, conv in enumerate(conversations):
        name = _dig(conv, "channel", "name")
        if not isinstance(name, str) or not name:
            raise _parse_error(f"conversation {index}: missing channel.name")
        conv_id = _dig(conv, "id")
        if not isinstance(conv_id, str):
            raise _parse_error(f"conversation {index}: missing id")
        unread = _dig(conv, "unread")
        if not isinstance(unread, bool):
            raise _parse_error(f"conversation {index}: missing unread flag")
        channels.append(Channel(name=name, id=conv_id, has_unread=unread))
    return ChannelList(channels=channels)


def classify(value: Any) -> InboundReply:
    """Classify a parsed payload into one of the known reply types.

    Raises:
        ClassificationError: with kind UNKNOWN_MESSAGE if the shape is not
            recognised, PARSE_ERROR or INVALID_MESSAGE_FORMAT if it is but
            its content is unusable.
    """
    kind = message_kind(value)
    if kind is MessageKind.CHAT_MESSAGE:
        return _parse_chat_event(value)
    if kind is MessageKind.CHAT_MESSAGE_BATCH:
        return _parse_batch(value)
    if kind is MessageKind.CHANNEL_LIST:
        return _parse_channel_list(value)
    logger.debug("Unknown message: {}", describe(value))
    raise ClassificationError(MessageErrorKind.UNKNOWN_MESSAGE, "unrecognised payload shape")

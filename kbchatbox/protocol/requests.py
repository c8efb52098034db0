"""Builders for the requests understood by `keybase chat api`."""

from __future__ import annotations

from kbchatbox.bus.events import OutboundRequest

NOOP = OutboundRequest(payload={})


def send_message(conversation_id: str, text: str) -> OutboundRequest:
    """Post `text` to a conversation."""
    return OutboundRequest(
        payload={
            "method": "send",
            "params": {
                "options": {
                    "conversation_id": conversation_id,
                    "message": {"body": text},
                }
            },
        }
    )


def read_conversation(conversation_id: str, num_messages: int) -> OutboundRequest:
    """Fetch the latest `num_messages` messages of a conversation."""
    if num_messages <= 0:
        raise ValueError(f"num_messages must be positive, got {num_messages}")
    return OutboundRequest(
        payload={
            "method": "read",
            "params": {
                "options": {
                    "conversation_id": conversation_id,
                    "pagination": {"num": num_messages},
                }
            },
        }
    )


def list_channels() -> OutboundRequest:
    """List the conversations of the logged-in user."""
    return OutboundRequest(payload={"method": "list"})

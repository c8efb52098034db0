"""Message bus between the bridge threads and the caller."""

from kbchatbox.bus.events import (
    Channel,
    ChannelList,
    ChatMessage,
    ChatMessageBatch,
    InboundReply,
    OutboundRequest,
)
from kbchatbox.bus.queue import MessageBus

__all__ = [
    "Channel",
    "ChannelList",
    "ChatMessage",
    "ChatMessageBatch",
    "InboundReply",
    "OutboundRequest",
    "MessageBus",
]

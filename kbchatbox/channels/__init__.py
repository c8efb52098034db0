"""Background channels bound to the keybase child processes."""

from kbchatbox.channels.api import ApiChannel
from kbchatbox.channels.base import BaseChannel, ChannelState
from kbchatbox.channels.listener import ListenerChannel

__all__ = ["ApiChannel", "BaseChannel", "ChannelState", "ListenerChannel"]

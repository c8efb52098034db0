"""Listener channel: streams unsolicited events from `keybase chat api-listen`."""

from __future__ import annotations

import subprocess
import threading
from typing import Any, Callable

from loguru import logger

from kbchatbox.bus.events import ChatMessage
from kbchatbox.bus.queue import MessageBus
from kbchatbox.channels.base import BaseChannel
from kbchatbox.errors import BusClosedError

Notifier = Callable[[str], Any]

DEFAULT_NOTIFY_TEMPLATE = "Keybase: New message from {channel}"


class ListenerChannel(BaseChannel):
    """
    Reads one JSON event per line and publishes the classified replies.

    Every single chat message also fires the notifier before it is
    published. Malformed or unknown events are logged and dropped.
    """

    name = "listener"

    def __init__(
        self,
        command: list[str],
        bus: MessageBus,
        running: threading.Event,
        notifier: Notifier | None = None,
        notify_template: str = DEFAULT_NOTIFY_TEMPLATE,
    ) -> None:
        super().__init__(command, bus, running)
        self.notifier = notifier
        self.notify_template = notify_template

    def _spawn(self) -> subprocess.Popen[str]:
        logger.info("Spawning listener: {}", " ".join(self.command))
        return self._popen(stdout=subprocess.PIPE)

    def _serve_once(self) -> None:
        assert self.process is not None
        line = self._read_frame(self.process.stdout)
        reply = self._decode(line)
        if reply is None:
            return

        if isinstance(reply, ChatMessage):
            self._notify(reply)

        try:
            self.bus.publish_inbound(reply)
        except BusClosedError as e:
            logger.warning("Error sending: {}", e)

    def _notify(self, msg: ChatMessage) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier(self.notify_template.format(channel=msg.channel))
        except Exception as e:
            logger.debug("Notification failed: {}", e)

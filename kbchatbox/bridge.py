"""Bridge facade: owns both channels, their shared flag and the message bus."""

from __future__ import annotations

import queue
import threading
import time
from typing import Callable

from loguru import logger

from kbchatbox.bus.events import InboundReply, OutboundRequest
from kbchatbox.bus.queue import MessageBus
from kbchatbox.channels.api import ApiChannel
from kbchatbox.channels.listener import ListenerChannel, Notifier
from kbchatbox.config.schema import Config
from kbchatbox.errors import BusClosedError
from kbchatbox.keybase.notify import send_desktop_notification
from kbchatbox.protocol import requests

FLUSH_INTERVAL = 0.1  # seconds between API failure checks while flushing


class Bridge:
    """
    Typed, thread-safe access to the keybase chat API.

    Runs two background threads: one streaming unsolicited events from
    `keybase chat api-listen`, one serving queued requests against
    `keybase chat api`. Both publish to the same inbound queue, which the
    caller drains with `poll()` from its own thread.

    Use `Bridge.open()` (or `with Bridge.open() as bridge:`) to start it and
    `close()` to stop it.
    """

    def __init__(self, config: Config | None = None, notifier: Notifier | None = None) -> None:
        self.config = config or Config()
        self.bus = MessageBus()
        self._running = threading.Event()
        self._closed = False

        if notifier is None and self.config.notification.enabled:
            notifier = self._desktop_notifier

        self.listener = ListenerChannel(
            self.config.keybase.listen_command,
            self.bus,
            self._running,
            notifier=notifier,
            notify_template=self.config.notification.template,
        )
        self.api = ApiChannel(self.config.keybase.api_command, self.bus, self._running)

    @classmethod
    def open(cls, config: Config | None = None, notifier: Notifier | None = None) -> Bridge:
        """Create a bridge and start both channels."""
        bridge = cls(config, notifier)
        bridge.start()
        return bridge

    def start(self) -> None:
        self._running.set()
        logger.debug("Spawning listener thread")
        self.listener.start()
        logger.debug("Spawning API thread")
        self.api.start()

    def _desktop_notifier(self, message: str) -> bool:
        return send_desktop_notification(message, self.config.notification)

    # -- request builders -------------------------------------------------

    @staticmethod
    def send_message_request(conversation_id: str, text: str) -> OutboundRequest:
        return requests.send_message(conversation_id, text)

    @staticmethod
    def read_conversation_request(conversation_id: str, num_messages: int) -> OutboundRequest:
        return requests.read_conversation(conversation_id, num_messages)

    @staticmethod
    def list_channels_request() -> OutboundRequest:
        return requests.list_channels()

    # -- producer side ----------------------------------------------------

    def send(self, request: OutboundRequest) -> None:
        """Queue a request for the API thread. Raises BusClosedError after close()."""
        self.bus.publish_outbound(request)

    def sender(self) -> Callable[[OutboundRequest], None]:
        """A producer handle that can be handed to other parts of the caller."""
        return self.bus.publish_outbound

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until every queued request got its reply (or was dropped).

        Returns False on timeout, or as soon as the API thread has failed.
        After close() nothing is served any more, so it answers at once.
        """
        if self.bus.closed:
            return self.bus.wait_outbound_idle(0)
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            step = FLUSH_INTERVAL
            if deadline is not None:
                step = min(step, max(deadline - time.monotonic(), 0))
            if self.bus.wait_outbound_idle(step):
                return True
            if self.api.failed:
                return False
            if deadline is not None and time.monotonic() >= deadline:
                return False

    # -- consumer side ----------------------------------------------------

    def poll(self) -> InboundReply | None:
        """Next pending reply, or None. Never blocks.

        Raises the channel's TransportError once nothing is pending and a
        channel thread has died, so the caller fails fast instead of
        polling a dead bridge forever.
        """
        reply = self.bus.poll_inbound()
        if reply is None:
            self.raise_for_failure()
        return reply

    def get(self, timeout: float | None = None) -> InboundReply | None:
        """Next reply, waiting up to `timeout` seconds. Returns None on timeout."""
        try:
            return self.bus.consume_inbound(timeout=timeout)
        except queue.Empty:
            self.raise_for_failure()
            return None

    def raise_for_failure(self) -> None:
        for channel in (self.api, self.listener):
            if channel.error is not None:
                raise channel.error

    @property
    def is_running(self) -> bool:
        """True until close() or until either channel thread has ended."""
        return self.listener.is_running and self.api.is_running

    # -- teardown ---------------------------------------------------------

    def close(self) -> None:
        """Stop both channels.

        The API thread is woken with a no-op request and joined for up to
        `bridge.api_join_timeout` seconds. The listener thread is usually
        blocked on a read the stop flag cannot interrupt; it is joined for
        at most `bridge.listener_join_timeout` seconds (0 by default) and is
        otherwise left to exit on its own when its next line arrives.
        """
        if self._closed:
            return
        self._closed = True
        logger.debug("Closing bridge")
        self._running.clear()

        self.api.stop()
        try:
            self.bus.publish_outbound(requests.NOOP)
        except BusClosedError as e:
            logger.warning("Can't wake API thread: {}", e)
        else:
            logger.debug("Joining API thread back")
            if not self.api.join(self.config.bridge.api_join_timeout):
                logger.warning("API thread did not stop within {}s", self.config.bridge.api_join_timeout)

        self.listener.stop()
        timeout = self.config.bridge.listener_join_timeout
        if timeout > 0 and not self.listener.join(timeout):
            logger.debug("Listener thread still blocked on read; leaving it")

        self.bus.close()

    def __enter__(self) -> Bridge:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

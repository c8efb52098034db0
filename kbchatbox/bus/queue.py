"""Thread-safe message queues between the bridge threads and the caller."""

from __future__ import annotations

import queue
import threading
from typing import Any

from kbchatbox.bus.events import InboundReply, OutboundRequest
from kbchatbox.errors import BusClosedError

# Wakes up every consumer blocked on the outbound queue once the bus is closed.
_CLOSED = object()


class MessageBus:
    """
    Two one-directional queues shared by the bridge threads and the caller.

    Both channel threads publish to the inbound queue; the caller is its only
    consumer and is expected to poll it without blocking. The caller publishes
    to the outbound queue; the request/reply thread is its only consumer.
    """

    def __init__(self) -> None:
        self.inbound: queue.Queue[InboundReply] = queue.Queue()
        self.outbound: queue.Queue[Any] = queue.Queue()
        self._closed = threading.Event()

    def publish_inbound(self, reply: InboundReply) -> None:
        """Publish a classified reply for the caller."""
        if self._closed.is_set():
            raise BusClosedError("inbound queue is closed")
        self.inbound.put(reply)

    def poll_inbound(self) -> InboundReply | None:
        """Return the next reply, or None when nothing is pending. Never blocks."""
        try:
            return self.inbound.get_nowait()
        except queue.Empty:
            return None

    def consume_inbound(self, timeout: float | None = None) -> InboundReply:
        """Consume the next reply (blocks until available, raises queue.Empty on timeout)."""
        return self.inbound.get(timeout=timeout)

    def publish_outbound(self, request: OutboundRequest) -> None:
        """Queue a request for the API process."""
        if self._closed.is_set():
            raise BusClosedError("outbound queue is closed")
        self.outbound.put(request)

    def consume_outbound(self, timeout: float | None = None) -> OutboundRequest:
        """Consume the next request (blocks until available).

        Raises BusClosedError once the bus is closed and the queued requests
        ahead of the close marker have been consumed.
        """
        item = self.outbound.get(timeout=timeout)
        if item is _CLOSED:
            self._put_marker()
            raise BusClosedError("outbound queue is closed")
        return item

    def outbound_done(self) -> None:
        """Mark the last consumed request as fully handled (reply read or dropped)."""
        self.outbound.task_done()

    def wait_outbound_idle(self, timeout: float | None = None) -> bool:
        """Block until every queued request has been handled. Returns False on timeout."""
        with self.outbound.all_tasks_done:
            return self.outbound.all_tasks_done.wait_for(
                lambda: not self.outbound.unfinished_tasks, timeout
            )

    def close(self) -> None:
        """Refuse new messages and wake up blocked outbound consumers."""
        if self._closed.is_set():
            return
        self._closed.set()
        self._put_marker()

    def _put_marker(self) -> None:
        # Not counted as a pending task.
        self.outbound.put(_CLOSED)
        self.outbound.task_done()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def inbound_size(self) -> int:
        """Number of pending inbound replies."""
        return self.inbound.qsize()

    @property
    def outbound_size(self) -> int:
        """Number of pending outbound requests."""
        return self.outbound.qsize()

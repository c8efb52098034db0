"""Request/reply channel: half-duplex calls to `keybase chat api`."""

from __future__ import annotations

import subprocess

from loguru import logger

from kbchatbox.bus.events import OutboundRequest
from kbchatbox.channels.base import BaseChannel
from kbchatbox.errors import TransportError
from kbchatbox.protocol.codec import serialize


class ApiChannel(BaseChannel):
    """
    Writes one queued request, reads exactly one reply line, repeat.

    Replies are published to the same inbound queue as the listener's
    events. A reply that cannot be classified is dropped and the next
    request is served; nothing is retried.
    """

    name = "api"

    def _spawn(self) -> subprocess.Popen[str]:
        logger.info("Spawning API process: {}", " ".join(self.command))
        return self._popen(stdin=subprocess.PIPE, stdout=subprocess.PIPE)

    def _serve_once(self) -> None:
        assert self.process is not None
        request = self.bus.consume_outbound()
        try:
            self._call(request)
        finally:
            self.bus.outbound_done()

    def _call(self, request: OutboundRequest) -> None:
        assert self.process is not None
        if request.is_noop:
            # Wake-up call; the loop re-checks the running flag.
            return

        self._write_frame(serialize(request))
        line = self._read_frame(self.process.stdout)
        reply = self._decode(line)
        if reply is None:
            logger.debug("Dropped reply to {} request", request.method)
            return

        self.bus.publish_inbound(reply)

    def _write_frame(self, line: str) -> None:
        assert self.process is not None
        stdin = self.process.stdin
        if stdin is None:
            raise TransportError("api: stdin not mapped")
        try:
            stdin.write(line)
            stdin.flush()
        except (OSError, ValueError) as e:
            raise TransportError(f"api: write failed: {e}") from e

    def _cleanup(self) -> None:
        if self.process is None or self.process.stdin is None:
            return
        try:
            self.process.stdin.close()
        except OSError as e:
            logger.debug("Closing API stdin failed: {}", e)

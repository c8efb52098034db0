"""Base class for the threads that talk to keybase child processes."""

from __future__ import annotations

import subprocess
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import IO

from loguru import logger

from kbchatbox.bus.events import InboundReply
from kbchatbox.bus.queue import MessageBus
from kbchatbox.errors import ClassificationError, MessageErrorKind, TransportError
from kbchatbox.protocol.classifier import classify
from kbchatbox.protocol.codec import ParseFailure, parse_line


class ChannelState(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class BaseChannel(ABC):
    """
    A daemon thread owning one keybase child process.

    The thread spawns the process, then runs `_serve` until the shared
    running flag is cleared or a TransportError ends it. The flag is only
    checked between iterations; a thread blocked on a read stays blocked
    until the child writes a line or exits.
    """

    name: str = "base"

    def __init__(self, command: list[str], bus: MessageBus, running: threading.Event) -> None:
        self.command = command
        self.bus = bus
        self._running = running
        self._state = ChannelState.STOPPED
        self._state_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self.process: subprocess.Popen[str] | None = None
        self.error: TransportError | None = None

    @property
    def state(self) -> ChannelState:
        return self._state

    def _set_state(self, state: ChannelState) -> None:
        with self._state_lock:
            self._state = state
        logger.debug("{} channel {}", self.name, state.value)

    @property
    def is_running(self) -> bool:
        """True while the thread is alive and the running flag is set."""
        return self._running.is_set() and self._thread is not None and self._thread.is_alive()

    @property
    def failed(self) -> bool:
        return self.error is not None

    def start(self) -> None:
        """Start the channel thread. The child process is spawned on that thread."""
        if self._thread is not None:
            raise RuntimeError(f"{self.name} channel already started")
        self._set_state(ChannelState.STARTING)
        self._thread = threading.Thread(
            target=self._run, name=f"kbchatbox-{self.name}", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Ask the thread to exit at its next iteration boundary."""
        self._running.clear()
        with self._state_lock:
            if self._state in (ChannelState.STARTING, ChannelState.RUNNING):
                self._state = ChannelState.STOPPING

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the thread to finish. Returns True if it has."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _run(self) -> None:
        try:
            self.process = self._spawn()
            with self._state_lock:
                if self._state is ChannelState.STARTING:
                    self._state = ChannelState.RUNNING
            logger.info("Starting {} loop", self.name)
            while self._running.is_set():
                self._serve_once()
        except TransportError as e:
            if self._running.is_set():
                self.error = e
                logger.critical("{} channel transport failed: {}", self.name, e)
            else:
                logger.debug("{} transport closed during shutdown: {}", self.name, e)
        finally:
            self._cleanup()
            self._set_state(ChannelState.STOPPED)
            logger.info("Closing {} thread", self.name)

    @abstractmethod
    def _spawn(self) -> subprocess.Popen[str]:
        """Start the child process and bind its pipes."""

    @abstractmethod
    def _serve_once(self) -> None:
        """Run one loop iteration. Raises TransportError when the transport is gone."""

    def _cleanup(self) -> None:
        """Release pipes once the loop is over."""

    def _popen(self, **pipes: int) -> subprocess.Popen[str]:
        try:
            return subprocess.Popen(
                self.command,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                **pipes,
            )
        except OSError as e:
            raise TransportError(f"Couldn't spawn {' '.join(self.command)}: {e}") from e

    def _read_frame(self, stream: IO[str] | None) -> str:
        """Read one line from the child. EOF means the process is gone.

        Undecodable bytes come through as U+FFFD and fail classification
        like any other malformed line.
        """
        if stream is None:
            raise TransportError(f"{self.name}: stdout not mapped")
        try:
            line = stream.readline()
        except (OSError, ValueError) as e:
            raise TransportError(f"{self.name}: read failed: {e}") from e
        if not line:
            raise TransportError(f"{self.name}: child process closed its output")
        return line

    def _decode(self, line: str) -> InboundReply | None:
        """Parse and classify a frame. Failures are logged and yield None."""
        value = parse_line(line)
        if isinstance(value, ParseFailure):
            return None
        try:
            return classify(value)
        except ClassificationError as e:
            level = "INFO" if e.kind is MessageErrorKind.UNKNOWN_MESSAGE else "WARNING"
            logger.log(level, "{}: skipped {} ({})", self.name, e.kind.value, e.detail)
            return None

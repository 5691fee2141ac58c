"""
Stream Client
=============

WebSocket client that relays upstream messages into an EventBuffer.

This module provides the StreamClient class which:
    - Connects to the configured upstream WebSocket endpoint
    - Appends every received message to an EventBuffer, un-parsed
    - Detects close and transport errors
    - Reconnects after a fixed delay, forever

Design Rules:
    - Does NOT parse or validate payloads
    - Never raises transport errors to callers (logs and retries)
    - No backoff growth, no retry limit
    - Runs until its task is cancelled
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Callable, Optional, Union

import websockets
from websockets.exceptions import ConnectionClosedOK

from event_relay.stream.buffer import EventBuffer


logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """Upstream connection state, owned by StreamClient."""

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"


class StreamClientMetrics:
    """Metrics for StreamClient observability."""

    __slots__ = (
        "connect_attempts",
        "connections_established",
        "reconnect_count",
        "messages_received",
        "connection_errors",
        "last_error",
        "last_message_at",
    )

    def __init__(self) -> None:
        self.connect_attempts: int = 0
        self.connections_established: int = 0
        self.reconnect_count: int = 0
        self.messages_received: int = 0
        self.connection_errors: int = 0
        self.last_error: Optional[str] = None
        self.last_message_at: float = 0.0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "connect_attempts": self.connect_attempts,
            "connections_established": self.connections_established,
            "reconnect_count": self.reconnect_count,
            "messages_received": self.messages_received,
            "connection_errors": self.connection_errors,
            "last_error": self.last_error,
            "last_message_at": self.last_message_at,
        }


class StreamClient:
    """
    Resilient WebSocket client feeding an EventBuffer.

    State machine:
        DISCONNECTED -> CONNECTING   on startup, or reconnect_delay after a close
        CONNECTING   -> CONNECTED    on successful handshake
        CONNECTED    -> DISCONNECTED on close or transport error
        CONNECTING   -> DISCONNECTED on connect failure

    Attributes:
        url: WebSocket URL to connect to
        buffer: EventBuffer receiving every inbound message
        reconnect_delay: Fixed seconds to wait before reconnecting
        metrics: Operational metrics

    Example:
        buffer = EventBuffer()
        client = StreamClient(
            url="ws://localhost:21213",
            buffer=buffer,
            reconnect_delay=3.0,
        )

        # Runs until the task is cancelled
        task = asyncio.create_task(client.run())
    """

    def __init__(
        self,
        url: str,
        buffer: EventBuffer,
        reconnect_delay: float = 3.0,
        connect: Optional[Callable[[str], Any]] = None,
    ) -> None:
        """
        Initialize stream client.

        Args:
            url: WebSocket URL of the upstream event source
            buffer: EventBuffer to append received payloads to
            reconnect_delay: Delay between reconnection attempts (seconds)
            connect: Connection factory returning an async context manager
                that iterates messages. Defaults to websockets.connect.
        """
        if reconnect_delay < 0:
            raise ValueError("reconnect_delay must be >= 0")

        self.url = url
        self.buffer = buffer
        self.reconnect_delay = reconnect_delay
        self._connect = connect or websockets.connect

        self._state: ConnectionState = ConnectionState.DISCONNECTED
        self.metrics = StreamClientMetrics()

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def connected(self) -> bool:
        """Whether currently connected upstream."""
        return self._state is ConnectionState.CONNECTED

    async def run(self) -> None:
        """
        Relay upstream messages forever.

        Each iteration connects, receives until the connection ends,
        then waits reconnect_delay. Only cancellation ends the loop.
        """
        logger.info(f"StreamClient starting, upstream is {self.url}")

        try:
            while True:
                try:
                    await self._connect_and_consume()
                except Exception as e:
                    # Refused, reset, handshake failure: ends this attempt only
                    self._record_error(e)

                self._set_state(ConnectionState.DISCONNECTED)
                self.metrics.reconnect_count += 1
                logger.info(
                    f"Reconnecting in {self.reconnect_delay:.1f}s "
                    f"(attempt {self.metrics.reconnect_count})"
                )
                await asyncio.sleep(self.reconnect_delay)
        finally:
            self._set_state(ConnectionState.DISCONNECTED)
            logger.info("StreamClient stopped")

    async def _connect_and_consume(self) -> None:
        """Connect to the upstream and relay messages until it closes."""
        self._set_state(ConnectionState.CONNECTING)
        self.metrics.connect_attempts += 1
        logger.info(f"Connecting to upstream: {self.url}")

        async with self._connect(self.url) as ws:
            self._set_state(ConnectionState.CONNECTED)
            self.metrics.connections_established += 1
            logger.info(f"Connected to upstream: {self.url}")

            try:
                async for message in ws:
                    self._relay(message)
            except ConnectionClosedOK:
                pass

        logger.info("Upstream connection closed")

    def _relay(self, message: Union[str, bytes]) -> None:
        """Forward one inbound message to the buffer."""
        if isinstance(message, (bytes, bytearray, memoryview)):
            # Binary frames are surfaced as text so they stay JSON-serializable
            message = bytes(message).decode("utf-8", errors="replace")

        logger.debug(f"Upstream message received ({len(message)} chars)")
        self.buffer.append(message)
        self.metrics.messages_received += 1
        self.metrics.last_message_at = time.time()

    def _record_error(self, error: BaseException) -> None:
        self.metrics.connection_errors += 1
        self.metrics.last_error = f"{type(error).__name__}: {error}"
        if self._state is ConnectionState.CONNECTED:
            logger.warning(f"Upstream connection lost: {self.metrics.last_error}")
        else:
            logger.error(f"Upstream connection failed: {self.metrics.last_error}")

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self._state:
            logger.debug(f"Connection state {self._state.value} -> {state.value}")
            self._state = state

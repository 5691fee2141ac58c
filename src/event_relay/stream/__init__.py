"""
Stream Module
=============

Upstream WebSocket relay and event buffering components.

This module provides the ingestion layer for the event relay:
    - EventBuffer: Thread-safe unbounded buffer with atomic drain
    - StreamClient: WebSocket client with fixed-delay reconnection
    - ConnectionState: Upstream connection state

Example:
    from event_relay.stream import EventBuffer, StreamClient

    # Create buffer and client
    buffer = EventBuffer()
    client = StreamClient(
        url="ws://localhost:21213",
        buffer=buffer,
        reconnect_delay=3.0,
    )

    # Run client as background task
    task = asyncio.create_task(client.run())

    # Poll from anywhere
    events = buffer.drain_all()
"""

from event_relay.stream.buffer import EventBuffer
from event_relay.stream.client import (
    ConnectionState,
    StreamClient,
    StreamClientMetrics,
)


__all__ = [
    "ConnectionState",
    "EventBuffer",
    "StreamClient",
    "StreamClientMetrics",
]

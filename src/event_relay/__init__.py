"""
Event Relay
===========

Store-and-forward relay from a WebSocket event stream to HTTP polling.

This package keeps a persistent connection to one upstream WebSocket
endpoint, buffers every message it receives, and hands the buffered
messages to a polling consumer, draining the buffer on each poll.

Components:
    - stream: EventBuffer and the reconnecting StreamClient
    - models: Response schemas
    - main: FastAPI application (GET /events)

Example:
    from event_relay.main import create_app

    # Served via uvicorn; see __main__.py for the entry point
    app = create_app()
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]

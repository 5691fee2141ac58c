"""
Event Relay Main Application
============================

FastAPI entry point for the store-and-forward event relay.

A StreamClient keeps a WebSocket connection to the upstream event
source and appends every message to an EventBuffer. A polling consumer
drains the buffer with GET /events.

Endpoints:
    GET  /        - Service information
    GET  /events  - Drain and return all buffered events
    GET  /health  - Liveness probe (is process alive?)
    GET  /ready   - Readiness probe (upstream connected?)
    GET  /metrics - Stream and buffer metrics

Serving:
    event-relay                        # CLI, see __main__.py
    uvicorn event_relay.main:app       # settings from config.yaml / env
"""

import asyncio
import errno
import logging
import socket
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from event_relay.config import Settings, settings as default_settings
from event_relay.errors import StartupError
from event_relay.models import EventsResponse, ServiceInfo
from event_relay.stream import EventBuffer, StreamClient


logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the stream client for the lifetime of the application."""
    relay_settings: Settings = app.state.settings
    client: StreamClient = app.state.stream_client

    app.state.startup_time = time.time()
    logger.info(f"Starting {relay_settings.service.name} {relay_settings.service.version}")
    logger.info(f"Upstream URL: {client.url}")

    consumer_task = asyncio.create_task(client.run(), name="stream_client")

    yield

    logger.info("Shutting down...")
    consumer_task.cancel()
    try:
        await consumer_task
    except asyncio.CancelledError:
        pass

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

def create_app(
    relay_settings: Optional[Settings] = None,
    stream_client: Optional[StreamClient] = None,
) -> FastAPI:
    """
    Build the relay application.

    The EventBuffer and StreamClient are created here and owned by the
    app (app.state), not by module globals.

    Args:
        relay_settings: Settings to use. Defaults to the loaded settings.
        stream_client: Pre-built client (and its buffer). Built from
            settings when None.

    Returns:
        Configured FastAPI application
    """
    relay_settings = relay_settings or default_settings

    if stream_client is None:
        buffer = EventBuffer(high_water_mark=relay_settings.buffer.high_water_mark)
        stream_client = StreamClient(
            url=relay_settings.stream.url,
            buffer=buffer,
            reconnect_delay=relay_settings.stream.reconnect_delay_seconds,
        )

    app = FastAPI(
        title="Event Relay",
        description="Store-and-forward relay from a WebSocket stream to HTTP polling",
        version=relay_settings.service.version,
        lifespan=lifespan,
    )
    app.state.settings = relay_settings
    app.state.stream_client = stream_client
    app.state.event_buffer = stream_client.buffer
    app.state.startup_time = time.time()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=relay_settings.server.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_routes(app)
    return app


# =============================================================================
# HTTP Endpoints
# =============================================================================

def _as_text(payloads: List[Any]) -> List[str]:
    """Render drained payloads as strings; bytes are decoded, never dropped."""
    rendered = []
    for payload in payloads:
        if isinstance(payload, (bytes, bytearray, memoryview)):
            payload = bytes(payload).decode("utf-8", errors="replace")
        elif not isinstance(payload, str):
            payload = str(payload)
        rendered.append(payload)
    return rendered


def _register_routes(app: FastAPI) -> None:

    @app.get("/")
    async def root(request: Request) -> JSONResponse:
        """Service information endpoint."""
        relay_settings: Settings = request.app.state.settings
        client: StreamClient = request.app.state.stream_client
        info = ServiceInfo(
            service=relay_settings.service.name,
            version=relay_settings.service.version,
            upstream_url=client.url,
            connection_state=client.state.value,
        )
        return JSONResponse(info.model_dump())

    @app.get("/events")
    async def events(request: Request) -> JSONResponse:
        """
        Drain the buffer and return everything received since the last poll.

        Never fails because of upstream state: during an outage the
        response is simply {"events": []}.
        """
        buffer: EventBuffer = request.app.state.event_buffer
        response = EventsResponse(events=_as_text(buffer.drain_all()))
        return JSONResponse(response.model_dump())

    @app.get("/health")
    async def health(request: Request) -> JSONResponse:
        """
        Liveness probe - is the process alive?

        Always returns 200 if the service is running.
        """
        return JSONResponse({
            "status": "healthy",
            "uptime_seconds": round(time.time() - request.app.state.startup_time, 1),
        })

    @app.get("/ready")
    async def ready(request: Request) -> JSONResponse:
        """
        Readiness probe - is the upstream connected?

        Returns 200 if connected, 503 otherwise. Polling /events keeps
        working either way.
        """
        client: StreamClient = request.app.state.stream_client
        body = {
            "status": "ready" if client.connected else "not_ready",
            "stream_connected": client.connected,
            "connection_state": client.state.value,
        }
        return JSONResponse(body, status_code=200 if client.connected else 503)

    @app.get("/metrics")
    async def metrics(request: Request) -> JSONResponse:
        """Detailed metrics for observability."""
        client: StreamClient = request.app.state.stream_client
        buffer: EventBuffer = request.app.state.event_buffer

        return JSONResponse({
            "uptime_seconds": round(time.time() - request.app.state.startup_time, 1),
            "stream_connected": client.connected,
            "connection_state": client.state.value,
            "stream": client.metrics.to_dict(),
            "buffer": buffer.metrics(),
        })


# ASGI target for `uvicorn event_relay.main:app`, configured from the
# loaded settings. run() serves this instance unless given other settings.
app = create_app()


# =============================================================================
# Startup Checks
# =============================================================================

def ensure_port_available(host: str, port: int) -> None:
    """
    Verify the listen address can be bound.

    Raises:
        StartupError: If the port is in use or the address is unusable.
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    with socket.socket(family, socket.SOCK_STREAM) as sock:
        # Same option uvicorn sets, so only a live listener conflicts
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
        except OSError as e:
            if e.errno == errno.EADDRINUSE:
                message = f"Port {port} is already in use on {host}"
            else:
                message = f"Cannot listen on {host}:{port}: {e}"
            raise StartupError(message, host=host, port=port) from e


def run(relay_settings: Optional[Settings] = None) -> None:
    """
    Serve the relay with uvicorn.

    Raises:
        StartupError: If the listen port is unavailable.
    """
    import uvicorn

    relay_settings = relay_settings or default_settings
    host = relay_settings.server.host
    port = relay_settings.server.port

    ensure_port_available(host, port)

    logger.info(f"HTTP server running on http://{host}:{port}/")
    logger.info("Use GET /events to retrieve queued events")

    if relay_settings is default_settings:
        application = app
    else:
        application = create_app(relay_settings)

    uvicorn.run(
        application,
        host=host,
        port=port,
        log_config=None,
    )


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    run()

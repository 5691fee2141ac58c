"""
Test Configuration
==================

Pytest fixtures and test configuration for the event relay.

The upstream WebSocket is replaced by scripted fake connections so the
StreamClient can be driven through connects, drops and failures.
"""

import asyncio
import time
from typing import Callable, List, Optional, Sequence, Union

import pytest

from event_relay.stream import EventBuffer, StreamClient


class FakeConnection:
    """
    Stand-in for a websockets client connection.

    Args:
        messages: Messages yielded once connected
        error: Raised after the messages (abnormal close)
        fail: Raised on entry (connection refused, bad handshake)
        hold_open: Stay connected after the messages instead of closing
    """

    def __init__(
        self,
        messages: Sequence[Union[str, bytes]] = (),
        error: Optional[BaseException] = None,
        fail: Optional[BaseException] = None,
        hold_open: bool = False,
    ) -> None:
        self.messages = list(messages)
        self.error = error
        self.fail = fail
        self.hold_open = hold_open
        self.exited = False

    async def __aenter__(self) -> "FakeConnection":
        if self.fail is not None:
            raise self.fail
        return self

    async def __aexit__(self, *args) -> bool:
        self.exited = True
        return False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            yield message
        if self.error is not None:
            raise self.error
        if self.hold_open:
            await asyncio.Event().wait()


class ScriptedConnector:
    """
    Connection factory replaying a script of FakeConnections.

    Once the script is exhausted every further attempt gets a
    connection that stays open with no messages.
    """

    def __init__(self, script: Sequence[FakeConnection] = ()) -> None:
        self.script = list(script)
        self.urls: List[str] = []
        self.attempt_times: List[float] = []

    def __call__(self, url: str) -> FakeConnection:
        self.urls.append(url)
        self.attempt_times.append(time.monotonic())
        if self.script:
            return self.script.pop(0)
        return FakeConnection(hold_open=True)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until predicate() holds."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


@pytest.fixture
def buffer():
    """Provide an empty EventBuffer."""
    return EventBuffer()


@pytest.fixture
def make_client(buffer):
    """Provide a factory for StreamClients wired to a scripted connector."""

    def _make(script: Sequence[FakeConnection] = (), reconnect_delay: float = 0.01):
        connector = ScriptedConnector(script)
        client = StreamClient(
            url="ws://upstream.test:21213",
            buffer=buffer,
            reconnect_delay=reconnect_delay,
            connect=connector,
        )
        return client, connector

    return _make


@pytest.fixture
async def run_client():
    """Run StreamClients as background tasks, cancelled after the test."""
    tasks = []

    def _run(client: StreamClient) -> asyncio.Task:
        task = asyncio.create_task(client.run())
        tasks.append(task)
        return task

    yield _run

    for task in tasks:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


@pytest.fixture
def fake_connection():
    """Provide the FakeConnection class for scripting upstream behavior."""
    return FakeConnection


@pytest.fixture
def scripted_connector():
    """Provide the ScriptedConnector class for building connection factories."""
    return ScriptedConnector


@pytest.fixture(name="wait_until")
def wait_until_fixture():
    """Provide the wait_until helper."""
    return wait_until

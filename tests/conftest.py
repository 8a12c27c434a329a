"""Pytest configuration and fixtures for groupme_push tests."""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Callable, Iterator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from groupme_push.config import PushConfig
from groupme_push.errors import PushClientError
from groupme_push.transport.ws_client import PushWsMessage, PushWsMessageType


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


def create_mock_response(
    status: int = 200,
    json_data: Any = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        json_data: Data to return from json() call

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status

    if json_data is not None:
        response.json.return_value = json_data

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


class FakeWsClient:
    """In-memory stand-in for PushWsClient.

    Frames sent by the session are decoded into ``sent``. Frames from the
    server are queued with ``feed``.
    """

    def __init__(self, connect_error: PushClientError | None = None) -> None:
        self.connect = AsyncMock(side_effect=connect_error)
        self.sent: list[dict[str, Any]] = []
        # Called with each sent message, before the write yields.
        self.on_send: Callable[[FakeWsClient, dict[str, Any]], None] | None = None
        self.send_delay: float | None = None
        self.pings = 0
        self.ping_error: PushClientError | None = None
        self.send_error: PushClientError | None = None
        self.closed = False
        self._queue: asyncio.Queue[PushWsMessage] = asyncio.Queue()

    async def send_text(self, text: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        for message in json.loads(text):
            self.sent.append(message)
            if self.on_send is not None:
                self.on_send(self, message)
        if self.send_delay is not None:
            await asyncio.sleep(self.send_delay)

    async def ping(self, *, timeout: float | None = None) -> None:
        if self.ping_error is not None:
            raise self.ping_error
        self.pings += 1

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(PushWsMessage(PushWsMessageType.CLOSED))

    def feed(self, *messages: Any) -> None:
        """Queue one TEXT frame holding messages."""
        self.feed_raw(json.dumps(list(messages)))

    def feed_raw(self, data: str | bytes) -> None:
        msg_type = (
            PushWsMessageType.TEXT if isinstance(data, str) else PushWsMessageType.BINARY
        )
        self._queue.put_nowait(PushWsMessage(msg_type, data))

    def drop(self, reason: str = "server went away") -> None:
        """Simulate the server closing the connection."""
        self.closed = True
        self._queue.put_nowait(PushWsMessage(PushWsMessageType.CLOSED, reason))

    def channels(self) -> list[str]:
        return [message["channel"] for message in self.sent]

    def subscriptions(self) -> list[str]:
        return [
            message["subscription"]
            for message in self.sent
            if message["channel"] == "/meta/subscribe"
        ]

    def __aiter__(self) -> Any:
        return self._iter()

    async def _iter(self) -> Any:
        while True:
            msg = await self._queue.get()
            yield msg
            if msg.type is PushWsMessageType.CLOSED:
                return


class FakeWsFactory:
    """Hands out a new FakeWsClient per connection attempt."""

    def __init__(self) -> None:
        self.created: list[FakeWsClient] = []
        self.connect_errors: list[PushClientError] = []
        self.on_send: Callable[[FakeWsClient, dict[str, Any]], None] | None = None
        self.send_delay: float | None = None

    def __call__(self) -> FakeWsClient:
        error = self.connect_errors.pop(0) if self.connect_errors else None
        client = FakeWsClient(connect_error=error)
        client.on_send = self.on_send
        client.send_delay = self.send_delay
        self.created.append(client)
        return client

    @property
    def latest(self) -> FakeWsClient:
        return self.created[-1]


@pytest.fixture
def ws_factory() -> Iterator[FakeWsFactory]:
    """Patch the session's websocket client with fakes."""
    factory = FakeWsFactory()
    with patch("groupme_push.session.PushWsClient", side_effect=factory):
        yield factory


@pytest.fixture
def fast_config() -> PushConfig:
    """Config with short timers so tests run quickly."""
    return PushConfig(
        url="ws://push.test/faye",
        reconnect_delay=0.05,
        handshake_retry_delay=0.05,
        ping_interval=0.05,
    )


async def wait_for(predicate: Callable[[], Any], timeout: float = 1.0) -> None:
    """Yield to the event loop until predicate() is truthy."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)

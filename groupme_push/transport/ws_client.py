"""WebSocket client wrapper for the GroupMe push service."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    ConnectionClosed,
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from ..errors import PushConnectionError, PushHandshakeError, PushTimeout

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class PushWsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    BINARY = "binary"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class PushWsMessage:
    """Normalized WebSocket message payload.

    For CLOSED and ERROR messages, data carries a human readable reason when
    one is known.
    """

    type: PushWsMessageType
    data: str | bytes | None = None


class PushWsClient:
    """Wrapper around the websockets library for one push connection.

    A client instance is a single connection handle. It is never reconnected;
    the session creates a fresh client for every connection attempt.
    """

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    @property
    def connected(self) -> bool:
        """Whether the handle is open (connected and not yet closed)."""
        return self._ws is not None

    async def connect(self, url: str, *, timeout: float = 15.0) -> None:
        """Open the push websocket.

        The library keepalive is off; pings come from the session's
        liveness monitor.

        Raises:
            PushTimeout: If the opening handshake does not finish in time
            PushHandshakeError: If the server rejects the upgrade or the URL
                is invalid
            PushConnectionError: On socket level failures
        """
        try:
            self._ws = await asyncio.wait_for(
                websockets.connect(
                    url, ping_interval=None, close_timeout=5, max_size=None
                ),
                timeout=timeout,
            )
        except TimeoutError as err:
            raise PushTimeout(f"Timed out connecting to {url}") from err
        except (InvalidHandshake, InvalidURI) as err:
            raise PushHandshakeError(f"Upgrade to {url} rejected: {err}") from err
        except (OSError, WebSocketException) as err:
            raise PushConnectionError(f"Cannot reach {url}: {err}") from err

    async def close(self) -> None:
        """Close the websocket connection. Safe to call more than once."""
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()

    async def send_text(self, text: str) -> None:
        """Send one text frame.

        Raises:
            PushConnectionError: If not connected or the socket is closed
        """
        if self._ws is None:
            raise PushConnectionError("WebSocket is not connected")
        try:
            await self._ws.send(text)
        except (ConnectionClosed, WebSocketException) as err:
            raise PushConnectionError("WebSocket send failed") from err

    async def ping(self, *, timeout: float | None = None) -> None:
        """Send a ping frame, optionally waiting for the matching pong.

        Args:
            timeout: Seconds to wait for the pong. None returns as soon as
                the ping has been written.

        Raises:
            PushConnectionError: If the ping could not be sent
            PushTimeout: If the pong did not arrive in time
        """
        if self._ws is None:
            raise PushConnectionError("WebSocket is not connected")
        try:
            pong_waiter = await self._ws.ping()
        except (ConnectionClosed, WebSocketException) as err:
            raise PushConnectionError("WebSocket ping failed") from err

        if timeout is None:
            return
        try:
            await asyncio.wait_for(pong_waiter, timeout=timeout)
        except TimeoutError as err:
            raise PushTimeout("WebSocket pong timed out") from err
        except ConnectionClosed as err:
            raise PushConnectionError("WebSocket closed while awaiting pong") from err

    def __aiter__(self) -> AsyncIterator[PushWsMessage]:
        if self._ws is None:
            raise PushConnectionError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[PushWsMessage]:
        if self._ws is None:
            raise PushConnectionError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                yield self._normalize_message(msg)
        except ConnectionClosed as err:
            yield PushWsMessage(type=PushWsMessageType.CLOSED, data=str(err))
        except Exception as err:
            yield PushWsMessage(type=PushWsMessageType.ERROR, data=str(err))
        else:
            # Normal iteration completion means the peer closed gracefully.
            yield PushWsMessage(type=PushWsMessageType.CLOSED)

    @staticmethod
    def _normalize_message(msg: str | bytes) -> PushWsMessage:
        """Normalize a websockets frame into a PushWsMessage."""
        if isinstance(msg, str):
            return PushWsMessage(PushWsMessageType.TEXT, msg)
        return PushWsMessage(PushWsMessageType.BINARY, bytes(msg))

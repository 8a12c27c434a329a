"""High-level push session for the GroupMe push service.

This module provides the public API for receiving GroupMe push messages.
It handles:
- Connection management and reconnection
- Session state machine (disconnected -> pending -> connected)
- Outbound message id stamping
- Wiring of negotiation, keepalive and inbound dispatch

All work happens on one asyncio event loop. Transport callbacks, timers and
protocol steps run as separate tasks but never touch the connection handle
from outside the loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from types import TracebackType
from typing import Any

from .config import PushConfig
from .dispatcher import InboundDispatcher
from .errors import PushClientError
from .events import (
    ErrorCallback,
    GroupMessageCallback,
    MessageCallback,
    SessionEvents,
    SessionState,
    StateCallback,
    StatusCallback,
)
from .liveness import LivenessMonitor
from .negotiator import ProtocolNegotiator
from .protocol import encode_frame
from .transport.ws_client import PushWsClient, PushWsMessageType

_LOGGER = logging.getLogger(__name__)


class PushSession:
    """Long-lived subscription to a user's (and optionally groups') push channels.

    Usage:
        session = PushSession("token", "12345", ["678", "910"])
        session.on_message(handle_message)
        session.on_group_message(handle_group_message)
        await session.connect()
        ...
        await session.disconnect()

    The session keeps reconnecting after every unrequested drop until
    disconnect() is called.
    """

    def __init__(
        self,
        access_token: str,
        user_id: str,
        group_ids: Iterable[str] | None = None,
        *,
        config: PushConfig | None = None,
    ) -> None:
        """Initialize session.

        Args:
            access_token: GroupMe access token
            user_id: GroupMe user id whose channel is subscribed
            group_ids: Group ids to subscribe to, in subscription order
            config: Endpoint and timing settings
        """
        if not access_token:
            raise ValueError("access_token must not be empty")
        if not user_id:
            raise ValueError("user_id must not be empty")

        self.access_token = access_token
        self.user_id = str(user_id)
        self._group_ids: tuple[str, ...] = tuple(
            dict.fromkeys(str(group_id) for group_id in group_ids or ())
        )
        self._config = config or PushConfig()

        # Connection state
        self._state = SessionState.DISCONNECTED
        self._ws: PushWsClient | None = None
        self._listen_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._connect_lock = asyncio.Lock()
        self._shutdown_requested = False

        # Outgoing ids keep counting across reconnects.
        self._message_id = 1

        self._events = SessionEvents()
        self._negotiator = ProtocolNegotiator(
            access_token=access_token,
            user_id=self.user_id,
            group_ids=self._group_ids,
            send=self._send,
            events=self._events,
            on_established=self._handle_established,
            handshake_retry_delay=self._config.handshake_retry_delay,
        )
        self._liveness = LivenessMonitor(
            on_failure=self._handle_ping_failure,
            interval=self._config.ping_interval,
            timeout=self._config.ping_timeout,
            name=self.user_id,
        )
        self._dispatcher = InboundDispatcher(
            negotiator=self._negotiator,
            events=self._events,
            name=self.user_id,
        )

    async def __aenter__(self) -> PushSession:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.disconnect()

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    async def connect(self) -> bool:
        """Open the websocket and start negotiation.

        Does nothing when a connection is already open. A failed attempt is
        reported through the error event and retried after the reconnect delay.

        Returns:
            True if the websocket is open, False otherwise
        """
        self._shutdown_requested = False
        if self._ws is not None:
            _LOGGER.debug("[%s] Connect ignored: already %s", self.user_id, self._state.value)
            return True

        self._cancel_reconnect()
        return await self._open_connection()

    async def disconnect(self) -> None:
        """Close the session without reconnecting."""
        _LOGGER.info("[%s] Disconnecting", self.user_id)
        self._shutdown_requested = True

        self._cancel_reconnect()
        self._liveness.stop()
        self._negotiator.reset()
        self._events.emit_status("Sending disconnect request to server.")

        ws, self._ws = self._ws, None
        listen_task, self._listen_task = self._listen_task, None

        if ws is not None:
            await self._close_quietly(ws)

        if listen_task is not None and listen_task is not asyncio.current_task():
            listen_task.cancel()
            try:
                await listen_task
            except asyncio.CancelledError:
                pass

        self._set_state(SessionState.DISCONNECTED)

    @property
    def state(self) -> SessionState:
        """Get current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if negotiation completed and messages are being delivered."""
        return self._state is SessionState.CONNECTED

    @property
    def client_id(self) -> str | None:
        """Session identifier issued by the server, if any."""
        return self._negotiator.client_id

    @property
    def user_topic(self) -> str:
        return self._negotiator.user_topic

    @property
    def group_ids(self) -> tuple[str, ...]:
        return self._group_ids

    @property
    def config(self) -> PushConfig:
        return self._config

    @property
    def events(self) -> SessionEvents:
        return self._events

    # -------------------------------------------------------------------------
    # Public API: Callbacks
    # -------------------------------------------------------------------------

    def on_status(self, callback: StatusCallback) -> Callable[[], None]:
        """Register callback for status text: callback(text, detail)."""
        return self._events.on_status(callback)

    def on_error(self, callback: ErrorCallback) -> Callable[[], None]:
        """Register callback for errors: callback(text, detail)."""
        return self._events.on_error(callback)

    def on_state_changed(self, callback: StateCallback) -> Callable[[], None]:
        """Register callback for state changes: callback(SessionState)."""
        return self._events.on_state_changed(callback)

    def on_message(self, callback: MessageCallback) -> Callable[[], None]:
        """Register callback for messages without a group id: callback(payload)."""
        return self._events.on_message(callback)

    def on_group_message(self, callback: GroupMessageCallback) -> Callable[[], None]:
        """Register callback for group messages: callback(group_id, payload)."""
        return self._events.on_group_message(callback)

    # -------------------------------------------------------------------------
    # Internal: Connection State Machine
    # -------------------------------------------------------------------------

    def _set_state(self, state: SessionState) -> None:
        """Update connection state and notify observers."""
        if self._state is state:
            return
        _LOGGER.debug(
            "[%s] State: %s → %s", self.user_id, self._state.value, state.value
        )
        if self._state is SessionState.CONNECTED:
            self._liveness.stop()
        self._state = state
        self._events.emit_state(state)

    async def _open_connection(self) -> bool:
        async with self._connect_lock:
            if self._shutdown_requested:
                _LOGGER.debug("[%s] Connection aborted: disconnect requested", self.user_id)
                return False
            if self._ws is not None:
                return True

            _LOGGER.info("[%s] Connecting to %s", self.user_id, self._config.url)
            ws_client = PushWsClient()
            try:
                await ws_client.connect(
                    self._config.url, timeout=self._config.connect_timeout
                )
            except PushClientError as err:
                _LOGGER.warning("[%s] Connection failed: %s", self.user_id, err)
                self._events.emit_error("Connection Failed", err)
                self._set_state(SessionState.DISCONNECTED)
                self._schedule_reconnect()
                return False

            if self._shutdown_requested:
                await self._close_quietly(ws_client)
                return False

            self._ws = ws_client
            self._set_state(SessionState.PENDING)
            self._events.emit_status("Websocket Connected")
            _LOGGER.info("[%s] WebSocket connected, starting listener", self.user_id)
            self._listen_task = asyncio.create_task(self._listen(ws_client))
            return True

    def _handle_established(self) -> None:
        """Negotiation finished on the current connection."""
        if self._ws is None:
            return
        self._set_state(SessionState.CONNECTED)
        self._liveness.start(self._ws)

    def _handle_connection_lost(self, ws: PushWsClient, detail: Any) -> None:
        """Tear down per-connection state and schedule a reconnect.

        Does nothing unless ws is the current connection.
        """
        if ws is not self._ws:
            return

        self._ws = None
        self._liveness.stop()
        self._negotiator.reset()
        self._listen_task = None

        if self._shutdown_requested:
            return

        _LOGGER.info("[%s] WebSocket disconnected: %s", self.user_id, detail)
        self._events.emit_status("Websocket Disconnected.", detail)
        self._set_state(SessionState.DISCONNECTED)
        self._schedule_reconnect()

    async def _drop_connection(self, ws: PushWsClient, detail: Any) -> None:
        """Give up on a connection that is still open."""
        self._handle_connection_lost(ws, detail)
        await self._close_quietly(ws)

    async def _close_quietly(self, ws: PushWsClient) -> None:
        try:
            await asyncio.wait_for(ws.close(), timeout=2.0)
        except TimeoutError:
            _LOGGER.warning("[%s] WebSocket close timed out", self.user_id)

    def _schedule_reconnect(self) -> None:
        """Schedule one reconnection attempt after the fixed delay."""
        if self._shutdown_requested:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return

        delay = self._config.reconnect_delay
        _LOGGER.info("[%s] Reconnecting in %ss", self.user_id, delay)
        self._reconnect_task = asyncio.create_task(self._reconnect_after_delay(delay))

    async def _reconnect_after_delay(self, delay: float) -> None:
        """Reconnect after delay."""
        try:
            await asyncio.sleep(delay)
            # Cleared before connecting so a failed attempt can schedule the next one.
            self._reconnect_task = None
            await self._open_connection()
        except asyncio.CancelledError:
            _LOGGER.debug("[%s] Reconnect cancelled", self.user_id)
        finally:
            if self._reconnect_task is asyncio.current_task():
                self._reconnect_task = None

    def _cancel_reconnect(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _handle_ping_failure(self, ws: PushWsClient, err: PushClientError) -> None:
        self._events.emit_error("Failed to ping. Reconnecting...", err)
        await self._drop_connection(ws, err)

    # -------------------------------------------------------------------------
    # Internal: Outbound
    # -------------------------------------------------------------------------

    async def _send(self, message: dict[str, Any]) -> bool:
        """Stamp the next id on message and send it on the current connection.

        Returns:
            True if the frame was written, False otherwise
        """
        ws = self._ws
        if ws is None:
            _LOGGER.warning("[%s] Send skipped: not connected", self.user_id)
            self._events.emit_error(
                "Cannot send message: WebSocket connection is not open.", message
            )
            return False

        self._message_id += 1
        stamped = {**message, "id": self._message_id}
        self._events.emit_status("Sending:", stamped)
        _LOGGER.debug(
            "[%s] Sending %s id=%d", self.user_id, stamped["channel"], self._message_id
        )

        try:
            await ws.send_text(encode_frame([stamped]))
        except PushClientError as err:
            _LOGGER.warning("[%s] Send failed: %s", self.user_id, err)
            self._events.emit_error("Error sending message:", err)
            await self._drop_connection(ws, err)
            return False
        return True

    # -------------------------------------------------------------------------
    # Internal: Message Listener
    # -------------------------------------------------------------------------

    async def _listen(self, ws: PushWsClient) -> None:
        """Negotiate on ws, then dispatch its frames until it closes."""
        detail: Any = None
        message_count = 0

        try:
            await self._negotiator.start(ws)

            async for msg in ws:
                if msg.type is PushWsMessageType.TEXT:
                    message_count += 1
                    await self._dispatcher.dispatch_frame(str(msg.data))

                elif msg.type is PushWsMessageType.BINARY:
                    self._dispatcher.reject_frame(msg.data)

                elif msg.type is PushWsMessageType.CLOSED:
                    _LOGGER.info("[%s] WebSocket closed by server", self.user_id)
                    detail = msg.data
                    break

                elif msg.type is PushWsMessageType.ERROR:
                    _LOGGER.error("[%s] WebSocket error: %s", self.user_id, msg.data)
                    self._events.emit_error("Websocket experienced error.", msg.data)
                    detail = msg.data
                    break

        except asyncio.CancelledError:
            _LOGGER.debug(
                "[%s] Listener cancelled (%d frames)", self.user_id, message_count
            )
            raise
        except PushClientError as err:
            _LOGGER.warning("[%s] Client error: %s", self.user_id, err)
            detail = err
        except Exception as err:
            _LOGGER.exception("[%s] Unexpected error: %s", self.user_id, err)
            self._events.emit_error("Websocket experienced error.", err)
            detail = err
        finally:
            self._handle_connection_lost(ws, detail)

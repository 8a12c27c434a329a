"""Bayeux negotiation for a push session.

Drives the sequence handshake -> user subscribe -> group subscribes ->
connect, one step per server response. A rejected handshake is re-sent after
a fixed delay, forever. A rejected subscribe is reported and not retried.
Group subscribes are fire-and-forget: their responses are logged, and
failures reported, but they never gate the connect step.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from .events import SessionEvents
from .messages import HandshakeResponse, SessionExpired, SubscribeResponse
from .protocol import (
    build_connect,
    build_handshake,
    build_subscribe,
    group_topic,
    user_topic,
)

_LOGGER = logging.getLogger(__name__)

SendCallback = Callable[[dict[str, Any]], Awaitable[bool]]


class ProtocolNegotiator:
    """Negotiates and re-negotiates the Bayeux session on one connection.

    The negotiator is bound to a connection with :meth:`start` and unbound with
    :meth:`reset`. A handshake retry scheduled for one connection never sends
    on a later one.
    """

    def __init__(
        self,
        *,
        access_token: str,
        user_id: str,
        group_ids: Sequence[str],
        send: SendCallback,
        events: SessionEvents,
        on_established: Callable[[], None],
        handshake_retry_delay: float = 5.0,
    ) -> None:
        self._access_token = access_token
        self._user_id = user_id
        self._user_topic = user_topic(user_id)
        self._group_ids = tuple(group_ids)
        self._send = send
        self._events = events
        self._on_established = on_established
        self._handshake_retry_delay = handshake_retry_delay

        self._client_id: str | None = None
        self._connection: object | None = None
        self._user_subscribed = False
        self._retry_task: asyncio.Task[None] | None = None

    @property
    def client_id(self) -> str | None:
        """Session identifier issued by the server, if negotiated."""
        return self._client_id

    @property
    def user_topic(self) -> str:
        return self._user_topic

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self, connection: object) -> None:
        """Bind to a freshly opened connection and send the handshake."""
        self.reset()
        self._connection = connection
        await self.handshake()

    def reset(self) -> None:
        """Forget the session identifier and cancel any handshake retry."""
        self._cancel_retry()
        self._client_id = None
        self._connection = None
        self._user_subscribed = False

    # -------------------------------------------------------------------------
    # Outbound steps
    # -------------------------------------------------------------------------

    async def handshake(self) -> None:
        """Step 1: request a new session identifier."""
        self._cancel_retry()
        self._client_id = None
        self._user_subscribed = False
        await self._send(build_handshake())
        _LOGGER.debug("[%s] Handshake sent", self._user_id)

    async def subscribe_user(self) -> None:
        """Step 2: subscribe to the user channel."""
        if self._client_id is None:
            return
        await self._send(
            build_subscribe(
                client_id=self._client_id,
                subscription=self._user_topic,
                access_token=self._access_token,
            )
        )

    async def subscribe_groups(self) -> None:
        """Step 3: subscribe to every configured group channel."""
        if self._client_id is None:
            return
        for group_id in self._group_ids:
            await self._send(
                build_subscribe(
                    client_id=self._client_id,
                    subscription=group_topic(group_id),
                    access_token=self._access_token,
                )
            )

    async def start_listening(self) -> None:
        """Step 4: ask the server to start delivering messages."""
        if self._client_id is None:
            return
        if await self._send(build_connect(client_id=self._client_id)):
            self._on_established()

    # -------------------------------------------------------------------------
    # Inbound responses
    # -------------------------------------------------------------------------

    async def handle_handshake(self, response: HandshakeResponse) -> None:
        """Continue after a handshake response."""
        if self._connection is None:
            _LOGGER.debug("[%s] Handshake response without connection", self._user_id)
            return

        if response.successful and response.client_id:
            self._client_id = response.client_id
            _LOGGER.info("[%s] Handshake succeeded", self._user_id)
            self._events.emit_status("Handshake succeeded!")
            await self.subscribe_user()
            return

        _LOGGER.error(
            "[%s] Handshake rejected (%s), retrying in %ss",
            self._user_id,
            response.error,
            self._handshake_retry_delay,
        )
        self._events.emit_error("Handshake failed! Retrying...", response.error)
        self._schedule_handshake_retry()

    async def handle_subscribe(self, response: SubscribeResponse) -> None:
        """Continue after a subscribe response."""
        if self._connection is None or self._client_id is None:
            _LOGGER.debug("[%s] Subscribe response without session", self._user_id)
            return

        if not response.successful:
            # Not retried, unlike the handshake.
            _LOGGER.error(
                "[%s] Subscribe to %s rejected: %s",
                self._user_id,
                response.subscription,
                response.error,
            )
            self._events.emit_error(
                "Subscribing to user or group failed!", response.error
            )
            return

        if self._is_user_response(response):
            self._user_subscribed = True
            _LOGGER.info("[%s] Subscribed to %s", self._user_id, self._user_topic)
            if self._group_ids:
                await self.subscribe_groups()
            await self.start_listening()
        else:
            _LOGGER.debug("[%s] Subscribed to %s", self._user_id, response.subscription)

    async def handle_session_expired(self, message: SessionExpired) -> None:
        """Drop the expired session identifier and negotiate a new one."""
        if self._connection is None:
            return
        _LOGGER.warning(
            "[%s] Client id %s expired, re-handshaking", self._user_id, self._client_id
        )
        self._events.emit_error(
            "ClientID expired. Initiating new handshake.", message.raw
        )
        await self.handshake()

    def _is_user_response(self, response: SubscribeResponse) -> bool:
        if response.subscription == self._user_topic:
            return True
        # Servers that omit the echo: the first success answers the user subscribe.
        return response.subscription is None and not self._user_subscribed

    # -------------------------------------------------------------------------
    # Handshake retry timer
    # -------------------------------------------------------------------------

    def _schedule_handshake_retry(self) -> None:
        if self._retry_task is not None and not self._retry_task.done():
            return
        self._retry_task = asyncio.create_task(
            self._handshake_after_delay(self._connection, self._handshake_retry_delay)
        )

    async def _handshake_after_delay(self, connection: object, delay: float) -> None:
        """Re-send the handshake unless the connection was replaced meanwhile."""
        try:
            await asyncio.sleep(delay)
            if connection is None or self._connection is not connection:
                _LOGGER.debug("[%s] Stale handshake retry ignored", self._user_id)
                return
            # Released before sending so a rejection that arrives while the
            # write is draining can schedule the next retry.
            self._retry_task = None
            await self.handshake()
        except asyncio.CancelledError:
            _LOGGER.debug("[%s] Handshake retry cancelled", self._user_id)
        finally:
            if self._retry_task is asyncio.current_task():
                self._retry_task = None

    def _cancel_retry(self) -> None:
        task = self._retry_task
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        self._retry_task = None

"""Routing of inbound frames to the negotiator and application observers."""

from __future__ import annotations

import logging
from typing import Any

from .errors import FrameDecodeError
from .events import SessionEvents
from .messages import (
    GroupPayload,
    HandshakeResponse,
    InboundMessage,
    SessionExpired,
    SubscribeResponse,
    classify,
)
from .negotiator import ProtocolNegotiator
from .protocol import decode_frame

_LOGGER = logging.getLogger(__name__)


class InboundDispatcher:
    """Decodes frames and dispatches each contained message exactly once.

    Malformed input is reported through the error event and dropped. It never
    raises and never changes session state.
    """

    def __init__(
        self,
        *,
        negotiator: ProtocolNegotiator,
        events: SessionEvents,
        name: str = "",
    ) -> None:
        self._negotiator = negotiator
        self._events = events
        self._name = name

    async def dispatch_frame(self, text: str) -> None:
        """Decode one TEXT frame and dispatch its messages in order."""
        try:
            messages = decode_frame(text)
        except FrameDecodeError as err:
            _LOGGER.warning("[%s] Dropping frame: %s", self._name, err)
            self._events.emit_error("Received an undecodable message.", text)
            return

        _LOGGER.debug("[%s] Received %d message(s)", self._name, len(messages))
        self._events.emit_status("Received:", text)

        for data in messages:
            if not isinstance(data, dict):
                _LOGGER.warning("[%s] Dropping non-object message: %r", self._name, data)
                self._events.emit_error("Received a malformed message.", data)
                continue
            await self.dispatch(classify(data))

    def reject_frame(self, data: Any) -> None:
        """Report a frame that is not text."""
        _LOGGER.warning("[%s] Dropping non-text frame", self._name)
        self._events.emit_error("Received a non-text message.", data)

    async def dispatch(self, message: InboundMessage) -> None:
        """Route one classified message."""
        if isinstance(message, HandshakeResponse):
            await self._negotiator.handle_handshake(message)
        elif isinstance(message, SubscribeResponse):
            await self._negotiator.handle_subscribe(message)
        elif isinstance(message, SessionExpired):
            await self._negotiator.handle_session_expired(message)
        elif isinstance(message, GroupPayload):
            self._events.emit_group_message(message.group_id, message.data)
        else:
            self._events.emit_message(message.data)

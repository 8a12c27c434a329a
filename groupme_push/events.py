"""Observer registry for the events a push session publishes.

The set of event kinds is closed:

- status(text, detail)
- error(text, detail)
- state change (SessionState)
- message(payload)
- group message(group_id, payload)

Callbacks run inline on the event loop and must not block. An exception
raised by a callback is logged and does not reach the protocol logic.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

_LOGGER = logging.getLogger(__name__)


class SessionState(Enum):
    """Connection lifecycle states."""

    DISCONNECTED = "disconnected"
    PENDING = "pending"
    CONNECTED = "connected"


StatusCallback = Callable[[str, Any], None]
ErrorCallback = Callable[[str, Any], None]
StateCallback = Callable[[SessionState], None]
MessageCallback = Callable[[dict[str, Any]], None]
GroupMessageCallback = Callable[[str, dict[str, Any]], None]


class SessionEvents:
    """Holds the registered observers of one session."""

    def __init__(self) -> None:
        self._status: list[StatusCallback] = []
        self._error: list[ErrorCallback] = []
        self._state: list[StateCallback] = []
        self._message: list[MessageCallback] = []
        self._group_message: list[GroupMessageCallback] = []

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    @staticmethod
    def _register(callbacks: list[Any], callback: Any) -> Callable[[], None]:
        callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def on_status(self, callback: StatusCallback) -> Callable[[], None]:
        """Register callback for status text. Returns an unsubscribe function."""
        return self._register(self._status, callback)

    def on_error(self, callback: ErrorCallback) -> Callable[[], None]:
        """Register callback for errors. Returns an unsubscribe function."""
        return self._register(self._error, callback)

    def on_state_changed(self, callback: StateCallback) -> Callable[[], None]:
        """Register callback for state transitions.

        Callback receives the new SessionState.
        """
        return self._register(self._state, callback)

    def on_message(self, callback: MessageCallback) -> Callable[[], None]:
        """Register callback for messages that carry no group id."""
        return self._register(self._message, callback)

    def on_group_message(self, callback: GroupMessageCallback) -> Callable[[], None]:
        """Register callback for group-scoped messages.

        Callback receives (group_id, payload).
        """
        return self._register(self._group_message, callback)

    # -------------------------------------------------------------------------
    # Emission
    # -------------------------------------------------------------------------

    def emit_status(self, text: str, detail: Any = None) -> None:
        self._notify("status", self._status, text, detail)

    def emit_error(self, text: str, detail: Any = None) -> None:
        self._notify("error", self._error, text, detail)

    def emit_state(self, state: SessionState) -> None:
        self._notify("state", self._state, state)

    def emit_message(self, payload: dict[str, Any]) -> None:
        self._notify("message", self._message, payload)

    def emit_group_message(self, group_id: str, payload: dict[str, Any]) -> None:
        self._notify("group message", self._group_message, group_id, payload)

    @staticmethod
    def _notify(kind: str, callbacks: list[Any], *args: Any) -> None:
        for callback in list(callbacks):
            try:
                callback(*args)
            except Exception as err:
                _LOGGER.exception("%s callback error: %s", kind.capitalize(), err)

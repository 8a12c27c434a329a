"""Tests for SessionEvents observer registry."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from groupme_push.events import SessionEvents, SessionState


def test_state_values() -> None:
    """Test state names used on the wire of the event stream."""
    assert [s.value for s in SessionState] == ["disconnected", "pending", "connected"]


def test_emit_reaches_every_observer() -> None:
    """Test all registered observers of a kind are called in order."""
    events = SessionEvents()
    calls: list[str] = []
    events.on_status(lambda text, detail: calls.append(f"a:{text}:{detail}"))
    events.on_status(lambda text, detail: calls.append(f"b:{text}:{detail}"))

    events.emit_status("Websocket Connected")

    assert calls == ["a:Websocket Connected:None", "b:Websocket Connected:None"]


def test_kinds_are_separate() -> None:
    """Test each event kind only reaches its own observers."""
    events = SessionEvents()
    status, error, state, message, group = (MagicMock() for _ in range(5))
    events.on_status(status)
    events.on_error(error)
    events.on_state_changed(state)
    events.on_message(message)
    events.on_group_message(group)

    events.emit_error("boom", 1)
    events.emit_state(SessionState.PENDING)
    events.emit_message({"a": 1})
    events.emit_group_message("g1", {"b": 2})

    status.assert_not_called()
    error.assert_called_once_with("boom", 1)
    state.assert_called_once_with(SessionState.PENDING)
    message.assert_called_once_with({"a": 1})
    group.assert_called_once_with("g1", {"b": 2})


def test_unsubscribe() -> None:
    """Test the returned function removes the observer."""
    events = SessionEvents()
    observer = MagicMock()
    unsubscribe = events.on_message(observer)

    unsubscribe()
    unsubscribe()
    events.emit_message({})

    observer.assert_not_called()


def test_failing_observer_is_isolated(caplog: pytest.LogCaptureFixture) -> None:
    """Test one observer raising does not stop the others."""
    events = SessionEvents()
    after = MagicMock()
    events.on_error(MagicMock(side_effect=RuntimeError("observer bug")))
    events.on_error(after)

    with caplog.at_level(logging.ERROR):
        events.emit_error("Connection Failed")

    after.assert_called_once_with("Connection Failed", None)
    assert "observer bug" in caplog.text

"""Tests for LivenessMonitor."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from groupme_push.errors import PushConnectionError, PushTimeout
from groupme_push.liveness import LivenessMonitor

from .conftest import FakeWsClient, wait_for


@pytest.mark.asyncio
async def test_pings_at_interval() -> None:
    """Test the monitor pings repeatedly while running."""
    ws = FakeWsClient()
    monitor = LivenessMonitor(on_failure=AsyncMock(), interval=0.02)

    monitor.start(ws)  # type: ignore[arg-type]
    await wait_for(lambda: ws.pings >= 3)

    assert monitor.running
    monitor.stop()


@pytest.mark.asyncio
async def test_stop_cancels_timer() -> None:
    """Test no ping is issued after stop."""
    ws = FakeWsClient()
    monitor = LivenessMonitor(on_failure=AsyncMock(), interval=0.02)

    monitor.start(ws)  # type: ignore[arg-type]
    await wait_for(lambda: ws.pings >= 1)
    monitor.stop()
    pings = ws.pings
    await asyncio.sleep(0.1)

    assert ws.pings == pings
    assert not monitor.running


@pytest.mark.asyncio
async def test_start_same_connection_is_idempotent() -> None:
    """Test starting twice for one connection keeps one timer."""
    ws = FakeWsClient()
    monitor = LivenessMonitor(on_failure=AsyncMock(), interval=0.05)

    monitor.start(ws)  # type: ignore[arg-type]
    task = monitor._task
    monitor.start(ws)  # type: ignore[arg-type]

    assert monitor._task is task
    monitor.stop()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error", [PushConnectionError("closed"), PushTimeout("no pong")]
)
async def test_ping_failure_calls_back_and_stops(error: Exception) -> None:
    """Test a failed ping stops the monitor and reports the connection."""
    ws = FakeWsClient()
    ws.ping_error = error  # type: ignore[assignment]
    on_failure = AsyncMock()
    monitor = LivenessMonitor(on_failure=on_failure, interval=0.02)

    monitor.start(ws)  # type: ignore[arg-type]
    await wait_for(lambda: on_failure.await_count == 1)
    await asyncio.sleep(0.06)

    on_failure.assert_awaited_once_with(ws, error)
    assert not monitor.running

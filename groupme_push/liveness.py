"""Keepalive pings for a connected push session."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from .errors import PushClientError
from .transport.ws_client import PushWsClient

_LOGGER = logging.getLogger(__name__)

FailureCallback = Callable[[PushWsClient, PushClientError], Awaitable[None]]


class LivenessMonitor:
    """Pings one connection at a fixed interval until stopped.

    The monitor only surfaces half-open connections. When a ping cannot be
    issued (or its pong times out) the monitor stops itself and hands the
    connection to the failure callback.
    """

    def __init__(
        self,
        *,
        on_failure: FailureCallback,
        interval: float = 30.0,
        timeout: float | None = None,
        name: str = "",
    ) -> None:
        self._on_failure = on_failure
        self._interval = interval
        self._timeout = timeout
        self._name = name

        self._connection: PushWsClient | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, connection: PushWsClient) -> None:
        """Start pinging connection. Restarts if bound to another connection."""
        if self.running and self._connection is connection:
            return
        self.stop()
        self._connection = connection
        self._task = asyncio.create_task(self._run(connection))
        _LOGGER.debug("[%s] Keepalive started (every %ss)", self._name, self._interval)

    def stop(self) -> None:
        """Cancel the ping timer."""
        task, self._task = self._task, None
        self._connection = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            _LOGGER.debug("[%s] Keepalive stopped", self._name)

    async def _run(self, connection: PushWsClient) -> None:
        try:
            while True:
                await asyncio.sleep(self._interval)
                if self._connection is not connection:
                    return
                try:
                    await connection.ping(timeout=self._timeout)
                except PushClientError as err:
                    _LOGGER.warning("[%s] Ping failed: %s", self._name, err)
                    self._task = None
                    self._connection = None
                    await self._on_failure(connection, err)
                    return
                _LOGGER.debug("[%s] Ping sent", self._name)
        except asyncio.CancelledError:
            _LOGGER.debug("[%s] Keepalive cancelled", self._name)

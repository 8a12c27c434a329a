"""Client error types for the GroupMe push client."""

from __future__ import annotations


class PushClientError(Exception):
    """Base error for GroupMe push client failures."""


class PushTimeout(PushClientError):
    """Timeout while communicating with the push service."""


class PushConnectionError(PushClientError):
    """Network connection to the push service failed."""


class PushHandshakeError(PushClientError):
    """WebSocket handshake failed."""


class PushResponseError(PushClientError):
    """HTTP response error from the GroupMe API."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status


class FrameDecodeError(PushClientError):
    """Inbound frame could not be decoded into protocol messages."""


class ConfigError(PushClientError):
    """Configuration file is missing or invalid."""

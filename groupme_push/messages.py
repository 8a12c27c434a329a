"""Typed inbound protocol messages.

Every decoded protocol object is classified exactly once into one of a closed
set of variants before it is dispatched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .protocol import HANDSHAKE_CHANNEL, SESSION_EXPIRED_ERROR, SUBSCRIBE_CHANNEL


@dataclass(frozen=True)
class HandshakeResponse:
    """Server reply on /meta/handshake."""

    successful: bool
    client_id: str | None = None
    error: str | None = None
    raw: dict[str, Any] = field(default_factory=lambda: {}, repr=False)


@dataclass(frozen=True)
class SubscribeResponse:
    """Server reply on /meta/subscribe."""

    successful: bool
    subscription: str | None = None
    error: str | None = None
    raw: dict[str, Any] = field(default_factory=lambda: {}, repr=False)


@dataclass(frozen=True)
class SessionExpired:
    """Any message telling us the server dropped our clientId."""

    raw: dict[str, Any] = field(default_factory=lambda: {}, repr=False)


@dataclass(frozen=True)
class GroupPayload:
    """Application message scoped to a group."""

    group_id: str
    data: dict[str, Any]


@dataclass(frozen=True)
class GenericPayload:
    """Any other application message."""

    data: dict[str, Any]


InboundMessage = (
    HandshakeResponse | SubscribeResponse | SessionExpired | GroupPayload | GenericPayload
)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def classify(data: dict[str, Any]) -> InboundMessage:
    """Classify one protocol object.

    Priority order: handshake response, subscribe response, session expired,
    group payload, generic payload.
    """
    channel = data.get("channel")

    if channel == HANDSHAKE_CHANNEL:
        return HandshakeResponse(
            successful=data.get("successful") is True,
            client_id=_optional_str(data.get("clientId")),
            error=_optional_str(data.get("error")),
            raw=data,
        )

    if channel == SUBSCRIBE_CHANNEL:
        return SubscribeResponse(
            successful=data.get("successful") is True,
            subscription=_optional_str(data.get("subscription")),
            error=_optional_str(data.get("error")),
            raw=data,
        )

    if data.get("error") == SESSION_EXPIRED_ERROR:
        return SessionExpired(raw=data)

    group_id = data.get("groupId")
    if group_id:
        return GroupPayload(group_id=str(group_id), data=data)

    return GenericPayload(data=data)

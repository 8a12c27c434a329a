"""Bayeux message builders and frame codec for the GroupMe push service.

Outbound builders return plain dicts without an ``id``; the session stamps
ids immediately before encoding so that they follow send order.
"""

from __future__ import annotations

import json
import time
from collections.abc import Sequence
from typing import Any

from .errors import FrameDecodeError

HANDSHAKE_CHANNEL = "/meta/handshake"
SUBSCRIBE_CHANNEL = "/meta/subscribe"
CONNECT_CHANNEL = "/meta/connect"

BAYEUX_VERSION = "1.0"
CONNECTION_TYPE = "websocket"
SUPPORTED_CONNECTION_TYPES: tuple[str, ...] = (CONNECTION_TYPE,)

# Value of the "error" field when the server no longer knows our clientId.
SESSION_EXPIRED_ERROR = "ClientID_Expired"


def user_topic(user_id: str) -> str:
    """Return the subscription channel for a user."""
    return f"/user/{user_id}"


def group_topic(group_id: str) -> str:
    """Return the subscription channel for a group."""
    return f"/group/{group_id}"


def build_handshake() -> dict[str, Any]:
    """Build a handshake request."""
    return {
        "channel": HANDSHAKE_CHANNEL,
        "version": BAYEUX_VERSION,
        "supportedConnectionTypes": list(SUPPORTED_CONNECTION_TYPES),
    }


def build_subscribe(
    *,
    client_id: str,
    subscription: str,
    access_token: str,
    timestamp_ms: int | None = None,
) -> dict[str, Any]:
    """Build a subscribe request for a user or group channel.

    Args:
        client_id: Session identifier from the handshake response.
        subscription: Channel to subscribe to (see user_topic/group_topic).
        access_token: GroupMe access token, sent in the ext field.
        timestamp_ms: Optional epoch milliseconds override.

    Returns:
        Subscribe message dict.
    """
    return {
        "channel": SUBSCRIBE_CHANNEL,
        "clientId": client_id,
        "subscription": subscription,
        "ext": {
            "access_token": access_token,
            "timestamp": (
                timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
            ),
        },
    }


def build_connect(*, client_id: str) -> dict[str, Any]:
    """Build the connect request that starts message delivery."""
    return {
        "channel": CONNECT_CHANNEL,
        "clientId": client_id,
        "connectionType": CONNECTION_TYPE,
    }


def encode_frame(messages: Sequence[dict[str, Any]]) -> str:
    """Encode protocol messages as one wire frame (a JSON array)."""
    return json.dumps(list(messages))


def decode_frame(text: str) -> list[Any]:
    """Decode one wire frame into its ordered protocol messages.

    Elements are returned as decoded; callers decide what to do with
    elements that are not JSON objects.

    Raises:
        FrameDecodeError: If the text is not JSON or not a JSON array
    """
    try:
        decoded = json.loads(text)
    except (TypeError, ValueError) as err:
        raise FrameDecodeError(f"Frame is not valid JSON: {err}") from err

    if not isinstance(decoded, list):
        raise FrameDecodeError(
            f"Frame must be a JSON array, got {type(decoded).__name__}"
        )
    return decoded

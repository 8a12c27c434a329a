"""Transport layer for the GroupMe push client.

This package contains the websocket IO only: connect, send, ping, close and
frame iteration. Protocol handling lives in the parent package.
"""

from .ws_client import PushWsClient, PushWsMessage, PushWsMessageType

__all__ = [
    "PushWsClient",
    "PushWsMessage",
    "PushWsMessageType",
]

"""GroupMe push client.

Keeps a websocket subscription to the GroupMe push service and publishes
user and group messages to registered observers.
"""

__version__ = "0.1.0"

from .config import PushConfig, load_config
from .errors import (
    ConfigError,
    FrameDecodeError,
    PushClientError,
    PushConnectionError,
    PushHandshakeError,
    PushResponseError,
    PushTimeout,
)
from .events import SessionEvents, SessionState
from .http import GroupMeHttpClient
from .messages import (
    GenericPayload,
    GroupPayload,
    HandshakeResponse,
    SessionExpired,
    SubscribeResponse,
    classify,
)
from .protocol import (
    build_connect,
    build_handshake,
    build_subscribe,
    decode_frame,
    encode_frame,
)
from .session import PushSession
from .transport import PushWsClient, PushWsMessage, PushWsMessageType

__all__ = [
    "ConfigError",
    "FrameDecodeError",
    "GenericPayload",
    "GroupMeHttpClient",
    "GroupPayload",
    "HandshakeResponse",
    "PushClientError",
    "PushConfig",
    "PushConnectionError",
    "PushHandshakeError",
    "PushResponseError",
    "PushSession",
    "PushTimeout",
    "PushWsClient",
    "PushWsMessage",
    "PushWsMessageType",
    "SessionEvents",
    "SessionExpired",
    "SessionState",
    "SubscribeResponse",
    "__version__",
    "build_connect",
    "build_handshake",
    "build_subscribe",
    "classify",
    "decode_frame",
    "encode_frame",
    "load_config",
]

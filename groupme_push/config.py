"""Connection settings for the GroupMe push client.

Settings are plain data. They can be built in code or loaded from a YAML
file with :func:`load_config`.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

DEFAULT_PUSH_URL = "wss://push.groupme.com/faye"
DEFAULT_API_URL = "https://api.groupme.com/v3"

_POSITIVE_FIELDS = (
    "reconnect_delay",
    "handshake_retry_delay",
    "ping_interval",
    "connect_timeout",
)


@dataclass(frozen=True)
class PushConfig:
    """Endpoint and timing settings for a push session.

    Attributes:
        url: Push service websocket endpoint.
        api_url: GroupMe REST API base URL.
        reconnect_delay: Seconds to wait before reconnecting after a drop.
        handshake_retry_delay: Seconds to wait before re-sending a rejected handshake.
        ping_interval: Seconds between liveness pings while connected.
        ping_timeout: Seconds to wait for a pong, or None to only issue the ping.
        connect_timeout: Seconds allowed for the websocket connect.
    """

    url: str = DEFAULT_PUSH_URL
    api_url: str = DEFAULT_API_URL
    reconnect_delay: float = 5.0
    handshake_retry_delay: float = 5.0
    ping_interval: float = 30.0
    ping_timeout: float | None = None
    connect_timeout: float = 15.0

    def __post_init__(self) -> None:
        for name in _POSITIVE_FIELDS:
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.ping_timeout is not None and self.ping_timeout <= 0:
            raise ConfigError("ping_timeout must be positive when set")
        if not self.url:
            raise ConfigError("url must not be empty")


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file with error handling."""
    if not path.exists():
        raise ConfigError(f"File not found: {path}")
    with path.open() as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {path}")
    return data


def load_config(path: Path | str) -> PushConfig:
    """Load push settings from a YAML file.

    Args:
        path: Path to a YAML mapping whose keys are PushConfig field names.

    Returns:
        Parsed PushConfig. Keys absent from the file keep their defaults.

    Raises:
        ConfigError: If the file is missing, is not a mapping, names an
            unknown setting, or holds an invalid value.
    """
    data = _load_yaml(Path(path))

    known = {f.name for f in dataclasses.fields(PushConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown settings: {', '.join(unknown)}")

    try:
        return PushConfig(**data)
    except TypeError as err:
        raise ConfigError(f"Invalid settings in {path}: {err}") from err

"""Tests for PushConfig and YAML loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from groupme_push.config import DEFAULT_PUSH_URL, PushConfig, load_config
from groupme_push.errors import ConfigError


def test_defaults() -> None:
    """Test defaults match the push service's reference timings."""
    config = PushConfig()
    assert config.url == DEFAULT_PUSH_URL
    assert config.reconnect_delay == 5.0
    assert config.handshake_retry_delay == 5.0
    assert config.ping_interval == 30.0
    assert config.ping_timeout is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"reconnect_delay": 0},
        {"handshake_retry_delay": -1},
        {"ping_interval": 0},
        {"connect_timeout": 0},
        {"ping_timeout": 0},
        {"url": ""},
    ],
)
def test_invalid_values(kwargs: dict[str, object]) -> None:
    """Test non-positive timings and empty url are rejected."""
    with pytest.raises(ConfigError):
        PushConfig(**kwargs)  # type: ignore[arg-type]


def test_load_config(tmp_path: Path) -> None:
    """Test loading a partial YAML file."""
    path = tmp_path / "push.yaml"
    path.write_text("url: ws://localhost:9292/faye\nping_interval: 10\nping_timeout: 5\n")

    config = load_config(path)

    assert config.url == "ws://localhost:9292/faye"
    assert config.ping_interval == 10
    assert config.ping_timeout == 5
    assert config.reconnect_delay == 5.0


def test_load_empty_file(tmp_path: Path) -> None:
    """Test an empty file yields defaults."""
    path = tmp_path / "push.yaml"
    path.write_text("")

    assert load_config(path) == PushConfig()


def test_load_missing_file(tmp_path: Path) -> None:
    """Test a missing file raises ConfigError."""
    with pytest.raises(ConfigError, match="File not found"):
        load_config(tmp_path / "absent.yaml")


def test_load_unknown_key(tmp_path: Path) -> None:
    """Test unknown settings are rejected."""
    path = tmp_path / "push.yaml"
    path.write_text("reconnect_dealy: 3\n")

    with pytest.raises(ConfigError, match="reconnect_dealy"):
        load_config(path)


def test_load_non_mapping(tmp_path: Path) -> None:
    """Test a YAML list is rejected."""
    path = tmp_path / "push.yaml"
    path.write_text("- 1\n- 2\n")

    with pytest.raises(ConfigError, match="mapping"):
        load_config(path)


def test_load_wrong_type(tmp_path: Path) -> None:
    """Test a non-numeric delay is rejected."""
    path = tmp_path / "push.yaml"
    path.write_text("reconnect_delay: soon\n")

    with pytest.raises(ConfigError):
        load_config(path)

"""Tests for session configuration."""

import pytest

from centrilink.session.config import HeartbeatAckShape, SessionConfig


def test_defaults():
    config = SessionConfig(url="wss://example.test/ws", channels=["a", "b"])
    assert config.channels == ("a", "b")
    assert config.handshake_timeout == 10.0
    assert config.default_heartbeat_interval == 25.0
    assert config.refresh_ceiling == 300.0
    assert config.transport_silence_timeout == 35.0
    assert config.heartbeat_ack is HeartbeatAckShape.JSON_PONG


@pytest.mark.parametrize("url", ["https://example.test", "example.test/ws", ""])
def test_rejects_non_websocket_url(url):
    with pytest.raises(ValueError):
        SessionConfig(url=url)


def test_rejects_bad_jitter():
    with pytest.raises(ValueError):
        SessionConfig(url="ws://localhost", heartbeat_jitter_ratio=1.5)


def test_high_volume():
    everything = SessionConfig(url="ws://localhost")
    assert everything.is_high_volume("anything")

    some = SessionConfig(url="ws://localhost", high_volume_channels={"trades"})
    assert some.is_high_volume("trades")
    assert not some.is_high_volume("news")


def test_heartbeat_ack_shapes():
    assert HeartbeatAckShape.JSON_PONG.encode() == '{"pong":{}}'
    assert HeartbeatAckShape.TYPE3_BINARY.encode() == b'{"type":3}'
    assert HeartbeatAckShape.TRANSPORT_ONLY.encode() is None


def test_from_env():
    env = {
        "CENTRILINK_URL": "wss://example.test/connection/websocket",
        "CENTRILINK_CHANNELS": "news, trades,,",
        "CENTRILINK_ORIGIN": "https://example.test",
        "CENTRILINK_HEARTBEAT_ACK": "type3_binary",
        "CENTRILINK_HIGH_VOLUME_CHANNELS": "trades",
        "CENTRILINK_REFRESH_CEILING": "0",
        "CENTRILINK_SILENCE_TIMEOUT": "40",
    }
    config = SessionConfig.from_env(env)
    assert config.url == "wss://example.test/connection/websocket"
    assert config.channels == ("news", "trades")
    assert config.origin == "https://example.test"
    assert config.heartbeat_ack is HeartbeatAckShape.TYPE3_BINARY
    assert config.high_volume_channels == frozenset({"trades"})
    assert config.refresh_ceiling is None
    assert config.transport_silence_timeout == 40.0


def test_from_env_overrides_win():
    config = SessionConfig.from_env(
        {"CENTRILINK_URL": "ws://a", "CENTRILINK_CHANNELS": "x"}, channels=("y",)
    )
    assert config.channels == ("y",)


def test_from_env_star_means_all_channels():
    config = SessionConfig.from_env(
        {"CENTRILINK_URL": "ws://a", "CENTRILINK_HIGH_VOLUME_CHANNELS": "*"}
    )
    assert config.high_volume_channels is None


def test_from_env_requires_url():
    with pytest.raises(ValueError):
        SessionConfig.from_env({})

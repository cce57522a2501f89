"""Shared test fixtures for centrilink tests."""

import pytest

from centrilink.session import (
    ReconnectPolicy,
    SessionConfig,
    SessionConnection,
    StaticTokenSource,
)
from centrilink.telemetry import configure_telemetry


@pytest.fixture
def fast_config():
    """Config with short timeouts and no background timers."""
    return SessionConfig(
        url="wss://example.test/connection/websocket",
        channels=("news", "trades"),
        handshake_timeout=0.2,
        credential_retry_delay=0.02,
        subscribe_delay=0.0,
        subscribe_grace=0.2,
        default_heartbeat_interval=1000.0,
        transport_silence_timeout=None,
        refresh_ceiling=None,
    )


@pytest.fixture
def fast_policy():
    return ReconnectPolicy(base_delay=0.01, backoff_factor=2.0, max_delay=0.08, refresh_delay=0.005)


@pytest.fixture
def quiet_providers():
    """Providers without exporters, so tests produce no console output."""
    return configure_telemetry(service_name="centrilink-test")


@pytest.fixture
def make_connection(fast_config, fast_policy, quiet_providers):
    tracer_provider, logger_provider = quiet_providers

    def _make(factory, config=None, token="secret-token", token_source=None, **kwargs):
        kwargs.setdefault("retry_policy", fast_policy)
        return SessionConnection(
            config or fast_config,
            token_source or StaticTokenSource(token),
            transport_factory=factory,
            tracer_provider=tracer_provider,
            logger_provider=logger_provider,
            **kwargs,
        )

    return _make

"""Session configuration.

Provides the typed :class:`SessionConfig` dataclass and the
:class:`HeartbeatAckShape` enum selecting the application heartbeat wire
format expected by the server deployment.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlsplit


class HeartbeatAckShape(Enum):
    """Wire shape of the application-level heartbeat acknowledgement.

    Different deployments of the same protocol family expect different
    shapes, so this is explicit configuration rather than inferred.
    """

    JSON_PONG = "json_pong"  # {"pong":{}} as a text frame
    TYPE3_BINARY = "type3_binary"  # {"type":3} as a binary frame
    TRANSPORT_ONLY = "transport_only"  # no application ack

    def encode(self) -> str | bytes | None:
        if self is HeartbeatAckShape.JSON_PONG:
            return '{"pong":{}}'
        if self is HeartbeatAckShape.TYPE3_BINARY:
            return b'{"type":3}'
        return None


@dataclass(frozen=True)
class SessionConfig:
    """Typed configuration for a :class:`SessionConnection`.

    Attributes:
        url: ``wss://`` (or ``ws://``) endpoint of the control protocol.
        channels: Channels subscribed once the handshake completes.
        user_agent: ``User-Agent`` header sent with the upgrade request.
        origin: ``Origin`` header sent with the upgrade request.
        extra_headers: Any other upgrade request headers.
        open_timeout: Seconds allowed for the TCP/TLS/upgrade handshake.
        handshake_timeout: Seconds allowed between sending ``connect`` and
            receiving its acknowledgement.
        credential_retry_delay: Seconds between token fetch retries.
        subscribe_delay: Pause between the connect ack and the subscribe
            requests.
        subscribe_grace: Seconds to wait for subscribe acks before entering
            the steady state anyway.
        default_heartbeat_interval: Application heartbeat interval when the
            server does not advertise one.
        heartbeat_jitter_ratio: Jitter as a fraction of the interval.
        heartbeat_ack: Wire shape of the heartbeat acknowledgement.
        transport_silence_timeout: Close the session when no transport ping
            arrived for this long. None disables the watchdog.
        refresh_ceiling: Steady-state duration after which the session is
            proactively cycled. None disables forced refreshes.
        high_volume_channels: Channels whose push bodies are never recorded.
            None marks every channel as high-volume.
        event_log_max_entries, event_log_max_bytes: EventLog caps.
        handshake_id, subscribe_base_id: Correlation ids of the handshake and
            of the first subscribe request.
    """

    url: str
    channels: tuple[str, ...] = ()
    user_agent: str | None = None
    origin: str | None = None
    extra_headers: Mapping[str, str] = field(default_factory=dict)
    open_timeout: float = 10.0
    handshake_timeout: float = 10.0
    credential_retry_delay: float = 3.0
    subscribe_delay: float = 0.2
    subscribe_grace: float = 5.0
    default_heartbeat_interval: float = 25.0
    heartbeat_jitter_ratio: float = 0.05
    heartbeat_ack: HeartbeatAckShape = HeartbeatAckShape.JSON_PONG
    transport_silence_timeout: float | None = 35.0
    refresh_ceiling: float | None = 300.0
    high_volume_channels: frozenset[str] | None = None
    event_log_max_entries: int = 1000
    event_log_max_bytes: int = 256 * 1024
    handshake_id: int = 1
    subscribe_base_id: int = 100

    def __post_init__(self):
        scheme = urlsplit(self.url).scheme
        if scheme not in ("ws", "wss"):
            raise ValueError(f"url must use ws:// or wss://, got '{self.url}'")
        # Accept any iterable of channel names
        object.__setattr__(self, "channels", tuple(self.channels))
        if self.high_volume_channels is not None:
            object.__setattr__(
                self, "high_volume_channels", frozenset(self.high_volume_channels)
            )
        if not 0.0 <= self.heartbeat_jitter_ratio < 1.0:
            raise ValueError(
                f"heartbeat_jitter_ratio must be in [0, 1), "
                f"got {self.heartbeat_jitter_ratio}"
            )

    def is_high_volume(self, channel: str) -> bool:
        if self.high_volume_channels is None:
            return True
        return channel in self.high_volume_channels

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, **overrides
    ) -> "SessionConfig":
        """Build a config from ``CENTRILINK_*`` environment variables.

        Recognised variables: ``CENTRILINK_URL``, ``CENTRILINK_CHANNELS``
        (comma separated), ``CENTRILINK_USER_AGENT``, ``CENTRILINK_ORIGIN``,
        ``CENTRILINK_HEARTBEAT_ACK``, ``CENTRILINK_HIGH_VOLUME_CHANNELS``
        (comma separated, ``*`` for all), ``CENTRILINK_REFRESH_CEILING`` and
        ``CENTRILINK_SILENCE_TIMEOUT`` (seconds, ``0`` disables).
        Keyword overrides win over the environment.
        """
        env = os.environ if environ is None else environ
        values: dict = {}

        if "CENTRILINK_URL" in env:
            values["url"] = env["CENTRILINK_URL"]
        if env.get("CENTRILINK_CHANNELS"):
            values["channels"] = _split_csv(env["CENTRILINK_CHANNELS"])
        if env.get("CENTRILINK_USER_AGENT"):
            values["user_agent"] = env["CENTRILINK_USER_AGENT"]
        if env.get("CENTRILINK_ORIGIN"):
            values["origin"] = env["CENTRILINK_ORIGIN"]
        if env.get("CENTRILINK_HEARTBEAT_ACK"):
            values["heartbeat_ack"] = HeartbeatAckShape(env["CENTRILINK_HEARTBEAT_ACK"])
        if env.get("CENTRILINK_HIGH_VOLUME_CHANNELS"):
            raw = env["CENTRILINK_HIGH_VOLUME_CHANNELS"].strip()
            values["high_volume_channels"] = (
                None if raw == "*" else frozenset(_split_csv(raw))
            )
        if env.get("CENTRILINK_REFRESH_CEILING"):
            values["refresh_ceiling"] = _optional_seconds(
                env["CENTRILINK_REFRESH_CEILING"]
            )
        if env.get("CENTRILINK_SILENCE_TIMEOUT"):
            values["transport_silence_timeout"] = _optional_seconds(
                env["CENTRILINK_SILENCE_TIMEOUT"]
            )

        values.update(overrides)
        if "url" not in values:
            raise ValueError("CENTRILINK_URL is not set")
        return cls(**values)


def _split_csv(raw: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _optional_seconds(raw: str) -> float | None:
    value = float(raw)
    return value if value > 0 else None

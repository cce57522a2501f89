"""Convenience exports for the :mod:`centrilink` package."""

from .eventlog import EventLog, LogEntry  # noqa: F401
from .mechanism import (  # noqa: F401
    CredentialUnavailable,
    HandshakeRejected,
    HandshakeTimeout,
    MalformedFrame,
    ProtocolAnomaly,
    ReconnectReason,
    RefreshDue,
    SessionError,
    TransportError,
    TransportSilent,
)
from .session import (  # noqa: F401
    ConnectAck,
    FrameClassifier,
    HeartbeatAckShape,
    HttpTokenSource,
    KeepAliveScheduler,
    Push,
    ReconnectPolicy,
    SessionConfig,
    SessionConnection,
    SessionState,
    SessionStatus,
    StaticTokenSource,
    TokenSource,
    WebSocketTransportFactory,
)
from .sinks import JsonLinesEventSink  # noqa: F401
from .telemetry import (  # noqa: F401
    ConsoleLogRecordExporter,
    OTelLogger,
    configure_metrics,
    configure_telemetry,
    get_default_providers,
)

__all__ = [
    "SessionError",
    "ReconnectReason",
    "CredentialUnavailable",
    "HandshakeTimeout",
    "HandshakeRejected",
    "TransportError",
    "TransportSilent",
    "RefreshDue",
    "ProtocolAnomaly",
    "MalformedFrame",

    # event log
    "EventLog",
    "LogEntry",
    "JsonLinesEventSink",

    # session
    "SessionConfig",
    "HeartbeatAckShape",
    "SessionConnection",
    "SessionState",
    "SessionStatus",
    "ReconnectPolicy",
    "FrameClassifier",
    "KeepAliveScheduler",
    "ConnectAck",
    "Push",
    "TokenSource",
    "StaticTokenSource",
    "HttpTokenSource",
    "WebSocketTransportFactory",

    # telemetry
    "configure_telemetry",
    "configure_metrics",
    "get_default_providers",
    "OTelLogger",
    "ConsoleLogRecordExporter",
]

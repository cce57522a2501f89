"""Session components: configuration, frame parsing, keepalive, reconnect
policy, transports, token sources and the :class:`SessionConnection` itself."""

from .config import HeartbeatAckShape, SessionConfig
from .connection import (
    ChannelSubscription,
    DisconnectInfo,
    Session,
    SessionConnection,
    SessionState,
    SessionStatus,
)
from .frames import (
    CONTROL_MESSAGE_TYPES,
    ConnectAck,
    ConnectRejected,
    ControlMessage,
    FrameClassifier,
    Heartbeat,
    Push,
    SubscribeAck,
    Unrecognized,
)
from .keepalive import (
    KeepAliveAction,
    KeepAliveCommand,
    KeepAliveScheduler,
    KeepAliveTimer,
)
from .policy import ReconnectPolicy
from .token import HttpTokenSource, StaticTokenSource, TokenSource, extract_token
from .transport import (
    Transport,
    TransportFactory,
    WebSocketTransport,
    WebSocketTransportFactory,
)

__all__ = [
    # config
    "SessionConfig",
    "HeartbeatAckShape",
    # connection
    "SessionConnection",
    "SessionState",
    "SessionStatus",
    "Session",
    "ChannelSubscription",
    "DisconnectInfo",
    # frames
    "FrameClassifier",
    "ControlMessage",
    "CONTROL_MESSAGE_TYPES",
    "ConnectAck",
    "ConnectRejected",
    "SubscribeAck",
    "Heartbeat",
    "Push",
    "Unrecognized",
    # keepalive
    "KeepAliveScheduler",
    "KeepAliveTimer",
    "KeepAliveCommand",
    "KeepAliveAction",
    # policy
    "ReconnectPolicy",
    # token
    "TokenSource",
    "StaticTokenSource",
    "HttpTokenSource",
    "extract_token",
    # transport
    "Transport",
    "TransportFactory",
    "WebSocketTransport",
    "WebSocketTransportFactory",
]

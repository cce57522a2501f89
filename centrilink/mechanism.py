"""Error taxonomy for :mod:`centrilink`.

Every error raised inside a session carries the :class:`ReconnectReason` the
control loop should report when it tears the session down. Errors that are
absorbed locally (malformed frames, protocol anomalies, missing credentials)
never leave the component that raised them.
"""

from enum import Enum


class ReconnectReason(Enum):
    """Why a session ended. Drives the reconnect delay."""

    CONNECT_FAILED = "connect_failed"
    TRANSPORT_CLOSED = "transport_closed"
    TRANSPORT_ERROR = "transport_error"
    HANDSHAKE_TIMEOUT = "handshake_timeout"
    HANDSHAKE_REJECTED = "handshake_rejected"
    KEEPALIVE_LOST = "keepalive_lost"
    FORCED_REFRESH = "forced_refresh"


class SessionError(Exception):
    """Base class for all centrilink session errors."""

    reason: ReconnectReason = ReconnectReason.TRANSPORT_ERROR

    def __init__(self, message: str = "", source: str = "Unknown", note: str = ""):
        super().__init__(message)
        self.message = message
        self.source = source
        self.note = note

    def __str__(self):
        if self.note:
            return f"<{self.source}> {self.note}: {self.message}"
        return f"<{self.source}> {self.message}"


class CredentialUnavailable(SessionError):
    """The token endpoint returned nothing usable."""


class HandshakeTimeout(SessionError):
    reason = ReconnectReason.HANDSHAKE_TIMEOUT


class HandshakeRejected(SessionError):
    reason = ReconnectReason.HANDSHAKE_REJECTED


class TransportError(SessionError):
    """The underlying WebSocket failed or was closed.

    ``code`` and ``close_reason`` are the close frame values when one was
    received.
    """

    def __init__(
        self,
        message: str = "",
        source: str = "Unknown",
        note: str = "",
        code: int | None = None,
        close_reason: str | None = None,
        reason: ReconnectReason | None = None,
    ):
        super().__init__(message, source=source, note=note)
        self.code = code
        self.close_reason = close_reason
        if reason is not None:
            self.reason = reason


class TransportSilent(SessionError):
    reason = ReconnectReason.KEEPALIVE_LOST


class RefreshDue(SessionError):
    """Not a failure: the steady session reached its refresh ceiling."""

    reason = ReconnectReason.FORCED_REFRESH


class ProtocolAnomaly(SessionError):
    """A well-formed message with an unexpected shape or content."""


class MalformedFrame(SessionError):
    """A frame that is not UTF-8 JSON."""

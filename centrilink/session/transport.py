"""WebSocket transport handles.

A session talks to the network only through a :class:`Transport` produced by
a :class:`TransportFactory`. The production implementation wraps a
``websockets`` client connection; tests substitute an in-memory fake.

Transport-level pings are surfaced to the session through the ``on_ping``
callback given to :meth:`TransportFactory.open`. The ``websockets`` protocol
layer answers every ping with a pong carrying the same payload as soon as the
frame is parsed, so :class:`WebSocketTransport` reports ``auto_pong = True``
and the session does not send a second pong.
"""

import asyncio
from collections.abc import Callable
from contextlib import suppress
from typing import Protocol

import websockets
from websockets import ClientConnection
from websockets.frames import Frame, Opcode

from ..mechanism import ReconnectReason, TransportError
from ..utils import get_short_error_info
from .config import SessionConfig

PingCallback = Callable[[bytes], None]


class Transport(Protocol):
    """One live connection. Owned by exactly one session."""

    auto_pong: bool

    async def send(self, data: str | bytes) -> None:
        """Send a text (``str``) or binary (``bytes``) frame.

        Raises:
            TransportError: If the connection is not open.
        """
        ...

    async def pong(self, payload: bytes) -> None: ...

    async def recv(self) -> str | bytes:
        """Next data frame.

        Raises:
            TransportError: When the connection closes, with the close code.
        """
        ...

    async def close(self) -> None: ...


class TransportFactory(Protocol):
    async def open(self, config: SessionConfig, on_ping: PingCallback) -> Transport:
        """Open a new connection.

        Raises:
            TransportError: If the connection cannot be established.
            websockets.InvalidURI: If the URL can never work.
        """
        ...


class PingObservingConnection(ClientConnection):
    """``ClientConnection`` that reports inbound ping frames.

    The pong itself is still produced by the protocol layer.
    """

    on_ping: PingCallback | None = None

    def process_event(self, event) -> None:
        if (
            isinstance(event, Frame)
            and event.opcode is Opcode.PING
            and self.on_ping is not None
        ):
            self.on_ping(bytes(event.data))
        super().process_event(event)


class WebSocketTransport:
    """:class:`Transport` over a ``websockets`` client connection."""

    auto_pong = True

    def __init__(self, connection: ClientConnection):
        self._connection = connection

    async def send(self, data: str | bytes) -> None:
        try:
            await self._connection.send(data)
        except websockets.ConnectionClosed as e:
            raise _closed_error(e, note="send") from e
        except OSError as e:
            raise TransportError(
                get_short_error_info(e), source="WebSocketTransport", note="send"
            ) from e

    async def pong(self, payload: bytes) -> None:
        try:
            await self._connection.pong(payload)
        except websockets.ConnectionClosed as e:
            raise _closed_error(e, note="pong") from e

    async def recv(self) -> str | bytes:
        try:
            return await self._connection.recv()
        except websockets.ConnectionClosed as e:
            raise _closed_error(e, note="recv") from e
        except OSError as e:
            raise TransportError(
                get_short_error_info(e), source="WebSocketTransport", note="recv"
            ) from e

    async def close(self) -> None:
        with suppress(TimeoutError, OSError, websockets.WebSocketException):
            await asyncio.wait_for(self._connection.close(), timeout=1.0)


class WebSocketTransportFactory:
    """Opens :class:`WebSocketTransport` handles with ``websockets.connect``.

    Proactive transport pings are disabled: this side only answers the
    server's pings.
    """

    async def open(self, config: SessionConfig, on_ping: PingCallback) -> Transport:
        kwargs: dict = {
            "additional_headers": dict(config.extra_headers) or None,
            "open_timeout": config.open_timeout,
            "ping_interval": None,
            "ping_timeout": None,
            "max_size": None,
            "create_connection": PingObservingConnection,
        }
        if config.origin:
            kwargs["origin"] = config.origin
        if config.user_agent:
            kwargs["user_agent_header"] = config.user_agent

        try:
            connection = await websockets.connect(config.url, **kwargs)
        except websockets.InvalidURI:
            raise
        except TimeoutError as e:
            raise TransportError(
                "opening handshake timed out",
                source="WebSocketTransportFactory",
                reason=ReconnectReason.CONNECT_FAILED,
            ) from e
        except (OSError, websockets.InvalidHandshake) as e:
            raise TransportError(
                get_short_error_info(e),
                source="WebSocketTransportFactory",
                reason=ReconnectReason.CONNECT_FAILED,
            ) from e

        assert isinstance(connection, PingObservingConnection)
        connection.on_ping = on_ping
        return WebSocketTransport(connection)


def _closed_error(e: websockets.ConnectionClosed, note: str) -> TransportError:
    close = e.rcvd
    graceful = isinstance(e, websockets.ConnectionClosedOK)
    return TransportError(
        get_short_error_info(e),
        source="WebSocketTransport",
        note=note,
        code=close.code if close is not None else None,
        close_reason=close.reason if close is not None else None,
        reason=(
            ReconnectReason.TRANSPORT_CLOSED
            if graceful
            else ReconnectReason.TRANSPORT_ERROR
        ),
    )

"""Resilient session over a Centrifugo-style WebSocket control protocol.

Provides SessionState, Session and SessionConnection. A SessionConnection
drives one logical subscription through

    DISCONNECTED -> CONNECTING -> AWAITING_HANDSHAKE_ACK -> SUBSCRIBING
        -> STEADY -> CLOSING -> DISCONNECTED

and restarts the cycle after every close until :meth:`SessionConnection.stop`
is called. Everything runs on one asyncio control loop: inbound frames,
transport pings, close notifications and stop requests arrive through a
single ingress queue, and every timer is a deadline owned by the current
:class:`Session`. Tearing a session down clears its deadlines, so no timer can
outlive it.
"""

import asyncio
import random
import threading
import time
from contextlib import nullcontext, suppress
from dataclasses import dataclass, field
from enum import Enum
from functools import partial

import websockets
from opentelemetry._logs import LoggerProvider
from opentelemetry.metrics import MeterProvider
from opentelemetry.trace import Tracer, TracerProvider
from reactivex import Observable
from reactivex import operators as ops
from reactivex.subject import BehaviorSubject, Subject

from ..eventlog import EventLog, LogEntry
from ..mechanism import (
    CredentialUnavailable,
    HandshakeRejected,
    HandshakeTimeout,
    ReconnectReason,
    RefreshDue,
    SessionError,
    TransportError,
    TransportSilent,
)
from ..telemetry import LogContext, OTelLogger, SessionMetrics, get_default_providers
from ..utils import compact_json, get_short_error_info, sample
from .config import SessionConfig
from .frames import (
    ConnectAck,
    ConnectRejected,
    ControlMessage,
    FrameClassifier,
    Heartbeat,
    Push,
    SubscribeAck,
    Unrecognized,
)
from .keepalive import KeepAliveAction, KeepAliveCommand, KeepAliveScheduler
from .policy import ReconnectPolicy
from .token import TokenSource
from .transport import Transport, TransportFactory, WebSocketTransportFactory


class SessionState(Enum):
    """Observable states of the session lifecycle."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AWAITING_HANDSHAKE_ACK = "awaiting_handshake_ack"
    SUBSCRIBING = "subscribing"
    STEADY = "steady"
    CLOSING = "closing"


# States in which the handshake has completed.
_HANDSHAKEN = (SessionState.SUBSCRIBING, SessionState.STEADY)


@dataclass
class ChannelSubscription:
    name: str
    request_id: int
    acknowledged: bool = False
    error: str | None = None


@dataclass
class Session:
    """State of one connection attempt. Never reused across reconnects.

    Deadlines are monotonic timestamps; None means the timer is not armed.
    """

    generation: int
    subscriptions: list[ChannelSubscription]
    state: SessionState = SessionState.DISCONNECTED
    client_id: str | None = None
    opened_at: float | None = None
    transport: Transport | None = None
    reader: asyncio.Task | None = None
    handshake_deadline: float | None = None
    subscribe_send_at: float | None = None
    subscribe_deadline: float | None = None
    steady_since: float | None = None
    refresh_deadline: float | None = None
    log: OTelLogger | None = field(default=None, repr=False)

    def deadlines(self) -> list[float]:
        return [
            d
            for d in (
                self.handshake_deadline,
                self.subscribe_send_at,
                self.subscribe_deadline,
                self.refresh_deadline,
            )
            if d is not None
        ]

    def cancel_timers(self) -> None:
        self.handshake_deadline = None
        self.subscribe_send_at = None
        self.subscribe_deadline = None
        self.refresh_deadline = None

    def subscription(self, request_id: int) -> ChannelSubscription | None:
        for sub in self.subscriptions:
            if sub.request_id == request_id:
                return sub
        return None


# ---------------- ingress events ---------------- #
@dataclass(frozen=True)
class FrameReceived:
    generation: int
    data: str | bytes
    binary: bool


@dataclass(frozen=True)
class TransportPing:
    generation: int
    payload: bytes


@dataclass(frozen=True)
class TransportClosed:
    generation: int
    error: TransportError


@dataclass(frozen=True)
class StopRequested:
    pass


SessionEvent = FrameReceived | TransportPing | TransportClosed | StopRequested


# ---------------- inspection ---------------- #
@dataclass(frozen=True)
class DisconnectInfo:
    at: float
    reason: str
    code: int | None = None
    detail: str = ""


@dataclass(frozen=True)
class SessionStatus:
    connected: bool
    state: SessionState
    client_id: str | None
    session_uptime_ms: int
    last_heartbeat_ack_at: float | None
    attempt_count: int
    last_disconnect: DisconnectInfo | None


class SessionConnection(Observable):
    """A self-healing authenticated subscription.

    The object is an *Observable* of :class:`Push` messages received on the
    subscribed channels. Protocol events are recorded in an :class:`EventLog`
    and connection state changes are published on :attr:`connection_state`.

    Key Features
    ------------
    * **Auto-reconnect** -- every close is followed by a new attempt after a
      delay chosen by the ``ReconnectPolicy``.
    * **Dual keepalive** -- transport pings are answered at once, and an
      application heartbeat acknowledgement is sent on a jittered cadence
      and whenever the server asks for one.
    * **Forced refresh** -- a steady session is cycled after
      ``refresh_ceiling`` seconds, before the remote end does it.
    * **Noise control** -- pushes on high-volume channels are recorded as
      ``{channel, size}`` digests only.

    Parameters
    ----------
    config : SessionConfig
        Endpoint, channels, timeouts and protocol options.
    token_source : TokenSource
        Queried for a fresh credential before every attempt.
    transport_factory : TransportFactory | None
        Opens transports. Defaults to ``WebSocketTransportFactory()``.
    retry_policy : ReconnectPolicy | None
        Reconnect delays. Defaults to ``ReconnectPolicy()``.
    event_log : EventLog | None
        Event history. Defaults to one sized from ``config``.
    name : str | None
        Log source name. Defaults to ``"Session:{url}"``.
    rng : random.Random | None
        Random source for heartbeat jitter.

    Example
    -------
    >>> connection = SessionConnection(
    ...     SessionConfig(url="wss://example.app/connection/websocket",
    ...                   channels=("news",)),
    ...     StaticTokenSource("token"),
    ... )
    >>> connection.subscribe(lambda push: print(push.channel, push.size))
    >>> connection.start()
    >>> ...
    >>> connection.stop()
    """

    def __init__(
        self,
        config: SessionConfig,
        token_source: TokenSource,
        transport_factory: TransportFactory | None = None,
        retry_policy: ReconnectPolicy | None = None,
        event_log: EventLog | None = None,
        name: str | None = None,
        rng: random.Random | None = None,
        tracer_provider: TracerProvider | None = None,
        logger_provider: LoggerProvider | None = None,
        meter_provider: MeterProvider | None = None,
    ):
        super().__init__()
        self._config = config
        self._token_source = token_source
        self._transport_factory = transport_factory or WebSocketTransportFactory()
        self._retry_policy = retry_policy or ReconnectPolicy()
        self._event_log = event_log or EventLog(
            max_entries=config.event_log_max_entries,
            max_bytes=config.event_log_max_bytes,
        )
        self._name = name or f"Session:{config.url}"

        # Auto-configure default providers if not provided
        if logger_provider is None:
            tracer_provider, logger_provider = get_default_providers("centrilink")
        self._tracer: Tracer | None = (
            tracer_provider.get_tracer(f"centrilink.{self._name}")
            if tracer_provider
            else None
        )
        self._log = OTelLogger(
            logger_provider.get_logger(f"centrilink.{self._name}"),
            source=self._name,
            context=LogContext(service="centrilink", endpoint=config.url),
        )
        self._metrics = SessionMetrics(meter_provider)

        self._classifier = FrameClassifier(
            handshake_id=config.handshake_id,
            subscribe_base_id=config.subscribe_base_id,
            subscribe_count=len(config.channels),
        )
        self._keepalive = KeepAliveScheduler(
            jitter_ratio=config.heartbeat_jitter_ratio,
            silence_timeout=config.transport_silence_timeout,
            rng=rng or random.Random(),
        )
        self._handlers = {
            ConnectAck: self._on_connect_ack,
            ConnectRejected: self._on_connect_rejected,
            SubscribeAck: self._on_subscribe_ack,
            Heartbeat: self._on_heartbeat,
            Push: self._on_push,
            Unrecognized: self._on_unrecognized,
        }

        # Inbound publications
        self._pushes: Subject[Push] = Subject()
        # Connection state observable
        self._connection_state_subject: BehaviorSubject[SessionState] = (
            BehaviorSubject(SessionState.DISCONNECTED)
        )

        # Carried across reconnects; everything else lives on Session.
        self._attempt_count = 0
        self._generation = 0
        self._session: Session | None = None
        self._last_heartbeat_ack_at: float | None = None
        self._last_disconnect: DisconnectInfo | None = None

        self._stop_requested = False
        self._stop_lock = threading.Lock()
        self._running = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._ingress: asyncio.Queue[SessionEvent] | None = None
        self._thread: threading.Thread | None = None

    # ============ Observable interface ============ #
    def _subscribe_core(self, observer, scheduler=None):
        return self._pushes.subscribe(observer, scheduler=scheduler)

    @property
    def connection_state(self) -> Observable:
        """Stream of state transitions; new subscribers get the current state."""
        return self._connection_state_subject.pipe(ops.share())

    # ============ inspection ============ #
    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    @property
    def state(self) -> SessionState:
        session = self._session
        return session.state if session is not None else SessionState.DISCONNECTED

    @property
    def attempt_count(self) -> int:
        return self._attempt_count

    def list_recent(
        self, limit: int | None = None, since: float | None = None
    ) -> list[LogEntry]:
        return self._event_log.list_recent(limit, since)

    def status(self) -> SessionStatus:
        session = self._session
        state = session.state if session is not None else SessionState.DISCONNECTED
        uptime_ms = 0
        if session is not None and session.opened_at is not None:
            uptime_ms = int((time.monotonic() - session.opened_at) * 1000)
        return SessionStatus(
            connected=state in _HANDSHAKEN,
            state=state,
            client_id=session.client_id if session is not None else None,
            session_uptime_ms=uptime_ms,
            last_heartbeat_ack_at=self._last_heartbeat_ack_at,
            attempt_count=self._attempt_count,
            last_disconnect=self._last_disconnect,
        )

    # ============ lifecycle ============ #
    def start(self) -> None:
        """Run the control loop on a private event loop in a daemon thread."""
        if self._thread is not None:
            raise RuntimeError(f"{self._name} already started")
        self._thread = threading.Thread(
            target=lambda: asyncio.run(self.run()), name=self._name, daemon=True
        )
        self._thread.start()

    def join(self, timeout: float | None = None) -> None:
        """Wait for the background thread started by :meth:`start`."""
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def stop(self) -> None:
        """Stop the session and never restart it.

        Idempotent and safe to call from any thread. The loop observes the
        request on its next wake-up and closes the transport in order.
        """
        with self._stop_lock:
            if self._stop_requested:
                return
            self._stop_requested = True

        loop, ingress = self._loop, self._ingress
        if loop is None or ingress is None or loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            ingress.put_nowait(StopRequested())
        else:
            # The loop may close between the check above and this call.
            with suppress(RuntimeError):
                loop.call_soon_threadsafe(ingress.put_nowait, StopRequested())

    async def run(self) -> None:
        """Drive sessions until :meth:`stop` is called or retries run out."""
        if self._running:
            raise RuntimeError(f"{self._name} is already running")
        self._running = True
        self._ingress = asyncio.Queue()
        self._loop = asyncio.get_running_loop()
        if self._stop_requested:
            # stop() raced with startup before the queue existed
            self._ingress.put_nowait(StopRequested())

        self._log.info("Session loop started.")
        try:
            while not self._stop_requested:
                error = await self._run_session()
                if error is None:
                    break
                if self._exhausted(error):
                    self._log.error(
                        f"Max retries ({self._retry_policy.max_retries})"
                        f" exhausted for {self._config.url}"
                    )
                    self._pushes.on_error(
                        ConnectionError(
                            f"Max retries exhausted connecting to {self._config.url}"
                        )
                    )
                    return
                if not await self._backoff(error):
                    break
            self._pushes.on_completed()

        except asyncio.CancelledError:
            self._log.info("Session loop cancelled.")
            raise

        except websockets.InvalidURI as e:
            # Not retryable
            self._log.error(f"Invalid URI {self._config.url}: {get_short_error_info(e)}")
            self._event_log.append("error", msg=get_short_error_info(e))
            self._pushes.on_error(e)

        finally:
            session = self._session
            if session is not None and session.transport is not None:
                await self._release(session)
            if session is not None:
                self._enter(session, SessionState.DISCONNECTED)
            self._running = False
            self._log.info("Session loop stopped.")

    # ============ one connection attempt ============ #
    async def _run_session(self) -> SessionError | None:
        """Run one attempt to its end.

        Returns the error that ended it, or None when stopped.
        """
        self._generation += 1
        session = Session(
            generation=self._generation,
            subscriptions=[
                ChannelSubscription(name, self._config.subscribe_base_id + index)
                for index, name in enumerate(self._config.channels)
            ],
        )
        session.log = self._log.bind(generation=session.generation)
        self._session = session
        self._enter(session, SessionState.CONNECTING)

        span = (
            self._tracer.start_as_current_span(
                "centrilink.session.connect",
                attributes={"session.generation": session.generation},
            )
            if self._tracer
            else nullcontext()
        )
        with span:
            token = await self._acquire_credential(session)
            if token is None:
                await self._shutdown(session)
                return None

            session.log.info(
                f"Connecting to {self._config.url} (attempt {self._attempt_count + 1})"
            )
            try:
                transport = await self._transport_factory.open(
                    self._config, partial(self._post_ping, session.generation)
                )
            except TransportError as e:
                return await self._close(session, e)

        session.transport = transport
        session.opened_at = time.monotonic()
        self._event_log.append("open", generation=session.generation)
        session.log.info("Transport open.")
        if self._stop_requested:
            await self._shutdown(session)
            return None

        session.reader = asyncio.create_task(self._pump(session))
        try:
            await self._send_handshake(session, token)
            while True:
                event = await self._next_event(self._next_deadline(session))
                if isinstance(event, StopRequested):
                    await self._shutdown(session)
                    return None
                if event is not None and event.generation == session.generation:
                    await self._dispatch(session, event)
                await self._on_tick(session)
        except SessionError as e:
            return await self._close(session, e)

    async def _acquire_credential(self, session: Session) -> str | None:
        """Credential-retry loop. None means a stop was requested."""
        while not self._stop_requested:
            try:
                token = await self._token_source.fetch()
            except CredentialUnavailable as e:
                session.log.warning(f"Token source failed: {e}")
                token = None
            if token:
                return token

            delay = self._config.credential_retry_delay
            self._event_log.append("credential_unavailable", retry_in=delay)
            session.log.warning(f"No token, retry in {delay:.2f}s")
            if not await self._sleep(delay):
                return None
        return None

    async def _pump(self, session: Session) -> None:
        """Forward inbound frames of one transport into the ingress queue."""
        assert session.transport is not None and self._ingress is not None
        transport, ingress = session.transport, self._ingress
        try:
            while True:
                data = await transport.recv()
                ingress.put_nowait(
                    FrameReceived(session.generation, data, isinstance(data, bytes))
                )
        except TransportError as e:
            ingress.put_nowait(TransportClosed(session.generation, e))

    def _post_ping(self, generation: int, payload: bytes) -> None:
        if self._ingress is not None:
            self._ingress.put_nowait(TransportPing(generation, payload))

    async def _next_event(self, deadline: float | None) -> SessionEvent | None:
        """Next ingress event, or None once ``deadline`` passes."""
        assert self._ingress is not None
        if not self._ingress.empty():
            return self._ingress.get_nowait()
        if deadline is None:
            return await self._ingress.get()
        timeout = deadline - time.monotonic()
        if timeout <= 0:
            return None
        try:
            return await asyncio.wait_for(self._ingress.get(), timeout)
        except TimeoutError:
            return None

    async def _sleep(self, delay: float) -> bool:
        """Wait ``delay`` seconds. False if a stop was requested meanwhile."""
        deadline = time.monotonic() + delay
        while not self._stop_requested:
            event = await self._next_event(deadline)
            if event is None:
                return True
            if isinstance(event, StopRequested):
                return False
            # Late events of a closed session are dropped here.
        return False

    def _next_deadline(self, session: Session) -> float | None:
        deadlines = session.deadlines()
        keepalive = self._keepalive.next_deadline()
        if keepalive is not None:
            deadlines.append(keepalive)
        return min(deadlines) if deadlines else None

    # ============ transitions ============ #
    def _enter(self, session: Session, state: SessionState) -> None:
        if session.state is state:
            return
        session.state = state
        if session.log is not None:
            session.log.debug(f"Session state: {state.value}")
        self._connection_state_subject.on_next(state)

    async def _send_handshake(self, session: Session, token: str) -> None:
        self._enter(session, SessionState.AWAITING_HANDSHAKE_ACK)
        message = {
            "id": self._config.handshake_id,
            "connect": {"token": token, "subs": {}},
        }
        await self._send(session, compact_json(message))
        session.handshake_deadline = time.monotonic() + self._config.handshake_timeout
        self._event_log.append("connect_sent", id=self._config.handshake_id)

    async def _send_subscribes(self, session: Session) -> None:
        for sub in session.subscriptions:
            message = {"id": sub.request_id, "subscribe": {"channel": sub.name}}
            await self._send(session, compact_json(message))
            self._event_log.append("subscribe_sent", channel=sub.name, id=sub.request_id)
        session.subscribe_deadline = time.monotonic() + self._config.subscribe_grace

    def _enter_steady(self, session: Session, now: float) -> None:
        session.subscribe_send_at = None
        session.subscribe_deadline = None
        session.steady_since = now
        if self._config.refresh_ceiling is not None:
            session.refresh_deadline = now + self._config.refresh_ceiling
        self._enter(session, SessionState.STEADY)
        pending = [s.name for s in session.subscriptions if not s.acknowledged]
        self._event_log.append(
            "steady",
            subscribed=[s.name for s in session.subscriptions if s.acknowledged and not s.error],
            pending=pending,
        )
        session.log.info(
            "Session steady."
            + (f" No acknowledgement for {', '.join(pending)}." if pending else "")
        )

    async def _close(self, session: Session, error: SessionError) -> SessionError:
        """Tear down after a failure or refresh; the attempt counter moves on."""
        self._enter(session, SessionState.CLOSING)
        await self._release(session)
        self._attempt_count += 1

        code = error.code if isinstance(error, TransportError) else None
        self._last_disconnect = DisconnectInfo(
            at=time.time(), reason=error.reason.value, code=code, detail=str(error)
        )
        self._event_log.append(
            "close", reason=error.reason.value, code=code, detail=sample(str(error))
        )
        level = session.log.info if isinstance(error, RefreshDue) else session.log.warning
        level(f"Session closed ({error.reason.value}): {error}")
        self._enter(session, SessionState.DISCONNECTED)
        return error

    async def _shutdown(self, session: Session) -> None:
        """Orderly close on stop(). No reconnect follows."""
        self._enter(session, SessionState.CLOSING)
        await self._release(session)
        self._event_log.append("stop")
        self._enter(session, SessionState.DISCONNECTED)

    async def _release(self, session: Session) -> None:
        session.cancel_timers()
        self._keepalive.disarm()
        if session.reader is not None:
            session.reader.cancel()
            await asyncio.gather(session.reader, return_exceptions=True)
            session.reader = None
        if session.transport is not None:
            await session.transport.close()
            session.transport = None
        session.client_id = None
        session.opened_at = None

    def _exhausted(self, error: SessionError) -> bool:
        # A forced refresh is not a failure.
        return error.reason is not ReconnectReason.FORCED_REFRESH and (
            self._retry_policy.exhausted(self._attempt_count)
        )

    async def _backoff(self, error: SessionError) -> bool:
        """Wait before the next attempt. False if stopped meanwhile."""
        delay = self._retry_policy.get_delay(self._attempt_count - 1, error.reason)
        self._metrics.reconnects.add(1, {"reason": error.reason.value})
        self._event_log.append(
            "reconnect_scheduled",
            reason=error.reason.value,
            delay=delay,
            attempt=self._attempt_count,
        )
        self._log.info(f"Reconnecting in {delay:.2f}s ({error.reason.value})")
        return await self._sleep(delay)

    # ============ dispatch ============ #
    async def _dispatch(self, session: Session, event: SessionEvent) -> None:
        if isinstance(event, FrameReceived):
            for message in self._classifier.classify_frame(event.data, event.binary):
                await self._handlers[type(message)](session, message)
        elif isinstance(event, TransportPing):
            await self._on_transport_ping(session, event.payload)
        elif isinstance(event, TransportClosed):
            raise event.error

    async def _on_tick(self, session: Session) -> None:
        now = time.monotonic()
        if session.handshake_deadline is not None and now >= session.handshake_deadline:
            session.handshake_deadline = None
            self._event_log.append("handshake_timeout")
            raise HandshakeTimeout(
                f"no connect reply within {self._config.handshake_timeout}s",
                source=self._name,
            )
        if session.subscribe_send_at is not None and now >= session.subscribe_send_at:
            session.subscribe_send_at = None
            await self._send_subscribes(session)
        if (
            session.subscribe_deadline is not None
            and now >= session.subscribe_deadline
            and session.state is SessionState.SUBSCRIBING
        ):
            self._enter_steady(session, now)
        if session.refresh_deadline is not None and now >= session.refresh_deadline:
            session.refresh_deadline = None
            steady_for = now - (session.steady_since or now)
            self._event_log.append("forced_refresh", steady_for=round(steady_for, 3))
            raise RefreshDue(
                f"steady for {steady_for:.1f}s, cycling the session", source=self._name
            )
        await self._execute(session, self._keepalive.poll(now))

    async def _execute(self, session: Session, commands: list[KeepAliveCommand]) -> None:
        for command in commands:
            if command.action is KeepAliveAction.SEND_TRANSPORT_PONG:
                await self._send_transport_pong(session, command.payload)
            elif command.action is KeepAliveAction.SEND_HEARTBEAT_ACK:
                await self._send_heartbeat_ack(session, command.reactive)
            elif command.action is KeepAliveAction.TRANSPORT_SILENT:
                self._event_log.append(
                    "watchdog_restart", silence=self._config.transport_silence_timeout
                )
                raise TransportSilent(
                    f"no transport ping for {self._config.transport_silence_timeout}s",
                    source=self._name,
                )

    def _unexpected(self, session: Session, message: ControlMessage) -> None:
        self._event_log.append(
            "unexpected_message",
            message=type(message).__name__,
            state=session.state.value,
        )
        session.log.debug(f"Ignoring {type(message).__name__} in state {session.state.value}")

    async def _on_connect_ack(self, session: Session, message: ConnectAck) -> None:
        if session.state is not SessionState.AWAITING_HANDSHAKE_ACK:
            self._unexpected(session, message)
            return
        now = time.monotonic()
        session.handshake_deadline = None
        session.client_id = message.client_id
        session.log = session.log.bind(client_id=message.client_id or "")
        self._attempt_count = 0

        interval = message.heartbeat_interval or self._config.default_heartbeat_interval
        self._keepalive.arm(interval, now)
        self._event_log.append(
            "connect_ok", client_id=message.client_id, heartbeat_interval=interval
        )
        session.log.info(f"Connected as {message.client_id}, heartbeat every {interval}s")
        self._enter(session, SessionState.SUBSCRIBING)

        if not session.subscriptions:
            self._enter_steady(session, now)
        elif self._config.subscribe_delay > 0:
            session.subscribe_send_at = now + self._config.subscribe_delay
        else:
            await self._send_subscribes(session)

    async def _on_connect_rejected(self, session: Session, message: ConnectRejected) -> None:
        if session.state is not SessionState.AWAITING_HANDSHAKE_ACK:
            self._unexpected(session, message)
            return
        self._event_log.append("connect_error", code=message.code, error=message.message)
        raise HandshakeRejected(message.message, source=self._name)

    async def _on_subscribe_ack(self, session: Session, message: SubscribeAck) -> None:
        sub = session.subscription(message.request_id)
        if session.state not in _HANDSHAKEN or sub is None:
            self._unexpected(session, message)
            return
        sub.acknowledged = True
        if message.ok:
            self._event_log.append("sub_ok", channel=sub.name, id=sub.request_id)
        else:
            sub.error = message.error
            self._event_log.append(
                "sub_error", channel=sub.name, id=sub.request_id, error=message.error
            )
            session.log.warning(f"Subscribe to {sub.name} failed: {message.error}")

        if session.state is SessionState.SUBSCRIBING and all(
            s.acknowledged for s in session.subscriptions
        ):
            self._enter_steady(session, time.monotonic())

    async def _on_heartbeat(self, session: Session, message: Heartbeat) -> None:
        if session.state not in _HANDSHAKEN:
            self._unexpected(session, message)
            return
        self._event_log.append("json_ping")
        await self._execute(session, self._keepalive.on_heartbeat_request(time.monotonic()))

    async def _on_push(self, session: Session, message: Push) -> None:
        if session.state not in _HANDSHAKEN:
            self._unexpected(session, message)
            return
        attrs = {"channel": message.channel}
        self._metrics.pushes.add(1, attrs)
        self._metrics.push_bytes.record(message.size, attrs)
        if self._config.is_high_volume(message.channel):
            self._event_log.append("push", channel=message.channel, size=message.size)
        else:
            self._event_log.append(
                "push",
                channel=message.channel,
                size=message.size,
                sample=sample(message.payload),
            )
        self._pushes.on_next(message)

    async def _on_unrecognized(self, session: Session, message: Unrecognized) -> None:
        self._event_log.append(
            "other_message", sample=sample(message.raw), note=message.note or None
        )
        session.log.debug(f"Unrecognized message: {sample(message.raw, 120)}")

    async def _on_transport_ping(self, session: Session, payload: bytes) -> None:
        self._event_log.append("transport_ping", size=len(payload))
        await self._execute(
            session, self._keepalive.on_transport_ping(payload, time.monotonic())
        )

    # ============ outbound ============ #
    async def _send(self, session: Session, data: str | bytes) -> None:
        if session.transport is None:
            raise TransportError("transport not open", source=self._name, note="send")
        await session.transport.send(data)

    async def _send_transport_pong(self, session: Session, payload: bytes) -> None:
        transport = session.transport
        if transport is None:
            return
        if not transport.auto_pong:
            try:
                await transport.pong(payload)
            except TransportError as e:
                # The reader reports the close.
                session.log.debug(f"Transport pong failed: {get_short_error_info(e)}")
                return
        self._event_log.append("transport_pong_sent", size=len(payload))

    async def _send_heartbeat_ack(self, session: Session, reactive: bool) -> None:
        frame = self._config.heartbeat_ack.encode()
        if frame is None:
            return
        try:
            await self._send(session, frame)
        except TransportError as e:
            # Re-armed by the next handshake.
            self._keepalive.disarm()
            session.log.debug(f"Heartbeat ack failed: {get_short_error_info(e)}")
            return
        self._last_heartbeat_ack_at = time.time()
        self._metrics.heartbeat_acks.add(1, {"reactive": reactive})
        self._event_log.append("json_pong" if reactive else "heartbeat_ack")

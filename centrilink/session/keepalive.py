"""Dual-layer keepalive scheduling.

Two independent timer lines, owned by the session:

    - Transport layer: reactive. Every transport ping is answered at once
      with a pong carrying the same bytes. A silence watchdog fires when no
      ping has arrived for ``silence_timeout`` seconds.
    - Application layer: proactive. Once armed with interval ``I`` the next
      heartbeat acknowledgement is due uniformly within ``[I - j, I + j]``
      seconds, ``j = jitter_ratio * I``, and the timer re-arms after every
      fire. A heartbeat request from the server is answered immediately and
      pushes the proactive timer back, so both never fire in the same tick.

The scheduler performs no I/O. Every method takes the current monotonic time
and returns the :class:`KeepAliveCommand` values the session must execute.
"""

import random
from dataclasses import dataclass, field
from enum import Enum


class KeepAliveAction(Enum):
    SEND_TRANSPORT_PONG = "send_transport_pong"
    SEND_HEARTBEAT_ACK = "send_heartbeat_ack"
    TRANSPORT_SILENT = "transport_silent"


@dataclass(frozen=True)
class KeepAliveCommand:
    action: KeepAliveAction
    payload: bytes = b""
    reactive: bool = False  # True when answering the peer rather than on schedule


@dataclass
class KeepAliveTimer:
    """One keepalive timer line.

    Attributes:
        interval_base: Nominal interval in seconds.
        jitter: Maximum deviation from ``interval_base`` in seconds.
        next_fire_at: Monotonic deadline, or None while disarmed.
    """

    interval_base: float
    jitter: float = 0.0
    next_fire_at: float | None = None

    def arm(self, now: float, rng: random.Random) -> float:
        offset = rng.uniform(-self.jitter, self.jitter) if self.jitter else 0.0
        self.next_fire_at = now + self.interval_base + offset
        return self.next_fire_at

    def cancel(self) -> None:
        self.next_fire_at = None

    @property
    def armed(self) -> bool:
        return self.next_fire_at is not None

    def due(self, now: float) -> bool:
        return self.next_fire_at is not None and now >= self.next_fire_at


@dataclass
class KeepAliveScheduler:
    """Owns the application heartbeat timer and the transport watchdog.

    Parameters:
        jitter_ratio: Application jitter as a fraction of the interval.
        silence_timeout: Transport watchdog period. None disables it.
        rng: Random source for jitter, injectable for tests.
    """

    jitter_ratio: float = 0.05
    silence_timeout: float | None = None
    rng: random.Random = field(default_factory=random.Random)

    heartbeat: KeepAliveTimer | None = field(default=None, init=False)
    watchdog: KeepAliveTimer | None = field(default=None, init=False)
    last_ack_at: float | None = field(default=None, init=False)
    last_transport_ping_at: float | None = field(default=None, init=False)

    def arm(self, interval: float, now: float) -> None:
        """Start (or restart) both timer lines with application interval ``interval``."""
        self.heartbeat = KeepAliveTimer(
            interval_base=interval, jitter=interval * self.jitter_ratio
        )
        self.heartbeat.arm(now, self.rng)
        if self.silence_timeout is not None:
            self.watchdog = KeepAliveTimer(interval_base=self.silence_timeout)
            self.watchdog.arm(now, self.rng)

    def disarm(self) -> None:
        """Cancel every timer. The scheduler stays silent until armed again."""
        if self.heartbeat is not None:
            self.heartbeat.cancel()
        if self.watchdog is not None:
            self.watchdog.cancel()
        self.heartbeat = None
        self.watchdog = None

    @property
    def armed(self) -> bool:
        return self.heartbeat is not None and self.heartbeat.armed

    def next_deadline(self) -> float | None:
        """Earliest pending deadline across both lines."""
        deadlines = [
            t.next_fire_at
            for t in (self.heartbeat, self.watchdog)
            if t is not None and t.next_fire_at is not None
        ]
        return min(deadlines) if deadlines else None

    def on_transport_ping(self, payload: bytes, now: float) -> list[KeepAliveCommand]:
        # Pongs are owed even before arming; the watchdog only moves once armed.
        self.last_transport_ping_at = now
        if self.watchdog is not None and self.watchdog.armed:
            self.watchdog.arm(now, self.rng)
        return [
            KeepAliveCommand(
                KeepAliveAction.SEND_TRANSPORT_PONG, payload=payload, reactive=True
            )
        ]

    def on_heartbeat_request(self, now: float) -> list[KeepAliveCommand]:
        """Server asked for a heartbeat; answer now and push the schedule back."""
        self.last_ack_at = now
        if self.heartbeat is not None and self.heartbeat.armed:
            self.heartbeat.arm(now, self.rng)
        return [KeepAliveCommand(KeepAliveAction.SEND_HEARTBEAT_ACK, reactive=True)]

    def poll(self, now: float) -> list[KeepAliveCommand]:
        """Commands whose deadline has passed; fired timers are re-armed."""
        commands: list[KeepAliveCommand] = []
        if self.watchdog is not None and self.watchdog.due(now):
            self.watchdog.cancel()
            commands.append(KeepAliveCommand(KeepAliveAction.TRANSPORT_SILENT))
        if self.heartbeat is not None and self.heartbeat.due(now):
            self.last_ack_at = now
            self.heartbeat.arm(now, self.rng)
            commands.append(KeepAliveCommand(KeepAliveAction.SEND_HEARTBEAT_ACK))
        return commands

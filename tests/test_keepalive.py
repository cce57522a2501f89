"""Tests for the dual-layer keepalive scheduler."""

import random

import pytest

from centrilink.session.keepalive import (
    KeepAliveAction,
    KeepAliveCommand,
    KeepAliveScheduler,
    KeepAliveTimer,
)


def test_timer_without_jitter_is_exact():
    timer = KeepAliveTimer(interval_base=10.0)
    assert timer.arm(100.0, random.Random(0)) == 110.0
    assert not timer.due(109.9)
    assert timer.due(110.0)
    timer.cancel()
    assert not timer.armed
    assert not timer.due(1000.0)


@pytest.mark.parametrize("seed", range(50))
def test_heartbeat_fires_within_jitter_window(seed):
    scheduler = KeepAliveScheduler(jitter_ratio=0.05, rng=random.Random(seed))
    scheduler.arm(25.0, now=0.0)
    deadline = scheduler.next_deadline()
    assert 25.0 - 1.25 <= deadline <= 25.0 + 1.25


def test_poll_emits_ack_and_rearms():
    scheduler = KeepAliveScheduler(jitter_ratio=0.0)
    scheduler.arm(10.0, now=0.0)

    assert scheduler.poll(9.0) == []
    assert scheduler.poll(10.0) == [KeepAliveCommand(KeepAliveAction.SEND_HEARTBEAT_ACK)]
    assert scheduler.next_deadline() == 20.0
    assert scheduler.last_ack_at == 10.0


def test_heartbeat_request_pushes_schedule_back():
    scheduler = KeepAliveScheduler(jitter_ratio=0.0)
    scheduler.arm(10.0, now=0.0)

    commands = scheduler.on_heartbeat_request(now=9.99)
    assert commands == [
        KeepAliveCommand(KeepAliveAction.SEND_HEARTBEAT_ACK, reactive=True)
    ]
    # The proactive timer would have fired at 10.0; it must not fire now.
    assert scheduler.poll(10.0) == []
    assert scheduler.next_deadline() == pytest.approx(19.99)


def test_two_requests_in_a_row_get_two_acks_and_no_proactive_fire():
    scheduler = KeepAliveScheduler(jitter_ratio=0.0)
    scheduler.arm(10.0, now=0.0)

    first = scheduler.on_heartbeat_request(now=10.0)
    second = scheduler.on_heartbeat_request(now=10.0)
    assert len(first) == len(second) == 1
    assert scheduler.poll(10.0) == []


def test_transport_ping_echoes_payload():
    scheduler = KeepAliveScheduler()
    [command] = scheduler.on_transport_ping(b"\x01\x02", now=3.0)
    assert command.action is KeepAliveAction.SEND_TRANSPORT_PONG
    assert command.payload == b"\x01\x02"
    assert scheduler.last_transport_ping_at == 3.0


def test_watchdog_fires_after_silence():
    scheduler = KeepAliveScheduler(jitter_ratio=0.0, silence_timeout=35.0)
    scheduler.arm(1000.0, now=0.0)

    scheduler.on_transport_ping(b"", now=20.0)
    assert scheduler.poll(50.0) == []
    assert scheduler.poll(55.0) == [KeepAliveCommand(KeepAliveAction.TRANSPORT_SILENT)]
    # Fires once, then stays quiet until re-armed.
    assert scheduler.poll(200.0) == []


def test_watchdog_disabled_by_default():
    scheduler = KeepAliveScheduler(jitter_ratio=0.0)
    scheduler.arm(1000.0, now=0.0)
    assert scheduler.watchdog is None
    assert scheduler.poll(999.0) == []


def test_disarm_cancels_everything():
    scheduler = KeepAliveScheduler(silence_timeout=35.0)
    scheduler.arm(25.0, now=0.0)
    assert scheduler.armed

    scheduler.disarm()
    assert not scheduler.armed
    assert scheduler.next_deadline() is None
    assert scheduler.poll(10_000.0) == []
    # Reactive answers are still owed while disarmed.
    assert len(scheduler.on_heartbeat_request(now=1.0)) == 1

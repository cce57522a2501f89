"""Tests for the reconnect delay policy."""

from centrilink.mechanism import ReconnectReason
from centrilink.session.policy import ReconnectPolicy


def test_exponential_curve():
    policy = ReconnectPolicy(base_delay=1.0, backoff_factor=2.0, max_delay=30.0)
    delays = [policy.get_delay(attempt) for attempt in range(7)]
    assert delays == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0, 30.0]


def test_delays_non_decreasing_and_bounded():
    policy = ReconnectPolicy(base_delay=0.5, backoff_factor=1.7, max_delay=12.0)
    delays = [policy.get_delay(attempt) for attempt in range(40)]
    assert delays == sorted(delays)
    assert max(delays) <= 12.0
    assert delays[0] == 0.5


def test_forced_refresh_uses_fixed_delay():
    policy = ReconnectPolicy(refresh_delay=2.0)
    for attempt in (0, 3, 10):
        assert policy.get_delay(attempt, ReconnectReason.FORCED_REFRESH) == 2.0


def test_jitter_stays_within_range():
    policy = ReconnectPolicy(base_delay=4.0, max_delay=30.0, jitter=0.25)
    for _ in range(100):
        delay = policy.get_delay(0)
        assert 3.0 <= delay <= 5.0


def test_exhausted():
    assert not ReconnectPolicy().exhausted(10_000)
    policy = ReconnectPolicy(max_retries=3)
    assert not policy.exhausted(2)
    assert policy.exhausted(3)

"""Tests for the dual-capped event log."""

import itertools

import pytest

from centrilink.eventlog import EventLog, LogEntry


def _clock(start=1000.0):
    counter = itertools.count()
    return lambda: start + next(counter)


def test_append_and_list_recent_order():
    log = EventLog(clock=_clock())
    for i in range(5):
        log.append("push", seq=i)

    entries = log.list_recent()
    assert [e.fields["seq"] for e in entries] == [0, 1, 2, 3, 4]
    assert [e.fields["seq"] for e in log.list_recent(2)] == [3, 4]
    assert log.list_recent(0) == []


def test_since_filter():
    log = EventLog(clock=_clock(start=100.0))
    for i in range(5):
        log.append("tick", seq=i)  # timestamps 100..104

    assert [e.fields["seq"] for e in log.list_recent(since=102.0)] == [2, 3, 4]
    assert [e.fields["seq"] for e in log.list_recent(limit=1, since=102.0)] == [4]


def test_count_cap():
    log = EventLog(max_entries=10, clock=_clock())
    for i in range(25):
        log.append("push", seq=i)

    assert len(log) == 10
    assert log.evicted == 15
    assert log.list_recent()[0].fields["seq"] == 15


def test_byte_cap_under_burst():
    log = EventLog(max_entries=10_000, max_bytes=2_000, clock=_clock())
    for i in range(1_000):
        log.append("push", channel="news", size=i, sample="x" * (i % 50))
        assert log.total_bytes <= 2_000
        assert len(log) <= 10_000

    assert sum(e.size() for e in log.list_recent()) == log.total_bytes
    # Oldest first eviction keeps the tail.
    assert log.list_recent()[-1].fields["size"] == 999


def test_oversized_entry_becomes_digest():
    log = EventLog(max_bytes=300, clock=_clock())
    entry = log.append("push", sample="y" * 1_000)

    assert entry.kind == "push"
    assert set(entry.fields) == {"dropped_bytes"}
    assert entry.fields["dropped_bytes"] > 1_000
    assert log.list_recent() == [entry]
    assert log.total_bytes <= 300


def test_snapshot_is_not_mutated_by_later_writes():
    log = EventLog(max_entries=2, clock=_clock())
    log.append("a")
    snapshot = log.list_recent()
    log.append("b")
    log.append("c")
    assert [e.kind for e in snapshot] == ["a"]


def test_subscribers_receive_entries():
    log = EventLog(clock=_clock())
    received = []
    log.subscribe(received.append)

    log.append("connect_ok", client_id="abc")
    log.on_next(LogEntry(timestamp=1.0, kind="external"))

    assert [e.kind for e in received] == ["connect_ok", "external"]
    assert [e.kind for e in log.list_recent()] == ["connect_ok", "external"]


def test_errors_are_recorded_not_terminal():
    log = EventLog(clock=_clock())
    log.on_error(RuntimeError("boom"))
    log.on_completed()
    log.append("after")

    kinds = [e.kind for e in log.list_recent()]
    assert kinds == ["error", "after"]
    assert "boom" in log.list_recent()[0].fields["msg"]


def test_entry_str():
    entry = LogEntry(timestamp=0.0, kind="push", fields={"channel": "news"})
    assert str(entry) == '1970-01-01T00:00:00Z push {"channel":"news"}'


@pytest.mark.parametrize("kwargs", [{"max_entries": 0}, {"max_bytes": 0}])
def test_invalid_caps(kwargs):
    with pytest.raises(ValueError):
        EventLog(**kwargs)


def test_digest_too_large_for_buffer_still_reaches_subscribers():
    log = EventLog(max_bytes=20, clock=_clock())
    received = []
    log.subscribe(received.append)

    entry = log.append("push", sample="z" * 100)

    assert received == [entry]
    assert set(entry.fields) == {"dropped_bytes"}
    assert len(log) == 0
    assert log.total_bytes == 0

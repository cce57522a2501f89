"""Bounded, queryable history of protocol events.

The :class:`EventLog` is a ReactiveX ``Subject``: every appended
:class:`LogEntry` is stored in an insertion-ordered ring buffer and forwarded
to subscribers. Subscribers are where persistence sinks (database inserts,
JSON-lines dumps) attach.

Two caps are enforced on every insert:
    - ``max_entries``: maximum number of entries kept
    - ``max_bytes``: maximum cumulative size of the entries' compact JSON form

Eviction removes the oldest entries until both caps hold.

Example:
    >>> log = EventLog(max_entries=500, max_bytes=64 * 1024)
    >>> log.subscribe(lambda entry: print(entry))
    >>> log.append("connect_ok", client_id="abc")
    >>> log.list_recent(10)
"""

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from reactivex import Subject

from .utils import compact_json, get_short_error_info, json_size


@dataclass(frozen=True)
class LogEntry:
    """One recorded protocol event.

    Attributes:
        timestamp: Wall-clock time in epoch seconds.
        kind: Short event tag, e.g. ``"connect_ok"`` or ``"push"``.
        fields: Small mapping of event details.
    """

    timestamp: float
    kind: str
    fields: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "kind": self.kind, "fields": self.fields}

    def size(self) -> int:
        """Approximate size in bytes, from the compact JSON serialization."""
        return json_size(self.as_dict())

    def __str__(self) -> str:
        ts = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(self.timestamp))
        return f"{ts} {self.kind} {compact_json(self.fields)}"


class EventLog(Subject):
    """Dual-capped append-only ring buffer of :class:`LogEntry`.

    Single writer (the session control loop), any number of readers on any
    thread. Reads return fresh lists, so a returned snapshot is never mutated
    by later writes.

    Parameters:
        max_entries: Count cap, must be >= 1.
        max_bytes: Byte cap, must be >= 1.
        clock: Wall-clock source for entry timestamps.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        max_bytes: int = 256 * 1024,
        clock=time.time,
    ):
        super().__init__()
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        if max_bytes < 1:
            raise ValueError(f"max_bytes must be >= 1, got {max_bytes}")
        self._max_entries = max_entries
        self._max_bytes = max_bytes
        self._clock = clock

        # (entry, size) pairs, oldest first
        self._buffer: deque[tuple[LogEntry, int]] = deque()
        self._total_bytes = 0
        self._evicted = 0
        self._lock = threading.Lock()

    # ============ write path ============ #
    def append(self, kind: str, **fields: Any) -> LogEntry:
        """Record an event now and return the stored entry."""
        entry = LogEntry(timestamp=self._clock(), kind=kind, fields=fields)
        return self._insert(entry)

    def on_next(self, value: LogEntry) -> None:
        self._insert(value)

    def on_error(self, error: Exception) -> None:
        """Errors are recorded, never terminate the log."""
        self.append("error", msg=get_short_error_info(error))

    def on_completed(self) -> None:
        """
        The event log will never be completed.
        """
        pass

    def _insert(self, entry: LogEntry) -> LogEntry:
        size = entry.size()
        if size > self._max_bytes:
            entry = LogEntry(
                timestamp=entry.timestamp,
                kind=entry.kind,
                fields={"dropped_bytes": size},
            )
            size = entry.size()
            if size > self._max_bytes:
                # Not even the digest fits the buffer; sinks still get it.
                super().on_next(entry)
                return entry

        with self._lock:
            self._buffer.append((entry, size))
            self._total_bytes += size
            while (
                len(self._buffer) > self._max_entries
                or self._total_bytes > self._max_bytes
            ):
                _, dropped_size = self._buffer.popleft()
                self._total_bytes -= dropped_size
                self._evicted += 1

        super().on_next(entry)
        return entry

    # ============ read path ============ #
    def list_recent(
        self, limit: int | None = None, since: float | None = None
    ) -> list[LogEntry]:
        """Most recent entries, oldest first.

        Args:
            limit: Maximum number of entries to return. None returns all.
            since: Only entries with ``timestamp >= since``.
        """
        with self._lock:
            entries = [entry for entry, _ in self._buffer]
        if since is not None:
            entries = [e for e in entries if e.timestamp >= since]
        if limit is not None:
            entries = entries[-limit:] if limit > 0 else []
        return entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)

    @property
    def total_bytes(self) -> int:
        with self._lock:
            return self._total_bytes

    @property
    def evicted(self) -> int:
        """Number of entries evicted since creation."""
        with self._lock:
            return self._evicted

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

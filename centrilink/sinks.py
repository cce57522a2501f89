"""Persistence sinks for the :class:`~centrilink.eventlog.EventLog`.

A sink is an observer subscribed to the event log; every recorded
:class:`~centrilink.eventlog.LogEntry` reaches it, including entries later
evicted from the in-memory buffer.

Example:
    >>> sink = JsonLinesEventSink("logs/events.jsonl")
    >>> connection.event_log.subscribe(sink)
    >>> ...
    >>> sink.close()
"""

import os
import threading
from io import TextIOWrapper

from reactivex import Observer

from .eventlog import LogEntry
from .utils import compact_json


class JsonLinesEventSink(Observer):
    """Append each entry to a file as one compact JSON document per line.

    The file and its parent directory are created on the first entry. Writes
    are flushed per entry. A failed write is counted in :attr:`failures` and
    never propagates into the event log's writer.

    Parameters:
        path: Target file, opened in append mode.
    """

    def __init__(self, path: str):
        super().__init__()
        self._path = path
        self._file: TextIOWrapper | None = None
        self._lock = threading.Lock()
        self.written = 0
        self.failures = 0

    @property
    def path(self) -> str:
        return self._path

    def _ensure_file_open(self) -> TextIOWrapper:
        if self._file is None or self._file.closed:
            dir_name = os.path.dirname(self._path)
            if dir_name:
                os.makedirs(dir_name, exist_ok=True)
            self._file = open(self._path, "a", encoding="utf-8")
        return self._file

    def _on_next_core(self, value: LogEntry) -> None:
        line = compact_json(value.as_dict()) + "\n"
        with self._lock:
            try:
                f = self._ensure_file_open()
                f.write(line)
                f.flush()
            except OSError:
                self.failures += 1
                return
            self.written += 1

    def _on_error_core(self, error: Exception) -> None:
        self.close()

    def _on_completed_core(self) -> None:
        self.close()

    def close(self) -> None:
        """Close the file. Entries arriving afterwards reopen it."""
        with self._lock:
            if self._file is not None and not self._file.closed:
                self._file.close()
            self._file = None

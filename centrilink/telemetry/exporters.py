"""Console exporter for diagnostic log records."""

import sys
from collections.abc import Sequence
from typing import Literal, TextIO

from opentelemetry.sdk._logs._internal import ReadableLogRecord
from opentelemetry.sdk._logs.export import (
    LogRecordExporter,
    LogRecordExportResult,
)

from .logger import format_log_record, format_log_record_json

LOG_FORMAT = Literal["text", "json"]

_FORMATTERS = {"text": format_log_record, "json": format_log_record_json}


class ConsoleLogRecordExporter(LogRecordExporter):
    """Write one line per record to a text stream.

    ``text`` lines look like

        2026-02-03T10:30:00Z [INFO] centrilink #3 Session:wss://host\t: Connected

    and ``json`` lines carry the full attribute set.

    Parameters:
        format: ``"text"`` or ``"json"``.
        stream: Target stream. ``None`` means ``sys.stderr`` looked up on each
            export, so redirection in tests is honoured.
    """

    def __init__(self, format: LOG_FORMAT = "text", stream: TextIO | None = None):
        self._render = _FORMATTERS[format]
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stderr

    def export(self, batch: Sequence[ReadableLogRecord]) -> LogRecordExportResult:
        out = self.stream
        try:
            out.writelines(self._render(item.log_record) for item in batch)
            out.flush()
        except (OSError, ValueError):
            return LogRecordExportResult.FAILURE
        return LogRecordExportResult.SUCCESS

    def shutdown(self) -> None:
        pass

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        self.stream.flush()
        return True

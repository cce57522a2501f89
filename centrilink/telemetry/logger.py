"""Structured diagnostic logging on top of the OTel Logs API.

:class:`OTelLogger` emits ``LogRecord`` objects carrying a fixed set of
session dimensions (:class:`LogContext`). Child loggers created with
:meth:`OTelLogger.bind` share the underlying OTel logger and extend the
context, so every record of a connection attempt is tagged with its
generation and, after the handshake, its client id.

Protocol events are not logged here; they go to the
:class:`~centrilink.eventlog.EventLog`.
"""

import json
import time
from dataclasses import dataclass, fields, replace
from datetime import UTC, datetime

from opentelemetry._logs import LogRecord, SeverityNumber

# LogContext field -> OTel attribute key
_ATTRIBUTE_KEYS = {
    "service": "service.name",
    "endpoint": "session.endpoint",
    "scope": "log.scope",
    "client_id": "session.client_id",
    "generation": "session.generation",
}

_LEVELS = {
    "debug": (SeverityNumber.DEBUG, "DEBUG"),
    "info": (SeverityNumber.INFO, "INFO"),
    "warning": (SeverityNumber.WARN, "WARN"),
    "error": (SeverityNumber.ERROR, "ERROR"),
}


@dataclass(frozen=True)
class LogContext:
    """Session dimensions attached to every record. Empty values are omitted."""

    service: str = ""
    endpoint: str = ""
    scope: str = ""
    client_id: str = ""
    generation: int | None = None

    def as_attributes(self) -> dict[str, str | int]:
        attrs: dict[str, str | int] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value not in ("", None):
                attrs[_ATTRIBUTE_KEYS[f.name]] = value
        return attrs

    def child(self, **overrides: str | int | None) -> "LogContext":
        return replace(self, **overrides)


def _utc(timestamp_ns: int | None) -> datetime:
    return datetime.fromtimestamp((timestamp_ns or 0) / 1e9, tz=UTC)


def format_log_record(record: LogRecord) -> str:
    """One console line per record.

    ``2026-02-03T10:30:00Z [INFO] centrilink #3 Session:wss://host\\t: Connected``
    """
    attrs = record.attributes or {}
    head = "/".join(
        str(attrs[key]) for key in ("service.name", "log.scope") if attrs.get(key)
    )
    generation = attrs.get("session.generation")
    prefix = " ".join(
        part
        for part in (
            _utc(record.timestamp).strftime("%Y-%m-%dT%H:%M:%SZ"),
            f"[{record.severity_text}]",
            head,
            f"#{generation}" if generation is not None else "",
            str(attrs.get("log.source", "Unknown")),
        )
        if part
    )
    return f"{prefix}\t: {record.body}\n"


def format_log_record_json(record: LogRecord) -> str:
    """One JSON document per line."""
    severity = record.severity_number
    return (
        json.dumps(
            {
                "timestamp": _utc(record.timestamp).isoformat(),
                "severity_text": record.severity_text,
                "severity_number": severity.value if severity else None,
                "body": record.body,
                "attributes": dict(record.attributes or {}),
            },
            default=str,
        )
        + "\n"
    )


class OTelLogger:
    """Emit diagnostic records through an OTel ``Logger``.

    Args:
        logger: OTel Logger from ``LoggerProvider.get_logger()``.
        source: Value of the ``log.source`` attribute.
        context: Session dimensions added to every record.
        min_severity: Records below this severity are dropped.

    Example:
        >>> log = OTelLogger(provider.get_logger("centrilink"), source="Session")
        >>> attempt_log = log.bind(generation=3)
        >>> attempt_log.info("Connected", client_id="abc")
    """

    def __init__(
        self,
        logger,
        source: str,
        context: LogContext | None = None,
        min_severity: SeverityNumber | None = None,
    ):
        self._logger = logger
        self._source = source
        self._context = context if context is not None else LogContext()
        self._min_severity = min_severity

    @property
    def context(self) -> LogContext:
        return self._context

    def bind(self, source: str | None = None, **dimensions) -> "OTelLogger":
        """A logger sharing this one's OTel logger with an extended context."""
        return OTelLogger(
            self._logger,
            source=source or self._source,
            context=self._context.child(**dimensions),
            min_severity=self._min_severity,
        )

    def log(self, level: str, message: str, **attrs) -> None:
        severity_number, severity_text = _LEVELS[level]
        if (
            self._min_severity is not None
            and severity_number.value < self._min_severity.value
        ):
            return
        attributes = {"log.source": self._source, **self._context.as_attributes()}
        attributes.update((k, v) for k, v in attrs.items() if v is not None)
        self._logger.emit(
            LogRecord(
                timestamp=time.time_ns(),
                body=message,
                severity_text=severity_text,
                severity_number=severity_number,
                attributes=attributes,
            )
        )

    def debug(self, message: str, **attrs) -> None:
        self.log("debug", message, **attrs)

    def info(self, message: str, **attrs) -> None:
        self.log("info", message, **attrs)

    def warning(self, message: str, **attrs) -> None:
        self.log("warning", message, **attrs)

    def error(self, message: str, **attrs) -> None:
        self.log("error", message, **attrs)

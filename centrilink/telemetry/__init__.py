"""OpenTelemetry configuration helpers for centrilink components.

This package provides OTel provider configuration, a structured logger
wrapper, a console log-record exporter, and session metrics.
"""

from .config import (
    Providers,
    configure_metrics,
    configure_telemetry,
    get_default_providers,
)
from .exporters import LOG_FORMAT, ConsoleLogRecordExporter
from .logger import (
    LogContext,
    OTelLogger,
    format_log_record,
    format_log_record_json,
)
from .metrics import MetricsHelper, SessionMetrics

__all__ = [
    # config
    "Providers",
    "configure_telemetry",
    "configure_metrics",
    "get_default_providers",
    # logger
    "OTelLogger",
    "LogContext",
    "format_log_record",
    "format_log_record_json",
    # exporters
    "ConsoleLogRecordExporter",
    "LOG_FORMAT",
    # metrics
    "MetricsHelper",
    "SessionMetrics",
]

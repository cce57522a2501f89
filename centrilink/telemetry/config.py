"""OpenTelemetry SDK wiring.

Components never touch global OTel state. They accept providers as
constructor arguments and fall back to :func:`get_default_providers`, which
builds one process-wide pair writing to the console.
"""

import threading
from typing import NamedTuple

from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import (
    BatchLogRecordProcessor,
    LogRecordExporter,
    SimpleLogRecordProcessor,
)
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    MetricExporter,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter

from .exporters import ConsoleLogRecordExporter

SERVICE_NAME = "centrilink"


class Providers(NamedTuple):
    tracer_provider: TracerProvider
    logger_provider: LoggerProvider


def build_resource(service_name: str = SERVICE_NAME, service_version: str = "") -> Resource:
    attributes = {"service.name": service_name}
    if service_version:
        attributes["service.version"] = service_version
    return Resource.create(attributes)


def configure_telemetry(
    service_name: str = SERVICE_NAME,
    service_version: str = "",
    span_exporter: SpanExporter | None = None,
    log_exporter: LogRecordExporter | None = None,
    batch_logs: bool = True,
) -> Providers:
    """Build a tracer and a logger provider sharing one resource.

    Args:
        service_name: ``service.name`` resource attribute.
        service_version: ``service.version`` resource attribute, omitted when
            empty.
        span_exporter: Receives finished spans, batched.
        log_exporter: Receives log records. Without one, records are dropped.
        batch_logs: Batch log export (network exporters) or export each
            record immediately (console).

    Example:
        >>> tracer_provider, logger_provider = configure_telemetry(
        ...     log_exporter=ConsoleLogRecordExporter(format="json"),
        ...     batch_logs=False,
        ... )
        >>> connection = SessionConnection(
        ...     config, token_source, logger_provider=logger_provider
        ... )
    """
    resource = build_resource(service_name, service_version)

    tracer_provider = TracerProvider(resource=resource)
    if span_exporter is not None:
        tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))

    logger_provider = LoggerProvider(resource=resource)
    if log_exporter is not None:
        processor_type = BatchLogRecordProcessor if batch_logs else SimpleLogRecordProcessor
        logger_provider.add_log_record_processor(processor_type(log_exporter))

    return Providers(tracer_provider, logger_provider)


_defaults: Providers | None = None
_defaults_lock = threading.Lock()


def get_default_providers(service_name: str = SERVICE_NAME) -> Providers:
    """Process-wide console providers, created on first use.

    ``service_name`` only matters on the first call.
    """
    global _defaults
    with _defaults_lock:
        if _defaults is None:
            _defaults = configure_telemetry(
                service_name=service_name,
                log_exporter=ConsoleLogRecordExporter(),
                batch_logs=False,
            )
        return _defaults


def configure_metrics(
    service_name: str = SERVICE_NAME,
    service_version: str = "",
    metric_exporter: MetricExporter | None = None,
    export_interval_ms: int = 10_000,
) -> MeterProvider:
    """A MeterProvider exporting every ``export_interval_ms``.

    Metrics go to the console unless ``metric_exporter`` is given.
    """
    reader = PeriodicExportingMetricReader(
        metric_exporter or ConsoleMetricExporter(),
        export_interval_millis=export_interval_ms,
    )
    return MeterProvider(
        resource=build_resource(service_name, service_version),
        metric_readers=[reader],
    )

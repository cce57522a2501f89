"""OTel metrics for sessions.

Provides :class:`MetricsHelper`, a convenience wrapper around an OTel
``Meter``, and :class:`SessionMetrics`, the fixed set of instruments a
:class:`~centrilink.session.SessionConnection` records into.
"""

from opentelemetry.metrics import (
    Counter,
    Histogram,
    Meter,
    MeterProvider,
    NoOpMeterProvider,
)


class MetricsHelper:
    """Convenience wrapper around an OTel ``Meter``.

    Args:
        meter_provider: The provider to obtain a meter from.
        instrumentation_name: Identifies the instrumentation library.

    Example::

        helper = MetricsHelper(meter_provider, "centrilink.session")
        pushes = helper.counter("centrilink.push.messages")
        pushes.add(1, {"channel": "news"})
    """

    def __init__(self, meter_provider: MeterProvider, instrumentation_name: str):
        self._meter: Meter = meter_provider.get_meter(instrumentation_name)

    def counter(self, name: str, description: str = "", unit: str = "1") -> Counter:
        return self._meter.create_counter(name, description=description, unit=unit)

    def histogram(
        self, name: str, description: str = "", unit: str = "ms"
    ) -> Histogram:
        return self._meter.create_histogram(name, description=description, unit=unit)


class SessionMetrics:
    """Instruments recorded by the session control loop.

    With no provider every instrument is a no-op.
    """

    def __init__(self, meter_provider: MeterProvider | None = None):
        helper = MetricsHelper(
            meter_provider if meter_provider is not None else NoOpMeterProvider(),
            "centrilink.session",
        )
        self.reconnects = helper.counter(
            "centrilink.session.reconnects",
            description="Sessions torn down and scheduled for reconnection",
        )
        self.heartbeat_acks = helper.counter(
            "centrilink.heartbeat.acks",
            description="Application heartbeat acknowledgements sent",
        )
        self.pushes = helper.counter(
            "centrilink.push.messages",
            description="Publications received",
        )
        self.push_bytes = helper.histogram(
            "centrilink.push.bytes",
            description="Publication payload sizes",
            unit="By",
        )

"""
Provisioning Telemetry

Architectural Intent:
- Exports machine lifecycle telemetry to OTLP-compatible backends
- Records start/stop/rollback outcomes and durations per template
- Every sample is also kept in a local buffer so outcomes are inspectable
  without a collector (tests, embedded use)

Security:
- No endpoint means no export; nothing leaves the process by default
- Plaintext http:// export is limited to loopback unless insecure=True
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Any, Optional
from urllib.parse import urlparse
import logging
import threading

logger = logging.getLogger(__name__)

START_DURATION = "stratus.machine.start.duration_ms"
STOP_DURATION = "stratus.machine.stop.duration_ms"
ROLLBACKS = "stratus.machine.rollback"

_LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


def _check_plaintext_endpoint(endpoint: str, insecure: bool) -> None:
    url = urlparse(endpoint)
    if url.scheme != "http" or insecure or url.hostname in _LOOPBACK_HOSTS:
        return
    raise ValueError(
        f"Non-localhost HTTP endpoint '{endpoint}' sends telemetry in plaintext; "
        "use https:// or pass insecure=True."
    )


@dataclass
class OTELConfig:
    endpoint: str = ""
    service_name: str = "stratus-provisioning"
    environment: str = "development"
    enable_traces: bool = True
    enable_metrics: bool = True
    insecure: bool = False

    def __post_init__(self) -> None:
        if self.endpoint:
            _check_plaintext_endpoint(self.endpoint, self.insecure)


class ProvisioningTelemetry:
    """Lifecycle metrics and spans, exported over OTLP gRPC once initialized."""

    def __init__(self, config: OTELConfig):
        self.config = config
        self._initialized = False
        self._samples: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._meter: Any = None
        self._tracer: Any = None
        self._histograms: dict[str, Any] = {}

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """Install OTLP trace and metric pipelines for the configured endpoint."""
        if not self.config.endpoint:
            logger.info("No telemetry endpoint configured, keeping samples locally")
            return

        from opentelemetry.sdk.resources import Resource, SERVICE_NAME

        resource = Resource(
            attributes={
                SERVICE_NAME: self.config.service_name,
                "deployment.environment": self.config.environment,
            }
        )
        try:
            if self.config.enable_traces:
                self._tracer = self._setup_tracing(resource)
            if self.config.enable_metrics:
                self._meter = self._setup_metrics(resource)
        except Exception as e:
            logger.error("Telemetry export to %s disabled: %s", self.config.endpoint, e)
            return
        self._initialized = True
        logger.info("Exporting telemetry to %s", self.config.endpoint)

    def _setup_tracing(self, resource: Any) -> Any:
        from opentelemetry import trace
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        provider = TracerProvider(resource=resource)
        exporter = OTLPSpanExporter(
            endpoint=self.config.endpoint, insecure=self.config.insecure
        )
        provider.add_span_processor(BatchSpanProcessor(exporter))
        trace.set_tracer_provider(provider)
        return trace.get_tracer(__name__)

    def _setup_metrics(self, resource: Any) -> Any:
        from opentelemetry import metrics
        from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
            OTLPMetricExporter,
        )
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader

        reader = PeriodicExportingMetricReader(
            OTLPMetricExporter(
                endpoint=self.config.endpoint, insecure=self.config.insecure
            )
        )
        metrics.set_meter_provider(
            MeterProvider(resource=resource, metric_readers=[reader])
        )
        return metrics.get_meter(__name__)

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    def record_metric(
        self,
        name: str,
        value: float,
        unit: str = "",
        attributes: Optional[dict[str, str]] = None,
    ) -> None:
        attributes = dict(attributes or {})
        sample = {
            "name": name,
            "value": value,
            "unit": unit,
            "attributes": attributes,
            "timestamp": datetime.now(UTC).isoformat(),
        }
        with self._lock:
            self._samples.append(sample)
            histogram = self._histogram(name, unit) if self._initialized else None
        if histogram is not None:
            histogram.record(value, attributes=attributes)

    def _histogram(self, name: str, unit: str) -> Any:
        if self._meter is None:
            return None
        if name not in self._histograms:
            self._histograms[name] = self._meter.create_histogram(name, unit=unit)
        return self._histograms[name]

    def record_start(self, template: str, outcome: str, duration_ms: float) -> None:
        """One start_node call; outcome is success, failed, timeout or interrupted."""
        self.record_metric(
            START_DURATION,
            duration_ms,
            unit="ms",
            attributes={"template": template, "outcome": outcome},
        )

    def record_stop(self, template: str, success: bool, duration_ms: float) -> None:
        self.record_metric(
            STOP_DURATION,
            duration_ms,
            unit="ms",
            attributes={"template": template, "success": str(success)},
        )

    def record_rollback(self, template: str, node_destroyed: bool) -> None:
        self.record_metric(
            ROLLBACKS,
            1.0,
            attributes={"template": template, "node_destroyed": str(node_destroyed)},
        )

    def metrics(self, name: Optional[str] = None) -> list[dict[str, Any]]:
        """Buffered samples, optionally only those with the given name."""
        with self._lock:
            if name is None:
                return list(self._samples)
            return [s for s in self._samples if s["name"] == name]

    # ------------------------------------------------------------------
    # Traces
    # ------------------------------------------------------------------

    def start_span(
        self, name: str, attributes: Optional[dict[str, str]] = None
    ) -> Optional[Any]:
        if self._tracer is None:
            return None
        return self._tracer.start_span(name, attributes=attributes or {})

    def end_span(self, span: Any, error: Optional[BaseException] = None) -> None:
        """End a span, attaching the error that ended the operation if any."""
        if span is None:
            return
        if error is not None:
            span.record_exception(error)
        span.end()


def create_telemetry(
    endpoint: Optional[str] = None,
    service_name: str = "stratus-provisioning",
    insecure: bool = False,
) -> ProvisioningTelemetry:
    telemetry = ProvisioningTelemetry(
        OTELConfig(endpoint=endpoint or "", service_name=service_name, insecure=insecure)
    )
    telemetry.initialize()
    return telemetry

"""OpenTelemetry + Prometheus fallback wiring for the session dashboard backend."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI

from backend import config

logger = logging.getLogger("openclaw_dash.observability")


_initialized = False
_enabled = False
_tracer: Any | None = None
_trace_provider: Any | None = None
_meter_provider: Any | None = None
_fastapi_instrumentor: Any | None = None

_gateway_calls_counter: Any | None = None
_gateway_latency_hist: Any | None = None
_transcript_reads_counter: Any | None = None
_transcript_latency_hist: Any | None = None
_skipped_lines_counter: Any | None = None

_prom_enabled = False
_prom_gateway_calls_counter: Any | None = None
_prom_gateway_latency_hist: Any | None = None
_prom_transcript_reads_counter: Any | None = None
_prom_transcript_latency_hist: Any | None = None
_prom_skipped_lines_counter: Any | None = None


def _normalize_otlp_endpoint(base_endpoint: str, signal_path: str) -> str:
    endpoint = (base_endpoint or "").strip()
    if not endpoint:
        return ""
    if endpoint.endswith(signal_path):
        return endpoint
    if endpoint.endswith("/"):
        endpoint = endpoint[:-1]
    if endpoint.endswith("/v1"):
        return f"{endpoint}{signal_path[3:]}"
    return f"{endpoint}{signal_path}"


def _label(value: str) -> str:
    return (value or "").strip() or "unknown"


def _start_prometheus() -> None:
    global _prom_enabled
    global _prom_gateway_calls_counter, _prom_gateway_latency_hist
    global _prom_transcript_reads_counter, _prom_transcript_latency_hist, _prom_skipped_lines_counter

    try:
        from prometheus_client import Counter, Histogram, start_http_server

        start_http_server(config.PROM_PORT)
        _prom_gateway_calls_counter = Counter(
            "openclaw_dash_gateway_calls_total",
            "Runtime CLI invocations by command and outcome",
            ["command", "result"],
        )
        _prom_gateway_latency_hist = Histogram(
            "openclaw_dash_gateway_latency_ms",
            "Runtime CLI invocation latency",
            ["command", "result"],
        )
        _prom_transcript_reads_counter = Counter(
            "openclaw_dash_transcript_reads_total",
            "Transcript reconstructions by outcome",
            ["result"],
        )
        _prom_transcript_latency_hist = Histogram(
            "openclaw_dash_transcript_latency_ms",
            "Transcript reconstruction latency",
            ["result"],
        )
        _prom_skipped_lines_counter = Counter(
            "openclaw_dash_transcript_skipped_lines_total",
            "Malformed transcript lines skipped during reconstruction",
        )
        _prom_enabled = True
        logger.info("Prometheus fallback metrics server listening on port %s", config.PROM_PORT)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Prometheus fallback not started: %s", exc)
        _prom_enabled = False


def initialize(app: FastAPI | None = None) -> None:
    global _initialized, _enabled, _tracer, _trace_provider, _meter_provider, _fastapi_instrumentor
    global _gateway_calls_counter, _gateway_latency_hist
    global _transcript_reads_counter, _transcript_latency_hist, _skipped_lines_counter

    if _initialized:
        if _enabled and app and _fastapi_instrumentor:
            _fastapi_instrumentor.instrument_app(app)
        return

    _initialized = True

    if not config.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled (OPENCLAW_DASH_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    traces_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/traces")
    metrics_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/metrics")
    service_name = config.OTEL_SERVICE_NAME or "openclaw-dash-backend"

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.namespace": "openclaw-dash",
        }
    )

    trace_provider = TracerProvider(resource=resource)
    trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=traces_endpoint or None)))
    trace.set_tracer_provider(trace_provider)

    metric_reader = PeriodicExportingMetricReader(OTLPMetricExporter(endpoint=metrics_endpoint or None))
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter("openclaw_dash.backend")

    _gateway_calls_counter = meter.create_counter(
        "openclaw_dash_gateway_calls_total",
        unit="1",
        description="Runtime CLI invocations by command and outcome",
    )
    _gateway_latency_hist = meter.create_histogram(
        "openclaw_dash_gateway_latency_ms",
        unit="ms",
        description="Runtime CLI invocation latency",
    )
    _transcript_reads_counter = meter.create_counter(
        "openclaw_dash_transcript_reads_total",
        unit="1",
        description="Transcript reconstructions by outcome",
    )
    _transcript_latency_hist = meter.create_histogram(
        "openclaw_dash_transcript_latency_ms",
        unit="ms",
        description="Transcript reconstruction latency",
    )
    _skipped_lines_counter = meter.create_counter(
        "openclaw_dash_transcript_skipped_lines_total",
        unit="1",
        description="Malformed transcript lines skipped during reconstruction",
    )

    _trace_provider = trace_provider
    _meter_provider = meter_provider
    _tracer = trace.get_tracer("openclaw_dash.backend")
    _fastapi_instrumentor = FastAPIInstrumentor()
    _enabled = True

    if app:
        _fastapi_instrumentor.instrument_app(app)

    if config.PROM_PORT > 0:
        _start_prometheus()

    logger.info(
        "OpenTelemetry initialized (service=%s endpoint=%s)",
        service_name,
        config.OTEL_ENDPOINT,
    )


def shutdown(app: FastAPI | None = None) -> None:
    global _enabled
    if not _initialized:
        return
    try:
        if app and _fastapi_instrumentor:
            _fastapi_instrumentor.uninstrument_app(app)
    except Exception as exc:  # noqa: BLE001
        logger.debug("FastAPI uninstrument failed: %s", exc)
    for provider in (_meter_provider, _trace_provider):
        if provider is None:
            continue
        try:
            provider.shutdown()
        except Exception as exc:  # noqa: BLE001
            logger.debug("Telemetry provider shutdown failed: %s", exc)
    _enabled = False


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    if not _enabled or _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        yield span


def record_gateway_call(command: str, result: str, duration_ms: float) -> None:
    labels = {"command": _label(command), "result": _label(result)}
    latency = max(0.0, float(duration_ms))
    if _enabled and _gateway_calls_counter is not None:
        _gateway_calls_counter.add(1, labels)
    if _enabled and _gateway_latency_hist is not None:
        _gateway_latency_hist.record(latency, labels)
    if _prom_enabled and _prom_gateway_calls_counter is not None:
        _prom_gateway_calls_counter.labels(**labels).inc()
    if _prom_enabled and _prom_gateway_latency_hist is not None:
        _prom_gateway_latency_hist.labels(**labels).observe(latency)


def record_transcript_read(result: str, duration_ms: float, *, skipped_lines: int = 0) -> None:
    labels = {"result": _label(result)}
    latency = max(0.0, float(duration_ms))
    skipped = max(0, int(skipped_lines))
    if _enabled and _transcript_reads_counter is not None:
        _transcript_reads_counter.add(1, labels)
    if _enabled and _transcript_latency_hist is not None:
        _transcript_latency_hist.record(latency, labels)
    if _enabled and _skipped_lines_counter is not None and skipped > 0:
        _skipped_lines_counter.add(skipped)
    if _prom_enabled and _prom_transcript_reads_counter is not None:
        _prom_transcript_reads_counter.labels(**labels).inc()
    if _prom_enabled and _prom_transcript_latency_hist is not None:
        _prom_transcript_latency_hist.labels(**labels).observe(latency)
    if _prom_enabled and _prom_skipped_lines_counter is not None and skipped > 0:
        _prom_skipped_lines_counter.inc(skipped)

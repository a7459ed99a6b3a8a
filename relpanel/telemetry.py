"""OpenTelemetry configuration for the admin panel."""

import os
import sys

from fastapi import FastAPI
from opentelemetry import metrics, trace
from opentelemetry.exporter.prometheus import PrometheusMetricReader
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from prometheus_client import start_http_server

from .config import settings
from .logging_config import get_logger

logger = get_logger(__name__)


def telemetry_enabled() -> bool:
    """Telemetry is opt-in via ENABLE_TELEMETRY and always off under pytest."""
    if not os.getenv("ENABLE_TELEMETRY"):
        return False
    return not ("pytest" in sys.modules or os.getenv("TESTING"))


def _start_metrics_server(port: int) -> int:
    """Start the Prometheus endpoint, trying the next port once if busy."""
    try:
        start_http_server(port)
    except OSError:
        port += 1
        start_http_server(port)
    return port


def setup_telemetry(app: FastAPI) -> bool:
    """Configure tracing and metrics for the app; returns whether it was enabled."""
    if not telemetry_enabled():
        return False

    try:
        prometheus_reader = PrometheusMetricReader()
        metrics.set_meter_provider(MeterProvider(metric_readers=[prometheus_reader]))
        port = _start_metrics_server(settings.metrics_port)
        logger.info("Prometheus metrics server started", port=port)

        tracer_provider = TracerProvider()
        # Console exporter until an OTLP collector is configured
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        trace.set_tracer_provider(tracer_provider)

        FastAPIInstrumentor.instrument_app(app)
        SQLAlchemyInstrumentor().instrument()
        logger.info("OpenTelemetry tracing and metrics setup completed")
    except Exception as e:
        # Telemetry never blocks startup
        logger.error("Failed to setup OpenTelemetry", error=str(e))
        return False

    return True

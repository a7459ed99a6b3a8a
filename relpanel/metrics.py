"""Admin panel metrics."""

from opentelemetry import metrics

meter = metrics.get_meter(__name__)

# HTTP Request Metrics
http_request_duration = meter.create_histogram(
    name="http_request_duration_seconds",
    description="Duration of HTTP requests in seconds",
    unit="s",
)

http_requests_total = meter.create_counter(
    name="http_requests_total",
    description="Total number of HTTP requests",
)

http_request_errors = meter.create_counter(
    name="http_request_errors_total",
    description="Total number of HTTP request errors",
)

# Relation rendering
relation_renders_total = meter.create_counter(
    name="relation_renders_total",
    description="Relation fields rendered, by presentation mode",
)

fragment_requests_total = meter.create_counter(
    name="fragment_requests_total",
    description="Async table and row fragments served",
)

# Record lifecycle
records_created_total = meter.create_counter(
    name="records_created_total",
    description="Total number of records created through the panel",
)

records_deleted_total = meter.create_counter(
    name="records_deleted_total",
    description="Total number of records deleted through the panel",
)


def record_http_request(method: str, endpoint: str, status_code: int, duration: float):
    """Record HTTP request metrics."""
    labels = {"method": method, "endpoint": endpoint, "status_code": str(status_code)}

    http_request_duration.record(duration, labels)
    http_requests_total.add(1, labels)

    if status_code >= 400:
        http_request_errors.add(1, labels)


def record_relation_render(relation: str, mode: str):
    """Record which presentation a relation field resolved to."""
    relation_renders_total.add(1, {"relation": relation, "mode": mode})


def record_fragment_request(relation: str, kind: str):
    """Record an async fragment response ("table" or "row")."""
    fragment_requests_total.add(1, {"relation": relation, "kind": kind})


def record_created(resource: str):
    records_created_total.add(1, {"resource": resource})


def record_deleted(resource: str, count: int = 1):
    records_deleted_total.add(count, {"resource": resource})

"""Monitoring utilities leveraging Prometheus client."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

http_requests_total = Counter(
    "global311_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_latency_seconds = Histogram(
    "global311_http_request_latency_seconds",
    "HTTP request latency",
    ["method", "path"],
)

pin_operations_total = Counter(
    "global311_pin_operations_total",
    "Pin consensus engine operations",
    ["operation", "outcome"],
)


def observe_request(method: str, path: str, status: int, duration_seconds: float) -> None:
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_latency_seconds.labels(method=method, path=path).observe(duration_seconds)


def observe_pin_operation(operation: str, outcome: str) -> None:
    pin_operations_total.labels(operation=operation, outcome=outcome).inc()

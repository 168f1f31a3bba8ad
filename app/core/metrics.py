from __future__ import annotations

from typing import Any

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from app.core.config import settings


class _NoOpMetric:
    def labels(self, *args: Any, **kwargs: Any) -> "_NoOpMetric":
        return self

    def observe(self, *_: Any, **__: Any) -> None:
        return None

    def inc(self, *_: Any, **__: Any) -> None:
        return None


def _metric_or_noop(metric_factory: Any) -> Any:
    if not settings.METRICS_ENABLED:
        return _NoOpMetric()
    return metric_factory()


REQUEST_LATENCY = _metric_or_noop(
    lambda: Histogram(
        f"{settings.METRICS_NAMESPACE}_http_request_duration_seconds",
        "HTTP request latency in seconds.",
        ["method", "path", "status_code"],
        buckets=settings.METRICS_LATENCY_BUCKETS,
    )
)

REQUEST_COUNT = _metric_or_noop(
    lambda: Counter(
        f"{settings.METRICS_NAMESPACE}_http_requests_total",
        "Total HTTP requests processed.",
        ["method", "path", "status_code"],
    )
)

REQUEST_ERRORS = _metric_or_noop(
    lambda: Counter(
        f"{settings.METRICS_NAMESPACE}_http_errors_total",
        "Total HTTP requests resulting in 4xx/5xx.",
        ["method", "path", "status_code"],
    )
)

ORDERS_CREATED = _metric_or_noop(
    lambda: Counter(
        f"{settings.METRICS_NAMESPACE}_orders_created_total",
        "Orders committed at checkout, partitioned by outcome.",
        ["outcome"],
    )
)

CART_WRITES = _metric_or_noop(
    lambda: Counter(
        f"{settings.METRICS_NAMESPACE}_cart_writes_total",
        "Cart document writes, partitioned by operation.",
        ["operation"],
    )
)

ORDER_STATUS_TRANSITIONS = _metric_or_noop(
    lambda: Counter(
        f"{settings.METRICS_NAMESPACE}_order_status_transitions_total",
        "Applied order status transitions.",
        ["to_status"],
    )
)


def normalize_path(request) -> str:
    """Route template for the request, including the prefixes of included routers."""
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    pattern = getattr(route, "path_regex", None)
    if not path or pattern is None:
        return request.url.path

    full_path = request.scope.get("path", request.url.path)
    if pattern.match(full_path):
        return path
    # los routers incluidos como mount dejan su prefijo en root_path
    root_path = request.scope.get("root_path", "").rstrip("/")
    if root_path and full_path.startswith(root_path) and pattern.match(full_path[len(root_path):]):
        return f"{root_path}{path}"
    return request.url.path


def record_request_metrics(request, status_code: int, elapsed: float) -> None:
    method = request.method
    path = normalize_path(request)
    labels = (method, path, str(status_code))
    REQUEST_COUNT.labels(*labels).inc()
    REQUEST_LATENCY.labels(*labels).observe(elapsed)
    if status_code >= 400:
        REQUEST_ERRORS.labels(*labels).inc()


def record_cart_write(operation: str) -> None:
    CART_WRITES.labels(operation=operation).inc()


def record_order_created(outcome: str) -> None:
    ORDERS_CREATED.labels(outcome=outcome).inc()


def record_status_transition(to_status: str) -> None:
    ORDER_STATUS_TRANSITIONS.labels(to_status=to_status).inc()


def export_metrics() -> tuple[bytes, str]:
    if not settings.METRICS_ENABLED:
        return b"", "text/plain; charset=utf-8"
    return generate_latest(), CONTENT_TYPE_LATEST

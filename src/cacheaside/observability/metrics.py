"""Prometheus metrics for cacheaside.

Provides metrics collection and exposure:
- HTTP request metrics (latency, count)
- Cache metrics (hits, misses)
- Loader metrics (backing-source loads by outcome)
- Lock metrics (wait time, timeouts)

Usage:
    from cacheaside.observability.metrics import record_cache_hit

    record_cache_hit("first")  # or "double_check"
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from cacheaside.config import settings

if TYPE_CHECKING:
    from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    # HTTP metrics
    http_requests_total: Any = None
    http_request_duration_seconds: Any = None

    # Cache metrics
    cache_hits_total: Any = None
    cache_misses_total: Any = None

    # Loader metrics
    source_loads_total: Any = None

    # Lock metrics
    lock_wait_seconds: Any = None
    lock_timeouts_total: Any = None

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: CollectorRegistry | None = field(default=None, repr=False)

    def initialize(self) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        registry = CollectorRegistry()
        self._registry = registry

        self.http_requests_total = Counter(
            "cacheaside_http_requests_total",
            "Total HTTP requests",
            ["method", "path", "status"],
            registry=registry,
        )

        self.http_request_duration_seconds = Histogram(
            "cacheaside_http_request_duration_seconds",
            "HTTP request latency in seconds",
            ["method", "path"],
            buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
            registry=registry,
        )

        self.cache_hits_total = Counter(
            "cacheaside_cache_hits_total",
            "Cache hits",
            ["stage"],
            registry=registry,
        )

        self.cache_misses_total = Counter(
            "cacheaside_cache_misses_total",
            "Cache misses",
            ["stage"],
            registry=registry,
        )

        self.source_loads_total = Counter(
            "cacheaside_source_loads_total",
            "Backing-source loads",
            ["outcome"],
            registry=registry,
        )

        self.lock_wait_seconds = Histogram(
            "cacheaside_lock_wait_seconds",
            "Time spent waiting for a distributed lock",
            buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0),
            registry=registry,
        )

        self.lock_timeouts_total = Counter(
            "cacheaside_lock_timeouts_total",
            "Lock acquisitions that timed out",
            registry=registry,
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware for HTTP request metrics."""

    def __init__(self, app: "ASGIApp") -> None:
        super().__init__(app)
        self.metrics = get_metrics()

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        """Record metrics for HTTP requests."""
        # Skip metrics for health and metrics endpoints
        if request.url.path.startswith("/health") or request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        # Ids travel in the query string, so paths stay low-cardinality
        path = request.url.path

        start_time = time.perf_counter()
        status_code = 500  # Default in case of exception

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.perf_counter() - start_time

            if self.metrics.http_requests_total:
                self.metrics.http_requests_total.labels(
                    method=method,
                    path=path,
                    status=status_code,
                ).inc()

            if self.metrics.http_request_duration_seconds:
                self.metrics.http_request_duration_seconds.labels(
                    method=method,
                    path=path,
                ).observe(duration)


def record_cache_hit(stage: str) -> None:
    """Record cache hit.

    Args:
        stage: "first" for the unlocked check, "double_check" under the lock
    """
    metrics = get_metrics()
    if metrics.cache_hits_total:
        metrics.cache_hits_total.labels(stage=stage).inc()


def record_cache_miss(stage: str) -> None:
    """Record cache miss."""
    metrics = get_metrics()
    if metrics.cache_misses_total:
        metrics.cache_misses_total.labels(stage=stage).inc()


def record_source_load(outcome: str) -> None:
    """Record a backing-source load (found, not_found, failed)."""
    metrics = get_metrics()
    if metrics.source_loads_total:
        metrics.source_loads_total.labels(outcome=outcome).inc()


def record_lock_wait(duration: float) -> None:
    """Record time spent acquiring a lock."""
    metrics = get_metrics()
    if metrics.lock_wait_seconds:
        metrics.lock_wait_seconds.observe(duration)


def record_lock_timeout() -> None:
    """Record a lock acquisition timeout."""
    metrics = get_metrics()
    if metrics.lock_timeouts_total:
        metrics.lock_timeouts_total.inc()

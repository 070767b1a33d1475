"""Observability module for cacheaside.

Provides metrics and structured logging:
- Prometheus metrics for cache, lock and source activity
- JSON structured logging with request correlation
"""

from cacheaside.observability.logging import (
    LogContext,
    cache_key_var,
    configure_logging,
    request_id_var,
)
from cacheaside.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    metrics_registry,
)

__all__ = [
    # Logging
    "configure_logging",
    "LogContext",
    "request_id_var",
    "cache_key_var",
    # Metrics
    "metrics_registry",
    "get_metrics",
    "MetricsMiddleware",
]

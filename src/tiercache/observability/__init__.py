"""Observability for tiercache.

Provides structured logging and Prometheus metrics:
- JSON and console log formatters
- Cache request, hit, miss, eviction and latency metrics
"""

from tiercache.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    configure_logging,
)
from tiercache.observability.metrics import (
    get_metrics,
    metrics_registry,
)

__all__ = [
    # Logging
    "configure_logging",
    "JsonFormatter",
    "ConsoleFormatter",
    # Metrics
    "metrics_registry",
    "get_metrics",
]

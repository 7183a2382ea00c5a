"""Prometheus metrics for tiercache.

Provides metrics collection and exposure:
- Request, hit and miss counters (hits labelled by tier)
- Local tier evictions and entry count
- Shared tier error counts by operation
- Operation latency

Usage:
    from tiercache.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.hits_total.labels(tier="local").inc()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, generate_latest

from tiercache.config import settings

logger = logging.getLogger(__name__)


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    requests_total: Any = None
    hits_total: Any = None
    misses_total: Any = None
    evictions_total: Any = None
    shared_errors_total: Any = None
    operation_duration_seconds: Any = None
    local_entries: Any = None

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: Any = field(default=None, repr=False)

    def initialize(self) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = REGISTRY

        self.requests_total = Counter(
            "tiercache_requests_total",
            "Total cache lookups",
        )

        self.hits_total = Counter(
            "tiercache_hits_total",
            "Cache hits by tier",
            ["tier"],
        )

        self.misses_total = Counter(
            "tiercache_misses_total",
            "Cache lookups that missed every tier",
        )

        self.evictions_total = Counter(
            "tiercache_evictions_total",
            "Local tier entries evicted by the size bound",
        )

        self.shared_errors_total = Counter(
            "tiercache_shared_errors_total",
            "Shared tier failures",
            ["operation"],
        )

        self.operation_duration_seconds = Histogram(
            "tiercache_operation_duration_seconds",
            "Cache operation latency in seconds",
            ["operation"],
            buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.5, 1.0),
        )

        self.local_entries = Gauge(
            "tiercache_local_entries",
            "Entries currently held in the local tier",
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


def record_request() -> None:
    metrics = get_metrics()
    if metrics.requests_total:
        metrics.requests_total.inc()


def record_hit(tier: str) -> None:
    """Record a hit served by ``tier``."""
    metrics = get_metrics()
    if metrics.hits_total:
        metrics.hits_total.labels(tier=tier).inc()


def record_miss() -> None:
    metrics = get_metrics()
    if metrics.misses_total:
        metrics.misses_total.inc()


def record_eviction() -> None:
    metrics = get_metrics()
    if metrics.evictions_total:
        metrics.evictions_total.inc()


def record_shared_error(operation: str) -> None:
    """Record a shared tier failure.

    Args:
        operation: Redis operation that failed (get, set, delete, scan, flush)
    """
    metrics = get_metrics()
    if metrics.shared_errors_total:
        metrics.shared_errors_total.labels(operation=operation).inc()


def record_operation(operation: str, duration: float) -> None:
    """Record cache operation duration.

    Args:
        operation: Manager operation (get, set, get_or_set)
        duration: Operation duration in seconds
    """
    metrics = get_metrics()
    if metrics.operation_duration_seconds:
        metrics.operation_duration_seconds.labels(operation=operation).observe(duration)


def set_local_entries(count: int) -> None:
    metrics = get_metrics()
    if metrics.local_entries:
        metrics.local_entries.set(count)

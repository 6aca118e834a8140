"""Metrics module - Backend hit/miss/error counters."""

from bucketcache_core.metrics.collector import (
    BackendCounters,
    BackendMetrics,
    MetricsRegistry,
    MetricsSink,
    NullMetrics,
    get_default_registry,
)

__all__ = [
    "BackendCounters",
    "BackendMetrics",
    "MetricsRegistry",
    "MetricsSink",
    "NullMetrics",
    "get_default_registry",
]

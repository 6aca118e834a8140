"""BucketCache Metrics Collector - Backend Hit/Miss/Error Counters.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Error kinds reported by backends. Read-path store failures are labelled
# by error class and store code instead, e.g. "TransportError:AccessDenied".
DECODE_FAILED = "DecodeFailed"
ENCODE_FAILED = "EncodeFailed"
SET_FAILED = "SetFailed"
PURGE_FAILED = "PurgeFailed"
FLUSH_FAILED = "FlushFailed"


@dataclass
class BackendCounters:
    """Counters for one (backend kind, cache name) partition.

    Attributes:
        backend_kind: Kind of backend, e.g. "s3"
        cache_name: Name of the owning cache
        hits: Cache hits
        misses: Cache misses
        errors: Error count per error kind
    """

    backend_kind: str
    cache_name: str
    hits: int = 0
    misses: int = 0
    errors: Dict[str, int] = field(default_factory=dict)

    @property
    def hit_rate(self) -> float:
        """Calculate hit rate."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    @property
    def error_count(self) -> int:
        """Get total errors across kinds."""
        return sum(self.errors.values())

    def copy(self) -> "BackendCounters":
        """Get a detached snapshot."""
        return BackendCounters(
            backend_kind=self.backend_kind,
            cache_name=self.cache_name,
            hits=self.hits,
            misses=self.misses,
            errors=dict(self.errors),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary.

        Returns:
            Counters dictionary
        """
        return {
            "backend_kind": self.backend_kind,
            "cache_name": self.cache_name,
            "hits": self.hits,
            "misses": self.misses,
            "errors": dict(self.errors),
            "hit_rate": self.hit_rate,
        }


class MetricsRegistry:
    """Thread-safe store of monotonic counters per backend partition.

    Example:
        registry = MetricsRegistry()
        metrics = BackendMetrics("s3", "products", registry=registry)
        metrics.count_hit()

        counters = registry.get_counters("s3", "products")
        print(f"Hit rate: {counters.hit_rate:.2%}")
    """

    def __init__(self):
        self._counters: Dict[Tuple[str, str], BackendCounters] = {}
        self._lock = threading.RLock()
        self._exporters: List[Callable[[List[BackendCounters]], None]] = []

    def _partition(self, backend_kind: str, cache_name: str) -> BackendCounters:
        key = (backend_kind, cache_name)
        counters = self._counters.get(key)
        if counters is None:
            counters = BackendCounters(backend_kind=backend_kind, cache_name=cache_name)
            self._counters[key] = counters
        return counters

    def record_hit(self, backend_kind: str, cache_name: str) -> None:
        """Record a cache hit."""
        with self._lock:
            self._partition(backend_kind, cache_name).hits += 1

    def record_miss(self, backend_kind: str, cache_name: str) -> None:
        """Record a cache miss."""
        with self._lock:
            self._partition(backend_kind, cache_name).misses += 1

    def record_error(self, backend_kind: str, cache_name: str, kind: str) -> None:
        """Record an error.

        Args:
            backend_kind: Kind of backend
            cache_name: Name of the owning cache
            kind: Error kind label
        """
        with self._lock:
            errors = self._partition(backend_kind, cache_name).errors
            errors[kind] = errors.get(kind, 0) + 1

    def get_counters(self, backend_kind: str, cache_name: str) -> BackendCounters:
        """Get a snapshot of one partition.

        Returns:
            BackendCounters (all zero if nothing was recorded)
        """
        with self._lock:
            counters = self._counters.get((backend_kind, cache_name))
            if counters is None:
                return BackendCounters(backend_kind=backend_kind, cache_name=cache_name)
            return counters.copy()

    def partitions(self) -> List[BackendCounters]:
        """Get snapshots of every partition."""
        with self._lock:
            return [c.copy() for c in self._counters.values()]

    def reset(self) -> None:
        """Reset all counters."""
        with self._lock:
            self._counters.clear()

    def add_exporter(self, exporter: Callable[[List[BackendCounters]], None]) -> None:
        """Add metrics exporter.

        Args:
            exporter: Callback receiving partition snapshots
        """
        self._exporters.append(exporter)

    def export(self) -> None:
        """Export metrics to all exporters."""
        snapshot = self.partitions()
        for exporter in self._exporters:
            try:
                exporter(snapshot)
            except Exception as e:
                logger.error(f"Exporter error: {e}")

    def to_prometheus(self) -> str:
        """Export metrics in Prometheus format.

        Returns:
            Prometheus-formatted metrics
        """
        snapshot = sorted(self.partitions(), key=lambda c: (c.backend_kind, c.cache_name))
        lines = [
            "# HELP cache_backend_hits_total Total cache backend hits",
            "# TYPE cache_backend_hits_total counter",
        ]
        for c in snapshot:
            lines.append(f"cache_backend_hits_total{{{_labels(c)}}} {c.hits}")
        lines += [
            "",
            "# HELP cache_backend_misses_total Total cache backend misses",
            "# TYPE cache_backend_misses_total counter",
        ]
        for c in snapshot:
            lines.append(f"cache_backend_misses_total{{{_labels(c)}}} {c.misses}")
        lines += [
            "",
            "# HELP cache_backend_errors_total Total cache backend errors",
            "# TYPE cache_backend_errors_total counter",
        ]
        for c in snapshot:
            for kind in sorted(c.errors):
                labels = f'{_labels(c)},error="{_escape_label(kind)}"'
                lines.append(f"cache_backend_errors_total{{{labels}}} {c.errors[kind]}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"MetricsRegistry(partitions={len(self._counters)})"


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _labels(counters: BackendCounters) -> str:
    return (
        f'backend="{_escape_label(counters.backend_kind)}",'
        f'cache="{_escape_label(counters.cache_name)}"'
    )


_default_registry = MetricsRegistry()


def get_default_registry() -> MetricsRegistry:
    """Get the process-wide registry used when none is injected."""
    return _default_registry


class MetricsSink(ABC):
    """Receives backend outcomes. Implementations must not raise or block."""

    @abstractmethod
    def count_hit(self) -> None:
        """Count a hit."""
        pass

    @abstractmethod
    def count_miss(self) -> None:
        """Count a miss."""
        pass

    @abstractmethod
    def count_error(self, kind: str) -> None:
        """Count an error of the given kind."""
        pass


class BackendMetrics(MetricsSink):
    """Metrics sink bound to one (backend kind, cache name) partition."""

    def __init__(
        self,
        backend_kind: str,
        cache_name: str,
        registry: Optional[MetricsRegistry] = None,
    ):
        """Initialize metrics handle.

        Args:
            backend_kind: Kind of backend, e.g. "s3"
            cache_name: Name of the owning cache
            registry: Counter registry, defaults to the process-wide one
        """
        self.backend_kind = backend_kind
        self.cache_name = cache_name
        self.registry = registry or get_default_registry()

    def count_hit(self) -> None:
        self.registry.record_hit(self.backend_kind, self.cache_name)

    def count_miss(self) -> None:
        self.registry.record_miss(self.backend_kind, self.cache_name)

    def count_error(self, kind: str) -> None:
        self.registry.record_error(self.backend_kind, self.cache_name, kind)

    def counters(self) -> BackendCounters:
        """Get a snapshot of this partition."""
        return self.registry.get_counters(self.backend_kind, self.cache_name)

    def __repr__(self) -> str:
        return f"BackendMetrics(backend={self.backend_kind!r}, cache={self.cache_name!r})"


class NullMetrics(MetricsSink):
    """Sink that discards everything."""

    def count_hit(self) -> None:
        pass

    def count_miss(self) -> None:
        pass

    def count_error(self, kind: str) -> None:
        pass


__all__ = [
    "BackendCounters",
    "MetricsRegistry",
    "MetricsSink",
    "BackendMetrics",
    "NullMetrics",
    "get_default_registry",
    "DECODE_FAILED",
    "ENCODE_FAILED",
    "SET_FAILED",
    "PURGE_FAILED",
    "FLUSH_FAILED",
]

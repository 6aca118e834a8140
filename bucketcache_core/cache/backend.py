"""BucketCache Backend - Cache Backend over an Object Store.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional, Tuple

from bucketcache_core.cache.entry import Entry
from bucketcache_core.cache.namespace import KeyNamespacer
from bucketcache_core.exceptions import (
    DecodeError,
    EncodeError,
    FlushError,
    ObjectNotFoundError,
    StoreError,
)
from bucketcache_core.metrics.collector import (
    DECODE_FAILED,
    ENCODE_FAILED,
    FLUSH_FAILED,
    PURGE_FAILED,
    SET_FAILED,
    BackendMetrics,
    MetricsSink,
)
from bucketcache_core.protocol.codec import EntryCodec
from bucketcache_core.store.base import ObjectStore

logger = logging.getLogger(__name__)


def read_error_kind(error: Exception) -> str:
    """Metrics label for a failed read.

    Built from the error class and the store's short error code, never from
    the message, so object paths do not end up in label values.

    Args:
        error: Exception raised by the object store

    Returns:
        Label such as "TransportError:AccessDenied" or "RuntimeError"
    """
    kind = type(error).__name__
    code = error.code if isinstance(error, StoreError) else None
    return f"{kind}:{code}" if code else kind


class FlushPolicy(Enum):
    """How flush reacts to a failed delete."""

    ABORT_ON_ERROR = auto()     # Stop at the first failure and raise it
    CONTINUE_ON_ERROR = auto()  # Try every object, raise FlushError at the end


@dataclass
class BackendConfig:
    """Object store backend configuration.

    Attributes:
        key_prefix: Prefix separating this cache from others in the store
        cache_name: Name of the owning cache, used as metrics label
        backend_kind: Kind of backend, used as metrics label
        flush_policy: Reaction to delete failures during flush
    """

    key_prefix: str = "cache"
    cache_name: str = "default"
    backend_kind: str = "objectstore"
    flush_policy: FlushPolicy = FlushPolicy.ABORT_ON_ERROR


class CacheBackend(ABC):
    """Storage contract used by the generic cache layer.

    Reads never raise: any failure is reported as a miss. Writes raise
    on failure so they are never silently lost.
    """

    @abstractmethod
    def get(self, key: str) -> Tuple[Optional[Entry], bool]:
        """Get entry by key.

        Args:
            key: Cache key

        Returns:
            (entry, True) on hit, (None, False) otherwise
        """
        pass

    @abstractmethod
    def set(self, key: str, entry: Entry) -> None:
        """Store entry.

        Args:
            key: Cache key
            entry: Cache entry
        """
        pass

    @abstractmethod
    def purge(self, key: str) -> None:
        """Remove one entry. Purging a missing key succeeds.

        Args:
            key: Cache key
        """
        pass

    @abstractmethod
    def flush(self) -> None:
        """Remove every entry of this cache."""
        pass


class ObjectStoreBackend(CacheBackend):
    """Cache backend persisting entries into an ObjectStore.

    Each entry is encoded into one object at a path derived from the key
    prefix and the logical key. The backend holds only configuration and
    is safe to share between threads; per-object atomicity comes from the
    store.

    Flush lists everything under the prefix and deletes it one object at
    a time. It is not atomic and not isolated from concurrent writers: an
    entry set while a flush runs may or may not survive it.

    Example:
        backend = ObjectStoreBackend(
            MemoryObjectStore(),
            BackendConfig(key_prefix="products", cache_name="catalog"),
        )
        backend.set("sku-1", Entry(data={"price": 10}, meta=EntryMeta(lifetime=60)))
        entry, found = backend.get("sku-1")
    """

    def __init__(
        self,
        store: ObjectStore,
        config: Optional[BackendConfig] = None,
        codec: Optional[EntryCodec] = None,
        metrics: Optional[MetricsSink] = None,
    ):
        """Initialize backend.

        Args:
            store: Object store holding the entries
            config: Backend configuration
            codec: Entry codec, defaults to one without registered types
            metrics: Metrics sink, defaults to the process-wide registry
        """
        self.store = store
        self.config = config or BackendConfig()
        self.codec = codec or EntryCodec()
        self.metrics = metrics or BackendMetrics(self.config.backend_kind, self.config.cache_name)
        self.namespacer = KeyNamespacer(self.config.key_prefix)

    # Metrics must never break the calling operation

    def _count_hit(self) -> None:
        try:
            self.metrics.count_hit()
        except Exception as e:
            logger.error(f"Metrics error: {e}")

    def _count_miss(self) -> None:
        try:
            self.metrics.count_miss()
        except Exception as e:
            logger.error(f"Metrics error: {e}")

    def _count_error(self, kind: str) -> None:
        try:
            self.metrics.count_error(kind)
        except Exception as e:
            logger.error(f"Metrics error: {e}")

    def get(self, key: str) -> Tuple[Optional[Entry], bool]:
        path = self.namespacer.path(key)

        try:
            data = self.store.get(path)
        except ObjectNotFoundError:
            self._count_miss()
            return None, False
        except Exception as e:
            self._count_error(read_error_kind(e))
            logger.error(f"Error reading key '{key}' from {path}: {e}")
            return None, False

        try:
            entry = self.codec.decode(data)
        except DecodeError as e:
            self._count_error(DECODE_FAILED)
            logger.error(f"Error decoding content of key '{key}': {e}")
            return None, False

        self._count_hit()
        return entry, True

    def set(self, key: str, entry: Entry) -> None:
        path = self.namespacer.path(key)
        stripped = entry.stripped()

        try:
            data = self.codec.encode(stripped)
        except EncodeError as e:
            self._count_error(ENCODE_FAILED)
            logger.error(f"Error encoding key '{key}': {e}")
            raise

        try:
            self.store.put(path, data)
        except Exception as e:
            self._count_error(SET_FAILED)
            logger.error(
                f"Error setting key '{key}' with lifetime {stripped.lifetime.total_seconds()}s "
                f"and gracetime {stripped.gracetime.total_seconds()}s ({len(data)} bytes): {e}"
            )
            raise

        logger.debug(f"Stored key '{key}' at {path} ({len(data)} bytes)")

    def purge(self, key: str) -> None:
        path = self.namespacer.path(key)

        try:
            self.store.delete(path)
        except ObjectNotFoundError:
            return
        except Exception as e:
            self._count_error(PURGE_FAILED)
            logger.error(f"Failed purge of key '{key}': {e}")
            raise

    def flush(self) -> None:
        prefix = self.namespacer.flush_prefix()

        try:
            paths = self.store.list_by_prefix(prefix)
        except Exception as e:
            self._count_error(FLUSH_FAILED)
            logger.error(f"Failed list for flush of {prefix}: {e}")
            raise

        failures: List[Tuple[str, Exception]] = []
        for path in paths:
            try:
                self.store.delete(path)
            except ObjectNotFoundError:
                continue
            except Exception as e:
                self._count_error(FLUSH_FAILED)
                logger.error(f"Failed delete of '{path}' during flush: {e}")
                if self.config.flush_policy == FlushPolicy.ABORT_ON_ERROR:
                    raise
                failures.append((path, e))

        if failures:
            raise FlushError(failures)

        logger.debug(f"Flushed {len(paths)} object(s) under {prefix}")

    def __repr__(self) -> str:
        return (
            f"ObjectStoreBackend(store={self.store!r}, prefix={self.config.key_prefix!r}, "
            f"cache={self.config.cache_name!r})"
        )


__all__ = ["CacheBackend", "ObjectStoreBackend", "BackendConfig", "FlushPolicy", "read_error_kind"]

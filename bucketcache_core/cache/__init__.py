"""Cache module - Entry model, key namespacing and the backend contract.

This module provides the cache backend interface and entry management.
"""

from bucketcache_core.cache.entry import (
    Entry,
    EntryMeta,
)
from bucketcache_core.cache.namespace import (
    KeyNamespacer,
    storage_path,
)
from bucketcache_core.cache.backend import (
    BackendConfig,
    CacheBackend,
    FlushPolicy,
    ObjectStoreBackend,
)

__all__ = [
    "Entry",
    "EntryMeta",
    "KeyNamespacer",
    "storage_path",
    "BackendConfig",
    "CacheBackend",
    "FlushPolicy",
    "ObjectStoreBackend",
]

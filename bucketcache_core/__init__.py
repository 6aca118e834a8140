"""BucketCache - Cache Storage Backend for Object Stores.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

A pluggable cache backend persisting entries into object storage:
- Uniform get/set/purge/flush contract for a generic cache layer
- Self-describing MessagePack entry records with a payload type registry
- Collision-free key namespacing so many caches share one bucket
- Hit/miss/error counters per backend kind and cache name
- Interchangeable object stores (S3, Redis, local files, memory)

Architecture:
    ┌─────────────────────────────────────────────────────────────────┐
    │                      BucketCache Backend                        │
    ├─────────────────────────────────────────────────────────────────┤
    │  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐             │
    │  │   Backend   │  │ Namespacer  │  │   Entry     │   CACHE     │
    │  │ get/set/... │  │ prefix/key  │  │ life/grace  │   LAYER     │
    │  └──────┬──────┘  └──────┬──────┘  └──────┬──────┘             │
    │         │                │                │                     │
    │  ┌──────┴────────────────┴────────────────┴──────┐             │
    │  │        Entry Codec + Type Registry             │  PROTOCOL   │
    │  └──────────────────────┬────────────────────────┘             │
    │                         │                                       │
    │  ┌──────────────────────┴────────────────────────┐             │
    │  │                Object Stores                   │             │
    │  │  ┌──────┐  ┌───────┐  ┌──────┐  ┌────────┐   │   STORAGE   │
    │  │  │  S3  │  │ Redis │  │ File │  │ Memory │   │   LAYER     │
    │  │  └──────┘  └───────┘  └──────┘  └────────┘   │             │
    │  └──────────────────────────────────────────────┘             │
    │                                                                 │
    │  ┌──────────────────────────────────────────────┐             │
    │  │     Metrics: hits / misses / errors by kind   │   METRICS   │
    │  └──────────────────────────────────────────────┘             │
    └─────────────────────────────────────────────────────────────────┘

Example Usage:
    from bucketcache_core import (
        Entry, EntryMeta, EntryCodec, TypeRegistry, S3Config, new_s3_backend,
    )

    registry = TypeRegistry()
    registry.register(Product)

    backend = new_s3_backend(
        S3Config(bucket="cache", key_prefix="products", cache_name="catalog"),
        codec=EntryCodec(registry),
    )
    backend.set("sku-1", Entry(data=product, meta=EntryMeta(lifetime=300, gracetime=60)))
    entry, found = backend.get("sku-1")

    # Drop everything under the "products" prefix
    backend.flush()
"""

__version__ = "1.0.0"
__author__ = "BlackRoad OS"

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
from bucketcache_core.protocol.codec import (
    CompressionType,
    EntryCodec,
    TypeRegistry,
)
from bucketcache_core.store.base import (
    ObjectStore,
    StoreStats,
)
from bucketcache_core.store.memory import MemoryObjectStore
from bucketcache_core.store.file import FileObjectStore, FileStoreConfig
from bucketcache_core.store.redis import RedisObjectStore, RedisConfig
from bucketcache_core.store.s3 import S3ObjectStore, S3Config, new_s3_backend
from bucketcache_core.metrics.collector import (
    BackendCounters,
    BackendMetrics,
    MetricsRegistry,
    MetricsSink,
    NullMetrics,
)
from bucketcache_core.exceptions import (
    CacheBackendError,
    DecodeError,
    EncodeError,
    FlushError,
    ObjectNotFoundError,
    StoreError,
    TransportError,
)

__all__ = [
    # Cache
    "Entry",
    "EntryMeta",
    "KeyNamespacer",
    "storage_path",
    "BackendConfig",
    "CacheBackend",
    "FlushPolicy",
    "ObjectStoreBackend",
    # Protocol
    "CompressionType",
    "EntryCodec",
    "TypeRegistry",
    # Storage
    "ObjectStore",
    "StoreStats",
    "MemoryObjectStore",
    "FileObjectStore",
    "FileStoreConfig",
    "RedisObjectStore",
    "RedisConfig",
    "S3ObjectStore",
    "S3Config",
    "new_s3_backend",
    # Metrics
    "BackendCounters",
    "BackendMetrics",
    "MetricsRegistry",
    "MetricsSink",
    "NullMetrics",
    # Errors
    "CacheBackendError",
    "DecodeError",
    "EncodeError",
    "FlushError",
    "ObjectNotFoundError",
    "StoreError",
    "TransportError",
]

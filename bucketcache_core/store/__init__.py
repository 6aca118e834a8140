"""Store module - Object stores holding encoded cache entries."""

from bucketcache_core.store.base import (
    ObjectStore,
    StoreStats,
)
from bucketcache_core.store.memory import MemoryObjectStore
from bucketcache_core.store.file import FileObjectStore, FileStoreConfig
from bucketcache_core.store.redis import RedisObjectStore, RedisConfig
from bucketcache_core.store.s3 import S3ObjectStore, S3Config, new_s3_backend

__all__ = [
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
]

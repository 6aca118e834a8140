"""BucketCache Redis Store - Redis-Backed Object Store.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from bucketcache_core.exceptions import ObjectNotFoundError, StoreError, TransportError
from bucketcache_core.store.base import ObjectStore

logger = logging.getLogger(__name__)

_GLOB_SPECIAL = "\\*?[]"


@dataclass
class RedisConfig:
    """Redis store configuration.

    Attributes:
        host: Redis host
        port: Redis port
        db: Redis database number
        password: Redis password
        socket_timeout: Socket timeout
        socket_connect_timeout: Connection timeout
        ssl: Enable SSL
        max_connections: Connection pool size
        prefix: Prefix prepended to every object path
        scan_count: SCAN batch size hint
    """

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    socket_timeout: float = 5.0
    socket_connect_timeout: float = 5.0
    ssl: bool = False
    max_connections: int = 10
    prefix: str = "objects:"
    scan_count: int = 100


def _escape_glob(value: str) -> str:
    return "".join(f"\\{c}" if c in _GLOB_SPECIAL else c for c in value)


class RedisObjectStore(ObjectStore):
    """Object store keeping each object as a Redis string.

    The connection pool is created on first use. Prefix listings use
    SCAN with an escaped MATCH pattern, so they never block the server.

    Example:
        store = RedisObjectStore(RedisConfig(host="redis.local"))
        store.put("/users/1", b"...")
    """

    def __init__(self, config: Optional[RedisConfig] = None, client: Optional[Any] = None):
        """Initialize Redis store.

        Args:
            config: Redis configuration
            client: Pre-built redis client, mainly for tests
        """
        super().__init__()
        self.config = config or RedisConfig()
        self._client: Optional[Any] = client
        self._pool: Optional[Any] = None

    def _ensure_connected(self) -> Any:
        """Ensure Redis connection exists.

        Returns:
            Redis client
        """
        if self._client is not None:
            return self._client

        import redis

        pool_kwargs = dict(
            host=self.config.host,
            port=self.config.port,
            db=self.config.db,
            password=self.config.password,
            socket_timeout=self.config.socket_timeout,
            socket_connect_timeout=self.config.socket_connect_timeout,
            max_connections=self.config.max_connections,
            decode_responses=False,  # Objects are raw bytes
        )
        if self.config.ssl:
            pool_kwargs["connection_class"] = redis.SSLConnection

        self._pool = redis.ConnectionPool(**pool_kwargs)
        self._client = redis.Redis(connection_pool=self._pool)
        logger.info(f"Connected to Redis at {self.config.host}:{self.config.port}")
        return self._client

    def _make_key(self, path: str) -> str:
        return f"{self.config.prefix}{path}"

    def _wrap_error(self, action: str, path: Optional[str], error: Exception) -> StoreError:
        from redis import exceptions as redis_exceptions

        logger.error(f"Redis {action} error for {path}: {error}")
        self._stats.record_error(str(error))
        message = f"Redis {action} failed: {error}"
        code = type(error).__name__
        if isinstance(error, (redis_exceptions.ConnectionError, redis_exceptions.TimeoutError)):
            return TransportError(message, path=path, code=code)
        return StoreError(message, path=path, code=code)

    def get(self, path: str) -> bytes:
        try:
            client = self._ensure_connected()
            self._stats.reads += 1
            data = client.get(self._make_key(path))
        except Exception as e:
            raise self._wrap_error("get", path, e) from e

        if data is None:
            raise ObjectNotFoundError(path)
        return bytes(data)

    def put(self, path: str, data: bytes) -> None:
        try:
            client = self._ensure_connected()
            client.set(self._make_key(path), data)
            self._stats.writes += 1
        except Exception as e:
            raise self._wrap_error("set", path, e) from e

    def delete(self, path: str) -> None:
        try:
            client = self._ensure_connected()
            client.delete(self._make_key(path))
            self._stats.deletes += 1
        except Exception as e:
            raise self._wrap_error("delete", path, e) from e

    def list_by_prefix(self, prefix: str) -> List[str]:
        pattern = _escape_glob(self._make_key(prefix)) + "*"
        prefix_len = len(self.config.prefix)

        paths = []
        try:
            client = self._ensure_connected()
            self._stats.lists += 1
            for key in client.scan_iter(match=pattern, count=self.config.scan_count):
                key_str = key.decode() if isinstance(key, bytes) else key
                paths.append(key_str[prefix_len:])
        except Exception as e:
            raise self._wrap_error("scan", prefix, e) from e

        return sorted(paths)

    def exists(self, path: str) -> bool:
        try:
            client = self._ensure_connected()
            return client.exists(self._make_key(path)) > 0
        except Exception as e:
            raise self._wrap_error("exists", path, e) from e

    def close(self) -> None:
        """Close Redis connection."""
        if self._pool:
            self._pool.disconnect()
            self._pool = None
            self._client = None

    def __repr__(self) -> str:
        return f"RedisObjectStore(host={self.config.host}, port={self.config.port})"


__all__ = ["RedisObjectStore", "RedisConfig"]

"""BucketCache Exceptions - Error Taxonomy for Cache Backends.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from typing import List, Optional, Tuple


class CacheBackendError(Exception):
    """Base exception for cache backend errors."""

    pass


class ObjectNotFoundError(CacheBackendError):
    """Raised by an object store when no object exists at a path."""

    def __init__(self, path: str) -> None:
        """Initialize error.

        Args:
            path: Storage path that was looked up
        """
        self.path = path
        super().__init__(f"Object not found: {path}")


class StoreError(CacheBackendError):
    """Raised when an object store operation fails."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        code: Optional[str] = None,
    ) -> None:
        """Initialize error.

        Args:
            message: Error message
            path: Storage path involved, if any
            code: Short backend error code (errno name, service error code, ...)
        """
        self.path = path
        self.code = code
        super().__init__(message)


class TransportError(StoreError):
    """Raised when the store is unreachable, times out or rejects credentials."""

    pass


class EncodeError(CacheBackendError):
    """Raised when an entry payload cannot be encoded."""

    pass


class DecodeError(CacheBackendError):
    """Raised when stored bytes cannot be decoded into an entry."""

    pass


class FlushError(CacheBackendError):
    """Raised when a flush could not delete every object under the prefix."""

    def __init__(self, failures: List[Tuple[str, Exception]]) -> None:
        """Initialize error.

        Args:
            failures: (path, cause) pairs for every failed delete
        """
        self.failures = failures
        paths = ", ".join(path for path, _ in failures[:5])
        more = f" (+{len(failures) - 5} more)" if len(failures) > 5 else ""
        super().__init__(f"Flush failed for {len(failures)} object(s): {paths}{more}")


__all__ = [
    "CacheBackendError",
    "ObjectNotFoundError",
    "StoreError",
    "TransportError",
    "EncodeError",
    "DecodeError",
    "FlushError",
]

"""BucketCache Object Store - Abstract Object Store Interface.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from bucketcache_core.exceptions import ObjectNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class StoreStats:
    """Object store statistics.

    Attributes:
        reads: Number of get operations
        writes: Number of put operations
        deletes: Number of delete operations
        lists: Number of prefix listings
        errors: Number of errors
    """

    reads: int = 0
    writes: int = 0
    deletes: int = 0
    lists: int = 0
    errors: int = 0
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None

    def record_error(self, error: str) -> None:
        """Record an error."""
        self.errors += 1
        self.last_error = error
        self.last_error_at = datetime.now()


class ObjectStore(ABC):
    """Abstract blob store addressed by string paths.

    Implementations provide different storage media:
    - MemoryObjectStore: In-process dictionary
    - FileObjectStore: One file per object
    - S3ObjectStore: S3 or any S3-compatible service
    - RedisObjectStore: Redis strings

    A put or delete on one path never interferes with another path.
    Timeouts and retries belong to the implementation.
    """

    def __init__(self):
        self._stats = StoreStats()

    @abstractmethod
    def get(self, path: str) -> bytes:
        """Get object contents.

        Args:
            path: Object path

        Returns:
            Object bytes

        Raises:
            ObjectNotFoundError: If no object exists at path
            StoreError: On any other failure
        """
        pass

    @abstractmethod
    def put(self, path: str, data: bytes) -> None:
        """Store object contents, replacing any existing object.

        Args:
            path: Object path
            data: Object bytes

        Raises:
            StoreError: On failure
        """
        pass

    @abstractmethod
    def delete(self, path: str) -> None:
        """Delete an object. Deleting a missing object succeeds.

        Args:
            path: Object path

        Raises:
            StoreError: On failure
        """
        pass

    @abstractmethod
    def list_by_prefix(self, prefix: str) -> List[str]:
        """List object paths starting with prefix.

        Args:
            prefix: Path prefix

        Returns:
            Matching paths

        Raises:
            StoreError: On failure
        """
        pass

    def exists(self, path: str) -> bool:
        """Check if an object exists.

        Args:
            path: Object path

        Returns:
            True if exists
        """
        try:
            self.get(path)
            return True
        except ObjectNotFoundError:
            return False

    def get_stats(self) -> StoreStats:
        """Get store statistics.

        Returns:
            StoreStats instance
        """
        return self._stats

    def reset_stats(self) -> None:
        """Reset statistics."""
        self._stats = StoreStats()

    def __contains__(self, path: str) -> bool:
        """Check if path exists."""
        return self.exists(path)


__all__ = ["ObjectStore", "StoreStats"]

"""BucketCache Memory Store - In-Memory Object Store.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List

from bucketcache_core.exceptions import ObjectNotFoundError
from bucketcache_core.store.base import ObjectStore

logger = logging.getLogger(__name__)


class MemoryObjectStore(ObjectStore):
    """In-memory object store.

    Keeps objects in a dictionary guarded by an RLock. Useful for tests
    and single-process setups; several backends may share one instance.

    Example:
        store = MemoryObjectStore()
        store.put("/users/1", b"...")
        data = store.get("/users/1")
    """

    def __init__(self):
        super().__init__()
        self._objects: Dict[str, bytes] = {}
        self._lock = threading.RLock()

    def get(self, path: str) -> bytes:
        with self._lock:
            self._stats.reads += 1
            try:
                return self._objects[path]
            except KeyError:
                raise ObjectNotFoundError(path) from None

    def put(self, path: str, data: bytes) -> None:
        with self._lock:
            self._objects[path] = bytes(data)
            self._stats.writes += 1

    def delete(self, path: str) -> None:
        with self._lock:
            self._objects.pop(path, None)
            self._stats.deletes += 1

    def list_by_prefix(self, prefix: str) -> List[str]:
        with self._lock:
            self._stats.lists += 1
            return sorted(p for p in self._objects if p.startswith(prefix))

    def exists(self, path: str) -> bool:
        with self._lock:
            return path in self._objects

    def size(self) -> int:
        """Get object count."""
        with self._lock:
            return len(self._objects)

    def clear(self) -> int:
        """Remove all objects.

        Returns:
            Number removed
        """
        with self._lock:
            count = len(self._objects)
            self._objects.clear()
            return count

    def __len__(self) -> int:
        return self.size()

    def __repr__(self) -> str:
        return f"MemoryObjectStore(objects={len(self._objects)})"


__all__ = ["MemoryObjectStore"]

"""BucketCache File Store - Directory-Backed Object Store.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import contextlib
import errno
import hashlib
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple
from urllib.parse import quote, unquote

from bucketcache_core.exceptions import ObjectNotFoundError, StoreError
from bucketcache_core.store.base import ObjectStore

logger = logging.getLogger(__name__)

# File names are hex digests, so a marked temp file never clashes with an object
TEMP_MARKER = "#tmp"
HEADER_END = b"\n"


@dataclass
class FileStoreConfig:
    """File store configuration.

    Attributes:
        base_path: Root directory for object files
        shard_count: Number of shard directories (at most 256)
        fsync: Flush file contents to disk before renaming
    """

    base_path: str = "./bucketcache"
    shard_count: int = 256
    fsync: bool = False


def _os_code(error: OSError) -> str:
    return errno.errorcode.get(error.errno, type(error).__name__)


def _os_reason(error: OSError) -> str:
    return error.strerror or type(error).__name__


class FileObjectStore(ObjectStore):
    """Object store keeping one file per object on local disk.

    Files are named by the SHA-256 digest of the object path, so any path
    fits the file system's name limit. Each file starts with a one-line
    header holding the percent-encoded path, which keeps prefix listings
    possible. Objects are spread over sharded directories and written
    atomically through a temp file and rename.

    Example:
        store = FileObjectStore(FileStoreConfig(base_path="/var/cache/app"))
        store.put("/users/1", b"...")
        store.list_by_prefix("/users/")
    """

    def __init__(self, config: Optional[FileStoreConfig] = None):
        """Initialize file store.

        Args:
            config: File store configuration
        """
        super().__init__()
        self.config = config or FileStoreConfig()
        if not 1 <= self.config.shard_count <= 256:
            raise ValueError("shard_count must be between 1 and 256")
        self.base_path = Path(self.config.base_path)
        self._lock = threading.RLock()
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Create shard directories."""
        self.base_path.mkdir(parents=True, exist_ok=True)
        for i in range(self.config.shard_count):
            (self.base_path / f"{i:02x}").mkdir(exist_ok=True)

    def _get_file(self, path: str) -> Path:
        digest = hashlib.sha256(path.encode()).hexdigest()
        shard = f"{int(digest[:2], 16) % self.config.shard_count:02x}"
        return self.base_path / shard / digest

    @staticmethod
    def _header(path: str) -> bytes:
        return quote(path, safe="").encode("ascii") + HEADER_END

    @staticmethod
    def _split(raw: bytes) -> Tuple[Optional[str], bytes]:
        header, sep, data = raw.partition(HEADER_END)
        if not sep:
            return None, b""
        return unquote(header.decode("ascii", errors="replace")), data

    def _read_header(self, file_path: Path) -> Optional[str]:
        with open(file_path, "rb") as f:
            path, _ = self._split(f.readline())
        return path

    def get(self, path: str) -> bytes:
        file_path = self._get_file(path)
        try:
            with self._lock:
                self._stats.reads += 1
                raw = file_path.read_bytes()
        except FileNotFoundError:
            raise ObjectNotFoundError(path) from None
        except OSError as e:
            logger.error(f"Error reading {path}: {e}")
            self._stats.record_error(str(e))
            raise StoreError(
                f"Error reading object: {_os_reason(e)}", path=path, code=_os_code(e)
            ) from e

        stored_path, data = self._split(raw)
        if stored_path != path:
            logger.error(f"Object file {file_path} does not hold {path}")
            self._stats.record_error("header mismatch")
            raise StoreError("Object file header mismatch", path=path, code="BadHeader")
        return data

    def put(self, path: str, data: bytes) -> None:
        file_path = self._get_file(path)
        temp_path = file_path.with_name(file_path.name + TEMP_MARKER)

        try:
            with self._lock:
                with open(temp_path, "wb") as f:
                    f.write(self._header(path))
                    f.write(data)
                    if self.config.fsync:
                        f.flush()
                        os.fsync(f.fileno())

                # Atomic write
                os.replace(temp_path, file_path)
                self._stats.writes += 1

        except OSError as e:
            logger.error(f"Error writing {path}: {e}")
            self._stats.record_error(str(e))
            with contextlib.suppress(OSError):
                temp_path.unlink()
            raise StoreError(
                f"Error writing object: {_os_reason(e)}", path=path, code=_os_code(e)
            ) from e

    def delete(self, path: str) -> None:
        file_path = self._get_file(path)
        try:
            with self._lock:
                file_path.unlink()
                self._stats.deletes += 1
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Error deleting {path}: {e}")
            self._stats.record_error(str(e))
            raise StoreError(
                f"Error deleting object: {_os_reason(e)}", path=path, code=_os_code(e)
            ) from e

    def list_by_prefix(self, prefix: str) -> List[str]:
        paths = []
        try:
            with self._lock:
                self._stats.lists += 1
                for shard_dir in self.base_path.iterdir():
                    if not shard_dir.is_dir():
                        continue
                    for file_path in shard_dir.iterdir():
                        if TEMP_MARKER in file_path.name or not file_path.is_file():
                            continue
                        path = self._read_header(file_path)
                        if path is not None and path.startswith(prefix):
                            paths.append(path)
        except OSError as e:
            logger.error(f"Error listing {prefix}: {e}")
            self._stats.record_error(str(e))
            raise StoreError(f"Error listing objects: {_os_reason(e)}", code=_os_code(e)) from e

        return sorted(paths)

    def exists(self, path: str) -> bool:
        return self._get_file(path).is_file()

    def disk_usage(self) -> int:
        """Get total disk usage.

        Returns:
            Size in bytes, path headers included
        """
        total = 0
        for shard_dir in self.base_path.iterdir():
            if shard_dir.is_dir():
                for file_path in shard_dir.iterdir():
                    if file_path.is_file():
                        total += file_path.stat().st_size
        return total

    def __repr__(self) -> str:
        return f"FileObjectStore(path={self.base_path})"


__all__ = ["FileObjectStore", "FileStoreConfig"]

"""BucketCache Namespace - Storage Path Derivation and Key Isolation.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote, unquote

SEPARATOR = "/"


def _escape(value: str) -> str:
    # Everything outside A-Z a-z 0-9 - _ . ~ is percent-encoded, "/" and "%" included
    return quote(value, safe="")


def storage_path(prefix: str, key: str) -> str:
    """Map a logical cache key to its storage path.

    Pure and deterministic. Both parts are percent-encoded so distinct
    (prefix, key) pairs never collide, whatever characters they contain.

    Args:
        prefix: Key prefix of the owning cache
        key: Logical cache key

    Returns:
        Storage path, e.g. "/users/42"
    """
    return f"{SEPARATOR}{_escape(prefix)}{SEPARATOR}{_escape(key)}"


class KeyNamespacer:
    """Namespaces logical keys under a fixed prefix.

    Several caches can share one bucket as long as their prefixes differ.
    The listing prefix used for flushing ends with the separator, so a
    prefix "p" never matches objects written under "p2".

    Example:
        ns = KeyNamespacer("users")
        ns.path("42")          # "/users/42"
        ns.flush_prefix()      # "/users/"
        ns.key_for("/users/42")  # "42"
    """

    def __init__(self, prefix: str):
        """Initialize namespacer.

        Args:
            prefix: Key prefix

        Raises:
            ValueError: If prefix is empty
        """
        if not prefix:
            raise ValueError("Key prefix must not be empty")
        self.prefix = prefix
        self._root = f"{SEPARATOR}{_escape(prefix)}{SEPARATOR}"

    def path(self, key: str) -> str:
        """Get storage path for key.

        Args:
            key: Logical cache key

        Returns:
            Storage path
        """
        return storage_path(self.prefix, key)

    def flush_prefix(self) -> str:
        """Get the listing prefix covering every key of this namespace."""
        return self._root

    def owns(self, path: str) -> bool:
        """Check if a storage path belongs to this namespace."""
        return path.startswith(self._root) and SEPARATOR not in path[len(self._root):]

    def key_for(self, path: str) -> Optional[str]:
        """Recover the logical key from a storage path.

        Args:
            path: Storage path

        Returns:
            Logical key, or None if the path belongs to another namespace
        """
        if not self.owns(path):
            return None
        return unquote(path[len(self._root):])

    def __repr__(self) -> str:
        return f"KeyNamespacer(prefix={self.prefix!r})"


__all__ = ["KeyNamespacer", "storage_path", "SEPARATOR"]

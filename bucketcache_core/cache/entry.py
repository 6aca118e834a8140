"""BucketCache Entry - Cached Value with Lifetime and Grace Metadata.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Set, Union

DurationLike = Union[timedelta, int, float]


def to_timedelta(value: DurationLike) -> timedelta:
    """Normalize a duration given as timedelta or seconds.

    Args:
        value: timedelta or number of seconds

    Returns:
        timedelta instance
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Expected timedelta or seconds, got {type(value).__name__}")
    return timedelta(seconds=value)


@dataclass
class EntryMeta:
    """Expiration metadata for a cache entry.

    The backend stores lifetime and gracetime verbatim and never enforces
    them. Tags belong to the generic cache layer and are not persisted.

    Attributes:
        lifetime: Duration the entry is considered fresh
        gracetime: Extra duration a stale entry may still be served
        tags: Tags used by the cache layer for invalidation
    """

    lifetime: timedelta = field(default_factory=timedelta)
    gracetime: timedelta = field(default_factory=timedelta)
    tags: Set[str] = field(default_factory=set)

    def __post_init__(self):
        self.lifetime = to_timedelta(self.lifetime)
        self.gracetime = to_timedelta(self.gracetime)
        if self.lifetime < timedelta(0):
            raise ValueError(f"lifetime must be >= 0, got {self.lifetime}")
        if self.gracetime < timedelta(0):
            raise ValueError(f"gracetime must be >= 0, got {self.gracetime}")
        self.tags = set(self.tags)


@dataclass
class Entry:
    """A cached value plus its expiration metadata.

    Attributes:
        data: Opaque payload supplied by the caller
        meta: Lifetime, gracetime and tags

    Example:
        entry = Entry(data={"id": 1}, meta=EntryMeta(lifetime=60, gracetime=30))
    """

    data: Any = None
    meta: EntryMeta = field(default_factory=EntryMeta)

    @property
    def lifetime(self) -> timedelta:
        """Get lifetime."""
        return self.meta.lifetime

    @property
    def gracetime(self) -> timedelta:
        """Get gracetime."""
        return self.meta.gracetime

    def stripped(self) -> "Entry":
        """Get the persisted projection of this entry.

        Returns:
            Entry with the same data and durations and no tags
        """
        return Entry(
            data=self.data,
            meta=EntryMeta(lifetime=self.meta.lifetime, gracetime=self.meta.gracetime),
        )

    def __repr__(self) -> str:
        return (
            f"Entry(data={self.data!r}, lifetime={self.meta.lifetime.total_seconds()}s, "
            f"gracetime={self.meta.gracetime.total_seconds()}s)"
        )


__all__ = ["Entry", "EntryMeta", "DurationLike", "to_timedelta"]

"""Protocol module - Entry codec and payload type registry."""

from bucketcache_core.protocol.codec import (
    EntryCodec,
    TypeRegistry,
    TypeCodec,
    CompressionType,
)

__all__ = [
    "EntryCodec",
    "TypeRegistry",
    "TypeCodec",
    "CompressionType",
]

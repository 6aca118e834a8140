"""BucketCache Codec - Entry Serialization for Object Storage.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

Records are MessagePack arrays of the form

    [lifetime_us, gracetime_us, data]

prefixed by one marker byte that tells whether the body is compressed.
Payload values that MessagePack cannot represent natively travel as
extension values (type tag + length-prefixed body), so the stored bytes
carry enough type information to rebuild the original value.
"""

from __future__ import annotations

import dataclasses
import gzip
import logging
import zlib
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type

import msgpack

from bucketcache_core.cache.entry import Entry, EntryMeta
from bucketcache_core.exceptions import DecodeError, EncodeError

logger = logging.getLogger(__name__)

# Extension type codes
EXT_REGISTERED = 1
EXT_TUPLE = 2
EXT_SET = 3
EXT_FROZENSET = 4
EXT_DATETIME = 5
EXT_TIMEDELTA = 6

_MICROSECOND = timedelta(microseconds=1)


class CompressionType(Enum):
    """Compression applied to record bodies. Values are the marker bytes."""

    NONE = 0
    ZLIB = 1
    GZIP = 2


@dataclass
class TypeCodec:
    """How one payload type is turned into plain state and back.

    Attributes:
        cls: Registered class
        name: Stable name written into records
        encoder: Object -> MessagePack-able state
        decoder: State -> object
    """

    cls: Type
    name: str
    encoder: Callable[[Any], Any]
    decoder: Callable[[Any], Any]


class TypeRegistry:
    """Set of payload types a codec is allowed to encode and decode.

    The registry is passed explicitly to the codec instead of living in
    process-wide state. Writer and reader must register the same names.

    Dataclasses and classes exposing to_dict()/from_dict() need no
    explicit encoder/decoder.

    Example:
        registry = TypeRegistry()

        @registry.register
        @dataclass
        class User:
            id: int
            name: str

        registry.register(Money, name="money", encoder=str, decoder=Money.parse)
    """

    def __init__(self):
        self._by_cls: Dict[Type, TypeCodec] = {}
        self._by_name: Dict[str, TypeCodec] = {}

    def register(
        self,
        cls: Optional[Type] = None,
        *,
        name: Optional[str] = None,
        encoder: Optional[Callable[[Any], Any]] = None,
        decoder: Optional[Callable[[Any], Any]] = None,
    ) -> Any:
        """Register a payload type.

        Usable directly or as a class decorator, with or without arguments.

        Args:
            cls: Class to register
            name: Name stored in records, defaults to module.qualname
            encoder: Object -> state function
            decoder: State -> object function

        Returns:
            The registered class (or a decorator when cls is omitted)

        Raises:
            TypeError: If no encoder/decoder can be derived for cls
            ValueError: If name is already taken by another class
        """
        if cls is None:
            return lambda c: self.register(c, name=name, encoder=encoder, decoder=decoder)

        type_name = name or f"{cls.__module__}.{cls.__qualname__}"
        encoder = encoder or self._default_encoder(cls)
        decoder = decoder or self._default_decoder(cls)
        if encoder is None or decoder is None:
            raise TypeError(
                f"Cannot derive encoder/decoder for {cls.__qualname__}; "
                "pass encoder= and decoder= explicitly"
            )

        existing = self._by_name.get(type_name)
        if existing is not None and existing.cls is not cls:
            raise ValueError(f"Type name '{type_name}' already registered for {existing.cls!r}")

        codec = TypeCodec(cls=cls, name=type_name, encoder=encoder, decoder=decoder)
        self._by_cls[cls] = codec
        self._by_name[type_name] = codec
        return cls

    @staticmethod
    def _default_encoder(cls: Type) -> Optional[Callable[[Any], Any]]:
        if dataclasses.is_dataclass(cls):
            # Shallow, so nested registered values keep their own type tags
            return lambda obj: {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
        if callable(getattr(cls, "to_dict", None)):
            return lambda obj: obj.to_dict()
        return None

    @staticmethod
    def _default_decoder(cls: Type) -> Optional[Callable[[Any], Any]]:
        if dataclasses.is_dataclass(cls):
            return lambda state: cls(**state)
        if callable(getattr(cls, "from_dict", None)):
            return cls.from_dict
        return None

    def for_object(self, obj: Any) -> Optional[TypeCodec]:
        """Get codec for an object's exact type."""
        return self._by_cls.get(type(obj))

    def for_name(self, name: str) -> Optional[TypeCodec]:
        """Get codec by registered name."""
        return self._by_name.get(name)

    def names(self) -> List[str]:
        """List registered type names."""
        return list(self._by_name.keys())

    def __contains__(self, cls: Type) -> bool:
        return cls in self._by_cls

    def __len__(self) -> int:
        return len(self._by_cls)


class EntryCodec:
    """Encodes entries into self-contained byte records and back.

    Only lifetime, gracetime and data are written; tags are dropped.
    Decoding either returns a complete entry or raises DecodeError.

    Example:
        codec = EntryCodec(registry)
        blob = codec.encode(entry)
        same = codec.decode(blob)
    """

    def __init__(
        self,
        registry: Optional[TypeRegistry] = None,
        compression: CompressionType = CompressionType.NONE,
        threshold: int = 1024,
    ):
        """Initialize codec.

        Args:
            registry: Known payload types
            compression: Compression for bodies at or above threshold
            threshold: Body size in bytes from which to compress
        """
        self.registry = registry or TypeRegistry()
        self.compression = compression
        self.threshold = threshold

    # Encoding

    def _pack(self, value: Any) -> bytes:
        return msgpack.packb(value, default=self._default, use_bin_type=True, strict_types=True)

    def _default(self, value: Any) -> msgpack.ExtType:
        if type(value) is tuple:
            return msgpack.ExtType(EXT_TUPLE, self._pack(list(value)))
        if type(value) is set:
            return msgpack.ExtType(EXT_SET, self._pack(list(value)))
        if type(value) is frozenset:
            return msgpack.ExtType(EXT_FROZENSET, self._pack(list(value)))
        if type(value) is datetime:
            return msgpack.ExtType(EXT_DATETIME, self._pack(value.isoformat()))
        if type(value) is timedelta:
            return msgpack.ExtType(EXT_TIMEDELTA, self._pack(value // _MICROSECOND))

        codec = self.registry.for_object(value)
        if codec is None:
            raise TypeError(f"Unregistered payload type: {type(value).__qualname__}")
        return msgpack.ExtType(EXT_REGISTERED, self._pack([codec.name, codec.encoder(value)]))

    def encode(self, entry: Entry) -> bytes:
        """Encode an entry.

        Args:
            entry: Entry to encode

        Returns:
            Record bytes

        Raises:
            EncodeError: If the payload cannot be represented
        """
        record = [
            entry.meta.lifetime // _MICROSECOND,
            entry.meta.gracetime // _MICROSECOND,
            entry.data,
        ]
        try:
            body = self._pack(record)
        except EncodeError:
            raise
        except Exception as e:
            raise EncodeError(f"Cannot encode payload of type {type(entry.data).__qualname__}: {e}") from e

        return self._compress(body)

    def _compress(self, body: bytes) -> bytes:
        compression = self.compression
        if compression != CompressionType.NONE and len(body) >= self.threshold:
            if compression == CompressionType.ZLIB:
                compressed = zlib.compress(body)
            else:
                compressed = gzip.compress(body)
            if len(compressed) < len(body):
                return bytes([compression.value]) + compressed
        return bytes([CompressionType.NONE.value]) + body

    # Decoding

    def _unpack(self, data: bytes) -> Any:
        return msgpack.unpackb(
            data,
            ext_hook=self._ext_hook,
            raw=False,
            strict_map_key=False,
        )

    def _ext_hook(self, code: int, data: bytes) -> Any:
        value = self._unpack(data)
        if code == EXT_TUPLE:
            return tuple(value)
        if code == EXT_SET:
            return set(value)
        if code == EXT_FROZENSET:
            return frozenset(value)
        if code == EXT_DATETIME:
            return datetime.fromisoformat(value)
        if code == EXT_TIMEDELTA:
            return timedelta(microseconds=value)
        if code == EXT_REGISTERED:
            if not isinstance(value, list) or len(value) != 2 or not isinstance(value[0], str):
                raise DecodeError("Malformed registered-type value")
            codec = self.registry.for_name(value[0])
            if codec is None:
                raise DecodeError(f"Unregistered payload type: {value[0]}")
            return codec.decoder(value[1])
        raise DecodeError(f"Unknown extension type code: {code}")

    def _decompress(self, data: bytes) -> bytes:
        if not data:
            raise DecodeError("Empty record")
        marker, body = data[0], data[1:]
        if marker == CompressionType.NONE.value:
            return body
        if marker == CompressionType.ZLIB.value:
            return zlib.decompress(body)
        if marker == CompressionType.GZIP.value:
            return gzip.decompress(body)
        raise DecodeError(f"Unknown record marker: {marker:#04x}")

    def decode(self, data: bytes) -> Entry:
        """Decode a record.

        Args:
            data: Record bytes

        Returns:
            Entry with data, lifetime and gracetime

        Raises:
            DecodeError: If the bytes are truncated, malformed or reference
                an unregistered type
        """
        try:
            record = self._unpack(self._decompress(data))
        except DecodeError:
            raise
        except Exception as e:
            raise DecodeError(f"Malformed record: {e}") from e

        if not isinstance(record, list) or len(record) != 3:
            raise DecodeError("Record is not a [lifetime, gracetime, data] triple")

        lifetime_us, gracetime_us, payload = record
        for name, value in (("lifetime", lifetime_us), ("gracetime", gracetime_us)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise DecodeError(f"Invalid {name} in record: {value!r}")

        try:
            meta = EntryMeta(
                lifetime=timedelta(microseconds=lifetime_us),
                gracetime=timedelta(microseconds=gracetime_us),
            )
        except OverflowError as e:
            raise DecodeError(f"Duration out of range: {e}") from e

        return Entry(data=payload, meta=meta)


__all__ = [
    "EntryCodec",
    "TypeRegistry",
    "TypeCodec",
    "CompressionType",
]

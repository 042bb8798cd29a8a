"""Cache entry model and its storage codec.

An entry is immutable: a newer write supersedes it, nothing mutates it.
The codec turns an entry into bytes for the remote tier (and for
compressed in-process entries) and back.

Wire format: one marker byte followed by the payload.
- b"j": UTF-8 JSON envelope
- b"z": zlib-compressed UTF-8 JSON envelope
"""

import json
import time
import zlib
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from footy_cache.errors import CacheSerializationError

RAW_MARKER = b"j"
COMPRESSED_MARKER = b"z"


class CacheSource(Enum):
    """Where a value was served from."""

    MEMORY = "memory"
    REMOTE = "remote"
    ORIGIN = "origin"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CacheEntry:
    """A cached value with its freshness metadata.

    Attributes:
        data: The cached value.
        written_at_ms: Epoch milliseconds when the value was written.
        ttl_seconds: Time to live in seconds.
        source: Tier the entry was read from (origin when freshly written).
        compressed: Whether the stored form is compressed.
        tags: Tags used for bulk invalidation.
    """

    data: Any
    written_at_ms: int
    ttl_seconds: int
    source: CacheSource = CacheSource.ORIGIN
    compressed: bool = False
    tags: frozenset[str] = field(default_factory=frozenset)

    @property
    def expires_at_ms(self) -> int:
        """Epoch milliseconds after which the entry is absent."""
        return self.written_at_ms + self.ttl_seconds * 1000

    def is_expired(self, at_ms: int | None = None) -> bool:
        """Check whether the entry has outlived its TTL."""
        current = now_ms() if at_ms is None else at_ms
        return current >= self.expires_at_ms

    def remaining_ttl_seconds(self, at_ms: int | None = None) -> int:
        """Whole seconds of life left, never below zero."""
        current = now_ms() if at_ms is None else at_ms
        return max(0, (self.expires_at_ms - current) // 1000)

    def with_source(self, source: CacheSource) -> "CacheEntry":
        """Copy of this entry attributed to another source."""
        return replace(self, source=source)


def serialize(value: Any) -> str:
    """Serialize a value for caching.

    Args:
        value: Value to serialize.

    Returns:
        JSON string representation.
    """
    return json.dumps(value, default=str)


def deserialize(data: str | bytes) -> Any:
    """Deserialize a cached value.

    Args:
        data: Serialized data from cache.

    Returns:
        Deserialized value.
    """
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    return json.loads(data)


def encode_entry(entry: CacheEntry, key: str | None = None) -> bytes:
    """Encode an entry for storage.

    Raises:
        CacheSerializationError: If the value cannot be encoded.
    """
    envelope = {
        "data": entry.data,
        "written_at_ms": entry.written_at_ms,
        "ttl_seconds": entry.ttl_seconds,
        "tags": sorted(entry.tags),
    }
    try:
        payload = serialize(envelope).encode("utf-8")
        if entry.compressed:
            return COMPRESSED_MARKER + zlib.compress(payload)
        return RAW_MARKER + payload
    except (TypeError, ValueError, zlib.error) as e:
        raise CacheSerializationError(f"Cannot encode cache entry: {e}", key=key) from e


def decode_entry(
    raw: bytes | str,
    source: CacheSource = CacheSource.REMOTE,
    key: str | None = None,
) -> CacheEntry:
    """Decode a stored entry.

    Raises:
        CacheSerializationError: If the stored bytes are not a valid entry.
    """
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    if not raw:
        raise CacheSerializationError("Empty cache payload", key=key)

    marker, payload = raw[:1], raw[1:]
    try:
        if marker == COMPRESSED_MARKER:
            envelope = deserialize(zlib.decompress(payload))
        elif marker == RAW_MARKER:
            envelope = deserialize(payload)
        else:
            raise CacheSerializationError(f"Unknown payload marker {marker!r}", key=key)

        return CacheEntry(
            data=envelope["data"],
            written_at_ms=int(envelope["written_at_ms"]),
            ttl_seconds=int(envelope["ttl_seconds"]),
            source=source,
            compressed=marker == COMPRESSED_MARKER,
            tags=frozenset(envelope.get("tags", ())),
        )
    except CacheSerializationError:
        raise
    except (KeyError, TypeError, ValueError, UnicodeDecodeError, zlib.error) as e:
        raise CacheSerializationError(f"Cannot decode cache entry: {e}", key=key) from e

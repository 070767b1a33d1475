"""Cache key schema for cacheaside.

Keys are built from ordered segments joined with ":":

    product:{id}            cached product value
    lock:{cache key}        distributed lock guarding one cache key

Only the first segment is checked for emptiness. An empty sequence, or one
whose first segment is empty, composes to "" and later empty segments are
joined literally ("a", "", "b" -> "a::b").
"""

from __future__ import annotations

from collections.abc import Sequence

KEY_DELIMITER = ":"

# A bare string is a one-segment key
KeySpec = str | Sequence[str | None]


def compose_key(segments: KeySpec) -> str:
    """Join key segments into a single store key."""
    if isinstance(segments, str):
        return segments
    if not segments or not segments[0]:
        return ""
    return KEY_DELIMITER.join("" if segment is None else segment for segment in segments)


class CacheKeys:
    """Cache key generator following consistent naming convention."""

    PRODUCT = "product"
    LOCK = "lock"

    @classmethod
    def product(cls, identifier: str) -> list[str]:
        """Key segments for a cached product value."""
        return [cls.PRODUCT, identifier]

    @classmethod
    def product_pattern(cls) -> list[str]:
        """Glob matching every cached product."""
        return [cls.PRODUCT, "*"]

    @classmethod
    def lock(cls, key: KeySpec) -> str:
        """Lock name guarding a cache key."""
        return compose_key([cls.LOCK, compose_key(key)])

    @classmethod
    def parse_key(cls, key: str) -> list[str]:
        """Split a composed key back into its segments."""
        if not key:
            return []
        return key.split(KEY_DELIMITER)

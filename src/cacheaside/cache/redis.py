"""Redis value store for cacheaside.

Provides typed async operations for string, hash and list values addressed
by segmented cache keys. Uses redis-py async client for connection pooling.

Connection and timeout failures are raised as StoreUnavailableError, any
other Redis error as StoreError. Nothing here swallows store failures.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Iterable, Iterator
from contextlib import contextmanager
from datetime import timedelta
from typing import TYPE_CHECKING, cast

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from cacheaside.cache.keys import KeySpec, compose_key
from cacheaside.config import settings
from cacheaside.errors import StoreError, StoreUnavailableError

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

# Module-level connection pool
_redis_client: Redis | None = None

# Keys unlinked per round-trip by delete_pattern
DELETE_CHUNK_SIZE = 500

Timeout = int | float | timedelta


async def get_redis() -> Redis:
    """Get or create the Redis client.

    Uses connection pooling for efficient connection management.
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(  # type: ignore[no-untyped-call]
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_client


async def close_redis() -> None:
    """Close Redis connections."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


def to_milliseconds(timeout: Timeout) -> int:
    """Convert seconds or a timedelta to whole milliseconds (at least 1)."""
    if isinstance(timeout, timedelta):
        seconds = timeout.total_seconds()
    else:
        seconds = float(timeout)
    if seconds <= 0:
        raise ValueError(f"Timeout must be positive, got {timeout!r}")
    return max(1, int(seconds * 1000))


@contextmanager
def store_errors(operation: str, key: str) -> Iterator[None]:
    """Translate redis-py exceptions into the cacheaside error taxonomy."""
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError) as e:
        logger.warning("Store unavailable during %s of %s: %s", operation, key, e)
        raise StoreUnavailableError(operation, key, str(e)) from e
    except RedisError as e:
        logger.error("Store %s failed for %s: %s", operation, key, e)
        raise StoreError(operation, key, str(e)) from e


class RedisStore:
    """Stateless facade over a Redis client.

    Every method takes a key as a string or as ordered segments; segments are
    composed with compose_key on each call.
    """

    def __init__(self, client: Redis):
        self.client = client

    # -------------------------------------------------------------------------
    # Strings
    # -------------------------------------------------------------------------

    async def get_string(self, key: KeySpec) -> str | None:
        """Get a string value, or None if the key does not exist."""
        composed = compose_key(key)
        with store_errors("get", composed):
            return cast(str | None, await self.client.get(composed))

    async def put_string(self, key: KeySpec, value: str, ttl: Timeout | None = None) -> None:
        """Set a string value.

        Args:
            key: Cache key or segments
            value: Value to store
            ttl: Expiry in seconds (or timedelta); None keeps the key until deleted
        """
        composed = compose_key(key)
        with store_errors("set", composed):
            if ttl is None:
                await self.client.set(composed, value)
            else:
                await self.client.set(composed, value, px=to_milliseconds(ttl))

    # -------------------------------------------------------------------------
    # Hashes
    # -------------------------------------------------------------------------

    async def get_hash_field(self, key: KeySpec, field: str) -> str | None:
        """Get one hash field."""
        composed = compose_key(key)
        with store_errors("hget", composed):
            return await cast(Awaitable[str | None], self.client.hget(composed, field))

    async def put_hash_field(self, key: KeySpec, field: str, value: str) -> None:
        """Set one hash field."""
        composed = compose_key(key)
        with store_errors("hset", composed):
            await cast(Awaitable[int], self.client.hset(composed, field, value))

    async def delete_hash_field(self, key: KeySpec, field: str) -> int:
        """Delete one hash field. Returns the number of fields removed (0 or 1)."""
        composed = compose_key(key)
        with store_errors("hdel", composed):
            return int(await cast(Awaitable[int], self.client.hdel(composed, field)))

    async def get_hash(self, key: KeySpec) -> dict[str, str]:
        """Get all fields of a hash. Returns {} when the key does not exist."""
        composed = compose_key(key)
        with store_errors("hgetall", composed):
            return dict(await cast(Awaitable[dict[str, str]], self.client.hgetall(composed)))

    # -------------------------------------------------------------------------
    # Lists
    # -------------------------------------------------------------------------

    async def append_list(self, key: KeySpec, values: Iterable[str]) -> int:
        """Append values to the tail of a list, preserving their order.

        Returns the new length of the list.
        """
        composed = compose_key(key)
        items = list(values)
        with store_errors("rpush", composed):
            if not items:
                return int(await cast(Awaitable[int], self.client.llen(composed)))
            return int(await cast(Awaitable[int], self.client.rpush(composed, *items)))

    async def get_list(self, key: KeySpec) -> list[str]:
        """Get the full list, head to tail."""
        composed = compose_key(key)
        with store_errors("lrange", composed):
            return list(await cast(Awaitable[list[str]], self.client.lrange(composed, 0, -1)))

    # -------------------------------------------------------------------------
    # Key management
    # -------------------------------------------------------------------------

    async def exists(self, key: KeySpec) -> bool:
        """Check whether a key exists."""
        composed = compose_key(key)
        with store_errors("exists", composed):
            return bool(await self.client.exists(composed))

    async def expire(self, key: KeySpec, timeout: Timeout) -> bool:
        """Set or refresh the TTL of an existing key.

        Returns False if the key does not exist.
        """
        composed = compose_key(key)
        with store_errors("expire", composed):
            return bool(await self.client.pexpire(composed, to_milliseconds(timeout)))

    async def ttl(self, key: KeySpec) -> float | None:
        """Remaining TTL in seconds, or None if the key is absent or persistent."""
        composed = compose_key(key)
        with store_errors("pttl", composed):
            remaining = int(await self.client.pttl(composed))
        if remaining < 0:
            return None
        return remaining / 1000

    async def delete(self, key: KeySpec) -> bool:
        """Delete one key. Returns True if it existed."""
        composed = compose_key(key)
        with store_errors("delete", composed):
            return bool(await self.client.delete(composed))

    async def delete_many(self, keys: Iterable[KeySpec]) -> int:
        """Delete several exact keys in one call. Returns the number removed."""
        composed = [compose_key(key) for key in keys]
        if not composed:
            return 0
        with store_errors("delete", ",".join(composed)):
            return int(await self.client.delete(*composed))

    async def delete_pattern(self, pattern: KeySpec, count: int | None = None) -> int:
        """Delete all keys matching a glob using SCAN + batched UNLINK.

        Uses scan_iter to avoid KEYS blocking; collects keys in chunks and
        UNLINKs each chunk to minimize round-trips.

        Returns:
            Number of keys deleted (0 when nothing matched).
        """
        composed = compose_key(pattern)
        deleted = 0
        with store_errors("delete_pattern", composed):
            chunk: list[str] = []
            async for key in self.client.scan_iter(match=composed, count=count or settings.scan_count):
                chunk.append(key)
                if len(chunk) >= DELETE_CHUNK_SIZE:
                    deleted += int(await self.client.unlink(*chunk))
                    chunk = []
            if chunk:
                deleted += int(await self.client.unlink(*chunk))
        if deleted > 0:
            logger.info("Cache INVALIDATE: %s (%s keys)", composed, deleted)
        return deleted

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        try:
            await cast(Awaitable[bool], self.client.ping())
            return True
        except RedisError:
            return False

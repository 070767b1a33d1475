"""Lock-guarded cache-aside loader.

Flow for one load:

    get(key) ── hit ──────────────────────────────────────────► FOUND (cached)
       │ miss
    acquire lock(key)
    get(key) ── hit ─────────────────────────── release ──────► FOUND (cached)
       │ miss
    source.lookup(id) ── found ── set(key, ttl) ── release ──► FOUND
                      └─ none ───────────────── release ──────► NOT_FOUND

The double-check under the lock means N concurrent misses on one key cause
exactly one backing-source lookup. The lock is released on every path,
including errors and cancellation.

Locks are named per cache key (``lock:<key>``) so unrelated keys load in
parallel. Passing ``global_lock_name`` serializes every load on one name.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from cacheaside.cache.keys import CacheKeys, KeySpec, compose_key
from cacheaside.cache.redis import RedisStore, Timeout
from cacheaside.distributed.lock import DistributedLock
from cacheaside.errors import CacheAsideError, LockTimeoutError, SourceLookupError
from cacheaside.models import Product
from cacheaside.observability.logging import LogContext
from cacheaside.observability.metrics import (
    record_cache_hit,
    record_cache_miss,
    record_lock_timeout,
    record_lock_wait,
    record_source_load,
)

if TYPE_CHECKING:
    from cacheaside.persistence.repositories import ProductSource

logger = logging.getLogger(__name__)

LockFactory = Callable[[str], DistributedLock]
Serializer = Callable[[Product], str]


class LoadStatus(str, Enum):
    """Outcome of a cache-aside load."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class LoadResult:
    """Tagged result of CacheAsideLoader.load()."""

    status: LoadStatus
    value: str | None = None
    error: CacheAsideError | None = None
    from_cache: bool = False

    @classmethod
    def found(cls, value: str, from_cache: bool = False) -> LoadResult:
        return cls(status=LoadStatus.FOUND, value=value, from_cache=from_cache)

    @classmethod
    def not_found(cls, from_cache: bool = False) -> LoadResult:
        return cls(status=LoadStatus.NOT_FOUND, from_cache=from_cache)

    @classmethod
    def failed(cls, error: CacheAsideError) -> LoadResult:
        return cls(status=LoadStatus.FAILED, error=error)

    @property
    def is_found(self) -> bool:
        return self.status is LoadStatus.FOUND

    def unwrap(self) -> str | None:
        """Return the value (None when not found); re-raise the error when failed."""
        if self.error is not None:
            raise self.error
        return self.value


def default_serializer(product: Product) -> str:
    """Canonical JSON of the product."""
    return product.to_cache_value()


class CacheAsideLoader:
    """Cache-aside reads with a distributed lock around cache misses.

    Args:
        store: Value store used for cache reads and writes
        source: Backing source consulted on a confirmed miss
        lock_factory: Builds a DistributedLock for a lock name. Defaults to
            a lock on the store's client with default lease settings.
        serializer: Converts a found record to the cached string
        source_timeout: Max seconds for one source lookup; None is unbounded
        negative_ttl: When > 0, cache not-found results as "" for this many
            seconds so repeated lookups of missing ids skip the source
        global_lock_name: Use one lock name for every key instead of per-key locks
    """

    def __init__(
        self,
        store: RedisStore,
        source: ProductSource,
        lock_factory: LockFactory | None = None,
        *,
        serializer: Serializer = default_serializer,
        source_timeout: float | None = None,
        negative_ttl: int = 0,
        global_lock_name: str | None = None,
    ):
        self.store = store
        self.source = source
        self.lock_factory: LockFactory = lock_factory or (
            lambda name: DistributedLock(store.client, name)
        )
        self.serializer = serializer
        self.source_timeout = source_timeout
        self.negative_ttl = negative_ttl
        self.global_lock_name = global_lock_name

    def lock_name_for(self, key: KeySpec) -> str:
        """Name of the lock guarding a cache key."""
        return self.global_lock_name or CacheKeys.lock(key)

    async def load(self, identifier: str, key: KeySpec, ttl: Timeout | None) -> LoadResult:
        """Return the cached value for key, loading it from the source on a miss.

        Args:
            identifier: Record id passed to the backing source
            key: Cache key or segments
            ttl: Expiry for a freshly loaded value; None keeps it until deleted

        Returns:
            FOUND with the value, NOT_FOUND, or FAILED carrying the
            StoreError / LockError / SourceLookupError that stopped the load.
        """
        composed = compose_key(key)
        with LogContext(cache_key=composed):
            try:
                return await self._load(identifier, composed, ttl)
            except LockTimeoutError as e:
                record_lock_timeout()
                logger.warning("Load of %s gave up waiting for lock: %s", composed, e)
                return LoadResult.failed(e)
            except CacheAsideError as e:
                logger.warning("Load of %s failed: %s", composed, e)
                return LoadResult.failed(e)

    async def invalidate(self, key: KeySpec) -> bool:
        """Drop a cached value so the next load goes to the source."""
        return await self.store.delete(key)

    async def _load(self, identifier: str, key: str, ttl: Timeout | None) -> LoadResult:
        cached = await self.store.get_string(key)
        if cached is not None:
            record_cache_hit("first")
            logger.debug("Cache HIT: %s", key)
            return self._cached_result(cached)
        record_cache_miss("first")

        lock = self.lock_factory(self.lock_name_for(key))
        wait_started = time.monotonic()
        async with lock:
            record_lock_wait(time.monotonic() - wait_started)

            # Another holder may have filled the key while we waited
            cached = await self.store.get_string(key)
            if cached is not None:
                record_cache_hit("double_check")
                logger.debug("Cache HIT after lock: %s", key)
                return self._cached_result(cached)
            record_cache_miss("double_check")

            record = await self._lookup(identifier)
            if record is None:
                record_source_load("not_found")
                logger.info("No record for id %s", identifier)
                if self.negative_ttl > 0:
                    await self.store.put_string(key, "", ttl=self.negative_ttl)
                return LoadResult.not_found()

            value = self.serializer(record)
            await self.store.put_string(key, value, ttl=ttl)
            record_source_load("found")
            logger.info("Loaded id %s from source into %s", identifier, key)
            return LoadResult.found(value)

    async def _lookup(self, identifier: str) -> Product | None:
        try:
            if self.source_timeout is None:
                return await self.source.lookup(identifier)
            return await asyncio.wait_for(self.source.lookup(identifier), self.source_timeout)
        except asyncio.TimeoutError as e:
            record_source_load("failed")
            raise SourceLookupError(identifier, f"timed out after {self.source_timeout}s") from e
        except CacheAsideError:
            record_source_load("failed")
            raise
        except Exception as e:
            record_source_load("failed")
            logger.exception("Backing source raised for id %s", identifier)
            raise SourceLookupError(identifier, str(e)) from e

    def _cached_result(self, cached: str) -> LoadResult:
        if cached == "" and self.negative_ttl > 0:
            return LoadResult.not_found(from_cache=True)
        return LoadResult.found(cached, from_cache=True)

"""Shared FastAPI dependencies for cacheaside routers.

Request-scoped wiring of the cache-aside stack:
- RedisStore over the pooled Redis client
- ProductRepository over a database session
- CacheAsideLoader configured from settings
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from cacheaside.cache.loader import CacheAsideLoader
from cacheaside.cache.redis import RedisStore, get_redis
from cacheaside.config import settings
from cacheaside.distributed.lock import DistributedLock
from cacheaside.persistence.db import get_session
from cacheaside.persistence.repositories import ProductRepository, ProductSource


async def get_store(redis: Annotated[Redis, Depends(get_redis)]) -> RedisStore:
    """FastAPI dependency providing the value store."""
    return RedisStore(redis)


async def get_source(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ProductSource:
    """FastAPI dependency providing the backing product source."""
    return ProductRepository(session)


def build_loader(store: RedisStore, source: ProductSource) -> CacheAsideLoader:
    """Create a loader with lock and timeout settings from configuration."""

    def lock_factory(name: str) -> DistributedLock:
        return DistributedLock(
            store.client,
            name,
            lease_ttl=settings.lock_lease_ttl,
            acquire_timeout=settings.lock_acquire_timeout,
            retry_interval=settings.lock_retry_interval,
        )

    return CacheAsideLoader(
        store,
        source,
        lock_factory,
        source_timeout=settings.source_timeout,
        negative_ttl=settings.negative_cache_ttl,
        global_lock_name=settings.global_lock_name,
    )


async def get_loader(
    store: Annotated[RedisStore, Depends(get_store)],
    source: Annotated[ProductSource, Depends(get_source)],
) -> CacheAsideLoader:
    """FastAPI dependency providing the cache-aside loader."""
    return build_loader(store, source)

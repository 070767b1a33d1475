"""Product endpoints served through the cache-aside loader.

- GET    /products/load?id=42   Cached product value (text/plain)
- DELETE /products/{id}/cache   Drop one cached product
- DELETE /products/cache        Drop every cached product
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from cacheaside.api.deps import get_loader, get_store
from cacheaside.api.errors import NotFoundError, error_for_failure
from cacheaside.cache.keys import CacheKeys
from cacheaside.cache.loader import CacheAsideLoader, LoadStatus
from cacheaside.cache.redis import RedisStore
from cacheaside.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


@router.get(
    "/load",
    response_class=PlainTextResponse,
    summary="Load a product through the cache",
    responses={
        200: {"description": "Cached product JSON", "content": {"text/plain": {}}},
        404: {"description": "No product with this id"},
        502: {"description": "Backing source failed"},
        503: {"description": "Cache store or lock unavailable"},
    },
)
async def load_product(
    loader: Annotated[CacheAsideLoader, Depends(get_loader)],
    id: Annotated[str, Query(min_length=1, description="Product identifier")],
) -> PlainTextResponse:
    """Return the product, reading Redis first and the database on a miss."""
    result = await loader.load(id, CacheKeys.product(id), settings.cache_ttl)

    if result.status is LoadStatus.FAILED and result.error is not None:
        raise error_for_failure(result.error)
    if result.status is LoadStatus.NOT_FOUND:
        raise NotFoundError("Product", id)

    headers = {"X-Cache": "HIT" if result.from_cache else "MISS"}
    return PlainTextResponse(content=result.value or "", headers=headers)


@router.delete("/{product_id}/cache", status_code=204)
async def invalidate_product(
    product_id: str,
    loader: Annotated[CacheAsideLoader, Depends(get_loader)],
) -> None:
    """Drop one cached product."""
    await loader.invalidate(CacheKeys.product(product_id))


@router.delete("/cache")
async def invalidate_all_products(
    store: Annotated[RedisStore, Depends(get_store)],
) -> dict[str, int]:
    """Drop every cached product."""
    deleted = await store.delete_pattern(CacheKeys.product_pattern())
    logger.info("Invalidated %d cached products", deleted)
    return {"deleted": deleted}

"""Pattern scan over hash-shaped cache entries.

Enumerates keys matching a glob (``*``, ``?``, ``[...]``) with SCAN, reads
each matching hash, decodes it into a record and optionally filters it:

    scanner = ScanFilter(store)
    cheap = await scanner.scan(
        ["product", "*"],
        decode=Product,
        predicate=lambda product, key: float(product.price) < 10,
    )

The SCAN window (``count``) only tunes round-trips; it never changes which
keys are returned. Result order follows Redis enumeration order, which is
not sorted. Each call re-enumerates; the iterator is not restartable.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from redis.exceptions import ResponseError

from cacheaside.cache.keys import KeySpec, compose_key
from cacheaside.cache.redis import RedisStore, store_errors
from cacheaside.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default keys examined per SCAN round-trip (settings.scan_count)
SCAN_COUNT = 10000

Decoder = Callable[[dict[str, str]], Any] | type[BaseModel]
Predicate = Callable[[Any, str], bool]


def _resolve_decoder(decode: Decoder | None) -> Callable[[dict[str, str]], Any]:
    """Turn a decoder argument into a plain callable."""
    if decode is None:
        return lambda entries: entries
    if isinstance(decode, type) and issubclass(decode, BaseModel):
        return decode.model_validate
    return decode


class ScanFilter(Generic[T]):
    """Glob scan + decode + filter over hash entries in a RedisStore.

    The SCAN window defaults to ``settings.scan_count``.
    """

    def __init__(self, store: RedisStore, count: int | None = None):
        if count is None:
            count = settings.scan_count
        if count <= 0:
            raise ValueError(f"Scan count must be positive, got {count}")
        self.store = store
        self.count = count

    async def iter(
        self,
        pattern: KeySpec,
        decode: Decoder | None = None,
        predicate: Predicate | None = None,
    ) -> AsyncIterator[T]:
        """Yield decoded records for every hash key matching the pattern.

        Args:
            pattern: Glob as a string or key segments
            decode: Callable taking the raw field map, or a pydantic model class.
                Defaults to yielding the raw ``dict[str, str]``.
            predicate: Called as ``predicate(record, key)``; records are kept
                only when it returns True. Defaults to keeping everything.

        Raises:
            StoreUnavailableError: If Redis cannot be reached during the scan.
        """
        decoder = _resolve_decoder(decode)
        composed = compose_key(pattern)
        client = self.store.client

        with store_errors("scan", composed):
            async for key in client.scan_iter(match=composed, count=self.count):
                try:
                    entries = await client.hgetall(key)
                except ResponseError as e:
                    # Glob also matched a string or list key
                    if "WRONGTYPE" not in str(e):
                        raise
                    logger.debug("Scan skipping non-hash key %s", key)
                    continue

                if not entries:
                    # Expired or deleted between SCAN and HGETALL
                    continue

                record = decoder(dict(entries))
                if predicate is None or predicate(record, key):
                    yield record

    async def scan(
        self,
        pattern: KeySpec,
        decode: Decoder | None = None,
        predicate: Predicate | None = None,
    ) -> list[T]:
        """Collect iter() into a list. See iter() for arguments."""
        results: list[T] = []
        async for record in self.iter(pattern, decode=decode, predicate=predicate):
            results.append(record)
        logger.debug("Scan %s returned %d records", compose_key(pattern), len(results))
        return results

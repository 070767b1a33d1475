"""Cache layer for cacheaside.

Provides Redis caching with the cache-aside pattern:
- Segmented cache keys joined with ":"
- Typed string, hash and list operations with TTL support
- Glob scans that decode and filter hash entries

The lock-guarded loader lives in cacheaside.cache.loader; it depends on
cacheaside.distributed, which in turn builds on this package.
"""

from cacheaside.cache.keys import KEY_DELIMITER, CacheKeys, KeySpec, compose_key
from cacheaside.cache.redis import RedisStore, close_redis, get_redis
from cacheaside.cache.scan import SCAN_COUNT, ScanFilter

__all__ = [
    # Keys
    "KEY_DELIMITER",
    "CacheKeys",
    "KeySpec",
    "compose_key",
    # Store
    "RedisStore",
    "get_redis",
    "close_redis",
    # Scan
    "SCAN_COUNT",
    "ScanFilter",
]

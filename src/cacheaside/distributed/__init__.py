"""Distributed coordination primitives for cacheaside.

Provides a Redis lease lock shared by every process using the same Redis:

    async with DistributedLock(redis, "lock:product:42", acquire_timeout=10):
        ...
"""

from cacheaside.distributed.lock import DistributedLock, LockHandle

__all__ = ["DistributedLock", "LockHandle"]

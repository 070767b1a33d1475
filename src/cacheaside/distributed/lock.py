"""Redis-based distributed mutual-exclusion lock.

Only one holder across all processes sharing the Redis instance can own a
named lock at a time. The lock is lease-based:
1. Acquire stores a random token with SET NX PX (the lease TTL)
2. Release deletes the key only if it still holds the caller's token
3. If a holder dies, the lease expires and another caller can claim it

While held through ``async with``, a background task renews the lease every
``renew_interval`` seconds, so a slow critical section keeps the lock.

Example:
    lock = DistributedLock(redis, "lock:product:42", acquire_timeout=10)

    async with lock:
        await rebuild_cache_entry()

    # Or explicitly
    handle = await lock.acquire()
    try:
        await rebuild_cache_entry()
    finally:
        await lock.release(handle)
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from types import TracebackType
from typing import TYPE_CHECKING, Awaitable, cast
from uuid import uuid4

from cacheaside.cache.redis import store_errors, to_milliseconds
from cacheaside.errors import LockNotHeldError, LockTimeoutError, StoreError

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

# Lock configuration
DEFAULT_LEASE_TTL = 30.0  # Seconds
DEFAULT_RETRY_INTERVAL = 0.05  # Seconds between acquire attempts
RENEWALS_PER_LEASE = 3  # Renewals per lease period while held via async with

# Sentinel: use the lock's configured acquire timeout
_DEFAULT = object()

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

_EXTEND_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("pexpire", KEYS[1], ARGV[2])
else
    return 0
end
"""


@dataclass(frozen=True)
class LockHandle:
    """Proof of ownership of one lock acquisition."""

    name: str
    token: str
    acquired_at: float = field(default_factory=time.monotonic)


class DistributedLock:
    """Lease-based Redis lock with blocking, optionally bounded, acquisition.

    An instance used with ``async with`` tracks a single handle, so create
    one instance per holder; acquire()/release() are safe to share.

    Args:
        client: Redis client
        name: Lock name, used as the Redis key
        lease_ttl: Seconds before an unreleased lock expires server-side
        acquire_timeout: Default max wait in acquire(); None waits forever
        retry_interval: Seconds to sleep between acquire attempts
        renew_interval: Seconds between lease renewals inside ``async with``;
            defaults to a third of lease_ttl
    """

    def __init__(
        self,
        client: Redis,
        name: str,
        lease_ttl: float = DEFAULT_LEASE_TTL,
        acquire_timeout: float | None = None,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        renew_interval: float | None = None,
    ):
        if not name:
            raise ValueError("Lock name must not be empty")
        self.client = client
        self.name = name
        self.lease_ttl = lease_ttl
        self.acquire_timeout = acquire_timeout
        self.retry_interval = retry_interval
        self.renew_interval = renew_interval or lease_ttl / RENEWALS_PER_LEASE
        self._handle: LockHandle | None = None
        self._renewal: asyncio.Task[None] | None = None

    async def try_acquire(self) -> LockHandle | None:
        """Make one acquisition attempt without waiting."""
        token = uuid4().hex
        with store_errors("lock", self.name):
            acquired = await self.client.set(
                self.name,
                token,
                nx=True,  # Only set if not exists
                px=to_milliseconds(self.lease_ttl),
            )
        if acquired:
            logger.debug(f"Acquired lock '{self.name}'")
            return LockHandle(name=self.name, token=token)
        return None

    async def acquire(self, timeout: float | None | object = _DEFAULT) -> LockHandle:
        """Wait until the lock is obtained.

        Args:
            timeout: Max seconds to wait. Defaults to the lock's
                acquire_timeout; None waits without bound.

        Raises:
            LockTimeoutError: If the lock was not obtained in time
        """
        wait = self.acquire_timeout if timeout is _DEFAULT else cast(float | None, timeout)
        deadline = None if wait is None else time.monotonic() + wait

        while True:
            handle = await self.try_acquire()
            if handle is not None:
                return handle

            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.warning(f"Timed out waiting for lock '{self.name}'")
                    raise LockTimeoutError(self.name, cast(float, wait))
                await asyncio.sleep(min(self.retry_interval, remaining))
            else:
                await asyncio.sleep(self.retry_interval)

    async def release(self, handle: LockHandle) -> None:
        """Release a held lock.

        Raises:
            LockNotHeldError: If the handle no longer owns the lock (expired,
                taken over, or already released)
        """
        if handle.name != self.name:
            raise LockNotHeldError(handle.name)

        with store_errors("unlock", self.name):
            result = await cast(
                Awaitable[int],
                self.client.eval(_RELEASE_SCRIPT, 1, self.name, handle.token),
            )
        if not result:
            logger.warning(f"Release of lock '{self.name}' refused: not the owner")
            raise LockNotHeldError(self.name)
        logger.debug(f"Released lock '{self.name}'")

    async def extend(self, handle: LockHandle, lease_ttl: float | None = None) -> None:
        """Renew the lease of a held lock.

        Raises:
            LockNotHeldError: If the handle no longer owns the lock
        """
        ttl_ms = to_milliseconds(lease_ttl or self.lease_ttl)
        with store_errors("extend", self.name):
            result = await cast(
                Awaitable[int],
                self.client.eval(_EXTEND_SCRIPT, 1, self.name, handle.token, ttl_ms),
            )
        if not result:
            raise LockNotHeldError(self.name)
        logger.debug(f"Extended lock '{self.name}' by {ttl_ms}ms")

    async def locked(self) -> bool:
        """Check whether anyone currently holds the lock."""
        with store_errors("exists", self.name):
            return bool(await self.client.exists(self.name))

    async def owner(self) -> str | None:
        """Token of the current holder, or None if the lock is free."""
        with store_errors("get", self.name):
            value = await self.client.get(self.name)
        if value is None:
            return None
        return value.decode() if isinstance(value, bytes) else value

    async def _keep_alive(self, handle: LockHandle) -> None:
        """Renew the lease until cancelled or ownership is lost."""
        while True:
            await asyncio.sleep(self.renew_interval)
            try:
                await self.extend(handle)
            except LockNotHeldError:
                logger.warning(f"Lost lock '{self.name}' while held; renewal stopped")
                return
            except StoreError as e:
                # Retry on the next tick
                logger.warning(f"Renewal of lock '{self.name}' failed: {e}")

    async def __aenter__(self) -> LockHandle:
        """Context manager entry - wait for the lock and start renewing it."""
        self._handle = await self.acquire()
        self._renewal = asyncio.create_task(self._keep_alive(self._handle))
        return self._handle

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Context manager exit - stop renewing, then always release."""
        renewal, self._renewal = self._renewal, None
        if renewal is not None:
            renewal.cancel()
            try:
                await renewal
            except asyncio.CancelledError:
                pass

        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            await self.release(handle)
        except LockNotHeldError:
            if exc_type is None:
                raise
            # Keep the original exception; the lease has already lapsed
            logger.warning(f"Lock '{self.name}' lease expired before release")
        except StoreError as e:
            if exc_type is None:
                raise
            # Keep the original exception; the lease expires on its own
            logger.warning(f"Release of lock '{self.name}' failed: {e}")

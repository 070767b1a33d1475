"""Exception hierarchy for cache-aside operations.

Store, lock and source failures each have their own branch so callers can
decide whether to retry, degrade or fail:

    CacheAsideError
    ├── StoreError
    │   └── StoreUnavailableError
    ├── LockError
    │   ├── LockTimeoutError
    │   └── LockNotHeldError
    └── SourceLookupError
"""

from __future__ import annotations


class CacheAsideError(Exception):
    """Base exception for cache-aside errors."""

    pass


class StoreError(CacheAsideError):
    """Raised when a key-value store operation fails."""

    def __init__(self, operation: str, key: str, reason: str = "") -> None:
        self.operation = operation
        self.key = key
        self.reason = reason
        message = f"Store {operation} failed for key '{key}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class StoreUnavailableError(StoreError):
    """Raised when the store cannot be reached (connection or timeout)."""

    pass


class LockError(CacheAsideError):
    """Base exception for distributed lock errors."""

    def __init__(self, lock_name: str, message: str) -> None:
        self.lock_name = lock_name
        super().__init__(message)


class LockTimeoutError(LockError):
    """Raised when a lock could not be acquired within the timeout."""

    def __init__(self, lock_name: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(lock_name, f"Timed out after {timeout}s waiting for lock '{lock_name}'")


class LockNotHeldError(LockError):
    """Raised when releasing or extending a lock the caller does not own."""

    def __init__(self, lock_name: str) -> None:
        super().__init__(lock_name, f"Lock '{lock_name}' is not held by this handle")


class SourceLookupError(CacheAsideError):
    """Raised when the backing source fails or times out."""

    def __init__(self, identifier: str, reason: str = "") -> None:
        self.identifier = identifier
        self.reason = reason
        message = f"Backing source lookup failed for id '{identifier}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)

"""
Per-Book Locks

The lending ledger needs mutual exclusion per book, never globally: two
borrows of the same book must be serialized, while borrows of different
books run in parallel.

Backends:
=========
1. MemoryKeyedLock (default)
   - One threading.Lock per key, created on demand
   - Reference counted, so keys nobody waits on are dropped
   - Correct for a single API process (FastAPI runs sync routes in threads)

2. RedisKeyedLock
   - redis-py Lock per key, shared by every API process using the same Redis
   - A lease bounds how long a crashed holder can keep a book locked

Both raise LockTimeoutError when the lock is not acquired in time, so a
busy book turns into a retryable error instead of a hung request.

Usage:
    from booknet.services.locks import get_lock_manager

    locks = get_lock_manager()
    with locks.hold("book:42", timeout=5.0):
        ...  # read-check-write for book 42
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import lru_cache
from typing import ContextManager

import redis
from redis.exceptions import LockError, RedisError

from booknet.config import get_settings

logger = logging.getLogger(__name__)


class LockTimeoutError(Exception):
    """The lock for a key was not acquired within the timeout."""

    def __init__(self, key: str, timeout: float | None):
        self.key = key
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout}s waiting for lock '{key}'")


class KeyedLock:
    """Interface shared by the lock backends."""

    def hold(self, key: str, timeout: float | None = None) -> ContextManager[None]:
        """
        Hold the lock for `key` for the duration of the with-block.

        Args:
            key: Lock name, e.g. "book:42"
            timeout: Seconds to wait; None waits forever

        Raises:
            LockTimeoutError: If the lock was not acquired in time
        """
        raise NotImplementedError


# =============================================================================
# In-Process Backend
# =============================================================================


@dataclass
class _Entry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class MemoryKeyedLock(KeyedLock):
    """
    Keyed locks for a single process.

    The registry of per-key locks is itself guarded by a short-lived lock
    that is never held while waiting for a key.
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    def _checkout(self, key: str) -> _Entry:
        with self._registry_lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1
            return entry

    def _checkin(self, key: str, entry: _Entry) -> None:
        with self._registry_lock:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]

    @property
    def active_keys(self) -> int:
        """Number of keys currently held or waited on."""
        with self._registry_lock:
            return len(self._entries)

    @contextmanager
    def hold(self, key: str, timeout: float | None = None) -> Iterator[None]:
        entry = self._checkout(key)
        try:
            acquired = entry.lock.acquire(timeout=-1 if timeout is None else timeout)
            if not acquired:
                raise LockTimeoutError(key, timeout)
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(key, entry)


# =============================================================================
# Redis Backend
# =============================================================================


class RedisKeyedLock(KeyedLock):
    """
    Keyed locks shared through Redis.

    Args:
        client: Redis client
        lease_seconds: Lock expiry; a holder that dies frees the key after this
        prefix: Namespace for lock names in Redis
    """

    def __init__(
        self,
        client: redis.Redis,
        lease_seconds: float,
        prefix: str = "booknet:lock:",
    ) -> None:
        self._client = client
        self._lease_seconds = lease_seconds
        self._prefix = prefix

    @contextmanager
    def hold(self, key: str, timeout: float | None = None) -> Iterator[None]:
        lock = self._client.lock(
            f"{self._prefix}{key}",
            timeout=self._lease_seconds,
            blocking_timeout=timeout,
        )
        try:
            acquired = lock.acquire(blocking=True)
        except RedisError as e:
            # Redis unreachable or too slow counts as a timed-out wait.
            logger.warning(f"Redis failed while acquiring lock '{key}': {e}")
            raise LockTimeoutError(key, timeout) from e
        if not acquired:
            raise LockTimeoutError(key, timeout)
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                # The lease ran out while we held the lock.
                logger.warning(f"Lock '{key}' expired before release")
            except RedisError as e:
                logger.warning(f"Redis failed while releasing lock '{key}': {e}")


# =============================================================================
# Lock Manager Singleton
# =============================================================================


def create_lock_manager() -> KeyedLock:
    """
    Build the lock backend selected by settings.lock_backend.

    Returns:
        MemoryKeyedLock or RedisKeyedLock
    """
    settings = get_settings()

    if settings.lock_backend == "redis":
        if not settings.redis_url:
            raise RuntimeError("LOCK_BACKEND=redis requires REDIS_URL")
        try:
            client = redis.from_url(
                settings.redis_url,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            client.ping()
        except RedisError as e:
            # No fallback to process-local locks here.
            logger.error(f"Failed to connect to Redis for locks: {e}")
            raise
        logger.info("Using Redis per-book locks")
        return RedisKeyedLock(client, lease_seconds=settings.lock_lease_seconds)

    logger.info("Using in-process per-book locks")
    return MemoryKeyedLock()


@lru_cache
def get_lock_manager() -> KeyedLock:
    """Get the process-wide lock manager (created on first use)."""
    return create_lock_manager()

"""CounterStore Protocol + the memory and Redis implementations.

A counter store owns one ``limits`` async storage backend. The counting
strategy (limits' FixedWindowRateLimiter) lives in RateLimiter; the store only
decides where the counters are kept and how to reach them.

Implementations:
  MemoryCounterStore - limits.aio.storage.MemoryStorage; process-local. Each
                       increment runs under a per-key asyncio lock and expired
                       windows are dropped by the storage's own expiry task.
  RedisCounterStore  - limits.aio.storage.RedisStorage over redis-py. INCR with
                       an expiry set on the first hit of a window, shared by
                       every worker.

Every backend failure surfaces as ``StoreUnavailable`` (raised by the limiter
from ``BACKEND_ERRORS``). Callers decide the policy; the breach endpoint
treats it as allowed.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

import redis.asyncio as aioredis
from limits.aio.storage import MemoryStorage, RedisStorage, Storage
from limits.errors import StorageError
from redis.exceptions import RedisError

# Exceptions a backend may raise mid-check. StorageError is what limits raises
# when wrap_exceptions is on; the redis and socket errors cover the rest.
BACKEND_ERRORS: tuple[type[BaseException], ...] = (StorageError, RedisError, OSError)


class StoreUnavailable(Exception):
    """The counter store could not complete an increment."""


@runtime_checkable
class CounterStore(Protocol):
    """Interface every counter store must satisfy.

    ``storage`` is the ``limits`` async storage the fixed-window strategy
    increments. It must count atomically per key: two concurrent hits on the
    same key must never both observe the same pre-increment value.
    """

    storage: Storage

    async def ping(self) -> bool:
        """True when the backend is reachable. Never raises."""
        ...

    async def close(self) -> None:
        """Release connections and timers. Called once at shutdown."""
        ...


# ─── MemoryCounterStore ───────────────────────────────────────────────────────


class MemoryCounterStore:
    """In-process counter store backed by ``limits``' MemoryStorage.

    Suitable for a single worker. Counters are not shared between processes
    and are lost on restart.
    """

    def __init__(self, storage: Optional[MemoryStorage] = None) -> None:
        self.storage = storage if storage is not None else MemoryStorage()

    async def ping(self) -> bool:
        return True

    async def reset(self) -> None:
        """Forget every window. Tests only."""
        await self.storage.reset()

    async def close(self) -> None:
        await self.storage.reset()


# ─── RedisCounterStore ────────────────────────────────────────────────────────


def _limits_uri(url: str) -> str:
    """``redis://...`` -> ``async+redis://...``, the scheme limits expects."""
    return url if url.startswith("async+") else f"async+{url}"


class RedisCounterStore:
    """Counter store shared by every worker through one Redis.

    The connection pool is created here rather than by limits so that its
    socket timeouts are ours and ``close()`` can release it.
    """

    def __init__(
        self,
        storage: Storage,
        pool: Optional[aioredis.ConnectionPool] = None,
    ) -> None:
        self.storage = storage
        self._pool = pool

    @classmethod
    def from_url(cls, url: str, timeout_s: float) -> "RedisCounterStore":
        """Build a store from a ``redis://`` / ``rediss://`` URL.

        Does not connect; the first command (``ping()`` or a check) does.
        """
        pool = aioredis.ConnectionPool.from_url(
            url,
            socket_timeout=timeout_s,
            socket_connect_timeout=timeout_s,
        )
        storage = RedisStorage(
            _limits_uri(url),
            connection_pool=pool,
            implementation="redispy",
            wrap_exceptions=True,
        )
        return cls(storage, pool)

    async def ping(self) -> bool:
        try:
            return bool(await self.storage.check())
        except BACKEND_ERRORS:
            return False

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.disconnect()


# ─── Protocol compliance assertion ────────────────────────────────────────────
assert isinstance(MemoryCounterStore(), CounterStore), (
    "MemoryCounterStore does not satisfy CounterStore protocol - implementation error"
)


def describe_store(store: Optional[CounterStore]) -> str:
    """Short backend name for logs."""
    if store is None:
        return "none"
    if isinstance(store, RedisCounterStore):
        return "redis"
    if isinstance(store, MemoryCounterStore):
        return "memory"
    return type(store).__name__

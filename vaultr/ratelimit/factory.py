"""Counter store factory - backend selection and initialization.

Backend selection:
  1. rate_limit.store_url set (or REDIS_URL env): RedisCounterStore
  2. Otherwise: MemoryCounterStore (default)

An unreachable Redis at startup is NOT fatal. The store is still returned;
each later check raises StoreUnavailable and the breach endpoint fails
open, so availability never depends on the counter store being healthy.
"""

from __future__ import annotations

from vaultr.config import RateLimitConfig
from vaultr.ratelimit.store import CounterStore, MemoryCounterStore, RedisCounterStore
from vaultr.utils.logger import get_logger

logger = get_logger(__name__)


async def create_counter_store(config: RateLimitConfig) -> CounterStore:
    """Create the counter store selected by ``config.store_url``.

    Args:
        config: The ``rate_limit`` section of the application Config.

    Returns:
        A CounterStore ready for use.
    """
    if config.store_url:
        return await _create_redis_store(config.store_url, config.store_timeout_s)
    logger.info("counter_store_selected", backend="MemoryCounterStore")
    return MemoryCounterStore()


async def _create_redis_store(url: str, timeout_s: float) -> CounterStore:
    store = RedisCounterStore.from_url(url, timeout_s=timeout_s)
    reachable = await store.ping()
    # Never log the URL itself; it may carry a password.
    if reachable:
        logger.info("counter_store_selected", backend="RedisCounterStore")
    else:
        logger.warning(
            "counter_store_unreachable",
            backend="RedisCounterStore",
            policy="fail-open",
        )
    return store

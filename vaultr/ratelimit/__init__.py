"""Vaultr rate limiting package.

Public API:
  - RateLimiter           - check(key, window_ms, max) -> RateLimitDecision
  - RateLimitDecision     - allowed / remaining / retry_after()
  - CounterStore          - Protocol: a limits async storage + ping/close
  - MemoryCounterStore    - in-process store (default, test fake)
  - RedisCounterStore     - shared store (limits RedisStorage over redis-py)
  - StoreUnavailable      - raised when the store cannot complete an increment
  - create_counter_store() - backend selection from config
"""

from __future__ import annotations

from vaultr.ratelimit.factory import create_counter_store
from vaultr.ratelimit.limiter import RateLimitDecision, RateLimiter
from vaultr.ratelimit.store import (
    CounterStore,
    MemoryCounterStore,
    RedisCounterStore,
    StoreUnavailable,
)

__all__ = [
    "CounterStore",
    "MemoryCounterStore",
    "RateLimitDecision",
    "RateLimiter",
    "RedisCounterStore",
    "StoreUnavailable",
    "create_counter_store",
]

"""Fixed-window rate limiter over an injected CounterStore.

``RateLimiter.check(key, window_ms, max)`` hits limits' FixedWindowRateLimiter
once against the store's storage and turns the outcome into an allow/deny
decision. The admit/deny answer comes from the storage's atomic increment;
the window statistics read afterwards only feed ``remaining`` and
``retry_after``. The limiter holds no counters of its own, so one limiter can
serve any number of policies.

Windows are whole seconds: ``window_ms`` is rounded up to the next second.

Store failures propagate as ``StoreUnavailable``. The limiter never decides
the failure policy; the caller does (the breach endpoint fails open).
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

from limits import RateLimitItemPerSecond
from limits.aio.strategies import FixedWindowRateLimiter

from vaultr.constants import COUNTER_STORE_NAMESPACE
from vaultr.ratelimit.store import BACKEND_ERRORS, CounterStore, StoreUnavailable

Clock = Callable[[], float]


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one rate-limit check.

    Attributes:
        allowed:   True while the window has admitted at most ``max`` hits.
        remaining: Hits still admitted in the current window.
        limit:     The policy ceiling (``max``).
        reset_at:  Epoch seconds at which the window resets.
        window_ms: Window length, used to bound ``retry_after``.
    """

    allowed: bool
    remaining: int
    limit: int
    reset_at: float
    window_ms: int

    def retry_after(self, now: Optional[float] = None) -> int:
        """Whole seconds until the window resets, within ``[0, ceil(window_ms / 1000)]``."""
        if now is None:
            now = time.time()
        upper = math.ceil(self.window_ms / 1000)
        return min(upper, max(0, math.ceil(self.reset_at - now)))


def window_item(window_ms: int, max: int) -> RateLimitItemPerSecond:
    """The limits item for ``max`` hits per ``window_ms``, rounded up to whole seconds."""
    return RateLimitItemPerSecond(max, math.ceil(window_ms / 1000))


class RateLimiter:
    """Answers "allowed?" and "when does the window reset?" for a key."""

    def __init__(self, store: CounterStore, clock: Clock = time.time) -> None:
        self.store = store
        self._strategy = FixedWindowRateLimiter(store.storage)
        # limits stamps window expiry from time.time(); keep the same clock.
        self._clock = clock

    async def check(self, key: str, window_ms: int, max: int) -> RateLimitDecision:
        """Count one hit against ``key`` and decide whether it is admitted.

        Args:
            key:       Non-empty bucket key, e.g. ``"breach:203.0.113.7"``.
            window_ms: Window length in milliseconds, > 0.
            max:       Hits admitted per window, > 0.

        Raises:
            ValueError:       On an empty key or non-positive window/max.
            StoreUnavailable: The counter store failed; nothing was decided.
        """
        if not key:
            raise ValueError("rate limit key must not be empty")
        if window_ms <= 0:
            raise ValueError(f"window_ms must be > 0, got {window_ms}")
        if max <= 0:
            raise ValueError(f"max must be > 0, got {max}")

        item = window_item(window_ms, max)
        try:
            allowed = await self._strategy.hit(item, COUNTER_STORE_NAMESPACE, key)
            stats = await self._strategy.get_window_stats(item, COUNTER_STORE_NAMESPACE, key)
        except BACKEND_ERRORS as exc:
            raise StoreUnavailable(f"{type(exc).__name__}: {exc}") from exc

        return RateLimitDecision(
            allowed=allowed,
            remaining=stats.remaining,
            limit=max,
            reset_at=float(stats.reset_time),
            window_ms=window_ms,
        )

    def now(self) -> float:
        return self._clock()

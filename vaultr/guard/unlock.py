"""In-memory vault unlock flag with inactivity and absolute timeouts.

The flag is all the session guard needs: whether the user has unlocked the
vault in this client session and has not been idle or unlocked for too long.
No key material lives here.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from vaultr.constants import VAULT_ABSOLUTE_TIMEOUT_S, VAULT_INACTIVITY_TIMEOUT_S
from vaultr.utils.logger import get_logger

logger = get_logger(__name__)

UnlockListener = Callable[[bool], None]


class UnlockState:
    """Vault unlock flag.

    Expiry is evaluated lazily: reading ``is_unlocked`` after either timeout
    has elapsed locks the vault and notifies subscribers.

    Args:
        inactivity_timeout_s: Seconds without ``touch()`` before auto-lock.
        absolute_timeout_s:   Seconds after ``unlock()`` before auto-lock,
                              regardless of activity.
        clock:                Monotonic time source in seconds.
    """

    def __init__(
        self,
        inactivity_timeout_s: float = VAULT_INACTIVITY_TIMEOUT_S,
        absolute_timeout_s: float = VAULT_ABSOLUTE_TIMEOUT_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if inactivity_timeout_s <= 0 or absolute_timeout_s <= 0:
            raise ValueError("unlock timeouts must be positive")
        self._inactivity_timeout_s = inactivity_timeout_s
        self._absolute_timeout_s = absolute_timeout_s
        self._clock = clock
        self._unlocked_at: Optional[float] = None
        self._last_activity: Optional[float] = None
        self._listeners: list[UnlockListener] = []

    @property
    def is_unlocked(self) -> bool:
        if self._unlocked_at is None:
            return False
        reason = self._expiry_reason(self._clock())
        if reason is not None:
            logger.info("vault_auto_locked", reason=reason)
            self._set_locked()
            return False
        return True

    def unlock(self) -> None:
        now = self._clock()
        was_unlocked = self._unlocked_at is not None
        self._unlocked_at = now
        self._last_activity = now
        if not was_unlocked:
            self._notify(True)

    def lock(self) -> None:
        if self._unlocked_at is None:
            return
        self._set_locked()

    def touch(self) -> None:
        """Record user activity. Ignored while locked or once expired."""
        if self.is_unlocked:
            self._last_activity = self._clock()

    def subscribe(self, listener: UnlockListener) -> Callable[[], None]:
        """Register ``listener(unlocked)`` for lock/unlock transitions.

        Returns a callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _expiry_reason(self, now: float) -> Optional[str]:
        assert self._unlocked_at is not None and self._last_activity is not None
        if now - self._unlocked_at >= self._absolute_timeout_s:
            return "absolute_timeout"
        if now - self._last_activity >= self._inactivity_timeout_s:
            return "inactivity_timeout"
        return None

    def _set_locked(self) -> None:
        self._unlocked_at = None
        self._last_activity = None
        self._notify(False)

    def _notify(self, unlocked: bool) -> None:
        # Copy: a listener may unsubscribe while being notified.
        for listener in list(self._listeners):
            listener(unlocked)

"""Client-side session guard.

Decides, for every navigation, whether a page may render or the user must be
sent to login or unlock:

  public route                         → ALLOWED, no network
  refresh/whoami fails or says "no"    → REDIRECTING to login (fail-closed)
  authenticated, vault locked          → REDIRECTING to unlock
  authenticated, vault unlocked        → ALLOWED

Each cycle carries a generation token. A path change, an unlock state change
or unmount bumps the generation and cancels the in-flight task; a check whose
token is stale when it resolves changes nothing and navigates nowhere.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional, Protocol, runtime_checkable

from vaultr.guard.state import GuardDecision, GuardRoutes, GuardStatus
from vaultr.guard.unlock import UnlockState
from vaultr.utils.logger import get_logger

logger = get_logger(__name__)

Navigator = Callable[[str], None]


@runtime_checkable
class SessionChecker(Protocol):
    """What the guard needs from the auth API. AuthStatusClient implements it."""

    async def whoami(self) -> bool:
        ...

    async def refresh(self) -> bool:
        ...


class SessionGuard:
    """Render-or-redirect state machine for one mounted route guard.

    Args:
        session:        Auth-status checker (whoami / refresh).
        unlock_state:   Vault unlock flag; subscribed to on mount.
        navigate:       Called with the redirect target (router.replace).
        routes:         Public allow-list and redirect targets.
        refresh_first:  Run one POST /auth/refresh before the first whoami.
    """

    def __init__(
        self,
        session: SessionChecker,
        unlock_state: UnlockState,
        navigate: Navigator,
        routes: Optional[GuardRoutes] = None,
        refresh_first: bool = True,
    ) -> None:
        self._session = session
        self._unlock_state = unlock_state
        self._navigate = navigate
        self._routes = routes or GuardRoutes()
        self._refresh_pending = refresh_first

        self.status: GuardStatus = GuardStatus.CHECKING
        self.redirect_to: Optional[str] = None

        self._path: Optional[str] = None
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._mounted = False

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def path(self) -> Optional[str]:
        return self._path

    @property
    def should_render(self) -> bool:
        return self.status is GuardStatus.ALLOWED

    def mount(self, path: str) -> Optional[asyncio.Task]:
        """Start guarding ``path``. Returns the check task, or None for public routes."""
        if not self._mounted:
            self._mounted = True
            self._unsubscribe = self._unlock_state.subscribe(self._on_unlock_change)
        self._path = path
        return self._start_cycle()

    def on_route_change(self, path: str) -> Optional[asyncio.Task]:
        """Re-evaluate after navigation. Same path is a no-op."""
        if not self._mounted:
            return self.mount(path)
        if path == self._path:
            return self._task
        self._path = path
        return self._start_cycle()

    def unmount(self) -> None:
        self._mounted = False
        self._generation += 1
        self._cancel_inflight()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def wait(self) -> GuardStatus:
        """Await the in-flight check, if any, and return the resulting status."""
        # A newer cycle may replace the task while we wait; follow it.
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})
        return self.status

    # ── Checking cycle ────────────────────────────────────────────────────────

    def _on_unlock_change(self, unlocked: bool) -> None:
        if self._mounted and self._path is not None:
            logger.debug("guard_unlock_changed", unlocked=unlocked)
            self._start_cycle()

    def _start_cycle(self) -> Optional[asyncio.Task]:
        self._generation += 1
        token = self._generation
        self._cancel_inflight()
        path = self._path
        assert path is not None

        if self._routes.is_public(path):
            self._apply(token, GuardDecision.allow())
            return None

        self.status = GuardStatus.CHECKING
        self.redirect_to = None
        self._task = asyncio.get_running_loop().create_task(self.check(token, path))
        return self._task

    def _cancel_inflight(self) -> None:
        task = self._task
        self._task = None
        # The current task may be the one triggering a new cycle (auto-lock
        # observed mid-check); its stale token already discards its result.
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def check(self, token: int, path: str) -> Optional[GuardDecision]:
        """Evaluate ``path`` and apply the outcome if ``token`` is still current.

        Returns the applied decision, or None when the result was discarded.
        """
        decision = await self.evaluate(path)
        if not self._apply(token, decision):
            logger.debug("guard_check_superseded", token=token)
            return None
        return decision

    async def evaluate(self, path: str) -> GuardDecision:
        """Compute the decision for ``path`` without applying it."""
        if self._routes.is_public(path):
            return GuardDecision.allow()

        try:
            if self._refresh_pending:
                self._refresh_pending = False
                if not await self._session.refresh():
                    logger.info("guard_session_refresh_rejected")
                    return GuardDecision.redirect(self._routes.login_route)
            authenticated = await self._session.whoami()
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "guard_auth_check_failed",
                policy="fail-closed",
                error_type=type(exc).__name__,
            )
            return GuardDecision.redirect(self._routes.login_route)

        if not authenticated:
            return GuardDecision.redirect(self._routes.login_route)

        if not self._unlock_state.is_unlocked and not self._routes.is_unlock_route(path):
            return GuardDecision.redirect(self._routes.unlock_route)

        return GuardDecision.allow()

    def _apply(self, token: int, decision: GuardDecision) -> bool:
        if token != self._generation:
            return False
        self.status = decision.status
        self.redirect_to = decision.redirect_to
        if decision.redirect_to is not None:
            self._navigate(decision.redirect_to)
        return True

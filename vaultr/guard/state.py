"""Guard status values and route classification."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from vaultr.constants import LOGIN_ROUTE, PUBLIC_ROUTES, UNLOCK_ROUTE


class GuardStatus(str, Enum):
    CHECKING = "checking"
    REDIRECTING = "redirecting"
    ALLOWED = "allowed"


@dataclass(frozen=True)
class GuardDecision:
    """Outcome of one guard check. ``redirect_to`` is set only when redirecting."""

    status: GuardStatus
    redirect_to: Optional[str] = None

    @classmethod
    def allow(cls) -> "GuardDecision":
        return cls(status=GuardStatus.ALLOWED)

    @classmethod
    def redirect(cls, target: str) -> "GuardDecision":
        return cls(status=GuardStatus.REDIRECTING, redirect_to=target)


def _matches(path: str, route: str) -> bool:
    return path.startswith(route)


@dataclass(frozen=True)
class GuardRoutes:
    """Public allow-list plus the two redirect targets.

    Public routes match by prefix, so ``/reset-password/abc`` is public.
    """

    public_routes: tuple[str, ...] = PUBLIC_ROUTES
    login_route: str = LOGIN_ROUTE
    unlock_route: str = UNLOCK_ROUTE

    def is_public(self, path: str) -> bool:
        return any(_matches(path, route) for route in self.public_routes)

    def is_unlock_route(self, path: str) -> bool:
        return _matches(path, self.unlock_route)

"""Upstream breach-corpus client construction and request building.

The upstream is any HIBP-compatible range API: ``GET {base}/{PREFIX}`` returns
``SUFFIX:COUNT`` lines for every known hash sharing the prefix.

Request rules:
  - ``Add-Padding: true`` on every call so response size leaks nothing
  - a descriptive ``User-Agent`` (HIBP rejects requests without one)
  - ``Cache-Control: no-store``; nothing between us and the upstream may cache
  - redirects are never followed; a 3xx is treated as an upstream failure
"""

from __future__ import annotations

import httpx

from vaultr.constants import PADDING_HEADER, PADDING_HEADER_VALUE

# A single breach check is one small GET; a modest pool is plenty.
POOL_MAX_CONNECTIONS: int = 20
POOL_MAX_KEEPALIVE: int = 10
POOL_KEEPALIVE_EXPIRY: float = 30.0  # seconds


def create_breach_client(timeout_s: float) -> httpx.AsyncClient:
    """Create the shared httpx.AsyncClient for upstream range requests.

    Created once at lifespan startup and stored in app.state.breach_client.
    NEVER instantiated per-request.

    Args:
        timeout_s: Total request timeout in seconds.
    """
    return httpx.AsyncClient(
        limits=httpx.Limits(
            max_connections=POOL_MAX_CONNECTIONS,
            max_keepalive_connections=POOL_MAX_KEEPALIVE,
            keepalive_expiry=POOL_KEEPALIVE_EXPIRY,
        ),
        timeout=httpx.Timeout(timeout_s),
        follow_redirects=False,  # a redirect could silently reroute the lookup
    )


def build_upstream_url(base: str, prefix: str) -> str:
    """Join the configured base (one trailing slash stripped) and the prefix.

    ``build_upstream_url("https://api.pwnedpasswords.com/range/", "5BAA6")``
    returns ``"https://api.pwnedpasswords.com/range/5BAA6"``.
    """
    if base.endswith("/"):
        base = base[:-1]
    return f"{base}/{prefix}"


def build_upstream_headers(user_agent: str) -> dict[str, str]:
    """Headers sent with every upstream range request.

    Nothing from the incoming client request is forwarded: no cookies, no
    client IP, no Authorization. The upstream learns only the prefix.
    """
    return {
        PADDING_HEADER: PADDING_HEADER_VALUE,
        "User-Agent": user_agent,
        "Cache-Control": "no-store",
        "Accept": "text/plain",
    }

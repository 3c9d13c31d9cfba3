"""Best-effort client IP resolution for rate-limit bucketing.

Resolution order:
  1. First entry of ``X-Forwarded-For`` (the original client behind a proxy chain)
  2. ``CF-Connecting-IP`` (Cloudflare)
  3. The socket peer address reported by the ASGI server

Each candidate must parse as an IPv4 or IPv6 address; anything else is skipped.
When nothing usable is found the caller gets ``UNKNOWN_CLIENT``, which buckets
every unresolvable client together but keeps rate limiting functional.
"""

from __future__ import annotations

import ipaddress
from typing import Optional

from starlette.requests import Request

UNKNOWN_CLIENT: str = "unknown"


def is_valid_ip(value: Optional[str]) -> bool:
    """Return True if ``value`` is a syntactically valid IPv4 or IPv6 address."""
    if not value:
        return False
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def resolve_client_ip(request: Request) -> str:
    """Return the client's IP address, or ``"unknown"`` if none can be resolved."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",", maxsplit=1)[0].strip()
        if is_valid_ip(first):
            return first

    cf_connecting = request.headers.get("cf-connecting-ip", "").strip()
    if is_valid_ip(cf_connecting):
        return cf_connecting

    peer = request.client.host if request.client else None
    if is_valid_ip(peer):
        return peer  # type: ignore[return-value]

    return UNKNOWN_CLIENT

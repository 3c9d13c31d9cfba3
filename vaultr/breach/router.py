"""k-anonymity breach-check proxy: ``GET /breach?prefix=XXXXX``.

The client hashes a candidate password with SHA-1 locally and sends only the
first five hex digits. This handler forwards that prefix to an HIBP-compatible
range API and relays the raw ``SUFFIX:COUNT`` corpus back. Suffix matching
happens only on the client, so neither this server nor the upstream ever sees
the full hash, let alone the password.

Ordered short-circuit exits:
  1. Resolve client identity (best-effort IP, else "unknown")
  2. Prefix not ^[0-9A-F]{5}$ after trim + uppercase   → 400, empty
  3. Rate limit "breach:<identity>" exceeded            → 429, empty, Retry-After
     Rate-limit store error                             → proceed (fail-open)
  4. No upstream configured                             → 200, empty
  5. Upstream transport error                           → 200, empty
  6. Upstream redirect or non-2xx                       → 200, empty
  7. Upstream body larger than MAX_UPSTREAM_BODY_BYTES  → 200, empty
  8. Upstream 2xx                                       → 200, body verbatim
  9. Anything unexpected                                → 200, empty

Failure policy is fail-open throughout. Availability of login and signup must
never depend on the upstream corpus or the counter store, and the status code
must never reveal upstream health. This endpoint never answers 500.

The prefix, the upstream URL and the upstream body are never logged. Only
event names, status codes and exception type names are.
"""

from __future__ import annotations

from typing import Optional

import httpx
from fastapi import APIRouter, Request
from starlette.responses import Response

from vaultr.breach.responses import (
    build_empty_response,
    build_invalid_prefix_response,
    build_rate_limited_response,
    build_relay_response,
)
from vaultr.breach.upstream import build_upstream_headers, build_upstream_url
from vaultr.config import Config
from vaultr.constants import BREACH_PREFIX_PATTERN, MAX_UPSTREAM_BODY_BYTES
from vaultr.ratelimit.limiter import RateLimiter
from vaultr.ratelimit.store import StoreUnavailable
from vaultr.utils.client_ip import resolve_client_ip
from vaultr.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["breach"])


def normalize_prefix(raw: Optional[str]) -> Optional[str]:
    """Trim and uppercase ``raw``; return it if it is exactly five hex digits, else None."""
    prefix = (raw or "").strip().upper()
    if BREACH_PREFIX_PATTERN.fullmatch(prefix) is None:
        return None
    return prefix


@router.get("/breach")
async def breach_check(request: Request) -> Response:
    """Relay the breach corpus for one SHA-1 prefix. Never raises, never 500s."""
    try:
        return await _handle_breach_check(request)
    except Exception as exc:  # noqa: BLE001
        logger.error("breach_check_failed_open", error_type=type(exc).__name__)
        return build_empty_response()


async def _handle_breach_check(request: Request) -> Response:
    identity = resolve_client_ip(request)

    # ── Input validation ──────────────────────────────────────────────────────
    # Evaluated before the rate limiter: a malformed prefix is always 400 and
    # never consumes quota.
    prefix = normalize_prefix(request.query_params.get("prefix"))
    if prefix is None:
        return build_invalid_prefix_response()

    config: Config = request.app.state.config

    # ── Rate limit (fail-open on store failure) ───────────────────────────────
    limiter: Optional[RateLimiter] = getattr(request.app.state, "rate_limiter", None)
    if limiter is not None:
        denied = await _check_rate_limit(limiter, config, identity)
        if denied is not None:
            return denied

    # ── Upstream ──────────────────────────────────────────────────────────────
    base = config.breach.upstream_url
    if not base:
        return build_empty_response()

    client: httpx.AsyncClient = request.app.state.breach_client
    try:
        async with client.stream(
            "GET",
            build_upstream_url(base, prefix),
            headers=build_upstream_headers(config.breach.user_agent),
            follow_redirects=False,
        ) as upstream_response:
            if upstream_response.is_redirect:
                logger.warning(
                    "breach_upstream_redirect_refused",
                    status_code=upstream_response.status_code,
                )
                return build_empty_response()

            if not upstream_response.is_success:
                logger.warning(
                    "breach_upstream_error",
                    status_code=upstream_response.status_code,
                )
                return build_empty_response()

            body = await _read_capped(upstream_response, MAX_UPSTREAM_BODY_BYTES)
    except httpx.HTTPError as exc:
        logger.warning("breach_upstream_unavailable", error_type=type(exc).__name__)
        return build_empty_response()

    if body is None:
        logger.warning("breach_upstream_body_too_large", limit_bytes=MAX_UPSTREAM_BODY_BYTES)
        return build_empty_response()

    return build_relay_response(body)


async def _read_capped(response: httpx.Response, limit: int) -> Optional[bytes]:
    """Read the body of a streamed response, or None once it exceeds ``limit`` bytes."""
    declared = response.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        return None

    chunks: list[bytes] = []
    size = 0
    async for chunk in response.aiter_bytes():
        size += len(chunk)
        if size > limit:
            return None
        chunks.append(chunk)
    return b"".join(chunks)


async def _check_rate_limit(
    limiter: RateLimiter,
    config: Config,
    identity: str,
) -> Optional[Response]:
    """Return a 429 response if the client is over the breach policy, else None.

    Any failure of the check itself admits the request.
    """
    policy = config.rate_limit.breach
    try:
        decision = await limiter.check(policy.key_for(identity), policy.window_ms, policy.max)
    except StoreUnavailable as exc:
        logger.warning(
            "rate_limit_store_unavailable",
            policy="fail-open",
            error=str(exc),
        )
        return None
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "rate_limit_check_failed",
            policy="fail-open",
            error_type=type(exc).__name__,
        )
        return None

    if decision.allowed:
        return None

    retry_after = decision.retry_after(limiter.now())
    logger.info(
        "breach_rate_limited",
        client=identity,
        remaining=decision.remaining,
        limit=decision.limit,
        retry_after=retry_after,
    )
    return build_rate_limited_response(retry_after)

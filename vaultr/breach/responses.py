"""HTTP response builders for the breach endpoint.

Every exit of ``GET /breach`` goes through one of these builders, so the
headers that matter (content type, caching, Retry-After) cannot drift
between branches:

  build_relay_response():        200, upstream body verbatim
  build_empty_response():        200, empty body (every fail-open exit)
  build_invalid_prefix_response(): 400, empty body
  build_rate_limited_response(): 429, empty body, Retry-After

No builder takes an error message. Bodies are either the upstream corpus or
empty, so a caller can never distinguish "not breached" from "upstream down".
"""

from __future__ import annotations

from starlette.responses import Response

from vaultr.constants import NO_STORE_CACHE_CONTROL

_TEXT_PLAIN = "text/plain"


def _text_response(status_code: int, body: bytes = b"") -> Response:
    response = Response(content=body, status_code=status_code, media_type=_TEXT_PLAIN)
    response.headers["Cache-Control"] = NO_STORE_CACHE_CONTROL
    return response


def build_relay_response(body: bytes) -> Response:
    """Return the upstream range body byte-for-byte. Never parsed or inspected."""
    return _text_response(200, body)


def build_empty_response() -> Response:
    """Fail-open response: 200 with an empty corpus."""
    return _text_response(200)


def build_invalid_prefix_response() -> Response:
    """The prefix was not exactly five hex characters."""
    return _text_response(400)


def build_rate_limited_response(retry_after: int) -> Response:
    """Too many lookups from this client in the current window.

    Args:
        retry_after: Whole seconds until the window resets (>= 0).
    """
    response = _text_response(429)
    response.headers["Retry-After"] = str(retry_after)
    return response

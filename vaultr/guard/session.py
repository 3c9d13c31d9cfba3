"""HTTP client for the guard's session calls.

Two calls, both carrying the session cookies held by the httpx client:

  whoami()  → GET  /auth/me       2xx means authenticated
  refresh() → POST /auth/refresh  2xx means the session was renewed

Non-2xx answers are reported as False. Transport errors are NOT caught here;
the guard treats them as "not authenticated" (fail-closed).

State-changing requests carry ``x-csrf-token`` copied from the ``csrfToken``
cookie (double-submit), but only when they target the client's own origin.
"""

from __future__ import annotations

from typing import Generator, Optional
from urllib.parse import unquote

import httpx

from vaultr.constants import (
    AUTH_STATUS_PATH,
    CSRF_COOKIE_NAME,
    CSRF_HEADER_NAME,
    SESSION_REFRESH_PATH,
)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def read_cookie(cookie_header: str, name: str) -> Optional[str]:
    """Return the URL-decoded value of ``name`` from a ``Cookie`` header."""
    for part in cookie_header.split(";"):
        key, sep, value = part.strip().partition("=")
        if sep and key == name:
            return unquote(value)
    return None


def _origin(url: httpx.URL) -> tuple[str, str, Optional[int]]:
    return (url.scheme, url.host, url.port)


class CsrfCookieAuth(httpx.Auth):
    """Double-submit CSRF header for same-origin, state-changing requests.

    Args:
        origin: Base URL whose scheme, host and port count as same-origin.
    """

    def __init__(
        self,
        origin: httpx.URL,
        cookie_name: str = CSRF_COOKIE_NAME,
        header_name: str = CSRF_HEADER_NAME,
    ) -> None:
        self._origin = _origin(origin)
        self._cookie_name = cookie_name
        self._header_name = header_name

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        if (
            request.method.upper() not in SAFE_METHODS
            and self._header_name not in request.headers
            and _origin(request.url) == self._origin
        ):
            token = read_cookie(request.headers.get("cookie", ""), self._cookie_name)
            if token:
                request.headers[self._header_name] = token
        yield request


class AuthStatusClient:
    """Session checks against the Vaultr auth API.

    Args:
        client: httpx.AsyncClient with ``base_url`` set to the API origin and
                the session cookies in its jar.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        auth_status_path: str = AUTH_STATUS_PATH,
        refresh_path: str = SESSION_REFRESH_PATH,
    ) -> None:
        self._client = client
        self._auth_status_path = auth_status_path
        self._refresh_path = refresh_path
        self._csrf = CsrfCookieAuth(client.base_url)

    async def whoami(self) -> bool:
        response = await self._client.get(self._auth_status_path)
        return response.is_success

    async def refresh(self) -> bool:
        response = await self._client.post(self._refresh_path, auth=self._csrf)
        return response.is_success

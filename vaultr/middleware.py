"""Request context middleware for Vaultr.

Assigns every request a ULID request ID, binds it into the structlog context
for the lifetime of the request, and echoes it back as ``X-Request-ID``.
"""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from vaultr.utils.logger import clear_request_id, set_request_id
from vaultr.utils.ulid import generate_ulid

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a fresh request ID for logging and expose it on the response.

    Incoming ``X-Request-ID`` headers are ignored; IDs are always minted here
    so clients cannot inject values into the log stream.
    """

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        request_id = generate_ulid()
        request.state.request_id = request_id
        set_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            clear_request_id()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

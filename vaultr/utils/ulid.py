"""ULID generation for Vaultr request tracing.

``generate_ulid()`` returns a 26-character ULID used as:
  - the ``X-Request-ID`` response header value
  - the ``request_id`` field bound into every structured log line

Uses the ``python-ulid`` library. ULIDs sort by creation time, which keeps
log lines for one burst of requests adjacent when grepping.
"""

from __future__ import annotations

from ulid import ULID


def generate_ulid() -> str:
    """Generate a new ULID as a 26-character uppercase string.

    Returns:
        str: Crockford Base32 ULID, charset ``[0-9A-HJKMNP-TV-Z]``.
    """
    return str(ULID())

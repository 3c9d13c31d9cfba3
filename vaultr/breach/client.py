"""Client half of the k-anonymity breach check.

Flow:
  1. SHA-1 the UTF-8 password, uppercase hex
  2. prefix = first 5 chars, suffix = remaining 35
  3. ``GET {endpoint}?prefix=<prefix>`` against the Vaultr breach proxy
  4. Parse ``SUFFIX:COUNT`` lines locally and look for our suffix
  5. Ignore padding entries (count 0)

SHA-1 is used here ONLY because the range API is keyed by it. It must never be
used for storage, authentication, reuse detection or encryption.

The check is advisory and fail-open: any error, non-2xx or empty body reports
"not breached" so the user is never blocked from saving a password.
"""

from __future__ import annotations

import hashlib

import httpx

from vaultr.constants import BREACH_PREFIX_LENGTH
from vaultr.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_BREACH_ENDPOINT = "/breach"

BREACH_WARNING = (
    "This password has appeared in known security breaches. "
    "We recommend using a unique password instead."
)


def split_sha1(password: str) -> tuple[str, str]:
    """Return ``(prefix, suffix)`` of the uppercase SHA-1 hex digest of ``password``."""
    digest = hashlib.sha1(password.encode("utf-8")).hexdigest().upper()
    return digest[:BREACH_PREFIX_LENGTH], digest[BREACH_PREFIX_LENGTH:]


def find_suffix_count(body: str, suffix: str) -> int:
    """Return the breach count for ``suffix`` in a range response body, or 0.

    Lines that do not look like ``SUFFIX:COUNT`` are skipped. Padding entries
    (count 0) never match.
    """
    wanted = suffix.upper()
    for line in body.splitlines():
        entry_suffix, sep, count_text = line.strip().partition(":")
        if not sep or not entry_suffix or not count_text:
            continue
        try:
            count = int(count_text)
        except ValueError:
            continue
        if count == 0:
            continue
        if entry_suffix.upper() == wanted:
            return count
    return 0


async def check_password_breach(
    password: str,
    client: httpx.AsyncClient,
    endpoint: str = DEFAULT_BREACH_ENDPOINT,
) -> bool:
    """Return True if ``password`` appears in the breach corpus.

    Only the 5-character prefix leaves this function. Returns False for an
    empty password and on any failure.

    Args:
        password: Plaintext candidate. Never logged or sent.
        client:   httpx client whose base_url points at the Vaultr server.
        endpoint: Path of the breach proxy.
    """
    if not password:
        return False

    prefix, suffix = split_sha1(password)
    try:
        response = await client.get(
            endpoint,
            params={"prefix": prefix},
            headers={"Accept": "text/plain"},
        )
    except httpx.HTTPError as exc:
        logger.warning("breach_check_unavailable", error_type=type(exc).__name__)
        return False

    if not response.is_success:
        logger.debug("breach_check_non_success", status_code=response.status_code)
        return False

    body = response.text
    if not body.strip():
        return False
    return find_suffix_count(body, suffix) > 0


def breach_warning(is_breached: bool) -> str:
    """User-facing advisory text for a breach check result."""
    return BREACH_WARNING if is_breached else ""

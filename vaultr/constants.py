"""Shared constants for Vaultr.

Wire-level values and default policy numbers used across modules live here.
No magic numbers in other modules; import from here.
"""

import re

# ─── Breach check (k-anonymity) ───────────────────────────────────────────────

# Exactly five uppercase hex digits: the SHA-1 prefix a client may reveal.
BREACH_PREFIX_PATTERN: re.Pattern[str] = re.compile(r"^[0-9A-F]{5}$")

# Length of the SHA-1 prefix sent to the server.
BREACH_PREFIX_LENGTH: int = 5

# Asks the upstream to pad every range response to a near-constant size so the
# response length does not reveal how many suffixes share the prefix.
PADDING_HEADER: str = "Add-Padding"
PADDING_HEADER_VALUE: str = "true"

DEFAULT_BREACH_USER_AGENT: str = "Vaultr-Password-Manager"

# Seconds. Covers connect + read of a single range request.
DEFAULT_BREACH_TIMEOUT_S: float = 10.0

# Bytes. A padded range response is a few tens of KB; anything past this is
# not a range response and is dropped rather than relayed.
MAX_UPSTREAM_BODY_BYTES: int = 1_048_576

# Sent on every response from the breach endpoint.
NO_STORE_CACHE_CONTROL: str = "no-store, no-cache, must-revalidate"

# ─── Rate limiting ────────────────────────────────────────────────────────────

# Reference breach policy: 10 lookups per client per minute.
DEFAULT_BREACH_RATE_LIMIT_PREFIX: str = "breach"
DEFAULT_BREACH_RATE_LIMIT_WINDOW_MS: int = 60_000
DEFAULT_BREACH_RATE_LIMIT_MAX: int = 10

# Seconds. Socket timeout for the shared counter store.
DEFAULT_STORE_TIMEOUT_S: float = 1.0

# First identifier of every counter key, so shared stores keep vaultr keys apart.
COUNTER_STORE_NAMESPACE: str = "vaultr:rl"

# ─── Session guard ────────────────────────────────────────────────────────────

LOGIN_ROUTE: str = "/login"
UNLOCK_ROUTE: str = "/unlock"

# Routes that render without a session. Matched by path prefix.
PUBLIC_ROUTES: tuple[str, ...] = (
    "/login",
    "/signup",
    "/unlock",
    "/forgot-password",
    "/reset-password",
    "/verify-email",
)

AUTH_STATUS_PATH: str = "/auth/me"
SESSION_REFRESH_PATH: str = "/auth/refresh"

CSRF_COOKIE_NAME: str = "csrfToken"
CSRF_HEADER_NAME: str = "x-csrf-token"

# Vault auto-lock: 5 minutes of inactivity, 60 minutes absolute.
VAULT_INACTIVITY_TIMEOUT_S: float = 5 * 60
VAULT_ABSOLUTE_TIMEOUT_S: float = 60 * 60

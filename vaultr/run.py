"""Programmatic uvicorn entry point for Vaultr.

Reads host and port from the loaded config (127.0.0.1:3000 by default) and
starts uvicorn with hardened defaults:

  --limit-concurrency 100  Max 100 concurrent connections; HTTP 503 when exceeded
  --backlog 50             OS connection queue depth; limits SYN flood exposure
  --timeout-keep-alive 5   Reduces Slow Loris attack window

Usage:
    python -m vaultr.run       # reads .vaultr/config.yaml
    vaultr                     # via pyproject.toml [project.scripts]

Binding to 0.0.0.0 is allowed but logs a SECURITY WARNING at startup
(see vaultr/config.py:load_config).
"""

from __future__ import annotations

import uvicorn

from vaultr.config import load_config

# ─── Uvicorn hardened defaults ────────────────────────────────────────────────

# New connections receive HTTP 503 when this limit is exceeded.
UVICORN_LIMIT_CONCURRENCY: int = 100

# Pending connections waiting to be accepted.
UVICORN_BACKLOG: int = 50

# Seconds. Low value reduces the Slow Loris attack window.
UVICORN_TIMEOUT_KEEP_ALIVE: int = 5


def main() -> None:
    """Start the Vaultr server with hardened uvicorn defaults.

    Raises:
        SystemExit: Propagated from load_config() on config errors.
    """
    config = load_config()

    uvicorn.run(
        "vaultr.main:app",
        host=config.server.host,
        port=config.server.port,
        limit_concurrency=UVICORN_LIMIT_CONCURRENCY,
        backlog=UVICORN_BACKLOG,
        timeout_keep_alive=UVICORN_TIMEOUT_KEEP_ALIVE,
    )


if __name__ == "__main__":
    main()

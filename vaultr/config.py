"""Config loading for Vaultr.

Reads `.vaultr/config.yaml` (or `~/.vaultr/config.yaml`).
Raises SystemExit on parse errors, a missing `version` field, or invalid values.
If no config file is found, returns default values (safe to run without config).

Config search order:
  1. `config_path` argument (if provided, for testing or explicit override)
  2. VAULTR_CONFIG environment variable (if set)
  3. `.vaultr/config.yaml` (working directory, for development)
  4. `~/.vaultr/config.yaml` (home directory, for production deployments)

Environment variable overrides (applied after the file, so they always win):
  BREACH_UPSTREAM_URL                - breach.upstream_url (alias: BREACH_UPSTREAM_BASE)
  REDIS_URL                          - rate_limit.store_url
  VAULTR_PORT                        - server.port
  VAULTR_BREACH_RATE_LIMIT_MAX       - rate_limit.breach.max
  VAULTR_BREACH_RATE_LIMIT_WINDOW_MS - rate_limit.breach.window_ms

A missing breach upstream is NOT an error: the breach endpoint fails open.
"""

from __future__ import annotations

import math
import os
import sys
from dataclasses import dataclass, field
from typing import NoReturn, Optional
from urllib.parse import urlsplit

import yaml

from vaultr.constants import (
    DEFAULT_BREACH_RATE_LIMIT_MAX,
    DEFAULT_BREACH_RATE_LIMIT_PREFIX,
    DEFAULT_BREACH_RATE_LIMIT_WINDOW_MS,
    DEFAULT_BREACH_TIMEOUT_S,
    DEFAULT_BREACH_USER_AGENT,
    DEFAULT_STORE_TIMEOUT_S,
)
from vaultr.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Version constants ────────────────────────────────────────────────────────

SUPPORTED_CONFIG_VERSION = 1

SUPPORTED_VERSIONS: frozenset[int] = frozenset({1})

VALID_UPSTREAM_SCHEMES: frozenset[str] = frozenset({"http", "https"})

DEFAULT_CONFIG_PATHS = [
    ".vaultr/config.yaml",
    os.path.expanduser("~/.vaultr/config.yaml"),
]


def _config_error(msg: str) -> NoReturn:
    print(f"CONFIG ERROR: {msg}", file=sys.stderr)
    raise SystemExit(1)


# ─── Dataclasses ─────────────────────────────────────────────────────────────


@dataclass
class RateLimitPolicy:
    """One fixed-window policy: at most ``max`` hits per ``window_ms`` per key.

    key_prefix: namespace joined to the client identity, e.g. ``breach:203.0.113.7``
    """

    key_prefix: str = DEFAULT_BREACH_RATE_LIMIT_PREFIX
    window_ms: int = DEFAULT_BREACH_RATE_LIMIT_WINDOW_MS
    max: int = DEFAULT_BREACH_RATE_LIMIT_MAX

    def key_for(self, identity: str) -> str:
        return f"{self.key_prefix}:{identity}"


@dataclass
class RateLimitConfig:
    """Counter store selection and per-endpoint policies.

    store_url: ``redis://...`` for a shared store; None selects the in-process
               memory store (single worker deployments and tests).
    """

    store_url: Optional[str] = None
    store_timeout_s: float = DEFAULT_STORE_TIMEOUT_S
    breach: RateLimitPolicy = field(default_factory=RateLimitPolicy)


@dataclass
class BreachConfig:
    """Upstream breach-corpus configuration.

    upstream_url: HIBP-compatible range API base, e.g.
                  ``https://api.pwnedpasswords.com/range``. None disables the
                  upstream call and the endpoint answers with an empty corpus.
    """

    upstream_url: Optional[str] = None
    user_agent: str = DEFAULT_BREACH_USER_AGENT
    timeout_s: float = DEFAULT_BREACH_TIMEOUT_S


@dataclass
class ServerConfig:
    """HTTP binding configuration."""

    host: str = "127.0.0.1"
    port: int = 3000


@dataclass
class Config:
    """Root configuration object populated from .vaultr/config.yaml.

    All fields have safe defaults; Vaultr can start without any config file.
    """

    version: int = SUPPORTED_CONFIG_VERSION
    server: ServerConfig = field(default_factory=ServerConfig)
    breach: BreachConfig = field(default_factory=BreachConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    path: Optional[str] = None

    @classmethod
    def defaults(cls) -> "Config":
        """Return a fully-default Config (no file required)."""
        return cls()

    @classmethod
    def from_dict(cls, raw: dict, path: Optional[str] = None) -> "Config":
        """Construct Config from a parsed YAML dict.

        Merges user-supplied values onto defaults; unknown keys are silently ignored.

        Raises:
            SystemExit(1): On an invalid upstream URL, non-positive rate-limit values,
                           or a timeout that is not a positive number of seconds.
        """
        # ── Server ────────────────────────────────────────────────────────────
        server_raw = raw.get("server") or {}
        server = ServerConfig(
            host=server_raw.get("host", "127.0.0.1"),
            port=server_raw.get("port", 3000),
        )

        # ── Breach upstream ───────────────────────────────────────────────────
        breach_raw = raw.get("breach") or {}
        breach = BreachConfig(
            upstream_url=breach_raw.get("upstream_url") or None,
            user_agent=breach_raw.get("user_agent", DEFAULT_BREACH_USER_AGENT),
            timeout_s=breach_raw.get("timeout_s", DEFAULT_BREACH_TIMEOUT_S),
        )

        # ── Rate limiting ─────────────────────────────────────────────────────
        rl_raw = raw.get("rate_limit") or {}
        policy_raw = rl_raw.get("breach") or {}
        rate_limit = RateLimitConfig(
            store_url=rl_raw.get("store_url") or None,
            store_timeout_s=rl_raw.get("store_timeout_s", DEFAULT_STORE_TIMEOUT_S),
            breach=RateLimitPolicy(
                key_prefix=policy_raw.get("key_prefix", DEFAULT_BREACH_RATE_LIMIT_PREFIX),
                window_ms=policy_raw.get("window_ms", DEFAULT_BREACH_RATE_LIMIT_WINDOW_MS),
                max=policy_raw.get("max", DEFAULT_BREACH_RATE_LIMIT_MAX),
            ),
        )

        config = cls(
            version=raw.get("version", SUPPORTED_CONFIG_VERSION),
            server=server,
            breach=breach,
            rate_limit=rate_limit,
            path=path,
        )
        _validate(config)
        return config


# ─── Validation ──────────────────────────────────────────────────────────────


def _validate_upstream_url(url: str, field_name: str) -> None:
    """Reject upstream URLs that are not absolute http(s) URLs.

    Raises:
        SystemExit(1): On a missing scheme, a non-http(s) scheme, or no host.
    """
    parts = urlsplit(url)
    if parts.scheme not in VALID_UPSTREAM_SCHEMES or not parts.netloc:
        _config_error(
            f"{field_name} must be an absolute http(s) URL, got '{url}'."
        )


def _validate_policy(policy: RateLimitPolicy, field_name: str) -> None:
    for attr in ("window_ms", "max"):
        value = getattr(policy, attr)
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            _config_error(
                f"{field_name}.{attr} must be a positive integer, got '{value}'."
            )
    if not policy.key_prefix:
        _config_error(f"{field_name}.key_prefix must not be empty.")


def _validate_port(port: int) -> None:
    if isinstance(port, bool) or not isinstance(port, int) or not 1 <= port <= 65535:
        _config_error(f"server.port must be an integer between 1 and 65535, got '{port}'.")


def _validate_timeout(value: object, field_name: str) -> float:
    """Return ``value`` as seconds, or exit if it is not a positive finite number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        _config_error(f"{field_name} must be a number of seconds, got '{value}'.")
    if not math.isfinite(value) or value <= 0:
        _config_error(f"{field_name} must be greater than 0, got '{value}'.")
    return float(value)


def _validate(config: Config) -> None:
    _validate_port(config.server.port)
    if config.breach.upstream_url:
        _validate_upstream_url(config.breach.upstream_url, "breach.upstream_url")
    _validate_policy(config.rate_limit.breach, "rate_limit.breach")
    config.breach.timeout_s = _validate_timeout(config.breach.timeout_s, "breach.timeout_s")
    config.rate_limit.store_timeout_s = _validate_timeout(
        config.rate_limit.store_timeout_s, "rate_limit.store_timeout_s"
    )


# ─── Config loading ───────────────────────────────────────────────────────────


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and validate Vaultr configuration.

    If no file is found at any search path, returns default Config (not an error).
    If a file is found but invalid, writes error to stderr and raises SystemExit(1).

    Returns:
        Config object with all values populated (file values merged onto defaults,
        environment overrides applied last).

    Raises:
        SystemExit(1): On YAML parse error, missing ``version`` field, unsupported
                       version, or any invalid value (file or environment).
    """
    search_paths: list[str] = []
    if config_path:
        search_paths.append(config_path)
    env_config = os.environ.get("VAULTR_CONFIG")
    if env_config:
        search_paths.append(env_config)
    search_paths.extend(DEFAULT_CONFIG_PATHS)

    found_path: Optional[str] = None
    for candidate in search_paths:
        expanded = os.path.expanduser(candidate)
        if os.path.isfile(expanded):
            found_path = expanded
            break

    # ── No config file found ─────────────────────────────────────────────────
    if found_path is None:
        logger.info("No config file found - using defaults", searched=search_paths)
        config = Config.defaults()
        _apply_env_overrides(config)
        return config

    # ── Parse config file ─────────────────────────────────────────────────────
    logger.info("Loading config", path=found_path)

    try:
        with open(found_path) as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        _config_error(
            f"Failed to parse {found_path}: {exc}\n"
            "Vaultr refuses to start with an invalid config. "
            "Check the YAML syntax and try again."
        )
    except OSError as exc:
        _config_error(f"Could not read {found_path}: {exc}")

    if not isinstance(raw, dict):
        if raw is None:
            _config_error(
                f"{found_path} is missing the required 'version' field.\n"
                "Add 'version: 1' to the top of your config file."
            )
        _config_error(
            f"{found_path} is not a valid YAML mapping.\n"
            "The config file must be a YAML dictionary at the top level."
        )

    # ── Version validation ────────────────────────────────────────────────────
    version = raw.get("version")
    if version is None:
        _config_error(
            f"{found_path} is missing the required 'version' field.\n"
            "Add 'version: 1' to the top of your config file."
        )
    if version not in SUPPORTED_VERSIONS:
        _config_error(
            f"Unsupported config version: {version}. "
            f"Supported versions: {sorted(SUPPORTED_VERSIONS)}."
        )

    config = Config.from_dict(raw, path=found_path)
    _apply_env_overrides(config)

    if config.server.host == "0.0.0.0":
        logger.warning(
            "SECURITY WARNING: Vaultr is configured to bind on 0.0.0.0 (all interfaces). "
            "Put a reverse proxy in front and set X-Forwarded-For, or rate limiting "
            "will bucket clients by the proxy address."
        )

    logger.info(
        "Config loaded",
        path=found_path,
        version=config.version,
        breach_upstream_configured=config.breach.upstream_url is not None,
        rate_limit_store="redis" if config.rate_limit.store_url else "memory",
    )
    return config


def _int_env(name: str) -> Optional[int]:
    value = os.environ.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        _config_error(
            f"{name} environment variable is not a valid integer: '{value}'"
        )


def _apply_env_overrides(config: Config) -> None:
    """Apply environment variable overrides to a Config object in-place.

    Called for both file-loaded and default configs so env vars always take
    precedence over any file value. Re-validates after applying.

    Raises:
        SystemExit(1): If an integer variable does not parse, or the result is invalid.
    """
    upstream = os.environ.get("BREACH_UPSTREAM_URL") or os.environ.get("BREACH_UPSTREAM_BASE")
    if upstream:
        config.breach.upstream_url = upstream

    redis_url = os.environ.get("REDIS_URL")
    if redis_url:
        config.rate_limit.store_url = redis_url

    port = _int_env("VAULTR_PORT")
    if port is not None:
        config.server.port = port

    limit_max = _int_env("VAULTR_BREACH_RATE_LIMIT_MAX")
    if limit_max is not None:
        config.rate_limit.breach.max = limit_max

    window_ms = _int_env("VAULTR_BREACH_RATE_LIMIT_WINDOW_MS")
    if window_ms is not None:
        config.rate_limit.breach.window_ms = window_ms

    _validate(config)

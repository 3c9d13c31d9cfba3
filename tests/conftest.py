"""Root test configuration for Vaultr.

Clears every environment variable that load_config() reads so a developer's
shell (REDIS_URL, BREACH_UPSTREAM_URL, ...) can never leak into a test, and
runs each test from an empty working directory so no stray
``.vaultr/config.yaml`` is picked up.
"""

import pytest

_CONFIG_ENV_VARS = (
    "VAULTR_CONFIG",
    "BREACH_UPSTREAM_URL",
    "BREACH_UPSTREAM_BASE",
    "REDIS_URL",
    "VAULTR_PORT",
    "VAULTR_BREACH_RATE_LIMIT_MAX",
    "VAULTR_BREACH_RATE_LIMIT_WINDOW_MS",
    "DEBUG",
)


@pytest.fixture(autouse=True)
def isolate_config_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

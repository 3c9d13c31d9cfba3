"""Unit tests for config loading, validation and environment overrides."""

from __future__ import annotations

import textwrap

import pytest

from vaultr.config import (
    SUPPORTED_VERSIONS,
    BreachConfig,
    Config,
    RateLimitPolicy,
    ServerConfig,
    load_config,
)
from vaultr.constants import DEFAULT_BREACH_USER_AGENT


def _write(tmp_path, content: str) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(content))
    return str(path)


# ─── Defaults ─────────────────────────────────────────────────────────────────


class TestDefaults:
    def test_missing_file_returns_defaults(self, tmp_path) -> None:
        config = load_config(str(tmp_path / "absent.yaml"))
        assert config == Config.defaults()

    def test_default_values(self) -> None:
        config = Config.defaults()
        assert config.server == ServerConfig(host="127.0.0.1", port=3000)
        assert config.breach.upstream_url is None
        assert config.breach.user_agent == DEFAULT_BREACH_USER_AGENT
        assert config.rate_limit.store_url is None
        assert config.rate_limit.breach == RateLimitPolicy("breach", 60_000, 10)

    def test_version_only_file_populates_defaults(self, tmp_path) -> None:
        config = load_config(_write(tmp_path, "version: 1\n"))
        assert config.breach == BreachConfig()
        assert config.path is not None

    def test_supported_versions(self) -> None:
        assert SUPPORTED_VERSIONS == frozenset({1})

    def test_policy_key_for(self) -> None:
        assert RateLimitPolicy().key_for("203.0.113.7") == "breach:203.0.113.7"


# ─── File values ──────────────────────────────────────────────────────────────


class TestFileValues:
    def test_full_file(self, tmp_path) -> None:
        path = _write(
            tmp_path,
            """
            version: 1
            server:
              host: 127.0.0.1
              port: 8080
            breach:
              upstream_url: https://api.pwnedpasswords.com/range
              user_agent: test-agent
              timeout_s: 2
            rate_limit:
              store_url: redis://localhost:6379/0
              store_timeout_s: 0.5
              breach:
                key_prefix: pwned
                window_ms: 1000
                max: 3
            """,
        )
        config = load_config(path)
        assert config.server.port == 8080
        assert config.breach.upstream_url == "https://api.pwnedpasswords.com/range"
        assert config.breach.user_agent == "test-agent"
        assert config.breach.timeout_s == 2.0
        assert isinstance(config.breach.timeout_s, float)
        assert config.rate_limit.store_url == "redis://localhost:6379/0"
        assert config.rate_limit.store_timeout_s == 0.5
        assert config.rate_limit.breach == RateLimitPolicy("pwned", 1000, 3)

    def test_config_env_var_path(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = _write(tmp_path, "version: 1\nserver:\n  port: 9000\n")
        monkeypatch.setenv("VAULTR_CONFIG", path)
        assert load_config().server.port == 9000

    def test_working_directory_config(self, tmp_path) -> None:
        (tmp_path / ".vaultr").mkdir()
        (tmp_path / ".vaultr" / "config.yaml").write_text("version: 1\nserver:\n  port: 9100\n")
        assert load_config().server.port == 9100

    def test_wildcard_bind_is_allowed(self, tmp_path) -> None:
        config = load_config(_write(tmp_path, "version: 1\nserver:\n  host: 0.0.0.0\n"))
        assert config.server.host == "0.0.0.0"


# ─── Startup refusal ──────────────────────────────────────────────────────────


class TestInvalidConfig:
    @pytest.mark.parametrize(
        "content",
        [
            "server: {port: 3000}\n",
            "",
            "version: 2\n",
            "version: 1\nserver: [unclosed\n",
            "- just\n- a list\n",
            "version: 1\nserver:\n  port: 0\n",
            "version: 1\nserver:\n  port: 70000\n",
            "version: 1\nbreach:\n  upstream_url: ftp://example.com\n",
            "version: 1\nbreach:\n  upstream_url: not-a-url\n",
            "version: 1\nrate_limit:\n  breach:\n    max: 0\n",
            "version: 1\nrate_limit:\n  breach:\n    window_ms: -5\n",
            "version: 1\nrate_limit:\n  breach:\n    max: true\n",
            "version: 1\nrate_limit:\n  breach:\n    key_prefix: ''\n",
            "version: 1\nbreach:\n  timeout_s: soon\n",
            "version: 1\nbreach:\n  timeout_s: 0\n",
            "version: 1\nbreach:\n  timeout_s: .nan\n",
            "version: 1\nrate_limit:\n  store_timeout_s: -1\n",
            "version: 1\nrate_limit:\n  store_timeout_s: [1]\n",
        ],
        ids=[
            "missing-version",
            "empty-file",
            "unsupported-version",
            "bad-yaml",
            "not-a-mapping",
            "port-zero",
            "port-too-large",
            "non-http-upstream",
            "relative-upstream",
            "zero-max",
            "negative-window",
            "bool-max",
            "empty-key-prefix",
            "non-numeric-timeout",
            "zero-timeout",
            "nan-timeout",
            "negative-store-timeout",
            "list-store-timeout",
        ],
    )
    def test_exits_non_zero(self, tmp_path, capsys: pytest.CaptureFixture, content: str) -> None:
        with pytest.raises(SystemExit) as exc_info:
            load_config(_write(tmp_path, content))
        assert exc_info.value.code == 1
        assert "CONFIG ERROR:" in capsys.readouterr().err

    def test_timeout_error_names_the_field(self, tmp_path, capsys: pytest.CaptureFixture) -> None:
        with pytest.raises(SystemExit):
            load_config(_write(tmp_path, "version: 1\nrate_limit:\n  store_timeout_s: fast\n"))
        assert "rate_limit.store_timeout_s" in capsys.readouterr().err


# ─── Environment overrides ────────────────────────────────────────────────────


class TestEnvOverrides:
    def test_upstream_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BREACH_UPSTREAM_URL", "https://hibp.example/range")
        assert load_config().breach.upstream_url == "https://hibp.example/range"

    def test_upstream_base_alias(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BREACH_UPSTREAM_BASE", "https://hibp.example/range")
        assert load_config().breach.upstream_url == "https://hibp.example/range"

    def test_primary_name_wins_over_alias(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BREACH_UPSTREAM_URL", "https://primary.example")
        monkeypatch.setenv("BREACH_UPSTREAM_BASE", "https://alias.example")
        assert load_config().breach.upstream_url == "https://primary.example"

    def test_env_wins_over_file(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = _write(tmp_path, "version: 1\nserver:\n  port: 8080\n")
        monkeypatch.setenv("VAULTR_PORT", "9999")
        assert load_config(path).server.port == 9999

    def test_redis_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/1")
        assert load_config().rate_limit.store_url == "redis://cache:6379/1"

    def test_rate_limit_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VAULTR_BREACH_RATE_LIMIT_MAX", "25")
        monkeypatch.setenv("VAULTR_BREACH_RATE_LIMIT_WINDOW_MS", "30000")
        policy = load_config().rate_limit.breach
        assert (policy.max, policy.window_ms) == (25, 30_000)

    def test_non_integer_exits(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VAULTR_PORT", "abc")
        with pytest.raises(SystemExit):
            load_config()

    def test_invalid_env_value_exits(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VAULTR_BREACH_RATE_LIMIT_MAX", "0")
        with pytest.raises(SystemExit):
            load_config()

    def test_invalid_env_upstream_exits(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BREACH_UPSTREAM_URL", "file:///etc/passwd")
        with pytest.raises(SystemExit):
            load_config()

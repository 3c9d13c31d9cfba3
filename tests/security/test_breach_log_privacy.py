"""Security tests: hash material never reaches logs or the upstream.

The breach endpoint may log event names, status codes and exception type
names. It must never log the prefix, the upstream URL (which embeds the
prefix) or the relayed corpus body.
"""

from __future__ import annotations

from typing import Any

import httpx
import pytest
from starlette.testclient import TestClient

from vaultr.config import Config, RateLimitPolicy
from vaultr.main import create_app

PREFIX = "5BAA6"
SUFFIX = "1E4C9B93F3F0682250B6CF8331B7EE68FD8"
BODY = f"{SUFFIX}:3\n".encode()


class _RecordingLogger:
    """Stands in for a structlog logger and keeps every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def __getattr__(self, level: str):
        def _log(event: str, **kw: Any) -> None:
            self.calls.append((level, event, kw))

        return _log

    def dump(self) -> str:
        return repr(self.calls)


@pytest.fixture
def recorded(monkeypatch: pytest.MonkeyPatch) -> _RecordingLogger:
    recorder = _RecordingLogger()
    monkeypatch.setattr("vaultr.breach.router.logger", recorder)
    return recorder


def _app(monkeypatch: pytest.MonkeyPatch, respond, max: int = 10) -> Any:
    config = Config.defaults()
    config.breach.upstream_url = "https://range.example/range"
    config.rate_limit.breach = RateLimitPolicy(max=max)
    monkeypatch.setattr("vaultr.main.load_config", lambda: config)
    monkeypatch.setattr(
        "vaultr.main.create_breach_client",
        lambda timeout_s: httpx.AsyncClient(transport=httpx.MockTransport(respond)),
    )
    return create_app()


@pytest.mark.parametrize(
    "respond",
    [
        lambda r: httpx.Response(200, content=BODY),
        lambda r: httpx.Response(302, headers={"Location": f"https://x.example/{PREFIX}"}),
        lambda r: httpx.Response(500, content=BODY),
    ],
    ids=["success", "redirect", "server-error"],
)
def test_no_hash_material_in_logs(
    respond, recorded: _RecordingLogger, monkeypatch: pytest.MonkeyPatch
) -> None:
    with TestClient(_app(monkeypatch, respond, max=1)) as client:
        client.get(f"/breach?prefix={PREFIX}")
        client.get(f"/breach?prefix={PREFIX}")  # rate limited
    dump = recorded.dump()
    assert PREFIX not in dump
    assert SUFFIX not in dump
    assert "range.example" not in dump


def test_transport_error_logs_type_only(
    recorded: _RecordingLogger, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _raise(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError(f"failed connecting for {request.url}", request=request)

    with TestClient(_app(monkeypatch, _raise)) as client:
        client.get(f"/breach?prefix={PREFIX}")
    assert any(event == "breach_upstream_unavailable" for _, event, _ in recorded.calls)
    assert PREFIX not in recorded.dump()


def test_upstream_sees_no_client_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[httpx.Request] = []

    def respond(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=BODY)

    with TestClient(_app(monkeypatch, respond)) as client:
        client.get(
            f"/breach?prefix={PREFIX}",
            headers={
                "X-Forwarded-For": "203.0.113.9",
                "Authorization": "Bearer t0ken",
                "Cookie": "session=abc",
            },
        )
    forwarded = {k.lower() for k in seen[0].headers}
    assert not forwarded & {"x-forwarded-for", "authorization", "cookie"}
    assert "203.0.113.9" not in repr(dict(seen[0].headers))

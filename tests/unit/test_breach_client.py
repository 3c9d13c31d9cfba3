"""Unit tests for the client half of the breach check (vaultr/breach/client.py)."""

from __future__ import annotations

import hashlib

import httpx
import pytest

from vaultr.breach.client import (
    BREACH_WARNING,
    breach_warning,
    check_password_breach,
    find_suffix_count,
    split_sha1,
)

# SHA-1("password") = 5BAA61E4C9B93F3F0682250B6CF8331B7EE68FD8
PASSWORD = "password"
PREFIX = "5BAA6"
SUFFIX = "1E4C9B93F3F0682250B6CF8331B7EE68FD8"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://vaultr.test")


class TestSplitSha1:
    def test_known_digest(self) -> None:
        assert split_sha1(PASSWORD) == (PREFIX, SUFFIX)

    def test_lengths_and_case(self) -> None:
        prefix, suffix = split_sha1("correct horse battery staple")
        assert len(prefix) == 5 and len(suffix) == 35
        assert (prefix + suffix).upper() == prefix + suffix

    def test_utf8_encoding(self) -> None:
        digest = hashlib.sha1("pässwörd".encode("utf-8")).hexdigest().upper()
        assert split_sha1("pässwörd") == (digest[:5], digest[5:])


class TestFindSuffixCount:
    def test_match(self) -> None:
        body = f"0018A45C4D1DEF81644B54AB7F969B88D65:1\r\n{SUFFIX}:3730471\r\n"
        assert find_suffix_count(body, SUFFIX) == 3730471

    def test_case_insensitive(self) -> None:
        assert find_suffix_count(f"{SUFFIX.lower()}:2\n", SUFFIX) == 2

    def test_padding_entries_ignored(self) -> None:
        assert find_suffix_count(f"{SUFFIX}:0\n", SUFFIX) == 0

    def test_malformed_lines_skipped(self) -> None:
        body = f"garbage\n:5\nABC:\nXYZ:notanumber\n{SUFFIX}:4\n"
        assert find_suffix_count(body, SUFFIX) == 4

    def test_no_match(self) -> None:
        assert find_suffix_count("0018A45C4D1DEF81644B54AB7F969B88D65:1\n", SUFFIX) == 0

    def test_empty_body(self) -> None:
        assert find_suffix_count("", SUFFIX) == 0


class TestCheckPasswordBreach:
    @pytest.mark.asyncio
    async def test_breached(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text=f"{SUFFIX}:3\n")

        async with _client(handler) as client:
            assert await check_password_breach(PASSWORD, client) is True
        assert seen[0].url.path == "/breach"
        assert seen[0].url.params["prefix"] == PREFIX

    @pytest.mark.asyncio
    async def test_only_prefix_leaves_the_client(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="")

        async with _client(handler) as client:
            await check_password_breach(PASSWORD, client)
        sent = str(seen[0].url) + "".join(f"{k}:{v}" for k, v in seen[0].headers.items())
        assert SUFFIX not in sent
        assert PASSWORD not in sent

    @pytest.mark.asyncio
    async def test_not_breached(self) -> None:
        async with _client(lambda r: httpx.Response(200, text="ABCDEF:1\n")) as client:
            assert await check_password_breach(PASSWORD, client) is False

    @pytest.mark.asyncio
    async def test_empty_password_makes_no_request(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        async with _client(handler) as client:
            assert await check_password_breach("", client) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 429, 500])
    async def test_non_success_fails_open(self, status: int) -> None:
        async with _client(lambda r: httpx.Response(status)) as client:
            assert await check_password_breach(PASSWORD, client) is False

    @pytest.mark.asyncio
    async def test_transport_error_fails_open(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as client:
            assert await check_password_breach(PASSWORD, client) is False

    @pytest.mark.asyncio
    async def test_custom_endpoint(self) -> None:
        paths: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return httpx.Response(200, text="")

        async with _client(handler) as client:
            await check_password_breach(PASSWORD, client, endpoint="/api/breach")
        assert paths == ["/api/breach"]


def test_breach_warning() -> None:
    assert breach_warning(True) == BREACH_WARNING
    assert breach_warning(False) == ""

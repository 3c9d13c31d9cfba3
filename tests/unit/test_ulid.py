"""Unit tests for request-ID generation (vaultr/utils/ulid.py)."""

from __future__ import annotations

import re

from vaultr.utils.ulid import generate_ulid

# Crockford Base32 charset: 0-9 and A-Z, excluding I, L, O, U
ULID_CHARSET = re.compile(r"^[0-9A-HJKMNP-TV-Z]{26}$")


def test_generate_ulid_returns_string() -> None:
    assert isinstance(generate_ulid(), str)


def test_generate_ulid_format() -> None:
    result = generate_ulid()
    assert ULID_CHARSET.match(result), f"invalid ULID {result!r}"


def test_generate_ulid_unique() -> None:
    ids = [generate_ulid() for _ in range(1000)]
    assert len(set(ids)) == len(ids)

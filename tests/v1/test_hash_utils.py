# mypy: ignore-errors
"""Tests for hashing utilities."""

from __future__ import annotations

from kidguard.utils import hash as hash_utils

HEX_DIGEST_LENGTH = 64
EMPTY_INPUT_DIGEST = "af1349b9f5f9a1a6a0404dea36dcc9499bcb25c9adc112b7cc9a93cae41f3262"


def test_blake3_hexdigest() -> None:
    """Ensure hex digests return 64-character strings."""
    hexdigest = hash_utils.blake3_hexdigest(b"hex")
    assert isinstance(hexdigest, str)
    assert len(hexdigest) == HEX_DIGEST_LENGTH


def test_blake3_hexdigest_known_value() -> None:
    assert hash_utils.blake3_hexdigest(b"") == EMPTY_INPUT_DIGEST


def test_hash_fields_respects_boundaries() -> None:
    """Moving characters between fields must change the hash."""
    assert hash_utils.hash_fields("ab", "c") != hash_utils.hash_fields("a", "bc")
    assert hash_utils.hash_fields("ab", "c") == hash_utils.hash_fields("ab", "c")


def test_chain_hash_depends_on_previous_link() -> None:
    audit_hash = hash_utils.hash_fields("pickup", "x")
    first = hash_utils.chain_hash(hash_utils.GENESIS_CHAIN_HASH, audit_hash)
    second = hash_utils.chain_hash(first, audit_hash)
    assert first != second
    assert len(first) == HEX_DIGEST_LENGTH

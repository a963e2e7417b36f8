# src/kidguard/utils/hash.py
"""Hashing helpers for the pickup audit chain."""

from __future__ import annotations

from blake3 import blake3

GENESIS_CHAIN_HASH = "0" * 64
_FIELD_SEPARATOR = b"\x1f"


def blake3_hexdigest(data: bytes) -> str:
    """Return the hexadecimal digest of the supplied data."""
    return blake3(data).hexdigest()


def hash_fields(*fields: str) -> str:
    """Hash an ordered tuple of text fields without ambiguity between boundaries."""
    payload = _FIELD_SEPARATOR.join(field.encode("utf-8") for field in fields)
    return blake3_hexdigest(payload)


def chain_hash(previous_chain_hash: str, audit_hash: str) -> str:
    """Link an entry's content hash onto the previous chain value."""
    return hash_fields("chain", previous_chain_hash, audit_hash)

# src/anonvote/utils/hash.py
"""Hashing helpers used to keep raw visitor ids out of logs."""

from __future__ import annotations

from blake3 import blake3

FINGERPRINT_HEX_CHARS = 12


def blake3_hexdigest(data: bytes) -> str:
    """Return the hexadecimal BLAKE3 digest of the supplied data."""
    return blake3(data).hexdigest()


def visitor_fingerprint(visitor_id: str) -> str:
    """Return a short, stable, non-reversible tag for a visitor id."""
    return blake3_hexdigest(visitor_id.encode("utf-8"))[:FINGERPRINT_HEX_CHARS]

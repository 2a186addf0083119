"""Content digests used for cache invalidation."""

from __future__ import annotations

import hashlib


def content_hash(text: str) -> str:
    """Digest of source text. Collisions are tolerated: caches also compare versions."""
    return hashlib.sha256(text.encode("utf-8", "surrogatepass")).hexdigest()[:16]


def combine_hashes(hashes: list[str]) -> str:
    """Digest of several content hashes, order-sensitive."""
    return content_hash("|".join(hashes))

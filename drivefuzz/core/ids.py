"""
Content identifiers and feed chain hashes.
"""

import hashlib

ZERO_HASH = "0" * 64


def stable_id(*parts: str) -> str:
    """
    Derive a feed identifier from its parts.

    Example:
        stable_id("content", nonce) -> "a3f2..."
    """
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


def hash_block(prev_hash: str, block: bytes) -> str:
    """
    Chain hash of a feed block.

    Hash input: prev_hash + block bytes. The genesis block chains to ZERO_HASH.
    """
    return hashlib.sha256(prev_hash.encode("utf-8") + block).hexdigest()

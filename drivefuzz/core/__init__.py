"""
Core primitives shared by the drive and the fuzzer.

- SeededRandomSource: reproducible bounded-integer draws
- Canonical: deterministic serialization for entries and frames
- IDs: stable identifiers and block chain hashes
- Errors: drive and oracle exception taxonomy
"""

from .rng import SeededRandomSource
from .canonical import canonicalize, canonical_json_bytes, canonical_json_str, decode_canonical
from .ids import ZERO_HASH, stable_id, hash_block
from .errors import (
    DriveError,
    NotFoundError,
    UnexpectedIOError,
    IntegrityError,
    ReplicationError,
    ValidationMismatch,
    AssertionFailure,
    FuzzRunError,
)

__all__ = [
    "SeededRandomSource",
    "canonicalize",
    "canonical_json_bytes",
    "canonical_json_str",
    "decode_canonical",
    "ZERO_HASH",
    "stable_id",
    "hash_block",
    "DriveError",
    "NotFoundError",
    "UnexpectedIOError",
    "IntegrityError",
    "ReplicationError",
    "ValidationMismatch",
    "AssertionFailure",
    "FuzzRunError",
]

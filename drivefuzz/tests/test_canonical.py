"""
Tests for canonical serialization.

Critical: both replication peers must produce identical bytes.
"""

import pytest

from drivefuzz.core.canonical import (
    canonical_json_bytes,
    canonical_json_str,
    canonicalize,
    decode_canonical,
)


def test_key_order_does_not_matter():
    a = {"type": "put", "path": "a/b", "stat": {"size": 1, "mode": 2}}
    b = {"stat": {"mode": 2, "size": 1}, "path": "a/b", "type": "put"}

    assert canonical_json_bytes(a) == canonical_json_bytes(b)


def test_no_whitespace():
    assert canonical_json_str({"b": [1, 2], "a": 1}) == '{"a":1,"b":[1,2]}'


def test_tuples_become_lists():
    assert canonicalize({"x": (1, 2)}) == {"x": [1, 2]}


def test_bytes_survive_round_trip():
    """Binary payloads travel inside frames."""
    frame = {"type": "block", "data": bytes(range(256)), "index": 3}

    assert decode_canonical(canonical_json_bytes(frame)) == frame


def test_unicode_paths_are_stable():
    entry = {"path": "é/Ω/\x01"}

    assert decode_canonical(canonical_json_bytes(entry)) == entry
    assert canonical_json_bytes(entry) == canonical_json_bytes(dict(entry))


def test_decode_rejects_non_objects():
    with pytest.raises(ValueError):
        decode_canonical(b"[1,2,3]")
    with pytest.raises(ValueError):
        decode_canonical(b"not json")

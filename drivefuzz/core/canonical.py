"""
Canonical serialization for metadata entries and wire frames.

Both peers hash and compare what these functions produce, so identical
input must give identical bytes on every platform.
"""

import base64
import json
from typing import Any, Dict


def canonicalize(obj: Any) -> Any:
    """
    Normalize an entry or frame before encoding.

    Rules:
    - mapping keys in sorted order
    - tuples become lists
    - bytes become {"$b64": "..."} so block payloads survive JSON
    """
    if isinstance(obj, dict):
        return {k: canonicalize(obj[k]) for k in sorted(obj.keys())}
    if isinstance(obj, (list, tuple)):
        return [canonicalize(x) for x in obj]
    if isinstance(obj, (bytes, bytearray)):
        return {"$b64": base64.b64encode(bytes(obj)).decode("ascii")}
    return obj


def _restore(obj: Any) -> Any:
    if isinstance(obj, dict):
        if len(obj) == 1 and "$b64" in obj:
            return base64.b64decode(obj["$b64"])
        return {k: _restore(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_restore(x) for x in obj]
    return obj


def canonical_json_bytes(obj: Any) -> bytes:
    """
    Encode obj as compact, key-sorted UTF-8 JSON.

    Paths may hold any code point below 1000, so non-ASCII text is written
    as-is rather than escaped.
    """
    text = json.dumps(canonicalize(obj), sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return text.encode("utf-8")


def canonical_json_str(obj: Any) -> str:
    return canonical_json_bytes(obj).decode("utf-8")


def decode_canonical(data: bytes) -> Dict[str, Any]:
    """
    Inverse of canonical_json_bytes.

    Raises:
        ValueError: If data is not UTF-8 JSON holding an object
    """
    obj = json.loads(data.decode("utf-8"))
    if not isinstance(obj, dict):
        raise ValueError("canonical payload must be a JSON object")
    return _restore(obj)

"""
Path and content generation.
"""

from typing import Tuple

from ..core.rng import SeededRandomSource
from .shadow import ShadowState

MAX_PATH_DEPTH = 30
MAX_FILE_LENGTH = 1000
CHARACTERS = 1000
MAX_BYTE_VALUE = 10
INVALID_CHARS = frozenset(["/", "\\", "?", "%", "*", ":", "|", '"', "<", ">", ".", " "])


def valid_char(rng: SeededRandomSource) -> str:
    while True:
        char = chr(rng.random_int(CHARACTERS))
        if char not in INVALID_CHARS and not char.isspace():
            return char


def generate_path(rng: SeededRandomSource, shadow: ShadowState) -> str:
    """Draw 1-30 single-character segments until the path is unclaimed."""
    while True:
        depth = max(rng.random_int(MAX_PATH_DEPTH), 1)
        path = "/".join(valid_char(rng) for _ in range(depth))
        if not shadow.claims(path):
            return path


def generate_content(rng: SeededRandomSource) -> bytes:
    # Low-entropy bytes in [0, 10)
    length = rng.random_int(MAX_FILE_LENGTH - 1)
    return bytes(rng.random_int(MAX_BYTE_VALUE - 1) for _ in range(length))


def generate_file(rng: SeededRandomSource, shadow: ShadowState) -> Tuple[str, bytes]:
    path = generate_path(rng, shadow)
    return path, generate_content(rng)

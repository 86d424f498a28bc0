"""
Tests for path and content generation.
"""

from drivefuzz.core.rng import SeededRandomSource
from drivefuzz.fuzz.names import (
    INVALID_CHARS,
    MAX_BYTE_VALUE,
    MAX_FILE_LENGTH,
    MAX_PATH_DEPTH,
    generate_content,
    generate_file,
    generate_path,
)
from drivefuzz.fuzz.shadow import DirectoryRecord, ShadowState


def test_paths_have_valid_single_char_segments():
    rng = SeededRandomSource("paths")
    shadow = ShadowState()

    for _ in range(300):
        segments = generate_path(rng, shadow).split("/")
        assert 1 <= len(segments) <= MAX_PATH_DEPTH
        for segment in segments:
            assert len(segment) == 1
            assert segment not in INVALID_CHARS
            assert not segment.isspace()


def test_paths_reach_full_depth_range():
    rng = SeededRandomSource("depths")
    depths = {len(generate_path(rng, ShadowState()).split("/")) for _ in range(2000)}

    assert 1 in depths
    assert MAX_PATH_DEPTH in depths


def test_claimed_paths_are_regenerated():
    """A path already tracked (file or directory) is never returned."""
    first = generate_path(SeededRandomSource("claimed"), ShadowState())

    as_file = ShadowState()
    as_file.record_write(first, b"")
    assert generate_path(SeededRandomSource("claimed"), as_file) != first

    as_dir = ShadowState()
    as_dir.record_directory(DirectoryRecord(first, 0, 0))
    assert generate_path(SeededRandomSource("claimed"), as_dir) != first


def test_content_ranges():
    rng = SeededRandomSource("content")

    for _ in range(200):
        content = generate_content(rng)
        assert len(content) < MAX_FILE_LENGTH
        assert all(b < MAX_BYTE_VALUE for b in content)


def test_generation_is_deterministic():
    a = [generate_file(SeededRandomSource("files"), ShadowState()) for _ in range(3)]
    b = [generate_file(SeededRandomSource("files"), ShadowState()) for _ in range(3)]

    assert a == b

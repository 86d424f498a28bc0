"""
Tests for the validation oracle.

Critical: every kind of disagreement between drive and shadow state must
be reported, never silently accepted.
"""

import pytest

from drivefuzz.core.errors import AssertionFailure, NotFoundError, ValidationMismatch
from drivefuzz.drive.memory import MemoryDrive
from drivefuzz.fuzz.oracle import ValidationOracle
from drivefuzz.fuzz.shadow import DirectoryRecord, ShadowState


class CorruptingDrive(MemoryDrive):
    """Returns every file with its first byte flipped."""

    async def read_file(self, path):
        data = await super().read_file(path)
        if not data:
            return data
        return bytes([data[0] ^ 0xFF]) + data[1:]


async def _populated(drive=None):
    drive = drive or MemoryDrive()
    await drive.ready()
    shadow = ShadowState()
    for path, content in (("a/x", b"\x01\x02\x03"), ("a/y/z", b"\x04"), ("b", b"")):
        await drive.write_file(path, content)
        shadow.record_write(path, content)
    record = DirectoryRecord("a", drive.content_length, drive.content_byte_length)
    await drive.mkdir("a")
    shadow.record_directory(record)
    return drive, shadow


@pytest.mark.asyncio
async def test_consistent_drive_passes_sweep():
    drive, shadow = await _populated()
    report = await ValidationOracle(shadow, drive).sweep()

    assert report.files == 3
    assert report.directories == 1
    assert report.listings == 1
    assert len(report.digest) == 64


@pytest.mark.asyncio
async def test_sweep_is_idempotent():
    """Validating twice without mutations yields the same result."""
    drive, shadow = await _populated()
    oracle = ValidationOracle(shadow, drive)

    assert await oracle.sweep() == await oracle.sweep()


@pytest.mark.asyncio
async def test_digest_tracks_content():
    drive, shadow = await _populated()
    oracle = ValidationOracle(shadow, drive)
    before = await oracle.sweep()

    await drive.write_file("b", b"\x09")
    shadow.record_write("b", b"\x09")

    assert (await oracle.sweep()).digest != before.digest


@pytest.mark.asyncio
async def test_corrupted_content_detected():
    drive, shadow = await _populated(CorruptingDrive())

    with pytest.raises(AssertionFailure) as exc:
        await ValidationOracle(shadow, drive).sweep()
    assert exc.value.path == "a/x"
    assert exc.value.expected == b"\x01\x02\x03"


@pytest.mark.asyncio
async def test_missing_file_detected():
    drive, shadow = await _populated()
    shadow.record_write("ghost", b"boo")

    with pytest.raises(NotFoundError):
        await ValidationOracle(shadow, drive).sweep()


@pytest.mark.asyncio
async def test_wrong_directory_offsets_detected():
    drive, shadow = await _populated()
    shadow.directories.set("a", DirectoryRecord("a", 0, 0))

    with pytest.raises(AssertionFailure) as exc:
        await ValidationOracle(shadow, drive).sweep()
    assert exc.value.expected == (0, 0)
    assert exc.value.actual == (2, 4)


@pytest.mark.asyncio
async def test_inline_directory_check_raises_mismatch():
    drive, shadow = await _populated()
    oracle = ValidationOracle(shadow, drive)

    with pytest.raises(ValidationMismatch) as exc:
        await oracle.check_directory(drive, DirectoryRecord("a", 1, 1))
    assert not isinstance(exc.value, AssertionFailure)
    with pytest.raises(ValidationMismatch):
        await oracle.check_directory(drive, DirectoryRecord("b", 0, 0))


@pytest.mark.asyncio
async def test_untracked_entry_in_listing_detected():
    drive, shadow = await _populated()
    await drive.write_file("a/stray", b"")

    with pytest.raises(AssertionFailure) as exc:
        await ValidationOracle(shadow, drive).sweep()
    assert exc.value.actual == ["stray"]


@pytest.mark.asyncio
async def test_listing_check_can_be_disabled():
    drive, shadow = await _populated()
    await drive.write_file("a/stray", b"")

    report = await ValidationOracle(shadow, drive, check_listings=False).sweep()
    assert report.listings == 0


@pytest.mark.asyncio
async def test_missing_listing_entry_detected():
    drive, shadow = await _populated()
    shadow.record_write("a/absent", b"")

    with pytest.raises(AssertionFailure) as exc:
        await ValidationOracle(shadow, drive).validate_listing("a")
    assert exc.value.expected == ["absent"]


@pytest.mark.asyncio
async def test_size_check():
    drive, shadow = await _populated()
    oracle = ValidationOracle(shadow, drive)

    assert (await oracle.check_size(drive, "a/x", 3)).size == 3
    with pytest.raises(ValidationMismatch):
        await oracle.check_size(drive, "a/x", 4)
    with pytest.raises(ValidationMismatch):
        await oracle.check_size(drive, "a", 0)


def test_end_of_stream_law():
    """A zero-byte read before the end of content is a violation."""
    oracle = ValidationOracle(ShadowState(), MemoryDrive())

    oracle.check_end_of_stream("p", 3, b"abc")
    oracle.check_end_of_stream("p", 10, b"abc")
    with pytest.raises(ValidationMismatch):
        oracle.check_end_of_stream("p", 2, b"abc")


def test_byte_comparison():
    oracle = ValidationOracle(ShadowState(), MemoryDrive())

    oracle.check_bytes("p", "read stream", b"abc", b"abc")
    with pytest.raises(ValidationMismatch) as exc:
        oracle.check_bytes("p", "read stream", b"abc", b"abd")
    assert "read stream" in str(exc.value)

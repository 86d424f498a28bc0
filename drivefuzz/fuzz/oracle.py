"""
Validation oracle: proves the drive agrees with the shadow state.

Inline checks run inside operations and raise ValidationMismatch. The full
sweep reads everything the shadow state tracks back from the validation
drive and raises AssertionFailure on the first disagreement.
"""

import hashlib
from dataclasses import dataclass
from typing import Dict, List, Type

from ..core.canonical import canonical_json_bytes
from ..core.errors import AssertionFailure, ValidationMismatch
from ..drive.base import Drive, Stat
from .shadow import DirectoryRecord, FileRecord, ShadowState


@dataclass(frozen=True)
class ValidationReport:
    """
    Outcome of a full sweep.

    Fields:
        files: Files read back and compared
        directories: Directories stat-ed and compared
        listings: Directory listings compared
        digest: SHA-256 over everything observed on the drive
    """
    files: int
    directories: int
    listings: int
    digest: str


class ValidationOracle:
    """
    Compares shadow state to a drive.

    Args:
        shadow: Model of expected state
        drive: Drive the full sweep reads from (primary or replica)
        check_listings: Also compare directory listings in the sweep
    """

    def __init__(self, shadow: ShadowState, drive: Drive, check_listings: bool = True) -> None:
        self.shadow = shadow
        self.drive = drive
        self.check_listings = check_listings

    # Inline checks

    async def check_size(
        self,
        drive: Drive,
        path: str,
        expected_size: int,
        failure: Type[ValidationMismatch] = ValidationMismatch,
    ) -> Stat:
        st = await drive.stat(path)
        if not st.is_file():
            raise failure(path, "expected a regular file", "file", oct(st.mode))
        if st.size != expected_size:
            raise failure(path, "incorrect content length", expected_size, st.size)
        return st

    async def check_directory(
        self,
        drive: Drive,
        record: DirectoryRecord,
        failure: Type[ValidationMismatch] = ValidationMismatch,
    ) -> Stat:
        st = await drive.stat(record.path)
        if not st.is_directory():
            raise failure(record.path, "stat does not have directory mode", "directory", oct(st.mode))
        expected = (record.offset, record.byte_offset)
        actual = (st.offset, st.byte_offset)
        if actual != expected:
            raise failure(record.path, "invalid directory offsets", expected, actual)
        return st

    def check_bytes(self, path: str, what: str, expected: bytes, actual: bytes) -> None:
        if actual != expected:
            raise ValidationMismatch(path, f"{what} does not match content slice", expected, actual)

    def check_end_of_stream(self, path: str, position: int, content: bytes) -> None:
        """A zero-byte read is only legal at or beyond the end of content."""
        if position < len(content):
            raise ValidationMismatch(
                path, "end-of-stream before end of content", f"position >= {len(content)}", position
            )

    # Full sweep

    async def validate_file(self, record: FileRecord) -> bytes:
        data = await self.drive.read_file(record.path)
        if data != record.content:
            raise AssertionFailure(record.path, "read data does not match written content", record.content, data)
        return data

    async def validate_directory(self, record: DirectoryRecord) -> Stat:
        return await self.check_directory(self.drive, record, failure=AssertionFailure)

    async def validate_listing(self, path: str) -> List[str]:
        actual = set(await self.drive.readdir(path))
        expected = self.shadow.expected_children(path)
        missing = sorted(expected - actual)
        extra = sorted(actual - expected)
        if missing:
            raise AssertionFailure(path, "directory does not contain expected entries", missing, [])
        if extra:
            raise AssertionFailure(path, "directory contains unexpected entries", [], extra)
        return sorted(actual)

    async def sweep(self) -> ValidationReport:
        observed: Dict[str, Dict[str, object]] = {"files": {}, "directories": {}, "listings": {}}
        listings = 0

        for path, record in self.shadow.files.items():
            data = await self.validate_file(record)
            observed["files"][path] = hashlib.sha256(data).hexdigest()

        for path, record in self.shadow.directories.items():
            st = await self.validate_directory(record)
            observed["directories"][path] = [st.offset, st.byte_offset]
            if self.check_listings:
                observed["listings"][path] = await self.validate_listing(path)
                listings += 1

        return ValidationReport(
            files=len(observed["files"]),
            directories=len(observed["directories"]),
            listings=listings,
            digest=hashlib.sha256(canonical_json_bytes(observed)).hexdigest(),
        )

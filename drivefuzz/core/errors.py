"""
Exception types for the drive fuzzer.

Drive-side failures derive from DriveError and carry an errno-style code.
Oracle failures derive from ValidationMismatch.
"""

from typing import Any, List, Optional


class DriveError(Exception):
    """Raised by a drive when an operation fails."""

    code = "EIO"

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class NotFoundError(DriveError):
    """Raised by unlink/stat/open on an absent path."""

    code = "ENOENT"


class UnexpectedIOError(DriveError):
    """Any other drive-reported failure."""
    pass


class IntegrityError(UnexpectedIOError):
    """Raised when a replicated block breaks the hash chain."""

    code = "EINTEGRITY"


class ReplicationError(UnexpectedIOError):
    """Raised on a replication protocol violation."""

    code = "EPROTO"


class ValidationMismatch(Exception):
    """
    Raised when the drive disagrees with the shadow model.

    Fields:
        path: Path under validation
        expected: Value the shadow model predicts
        actual: Value the drive reported
    """

    def __init__(self, path: str, message: str, expected: Any = None, actual: Any = None) -> None:
        super().__init__(f"{path!r}: {message} (expected={_short(expected)}, actual={_short(actual)})")
        self.path = path
        self.expected = expected
        self.actual = actual


class AssertionFailure(ValidationMismatch):
    """Raised by the oracle's full validation sweep."""
    pass


class FuzzRunError(Exception):
    """
    Raised when a fuzz run aborts.

    The original failure is available as __cause__. The run log holds every
    operation result recorded before the failure.
    """

    def __init__(self, seed: str, iteration: Optional[int], operation: Optional[str], log: List[Any]) -> None:
        where = f"iteration {iteration} ({operation})" if iteration is not None else "final validation"
        super().__init__(f"fuzz run with seed {seed!r} failed at {where}")
        self.seed = seed
        self.iteration = iteration
        self.operation = operation
        self.log = log


def _short(value: Any, limit: int = 64) -> str:
    if isinstance(value, (bytes, bytearray)):
        head = bytes(value[:limit]).hex()
        suffix = "..." if len(value) > limit else ""
        return f"<{len(value)} bytes {head}{suffix}>"
    return repr(value)

"""
Operation registry: closed set of operation kinds with selection weights.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..core.rng import SeededRandomSource


class OperationKind(str, Enum):
    WRITE_FILE = "write"
    DELETE_FILE = "delete"
    OVERWRITE_FILE = "overwrite"
    STATEFUL_FD_READ = "stateful-fd-read"
    STAT_FILE = "stat-file"
    STAT_DIRECTORY = "stat-directory"
    DELETE_INVALID_FILE = "delete-invalid"
    RANDOM_READ_STREAM = "read-stream"
    STATELESS_FD_READ = "stateless-fd-read"
    OPEN_FD = "open-fd"
    WRITE_AND_MKDIR = "write-and-mkdir"


@dataclass(frozen=True)
class OperationResult:
    """
    Run log entry. Kept for diagnosis only; the oracle never reads it.

    Fields:
        type: Operation kind value
        path: Path the operation targeted (None for descriptor-only results)
        payload: Operation-specific details (sizes, offsets, fds)
    """
    type: str
    path: Optional[str]
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "path": self.path, "payload": dict(self.payload)}


@dataclass(frozen=True)
class OperationRegistry:
    """
    Static weight table.

    Selection walks the cumulative weights in table order, so it is a pure
    function of the draw.

    Raises:
        ValueError: On an empty table, a non-positive weight or a repeated kind
    """
    weights: Tuple[Tuple[OperationKind, int], ...]

    def __post_init__(self) -> None:
        if not self.weights:
            raise ValueError("operation registry is empty")
        seen = set()
        for kind, weight in self.weights:
            if not isinstance(weight, int) or isinstance(weight, bool) or weight <= 0:
                raise ValueError(f"weight for {kind.value} must be a positive integer, got {weight!r}")
            if kind in seen:
                raise ValueError(f"{kind.value} registered twice")
            seen.add(kind)

    @property
    def total_weight(self) -> int:
        return sum(weight for _, weight in self.weights)

    @property
    def kinds(self) -> Tuple[OperationKind, ...]:
        return tuple(kind for kind, _ in self.weights)

    def select(self, draw: int) -> OperationKind:
        """Map a draw in [0, total_weight) to its operation."""
        if not 0 <= draw < self.total_weight:
            raise ValueError(f"draw {draw} outside [0, {self.total_weight})")
        upper = 0
        for kind, weight in self.weights:
            upper += weight
            if draw < upper:
                return kind
        raise AssertionError("unreachable")

    def draw(self, rng: SeededRandomSource) -> OperationKind:
        return self.select(rng.random_int(self.total_weight - 1))


DEFAULT_REGISTRY = OperationRegistry(
    weights=(
        (OperationKind.WRITE_FILE, 10),
        (OperationKind.DELETE_FILE, 5),
        (OperationKind.OVERWRITE_FILE, 5),
        (OperationKind.STATEFUL_FD_READ, 5),
        (OperationKind.STAT_FILE, 3),
        (OperationKind.STAT_DIRECTORY, 3),
        (OperationKind.DELETE_INVALID_FILE, 2),
        (OperationKind.RANDOM_READ_STREAM, 2),
        (OperationKind.STATELESS_FD_READ, 2),
        (OperationKind.OPEN_FD, 1),
        (OperationKind.WRITE_AND_MKDIR, 1),
    )
)

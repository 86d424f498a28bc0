"""
Fuzzing engine for drives.

- OperationRegistry: weighted, closed set of operation kinds
- ShadowState: model of expected drive content
- ValidationOracle: inline checks and full sweeps
- DriveFuzzer: seeded run loop
- ReplicationHarness: validates through a live replica
"""

from .operations import DEFAULT_REGISTRY, OperationKind, OperationRegistry, OperationResult
from .shadow import DirectoryRecord, FileDescriptor, FileRecord, ShadowState, TrackedCollection
from .oracle import ValidationOracle, ValidationReport
from .handlers import HANDLERS, FuzzContext
from .replication import Channel, ReplicationHarness
from .engine import DriveFuzzer, run_scenario

__all__ = [
    "DEFAULT_REGISTRY",
    "OperationKind",
    "OperationRegistry",
    "OperationResult",
    "DirectoryRecord",
    "FileDescriptor",
    "FileRecord",
    "ShadowState",
    "TrackedCollection",
    "ValidationOracle",
    "ValidationReport",
    "HANDLERS",
    "FuzzContext",
    "Channel",
    "ReplicationHarness",
    "DriveFuzzer",
    "run_scenario",
]

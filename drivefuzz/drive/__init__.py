"""
Drive collaborator: the interface the fuzzer consumes and a reference
in-memory implementation with live replication.
"""

from .base import DIRECTORY_MODE, FILE_MODE, Drive, Stat, WriteStream, collect
from .feed import Feed, FeedBlock
from .memory import BLOCK_SIZE, MemoryDrive, MemoryWriteStream
from .protocol import ReplicationStream

__all__ = [
    "Drive",
    "Stat",
    "WriteStream",
    "collect",
    "FILE_MODE",
    "DIRECTORY_MODE",
    "Feed",
    "FeedBlock",
    "MemoryDrive",
    "MemoryWriteStream",
    "BLOCK_SIZE",
    "ReplicationStream",
]

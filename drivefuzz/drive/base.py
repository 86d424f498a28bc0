"""
Drive abstract interface.

Defines the contract the fuzzer consumes. Every I/O operation is a
coroutine; the fuzzer never relies on a drive's internal concurrency.
"""

import stat as stat_module
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

FILE_MODE = stat_module.S_IFREG | 0o644
DIRECTORY_MODE = stat_module.S_IFDIR | 0o755


@dataclass(frozen=True)
class Stat:
    """
    Metadata of a drive entry.

    Fields:
        mode: POSIX-style mode bits (file or directory)
        size: Content length in bytes (0 for directories)
        blocks: Number of content feed blocks holding the content
        offset: Content feed block index of the first block
        byte_offset: Content feed byte position of the first block
    """
    mode: int
    size: int = 0
    blocks: int = 0
    offset: int = 0
    byte_offset: int = 0

    def is_directory(self) -> bool:
        return stat_module.S_ISDIR(self.mode)

    def is_file(self) -> bool:
        return stat_module.S_ISREG(self.mode)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "size": self.size,
            "blocks": self.blocks,
            "offset": self.offset,
            "byte_offset": self.byte_offset,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Stat":
        return Stat(
            mode=int(data["mode"]),
            size=int(data.get("size", 0)),
            blocks=int(data.get("blocks", 0)),
            offset=int(data.get("offset", 0)),
            byte_offset=int(data.get("byte_offset", 0)),
        )


class WriteStream(ABC):
    """
    Sink for a single file write.

    Chunks are buffered by write(); end() commits the full content and
    raises if the drive rejects it.
    """

    @abstractmethod
    def write(self, chunk: bytes) -> None:
        ...

    @abstractmethod
    async def end(self, chunk: Optional[bytes] = None) -> None:
        ...


class Drive(ABC):
    """
    Hierarchical, versioned, content-addressed file storage.

    All implementations must guarantee:
    - last write wins per path
    - unlink/stat/open of an absent path raise NotFoundError
    - descriptors read the content that existed when they were opened
    - read() returns 0 only at or beyond the end of the content
    """

    @property
    @abstractmethod
    def key(self) -> str:
        """Content-addressed root identifier."""
        ...

    @property
    @abstractmethod
    def writable(self) -> bool:
        ...

    @property
    @abstractmethod
    def content_length(self) -> int:
        """Number of blocks in the content feed."""
        ...

    @property
    @abstractmethod
    def content_byte_length(self) -> int:
        """Number of bytes in the content feed."""
        ...

    @abstractmethod
    async def ready(self) -> None:
        ...

    @abstractmethod
    async def content_ready(self) -> None:
        ...

    @abstractmethod
    async def write_file(self, path: str, data: bytes) -> None:
        ...

    @abstractmethod
    async def read_file(self, path: str) -> bytes:
        ...

    @abstractmethod
    async def unlink(self, path: str) -> None:
        ...

    @abstractmethod
    async def stat(self, path: str) -> Stat:
        ...

    @abstractmethod
    async def mkdir(self, path: str) -> None:
        ...

    @abstractmethod
    async def readdir(self, path: str) -> List[str]:
        ...

    @abstractmethod
    async def open(self, path: str, mode: str = "r") -> int:
        ...

    @abstractmethod
    async def read(
        self,
        fd: int,
        buffer: bytearray,
        offset: int,
        length: int,
        position: Optional[int],
    ) -> int:
        """
        Read up to length bytes into buffer[offset:].

        Args:
            position: File position to read from, or None to continue from
                the descriptor's cursor. The cursor always ends up after
                the bytes read.

        Returns:
            Bytes actually read; 0 signals end-of-stream
        """
        ...

    @abstractmethod
    async def close(self, fd: int) -> None:
        ...

    @abstractmethod
    def create_write_stream(self, path: str) -> WriteStream:
        ...

    @abstractmethod
    def create_read_stream(
        self, path: str, start: int = 0, length: Optional[int] = None
    ) -> AsyncIterator[bytes]:
        ...

    @abstractmethod
    def replicate(self, live: bool = True) -> Any:
        """Return a duplex replication stream endpoint."""
        ...

    def verify(self) -> None:
        """
        Recheck the integrity of locally held data.

        Drives without a local hash chain have nothing to recheck.

        Raises:
            IntegrityError: If stored data no longer matches its hashes
        """
        return None


async def collect(stream: AsyncIterator[bytes]) -> bytes:
    """Drain a read stream into one buffer."""
    chunks = []
    async for chunk in stream:
        chunks.append(chunk)
    return chunks[0] if len(chunks) == 1 else b"".join(chunks)

"""
In-memory reference drive.

Storage is two append-only feeds:
- metadata: canonical JSON entries (header, put, del)
- content: file bytes split into blocks of at most BLOCK_SIZE

The path index is rebuilt by applying metadata entries in order, the same
way on the owner and on a replica, so a replica knows only what arrived
over the wire. The drive key is the chain hash of the header block.
"""

import asyncio
import logging
import secrets
from dataclasses import dataclass
from typing import AsyncIterator, Dict, List, Optional, Tuple

from ..core.canonical import canonical_json_bytes, decode_canonical
from ..core.errors import IntegrityError, NotFoundError, ReplicationError, UnexpectedIOError
from ..core.ids import ZERO_HASH, hash_block, stable_id
from .base import DIRECTORY_MODE, FILE_MODE, Drive, Stat, WriteStream
from .feed import Feed
from .protocol import ReplicationStream

logger = logging.getLogger(__name__)

BLOCK_SIZE = 64 * 1024
READ_CHUNK_SIZE = 256
FIRST_FD = 20


@dataclass
class _OpenFile:
    path: str
    stat: Stat
    position: int = 0


class MemoryWriteStream(WriteStream):
    """Buffers chunks and commits them as one write on end()."""

    def __init__(self, drive: "MemoryDrive", path: str) -> None:
        self._drive = drive
        self._path = path
        self._chunks: List[bytes] = []
        self._ended = False

    def write(self, chunk: bytes) -> None:
        if self._ended:
            raise UnexpectedIOError(f"write after end on {self._path!r}", code="EINVAL")
        self._chunks.append(bytes(chunk))

    async def end(self, chunk: Optional[bytes] = None) -> None:
        if chunk:
            self.write(chunk)
        self._ended = True
        await self._drive.write_file(self._path, b"".join(self._chunks))


class MemoryDrive(Drive):
    """
    Reference drive honouring the Drive contract.

    Usage:
        drive = MemoryDrive()
        await drive.ready()
        replica = MemoryDrive(key=drive.key)

    Args:
        key: Root identifier of an existing drive; None creates a new,
            writable drive
        nonce: Header nonce for a new drive (random if omitted)
    """

    def __init__(self, key: Optional[str] = None, nonce: Optional[str] = None) -> None:
        self._owner = key is None
        self.metadata = Feed("metadata", writable=self._owner)
        self.content = Feed("content", writable=self._owner)
        self._index: Dict[str, Stat] = {}
        self._fds: Dict[int, _OpenFile] = {}
        self._next_fd = FIRST_FD
        self._streams: List[ReplicationStream] = []
        self._write_lock = asyncio.Lock()
        self._content_ready = asyncio.Event()
        self._content_key: Optional[str] = None

        if self._owner:
            nonce = nonce or secrets.token_hex(16)
            self._header: Optional[bytes] = canonical_json_bytes(
                {"type": "header", "content_key": stable_id("content", nonce), "nonce": nonce}
            )
            self._key = hash_block(ZERO_HASH, self._header)
        else:
            self._header = None
            self._key = key

    # Identity and counters

    @property
    def key(self) -> str:
        return self._key

    @property
    def writable(self) -> bool:
        return self._owner

    @property
    def content_key(self) -> Optional[str]:
        return self._content_key

    @property
    def content_length(self) -> int:
        return self.content.length

    @property
    def content_byte_length(self) -> int:
        return self.content.byte_length

    @property
    def version(self) -> int:
        return self.metadata.length

    def feeds(self) -> Tuple[Feed, Feed]:
        """Feeds in upload order: content before the entries that reference it."""
        return self.content, self.metadata

    # Readiness

    async def ready(self) -> None:
        if self._owner and self.metadata.length == 0:
            await self._append_entry(self._header)

    async def content_ready(self) -> None:
        await self._content_ready.wait()

    # Mutations

    async def write_file(self, path: str, data: bytes) -> None:
        path = self._check_mutation(path)
        existing = self._index.get(path)
        if existing is not None and existing.is_directory():
            raise UnexpectedIOError(f"{path!r} is a directory", code="EISDIR")

        data = bytes(data)
        blocks = [data[i : i + BLOCK_SIZE] for i in range(0, len(data), BLOCK_SIZE)]
        async with self._write_lock:
            offset, byte_offset = await self.content.append(blocks)
            st = Stat(
                mode=FILE_MODE,
                size=len(data),
                blocks=len(blocks),
                offset=offset,
                byte_offset=byte_offset,
            )
            await self._append_entry({"type": "put", "path": path, "stat": st.to_dict()})

    async def unlink(self, path: str) -> None:
        path = self._check_mutation(path)
        st = self._index.get(path)
        if st is None:
            raise NotFoundError(f"no such file: {path!r}")
        if st.is_directory():
            raise UnexpectedIOError(f"{path!r} is a directory", code="EISDIR")
        await self._append_entry({"type": "del", "path": path})

    async def mkdir(self, path: str) -> None:
        path = self._check_mutation(path)
        if path in self._index:
            raise UnexpectedIOError(f"{path!r} already exists", code="EEXIST")
        # Counters are read before the entry is appended; concurrent content
        # appends that commit later do not move them.
        st = Stat(
            mode=DIRECTORY_MODE,
            offset=self.content.length,
            byte_offset=self.content.byte_length,
        )
        await self._append_entry({"type": "put", "path": path, "stat": st.to_dict()})

    def create_write_stream(self, path: str) -> MemoryWriteStream:
        return MemoryWriteStream(self, path)

    # Reads

    async def stat(self, path: str) -> Stat:
        await self.update()
        return self._lookup(path)

    async def read_file(self, path: str) -> bytes:
        await self.update()
        st = self._lookup_file(path)
        return self._read_range(st, 0, st.size)

    async def readdir(self, path: str) -> List[str]:
        await self.update()
        path = path.strip("/")
        st = self._index.get(path)
        if st is not None and not st.is_directory():
            raise UnexpectedIOError(f"{path!r} is not a directory", code="ENOTDIR")
        prefix = f"{path}/" if path else ""
        names = {key[len(prefix) :].split("/", 1)[0] for key in self._index if key.startswith(prefix)}
        if not names and st is None and path:
            raise NotFoundError(f"no such directory: {path!r}")
        return sorted(names)

    async def open(self, path: str, mode: str = "r") -> int:
        if mode != "r":
            raise UnexpectedIOError(f"unsupported open mode {mode!r}", code="EINVAL")
        await self.update()
        st = self._lookup_file(path)
        fd = self._next_fd
        self._next_fd += 1
        self._fds[fd] = _OpenFile(path=path.strip("/"), stat=st)
        return fd

    async def read(
        self,
        fd: int,
        buffer: bytearray,
        offset: int,
        length: int,
        position: Optional[int],
    ) -> int:
        open_file = self._fds.get(fd)
        if open_file is None:
            raise UnexpectedIOError(f"bad file descriptor {fd}", code="EBADF")
        if offset < 0 or length < 0 or (position is not None and position < 0):
            raise UnexpectedIOError("negative read argument", code="EINVAL")
        await self.update()

        if position is not None:
            open_file.position = position
        available = max(0, open_file.stat.size - open_file.position)
        n = max(0, min(length, available, len(buffer) - offset))
        if n:
            buffer[offset : offset + n] = self._read_range(open_file.stat, open_file.position, n)
            open_file.position += n
        return n

    async def close(self, fd: int) -> None:
        if self._fds.pop(fd, None) is None:
            raise UnexpectedIOError(f"bad file descriptor {fd}", code="EBADF")

    def create_read_stream(
        self, path: str, start: int = 0, length: Optional[int] = None
    ) -> AsyncIterator[bytes]:
        if start < 0 or (length is not None and length < 0):
            raise UnexpectedIOError("negative read stream window", code="EINVAL")
        return self._read_stream(path, start, length)

    async def _read_stream(self, path: str, start: int, length: Optional[int]) -> AsyncIterator[bytes]:
        await self.update()
        st = self._lookup_file(path)
        end = st.size if length is None else min(st.size, start + length)
        pos = start
        while pos < end:
            n = min(READ_CHUNK_SIZE, end - pos)
            yield self._read_range(st, pos, n)
            pos += n

    # Replication

    def replicate(self, live: bool = True) -> ReplicationStream:
        stream = ReplicationStream(self, live=live)
        self._streams.append(stream)
        return stream

    def detach(self, stream: ReplicationStream) -> None:
        if stream in self._streams:
            self._streams.remove(stream)

    async def update(self) -> None:
        """
        Catch up with every live writable peer.

        Owners are always current. Replicas run one sync round trip per
        stream, which returns after all blocks pushed before it are applied.
        """
        if self._owner:
            return
        for stream in list(self._streams):
            if stream.live and stream.remote_writable:
                await stream.sync()

    def receive_block(self, feed_name: str, index: int, data: bytes, prev_hash: str, block_hash: str) -> None:
        """
        Accept a block pushed by the owner.

        Raises:
            ReplicationError: For an unknown feed
            IntegrityError: If the block breaks the chain or the root key
        """
        feed = {"metadata": self.metadata, "content": self.content}.get(feed_name)
        if feed is None:
            raise ReplicationError(f"unknown feed {feed_name!r}")
        if feed is self.metadata and index == 0 and block_hash != self._key:
            raise IntegrityError(f"root block {block_hash[:16]} does not match key {self._key[:16]}")
        if feed.put(index, data, prev_hash, block_hash) and feed is self.metadata:
            self._apply(data)

    def verify(self) -> None:
        """Recompute both feed chains and the root key."""
        for feed in (self.metadata, self.content):
            broken = feed.verify()
            if broken is not None:
                raise IntegrityError(f"{feed.name}[{broken}] does not match its chain hash")
        if self.metadata.length and self.metadata.block(0).hash != self._key:
            raise IntegrityError(f"root block does not match key {self._key[:16]}")

    # Internals

    async def _append_entry(self, entry) -> None:
        data = entry if isinstance(entry, bytes) else canonical_json_bytes(entry)
        await self.metadata.append([data])
        self._apply(data)

    def _apply(self, data: bytes) -> None:
        entry = decode_canonical(data)
        kind = entry.get("type")
        if kind == "header":
            self._content_key = entry["content_key"]
            self._content_ready.set()
        elif kind == "put":
            self._index[entry["path"]] = Stat.from_dict(entry["stat"])
        elif kind == "del":
            self._index.pop(entry["path"], None)
        else:
            raise IntegrityError(f"unknown metadata entry {kind!r}")

    def _check_mutation(self, path: str) -> str:
        if not self._owner:
            raise UnexpectedIOError("drive is read-only on this peer", code="EPERM")
        return self._normalize(path)

    def _normalize(self, path: str) -> str:
        normalized = path.strip("/") if isinstance(path, str) else ""
        if not normalized:
            raise UnexpectedIOError(f"invalid path {path!r}", code="EINVAL")
        return normalized

    def _lookup(self, path: str) -> Stat:
        st = self._index.get(self._normalize(path))
        if st is None:
            raise NotFoundError(f"no such file or directory: {path!r}")
        return st

    def _lookup_file(self, path: str) -> Stat:
        st = self._lookup(path)
        if st.is_directory():
            raise UnexpectedIOError(f"{path!r} is a directory", code="EISDIR")
        return st

    def _read_range(self, st: Stat, start: int, n: int) -> bytes:
        out = bytearray()
        index = st.offset + start // BLOCK_SIZE
        skip = start % BLOCK_SIZE
        while len(out) < n:
            block = self.content.get(index)
            out += block[skip : skip + n - len(out)]
            skip = 0
            index += 1
        return bytes(out)

    def __repr__(self) -> str:
        role = "owner" if self._owner else "replica"
        return f"MemoryDrive({role}, key={self._key[:16]}, version={self.version})"

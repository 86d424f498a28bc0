"""
Append-only, hash-chained block feed.

Each block is chained to its predecessor: hash = sha256(prev_hash + block),
with the genesis block chained to ZERO_HASH. The owner appends; replicas
accept blocks only through put(), which verifies the chain.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Tuple

from ..core.errors import IntegrityError, UnexpectedIOError
from ..core.ids import ZERO_HASH, hash_block


@dataclass(frozen=True)
class FeedBlock:
    """
    One chained block.

    Fields:
        index: Position in the feed
        prev_hash: Hash of the previous block (ZERO_HASH for genesis)
        hash: Chain hash of this block
        data: Block payload
    """
    index: int
    prev_hash: str
    hash: str
    data: bytes


Listener = Callable[["Feed", FeedBlock], None]


class Feed:
    """
    In-memory append-only feed.

    Guarantees:
    - Append-only (no mutations)
    - Sequential ordering (blocks indexed from 0)
    - Hash chain integrity, also for blocks received from a peer
    """

    def __init__(self, name: str, writable: bool = True) -> None:
        self.name = name
        self.writable = writable
        self.byte_length = 0
        self._blocks: List[bytes] = []
        self._hashes: List[str] = []
        self._listeners: List[Listener] = []

    @property
    def length(self) -> int:
        return len(self._blocks)

    @property
    def last_hash(self) -> str:
        return self._hashes[-1] if self._hashes else ZERO_HASH

    async def append(self, blocks: List[bytes]) -> Tuple[int, int]:
        """
        Append blocks contiguously.

        Yields to the loop once before committing, as a storage write would.

        Returns:
            (offset, byte_offset) of the first appended block

        Raises:
            UnexpectedIOError: If this peer does not own the feed
        """
        if not self.writable:
            raise UnexpectedIOError(f"feed {self.name} is not writable", code="EPERM")
        await asyncio.sleep(0)
        offset, byte_offset = self.length, self.byte_length
        for data in blocks:
            self._commit(hash_block(self.last_hash, data), data)
        return offset, byte_offset

    def put(self, index: int, data: bytes, prev_hash: str, block_hash: str) -> bool:
        """
        Accept a block received from a peer.

        Returns:
            True if the block was new, False if it was already held

        Raises:
            IntegrityError: On a gap, a broken link or a bad block hash
        """
        if index < self.length:
            if self._hashes[index] != block_hash:
                raise IntegrityError(f"{self.name}[{index}] conflicts with held block")
            return False
        if index > self.length:
            raise IntegrityError(f"{self.name}[{index}] received with gap at {self.length}")
        if prev_hash != self.last_hash:
            raise IntegrityError(f"{self.name}[{index}] does not link to {self.last_hash[:16]}")
        if hash_block(prev_hash, data) != block_hash:
            raise IntegrityError(f"{self.name}[{index}] hash does not match data")
        self._commit(block_hash, data)
        return True

    def _commit(self, block_hash: str, data: bytes) -> None:
        index = self.length
        prev_hash = self.last_hash
        self._blocks.append(data)
        self._hashes.append(block_hash)
        self.byte_length += len(data)
        block = FeedBlock(index=index, prev_hash=prev_hash, hash=block_hash, data=data)
        for listener in list(self._listeners):
            listener(self, block)

    def get(self, index: int) -> bytes:
        if not 0 <= index < self.length:
            raise UnexpectedIOError(f"{self.name}[{index}] is not available", code="EAGAIN")
        return self._blocks[index]

    def block(self, index: int) -> FeedBlock:
        data = self.get(index)
        prev_hash = self._hashes[index - 1] if index else ZERO_HASH
        return FeedBlock(index=index, prev_hash=prev_hash, hash=self._hashes[index], data=data)

    def blocks(self, start: int = 0) -> Iterator[FeedBlock]:
        for index in range(start, self.length):
            yield self.block(index)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register an append listener; returns the unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def verify(self) -> Optional[int]:
        """
        Recompute the whole chain.

        Returns:
            Index of the first broken block, or None if the chain holds
        """
        prev_hash = ZERO_HASH
        for index, data in enumerate(self._blocks):
            computed = hash_block(prev_hash, data)
            if computed != self._hashes[index]:
                return index
            prev_hash = computed
        return None

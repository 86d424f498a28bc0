"""
Replication wire protocol.

A ReplicationStream is one peer's end of a duplex link. It produces frames
through frames() and consumes the other end's frames through receive().
Frames are canonical JSON objects:

    handshake  {key, writable}                       first frame on every stream
    block      {feed, index, prev_hash, hash, data}  one feed block, pushed by the owner
    sync       {id}                                  round-trip request
    synced     {id}                                  reply; every block pushed before it has been sent
    end        {}                                    non-live stream finished its backfill

The owner backfills every block once the peer's handshake arrives, then
pushes each newly appended block. Frames are delivered in order, so a
synced reply proves every earlier push has been applied.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable, Dict, List, Optional

from ..core.canonical import canonical_json_bytes, decode_canonical
from ..core.errors import ReplicationError
from .feed import Feed, FeedBlock

if TYPE_CHECKING:
    from .memory import MemoryDrive

logger = logging.getLogger(__name__)


class ReplicationStream:
    """
    Duplex replication endpoint bound to one drive.

    Fields:
        live: Keep pushing new blocks after the backfill
        remote_writable: Whether the peer owns the drive (known after handshake)
        frames_sent / frames_received: Counters for diagnostics
    """

    def __init__(self, drive: "MemoryDrive", live: bool = True) -> None:
        self.drive = drive
        self.live = live
        self.remote_key: Optional[str] = None
        self.remote_writable = False
        self.remote_ended = False
        self.closed = False
        self.error: Optional[BaseException] = None
        self.frames_sent = 0
        self.frames_received = 0
        self._outbox: "asyncio.Queue[Optional[bytes]]" = asyncio.Queue()
        self._pending: Dict[int, "asyncio.Future[None]"] = {}
        self._next_sync = 0
        self._unsubscribe: List[Callable[[], None]] = []
        self._send({"type": "handshake", "key": drive.key, "writable": drive.writable})

    async def frames(self) -> AsyncIterator[bytes]:
        """Yield outgoing frames until the stream closes."""
        while True:
            frame = await self._outbox.get()
            if frame is None:
                return
            yield frame

    async def receive(self, frame: bytes) -> None:
        """
        Apply one frame from the peer.

        Raises:
            ReplicationError: On an undecodable frame or protocol violation
            IntegrityError: If a pushed block breaks its feed's hash chain
        """
        if self.closed:
            return
        try:
            message = decode_canonical(frame)
        except ValueError as ex:
            raise ReplicationError(f"undecodable frame: {ex}") from ex
        self.frames_received += 1

        kind = message.get("type")
        if kind == "handshake":
            self._on_handshake(message)
        elif kind == "block":
            self.drive.receive_block(
                message["feed"],
                int(message["index"]),
                message["data"],
                message["prev_hash"],
                message["hash"],
            )
        elif kind == "sync":
            self._send({"type": "synced", "id": message["id"]})
        elif kind == "synced":
            waiter = self._pending.pop(int(message["id"]), None)
            if waiter is not None and not waiter.done():
                waiter.set_result(None)
        elif kind == "end":
            self.remote_ended = True
            self._release_waiters()
        else:
            raise ReplicationError(f"unknown frame type: {kind!r}")

    async def sync(self) -> None:
        """
        Round trip through the peer.

        Returns once every block the peer pushed before answering has been
        applied locally. Ended or closed streams return immediately.
        """
        if self.error is not None:
            raise self.error
        if self.closed or self.remote_ended:
            return
        sync_id = self._next_sync
        self._next_sync += 1
        waiter: "asyncio.Future[None]" = asyncio.get_running_loop().create_future()
        self._pending[sync_id] = waiter
        self._send({"type": "sync", "id": sync_id})
        await waiter

    def destroy(self, error: Optional[BaseException] = None) -> None:
        """Close the stream, failing any pending sync with error."""
        if error is not None and self.error is None:
            self.error = error
        self.close()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe.clear()
        failure = self.error or ReplicationError("replication stream closed")
        for waiter in self._pending.values():
            if not waiter.done():
                waiter.set_exception(failure)
        self._pending.clear()
        self._outbox.put_nowait(None)
        self.drive.detach(self)

    def _send(self, message: Dict[str, Any]) -> None:
        if self.closed:
            return
        self.frames_sent += 1
        self._outbox.put_nowait(canonical_json_bytes(message))

    def _on_handshake(self, message: Dict[str, Any]) -> None:
        if message.get("key") != self.drive.key:
            raise ReplicationError(
                f"peer replicates {str(message.get('key'))[:16]}, expected {self.drive.key[:16]}"
            )
        self.remote_key = message["key"]
        self.remote_writable = bool(message.get("writable"))
        logger.debug("Handshake on %s (peer writable=%s)", self.drive.key[:16], self.remote_writable)

        if self.drive.writable:
            for feed in self.drive.feeds():
                for block in feed.blocks():
                    self._send_block(feed, block)
                if self.live:
                    self._unsubscribe.append(feed.subscribe(self._send_block))
        if not self.live:
            self._send({"type": "end"})
            self._outbox.put_nowait(None)

    def _send_block(self, feed: Feed, block: FeedBlock) -> None:
        self._send(
            {
                "type": "block",
                "feed": feed.name,
                "index": block.index,
                "prev_hash": block.prev_hash,
                "hash": block.hash,
                "data": block.data,
            }
        )

    def _release_waiters(self) -> None:
        for waiter in self._pending.values():
            if not waiter.done():
                waiter.set_result(None)
        self._pending.clear()

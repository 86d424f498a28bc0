"""
Replication harness: a primary drive and a replica linked by live
replication. Mutations go to the primary, validation reads to the replica.
"""

import asyncio
import logging
from typing import Callable, List, Optional

from ..core.errors import ReplicationError
from ..drive.base import Drive
from ..drive.protocol import ReplicationStream

logger = logging.getLogger(__name__)

DriveFactory = Callable[..., Drive]


class Channel:
    """
    One direction of the link: forwards every frame the source stream
    produces into the sink stream, in order.
    """

    def __init__(self, name: str, source: ReplicationStream, sink: ReplicationStream) -> None:
        self.name = name
        self.source = source
        self.sink = sink
        self.frames = 0
        self.bytes = 0
        self.error: Optional[BaseException] = None
        self._task: Optional["asyncio.Task[None]"] = None

    def start(self) -> "asyncio.Task[None]":
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"channel:{self.name}")
        return self._task

    async def _run(self) -> None:
        # Failures are recorded, not raised: they surface through
        # ReplicationHarness.check() and through every pending sync.
        try:
            async for frame in self.source.frames():
                self.frames += 1
                self.bytes += len(frame)
                await self.sink.receive(frame)
        except Exception as ex:
            self.error = ex
            logger.error("Replication channel %s failed: %s", self.name, ex)
            self.source.destroy(ex)
            self.sink.destroy(ex)

    async def stop(self) -> None:
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass


class ReplicationHarness:
    """
    Owns the replica and both directional channels.

    Usage:
        harness = ReplicationHarness(primary, MemoryDrive)
        await harness.start()
        replica = harness.validation_drive
        ...
        await harness.close()

    Args:
        primary: Ready, writable drive
        drive_factory: Called as drive_factory(key=primary.key) to build the replica
        live: Keep the link open for ongoing pushes
    """

    def __init__(self, primary: Drive, drive_factory: DriveFactory, live: bool = True) -> None:
        self.primary = primary
        self.drive_factory = drive_factory
        self.live = live
        self.replica: Optional[Drive] = None
        self.downstream: Optional[Channel] = None
        self.upstream: Optional[Channel] = None
        self._streams: List[ReplicationStream] = []

    @property
    def validation_drive(self) -> Drive:
        if self.replica is None:
            raise ReplicationError("replication harness has not started")
        return self.replica

    async def start(self) -> Drive:
        """
        Build the replica from the primary's key alone, wire the channels
        and wait for the replica's content readiness.

        Raises:
            ReplicationError / IntegrityError: If a channel fails first
        """
        self.replica = self.drive_factory(key=self.primary.key)
        await self.replica.ready()

        primary_stream = self.primary.replicate(live=self.live)
        replica_stream = self.replica.replicate(live=self.live)
        self._streams = [primary_stream, replica_stream]
        self.downstream = Channel("primary->replica", primary_stream, replica_stream)
        self.upstream = Channel("replica->primary", replica_stream, primary_stream)
        channel_tasks = [self.downstream.start(), self.upstream.start()]

        ready = asyncio.ensure_future(self.replica.content_ready())
        done, _ = await asyncio.wait([ready, *channel_tasks], return_when=asyncio.FIRST_COMPLETED)
        if ready not in done:
            ready.cancel()
            self.check()
            if self.live:
                raise ReplicationError("replication ended before the replica was ready")
            await ready
        logger.info("Replica ready for %s", self.primary.key[:16])
        return self.replica

    def check(self) -> None:
        """Re-raise a background channel failure."""
        for channel in (self.downstream, self.upstream):
            if channel is not None and channel.error is not None:
                raise channel.error

    async def close(self) -> None:
        """Tear down upstream, then downstream, then both streams."""
        for channel in (self.upstream, self.downstream):
            if channel is not None:
                await channel.stop()
        for stream in self._streams:
            stream.close()
        self._streams = []

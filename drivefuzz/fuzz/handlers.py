"""
Operation handlers, one per OperationKind.

Each handler receives the FuzzContext, performs its drive interaction,
updates the shadow state only after that interaction resolves and returns
an OperationResult (or None when its target collection is empty).
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from ..core.errors import NotFoundError, ValidationMismatch
from ..core.rng import SeededRandomSource
from ..drive.base import Drive, collect
from .names import generate_content, generate_file, generate_path
from .operations import OperationKind, OperationResult
from .oracle import ValidationOracle
from .shadow import DirectoryRecord, FileDescriptor, ShadowState


@dataclass
class FuzzContext:
    """
    Everything a handler may touch.

    Fields:
        drive: Drive receiving mutations (the primary)
        validation_drive: Drive serving validation reads (primary or replica)
        debug: Debug logger, a no-op unless the run is debugging
    """
    rng: SeededRandomSource
    shadow: ShadowState
    drive: Drive
    validation_drive: Drive
    oracle: ValidationOracle
    debug: Callable[..., None]


Handler = Callable[[FuzzContext], Awaitable[Optional[OperationResult]]]


async def write_file(ctx: FuzzContext) -> OperationResult:
    path, content = generate_file(ctx.rng, ctx.shadow)
    ctx.debug("Writing file %r with content %d", path, len(content))
    await ctx.drive.write_file(path, content)
    ctx.shadow.record_write(path, content)
    await ctx.oracle.check_size(ctx.drive, path, len(content))
    return OperationResult(OperationKind.WRITE_FILE.value, path, {"size": len(content)})


async def delete_file(ctx: FuzzContext) -> Optional[OperationResult]:
    selected = ctx.shadow.files.pick(ctx.rng)
    if selected is None:
        return None
    path, _ = selected
    ctx.debug("Deleting valid file: %r", path)
    await ctx.drive.unlink(path)
    ctx.shadow.record_delete(path)
    return OperationResult(OperationKind.DELETE_FILE.value, path)


async def delete_invalid_file(ctx: FuzzContext) -> OperationResult:
    path = generate_path(ctx.rng, ctx.shadow)
    ctx.debug("Deleting invalid file: %r", path)
    try:
        await ctx.drive.unlink(path)
    except NotFoundError:
        return OperationResult(OperationKind.DELETE_INVALID_FILE.value, path)
    raise ValidationMismatch(path, "unlink of an untracked path succeeded", "ENOENT", "deleted")


async def overwrite_file(ctx: FuzzContext) -> Optional[OperationResult]:
    selected = ctx.shadow.files.pick(ctx.rng)
    if selected is None:
        return None
    path, record = selected
    content = generate_content(ctx.rng)
    ctx.debug("Overwriting existing file: %r (%d -> %d bytes)", path, len(record.content), len(content))
    stream = ctx.drive.create_write_stream(path)
    await stream.end(content)
    ctx.shadow.record_write(path, content)
    await ctx.oracle.check_size(ctx.drive, path, len(content))
    return OperationResult(OperationKind.OVERWRITE_FILE.value, path, {"size": len(content)})


async def stat_file(ctx: FuzzContext) -> Optional[OperationResult]:
    selected = ctx.shadow.files.pick(ctx.rng)
    if selected is None:
        return None
    path, record = selected
    ctx.debug("Statting file: %r", path)
    st = await ctx.oracle.check_size(ctx.drive, path, len(record.content))
    return OperationResult(OperationKind.STAT_FILE.value, path, {"size": st.size})


async def stat_directory(ctx: FuzzContext) -> Optional[OperationResult]:
    selected = ctx.shadow.directories.pick(ctx.rng)
    if selected is None:
        return None
    path, record = selected
    ctx.debug("Statting directory %r", path)
    st = await ctx.oracle.check_directory(ctx.drive, record)
    return OperationResult(
        OperationKind.STAT_DIRECTORY.value,
        path,
        {"offset": st.offset, "byte_offset": st.byte_offset},
    )


async def random_read_stream(ctx: FuzzContext) -> Optional[OperationResult]:
    selected = ctx.shadow.files.pick(ctx.rng)
    if selected is None:
        return None
    path, record = selected
    content = record.content
    start = ctx.rng.random_int(len(content))
    length = ctx.rng.random_int(len(content) - start)
    ctx.debug("Creating random read stream for %r at start %d with length %d", path, start, length)
    data = await collect(ctx.validation_drive.create_read_stream(path, start=start, length=length))
    ctx.oracle.check_bytes(path, "read stream", content[start : start + length], data)
    return OperationResult(
        OperationKind.RANDOM_READ_STREAM.value, path, {"start": start, "length": length}
    )


async def stateless_fd_read(ctx: FuzzContext) -> Optional[OperationResult]:
    selected = ctx.shadow.files.pick(ctx.rng)
    if selected is None:
        return None
    path, record = selected
    content = record.content
    length = ctx.rng.random_int(len(content))
    start = ctx.rng.random_int(len(content))
    buffer = bytearray(length)
    drive = ctx.validation_drive

    ctx.debug("Random stateless file descriptor read for %r", path)
    fd = await drive.open(path, "r")
    bytes_read = await drive.read(fd, buffer, 0, length, start)
    if bytes_read == 0 and length:
        ctx.oracle.check_end_of_stream(path, start, content)
    ctx.oracle.check_bytes(
        path, "descriptor read", content[start : start + bytes_read], bytes(buffer[:bytes_read])
    )
    await drive.close(fd)
    return OperationResult(
        OperationKind.STATELESS_FD_READ.value,
        path,
        {"start": start, "length": length, "read": bytes_read},
    )


async def open_fd(ctx: FuzzContext) -> Optional[OperationResult]:
    selected = ctx.shadow.files.pick(ctx.rng)
    if selected is None:
        return None
    path, record = selected
    position = ctx.rng.below(len(record.content) / 5)
    ctx.debug("Creating FD for file %r and start: %d", path, position)
    fd = await ctx.validation_drive.open(path, "r")
    ctx.shadow.track_descriptor(
        FileDescriptor(fd=fd, path=path, position=position, content=record.content)
    )
    return OperationResult(OperationKind.OPEN_FD.value, path, {"fd": fd, "position": position})


async def stateful_fd_read(ctx: FuzzContext) -> Optional[OperationResult]:
    selected = ctx.shadow.descriptors.pick(ctx.rng)
    if selected is None:
        return None
    fd, descriptor = selected
    content = descriptor.content
    length = ctx.rng.below(len(content) / 5)
    buffer = bytearray(length)
    position = descriptor.position
    drive = ctx.validation_drive

    ctx.debug("Reading from random stateful FD %d", fd)
    bytes_read = await drive.read(fd, buffer, 0, length, None if descriptor.started else position)
    descriptor.started = True

    if bytes_read == 0 and length:
        ctx.oracle.check_end_of_stream(descriptor.path, position, content)
        await drive.close(fd)
        ctx.shadow.release_descriptor(fd)
        return OperationResult(
            OperationKind.STATEFUL_FD_READ.value, descriptor.path, {"fd": fd, "closed": True}
        )

    ctx.oracle.check_bytes(
        descriptor.path,
        "descriptor read",
        content[position : position + bytes_read],
        bytes(buffer[:bytes_read]),
    )
    descriptor.position += bytes_read
    return OperationResult(
        OperationKind.STATEFUL_FD_READ.value,
        descriptor.path,
        {"fd": fd, "position": position, "read": bytes_read},
    )


async def write_and_mkdir(ctx: FuzzContext) -> OperationResult:
    file_path, content = generate_file(ctx.rng, ctx.shadow)
    dir_path = generate_path(ctx.rng, ctx.shadow)
    while dir_path == file_path:
        dir_path = generate_path(ctx.rng, ctx.shadow)

    offset = ctx.drive.content_length
    byte_offset = ctx.drive.content_byte_length

    stream = ctx.drive.create_write_stream(file_path)
    await asyncio.gather(stream.end(content), ctx.drive.mkdir(dir_path))

    record = DirectoryRecord(path=dir_path, offset=offset, byte_offset=byte_offset)
    ctx.shadow.record_write(file_path, content)
    ctx.shadow.record_directory(record)
    ctx.debug("Created directory %r", dir_path)

    await ctx.oracle.check_size(ctx.drive, file_path, len(content))
    await ctx.oracle.check_directory(ctx.drive, record)
    return OperationResult(
        OperationKind.WRITE_AND_MKDIR.value,
        dir_path,
        {"file": file_path, "size": len(content), "offset": offset, "byte_offset": byte_offset},
    )


HANDLERS: Dict[OperationKind, Handler] = {
    OperationKind.WRITE_FILE: write_file,
    OperationKind.DELETE_FILE: delete_file,
    OperationKind.OVERWRITE_FILE: overwrite_file,
    OperationKind.STATEFUL_FD_READ: stateful_fd_read,
    OperationKind.STAT_FILE: stat_file,
    OperationKind.STAT_DIRECTORY: stat_directory,
    OperationKind.DELETE_INVALID_FILE: delete_invalid_file,
    OperationKind.RANDOM_READ_STREAM: random_read_stream,
    OperationKind.STATELESS_FD_READ: stateless_fd_read,
    OperationKind.OPEN_FD: open_fd,
    OperationKind.WRITE_AND_MKDIR: write_and_mkdir,
}

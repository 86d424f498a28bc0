"""
Tests for hash-chained feeds.

Critical: the chain must detect any tampering, locally or over the wire.
"""

import pytest

from drivefuzz.core.errors import IntegrityError, UnexpectedIOError
from drivefuzz.core.ids import ZERO_HASH, hash_block
from drivefuzz.drive.feed import Feed


async def _filled(n: int = 5) -> Feed:
    feed = Feed("content")
    for i in range(n):
        await feed.append([f"block-{i}".encode()])
    return feed


@pytest.mark.asyncio
async def test_genesis_block_has_zero_hash():
    """First block must chain to ZERO_HASH."""
    feed = await _filled(1)

    assert feed.block(0).prev_hash == ZERO_HASH
    assert feed.block(0).hash == hash_block(ZERO_HASH, b"block-0")


@pytest.mark.asyncio
async def test_hash_chain_links():
    """Each block must chain to the previous block hash."""
    feed = await _filled(5)
    blocks = list(feed.blocks())

    for prev, curr in zip(blocks, blocks[1:]):
        assert curr.prev_hash == prev.hash
    assert feed.verify() is None


@pytest.mark.asyncio
async def test_append_returns_offsets():
    feed = Feed("content")

    assert await feed.append([b"ab", b"cde"]) == (0, 0)
    assert await feed.append([b"f"]) == (2, 5)
    assert feed.length == 3
    assert feed.byte_length == 6


@pytest.mark.asyncio
async def test_append_on_replica_rejected():
    feed = Feed("content", writable=False)

    with pytest.raises(UnexpectedIOError) as exc:
        await feed.append([b"x"])
    assert exc.value.code == "EPERM"


@pytest.mark.asyncio
async def test_put_reproduces_chain():
    source = await _filled(5)
    replica = Feed("content", writable=False)

    for block in source.blocks():
        assert replica.put(block.index, block.data, block.prev_hash, block.hash)

    assert replica.last_hash == source.last_hash
    assert replica.verify() is None


@pytest.mark.asyncio
async def test_put_duplicate_is_ignored():
    source = await _filled(2)
    replica = Feed("content", writable=False)
    block = source.block(0)

    assert replica.put(0, block.data, block.prev_hash, block.hash) is True
    assert replica.put(0, block.data, block.prev_hash, block.hash) is False
    assert replica.length == 1


@pytest.mark.asyncio
async def test_put_detects_modified_data():
    """Modified payload with the original hash must be rejected."""
    source = await _filled(1)
    block = source.block(0)

    with pytest.raises(IntegrityError):
        Feed("content", writable=False).put(0, b"tampered", block.prev_hash, block.hash)


@pytest.mark.asyncio
async def test_put_detects_gap_and_broken_link():
    source = await _filled(3)
    replica = Feed("content", writable=False)
    b0, b1, b2 = source.blocks()

    with pytest.raises(IntegrityError):
        replica.put(b1.index, b1.data, b1.prev_hash, b1.hash)

    replica.put(b0.index, b0.data, b0.prev_hash, b0.hash)
    with pytest.raises(IntegrityError):
        replica.put(1, b2.data, b2.prev_hash, b2.hash)


@pytest.mark.asyncio
async def test_put_detects_conflicting_block():
    source = await _filled(1)
    replica = Feed("content", writable=False)
    b0 = source.block(0)
    replica.put(0, b0.data, b0.prev_hash, b0.hash)

    with pytest.raises(IntegrityError):
        replica.put(0, b"other", ZERO_HASH, hash_block(ZERO_HASH, b"other"))


@pytest.mark.asyncio
async def test_verify_finds_tampered_block():
    feed = await _filled(10)
    feed._blocks[5] = b"tampered"

    assert feed.verify() == 5


@pytest.mark.asyncio
async def test_get_missing_block():
    feed = await _filled(1)

    with pytest.raises(UnexpectedIOError) as exc:
        feed.get(1)
    assert exc.value.code == "EAGAIN"


@pytest.mark.asyncio
async def test_subscribe_and_unsubscribe():
    feed = Feed("metadata")
    seen = []
    unsubscribe = feed.subscribe(lambda f, block: seen.append(block.index))

    await feed.append([b"a", b"b"])
    unsubscribe()
    await feed.append([b"c"])

    assert seen == [0, 1]

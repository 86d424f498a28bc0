"""
Tests for the operation registry.

Selection must be a pure function of the draw and the weight table.
"""

from collections import Counter

import pytest

from drivefuzz.core.rng import SeededRandomSource
from drivefuzz.fuzz.handlers import HANDLERS
from drivefuzz.fuzz.operations import DEFAULT_REGISTRY, OperationKind, OperationRegistry


def test_default_total_weight():
    assert DEFAULT_REGISTRY.total_weight == 39


def test_cumulative_boundaries():
    """Draws map to operations by cumulative weight in table order."""
    select = DEFAULT_REGISTRY.select

    assert select(0) == OperationKind.WRITE_FILE
    assert select(9) == OperationKind.WRITE_FILE
    assert select(10) == OperationKind.DELETE_FILE
    assert select(14) == OperationKind.DELETE_FILE
    assert select(15) == OperationKind.OVERWRITE_FILE
    assert select(20) == OperationKind.STATEFUL_FD_READ
    assert select(25) == OperationKind.STAT_FILE
    assert select(28) == OperationKind.STAT_DIRECTORY
    assert select(31) == OperationKind.DELETE_INVALID_FILE
    assert select(33) == OperationKind.RANDOM_READ_STREAM
    assert select(35) == OperationKind.STATELESS_FD_READ
    assert select(37) == OperationKind.OPEN_FD
    assert select(38) == OperationKind.WRITE_AND_MKDIR


def test_select_is_pure():
    """Selecting the same draw twice gives the same kind."""
    for draw in range(DEFAULT_REGISTRY.total_weight):
        assert DEFAULT_REGISTRY.select(draw) == DEFAULT_REGISTRY.select(draw)


@pytest.mark.parametrize("draw", [-1, 39, 100])
def test_select_rejects_out_of_range(draw):
    with pytest.raises(ValueError):
        DEFAULT_REGISTRY.select(draw)


@pytest.mark.parametrize("weight", [0, -3, 1.5, True])
def test_rejects_invalid_weights(weight):
    with pytest.raises(ValueError):
        OperationRegistry(weights=((OperationKind.WRITE_FILE, weight),))


def test_rejects_duplicates_and_empty_table():
    with pytest.raises(ValueError):
        OperationRegistry(weights=((OperationKind.WRITE_FILE, 1), (OperationKind.WRITE_FILE, 2)))
    with pytest.raises(ValueError):
        OperationRegistry(weights=())


def test_every_kind_has_a_handler():
    assert set(HANDLERS) == set(OperationKind)
    assert set(DEFAULT_REGISTRY.kinds) == set(OperationKind)


def test_draw_frequencies_follow_weights():
    """Over many draws each kind appears roughly in proportion to its weight."""
    rng = SeededRandomSource("weights")
    total = DEFAULT_REGISTRY.total_weight * 1000
    counts = Counter(DEFAULT_REGISTRY.draw(rng) for _ in range(total))

    for kind, weight in DEFAULT_REGISTRY.weights:
        expected = weight * 1000
        assert abs(counts[kind] - expected) < 0.15 * expected + 100

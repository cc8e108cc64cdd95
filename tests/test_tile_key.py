from __future__ import annotations

import pytest

from terrainlod.errors import InvalidInputError
from terrainlod.tiling.key import TileKey


def test_invalid_key() -> None:
    assert not TileKey.INVALID.is_valid
    assert str(TileKey.INVALID) == "invalid"
    assert not TileKey.INVALID.extent.is_valid
    assert TileKey.INVALID.create_parent_key() == TileKey.INVALID
    assert TileKey.INVALID.create_child_key(0) == TileKey.INVALID
    assert TileKey.INVALID.create_neighbor_key(1, 0) == TileKey.INVALID


def test_str_and_extent(geodetic) -> None:
    key = TileKey(2, 4, 1, geodetic)

    assert str(key) == "2/4/1"
    assert key.extent.bounds == (0.0, 0.0, 45.0, 45.0)


def test_parent_child_round_trip(geodetic) -> None:
    key = TileKey(3, 5, 2, geodetic)

    for quadrant in range(4):
        child = key.create_child_key(quadrant)
        assert child.level == 4
        assert child.create_parent_key() == key
    assert TileKey(0, 1, 0, geodetic).create_parent_key() == TileKey.INVALID


def test_child_quadrants(geodetic) -> None:
    key = TileKey(1, 1, 1, geodetic)
    children = [key.create_child_key(quadrant) for quadrant in range(4)]

    assert [(child.x, child.y) for child in children] == [(2, 2), (3, 2), (2, 3), (3, 3)]
    parent_extent = key.extent
    nw = children[0].extent
    se = children[3].extent
    assert nw.xmin == parent_extent.xmin
    assert nw.ymax == parent_extent.ymax
    assert se.xmax == parent_extent.xmax
    assert se.ymin == parent_extent.ymin


@pytest.mark.parametrize("quadrant", [-1, 4])
def test_child_quadrant_out_of_range(geodetic, quadrant) -> None:
    with pytest.raises(InvalidInputError):
        TileKey(0, 0, 0, geodetic).create_child_key(quadrant)


def test_neighbors_wrap_and_clamp(geodetic) -> None:
    key = TileKey(1, 0, 0, geodetic)

    assert key.create_neighbor_key(-1, 0) == TileKey(1, 3, 0, geodetic)
    assert key.create_neighbor_key(4, 0) == key
    assert key.create_neighbor_key(0, -1) == key
    assert key.create_neighbor_key(1, 5) == TileKey(1, 1, 1, geodetic)


def test_keys_are_hashable(geodetic, mercator) -> None:
    keys = {TileKey(1, 0, 0, geodetic), TileKey(1, 0, 0, geodetic), TileKey(1, 0, 0, mercator)}

    assert len(keys) == 2

from __future__ import annotations

import pytest

from terrainlod.geo.extent import GeoExtent
from terrainlod.geo.srs import SpatialReference
from terrainlod.tiling.key import TileKey
from terrainlod.tiling.scheme import TilingScheme

WGS84 = SpatialReference.create("wgs84")
MERCATOR_EDGE = 20037508.342789244


def _cells(keys: list[TileKey]) -> set[tuple[int, int]]:
    return {(key.x, key.y) for key in keys}


def test_aligned_extent_does_not_spill_into_neighbors(geodetic) -> None:
    keys = geodetic.get_intersecting_tiles(GeoExtent(WGS84, 0.0, 0.0, 45.0, 45.0), 2)

    assert keys == [TileKey(2, 4, 1, geodetic)]


def test_native_query(utm_scheme) -> None:
    extent = GeoExtent(utm_scheme.srs, 410000.0, 5010000.0, 420000.0, 5020000.0)

    assert utm_scheme.get_intersecting_tiles(extent, 2) == [TileKey(2, 0, 3, utm_scheme)]


def test_query_larger_than_scheme_is_clamped(utm_scheme) -> None:
    extent = GeoExtent(utm_scheme.srs, 300000.0, 4900000.0, 600000.0, 5200000.0)

    assert len(utm_scheme.get_intersecting_tiles(extent, 1)) == 4


def test_antimeridian_query_geodetic(geodetic) -> None:
    keys = geodetic.get_intersecting_tiles(GeoExtent(WGS84, 170.0, -10.0, -170.0, 10.0), 2)

    assert _cells(keys) == {(7, 1), (7, 2), (0, 1), (0, 2)}
    assert all(key.level == 2 and key.scheme is geodetic for key in keys)


def test_antimeridian_query_mercator(mercator) -> None:
    keys = mercator.get_intersecting_tiles(GeoExtent(WGS84, 170.0, -10.0, -170.0, 10.0), 1)

    assert _cells(keys) == {(1, 0), (1, 1), (0, 0), (0, 1)}


def test_disjoint_query_is_empty(utm_scheme) -> None:
    assert utm_scheme.get_intersecting_tiles(GeoExtent(WGS84, 100.0, 10.0, 110.0, 20.0), 2) == []


def test_invalid_query_is_empty(geodetic) -> None:
    assert geodetic.get_intersecting_tiles(GeoExtent.INVALID, 2) == []


def test_intersecting_tiles_for_foreign_key(geodetic, mercator) -> None:
    key = TileKey(2, 4, 1, geodetic)

    assert mercator.get_intersecting_tiles_for_key(key) == [TileKey(2, 2, 1, mercator)]
    assert geodetic.get_intersecting_tiles_for_key(key) == [key]
    assert geodetic.get_intersecting_tiles_for_key(TileKey.INVALID) == []


def test_clamp_whole_earth(geodetic, mercator) -> None:
    world = GeoExtent(WGS84, -180.0, -90.0, 180.0, 90.0)

    assert geodetic.clamp_and_transform_extent(world) == (geodetic.extent, False)
    assert mercator.clamp_and_transform_extent(world) == (mercator.extent, True)


def test_clamp_polar_extent_into_mercator(mercator) -> None:
    result, clamped = mercator.clamp_and_transform_extent(GeoExtent(WGS84, -10.0, 80.0, 10.0, 90.0))

    assert clamped
    assert result.is_valid
    assert result.srs == mercator.srs
    assert result.xmin == pytest.approx(-1113194.9079, rel=1e-8)
    assert result.ymax == pytest.approx(MERCATOR_EDGE, rel=1e-6)


def test_clamp_contained_extent(geodetic) -> None:
    extent = GeoExtent(WGS84, 1.0, 2.0, 3.0, 4.0)

    assert geodetic.clamp_and_transform_extent(extent) == (extent, True)


def test_clamp_invalid_extent(geodetic) -> None:
    assert geodetic.clamp_and_transform_extent(GeoExtent.INVALID) == (GeoExtent.INVALID, False)


def test_equivalent_lod_same_scheme(geodetic) -> None:
    assert geodetic.get_equivalent_lod(geodetic, 7) == 7


@pytest.mark.parametrize("level", [0, 1, 5, 12, 19, 23, 30])
def test_equivalent_lod_geodetic_mercator_alignment(geodetic, mercator, level) -> None:
    assert mercator.get_equivalent_lod(geodetic, level) == level
    assert geodetic.get_equivalent_lod(mercator, level) == level


@pytest.mark.parametrize("level", [0, 1, 4, 9])
def test_equivalent_lod_finer_grid(geodetic, level) -> None:
    quad = TilingScheme.from_bounds("EPSG:4326", -180.0, -90.0, 180.0, 90.0, tiles_wide=4, tiles_high=2)

    assert geodetic.get_equivalent_lod(quad, level) == level + 1


def test_equivalent_lod_across_units(geodetic, utm_scheme) -> None:
    assert geodetic.get_equivalent_lod(utm_scheme, 0) == 8

from __future__ import annotations

import threading

import pytest

from terrainlod.errors import ConfigurationError
from terrainlod.lod.ranges import UNBOUNDED_ROW, LevelEntry, LodRangeTable, RangeTuning
from terrainlod.tiling.key import TileKey
from terrainlod.tiling.scheme import TilingScheme

QUARTER_MERIDIAN = 10001965.729


def _table(scheme: TilingScheme, first: int = 0, last: int = 10, **kwargs) -> LodRangeTable:
    table = LodRangeTable()
    assert table.initialize(first, last, scheme, kwargs.pop("morph_factor", 7.0), **kwargs)
    return table


def test_level_zero_range(geodetic) -> None:
    entry = _table(geodetic).get(0)

    expected = QUARTER_MERIDIAN * 7.0 * 2.0 / 1.405
    assert entry.visibility_range == pytest.approx(expected, rel=1e-6)
    assert entry.min_valid_row == 0
    assert entry.max_valid_row == UNBOUNDED_ROW


def test_ranges_shrink_with_level(geodetic, mercator, utm_scheme) -> None:
    for scheme in (geodetic, mercator, utm_scheme):
        table = _table(scheme, last=12)
        ranges = [table.get(level).visibility_range for level in range(13)]
        assert all(coarse > fine > 0.0 for coarse, fine in zip(ranges, ranges[1:]))


def test_projected_range_uses_half_diagonal(utm_scheme) -> None:
    entry = _table(utm_scheme, last=2).get(0)

    expected = 70710.678 * 7.0 * 2.0 / 1.405
    assert entry.visibility_range == pytest.approx(expected, rel=1e-6)


def test_morph_windows_chain(geodetic) -> None:
    table = _table(geodetic, last=8)

    finest = table.get(8)
    assert finest.morph_end == finest.visibility_range
    assert finest.morph_start == pytest.approx(finest.visibility_range * 0.66)
    for level in range(8):
        entry = table.get(level)
        finer = table.get(level + 1)
        assert entry.morph_end == entry.visibility_range
        assert entry.morph_start == pytest.approx(
            finer.visibility_range + (entry.visibility_range - finer.visibility_range) * 0.66
        )
        assert finer.visibility_range < entry.morph_start < entry.morph_end


def test_first_level_offsets_storage(geodetic) -> None:
    full = _table(geodetic, first=0, last=10)
    partial = _table(geodetic, first=4, last=10)

    assert partial.first_level == 4
    assert partial.num_levels == 7
    assert partial.get(3) == LevelEntry.ZERO
    assert partial.get(11) == LevelEntry.ZERO
    for level in range(4, 11):
        assert partial.get(level) == full.get(level)


def test_polar_restriction(geodetic) -> None:
    table = _table(geodetic, last=10, restrict_polar_subdivision=True)

    assert table.get(5).max_valid_row == UNBOUNDED_ROW
    level6 = table.get(6)
    assert (level6.min_valid_row, level6.max_valid_row) == (2, 61)
    level10 = table.get(10)
    assert (level10.min_valid_row, level10.max_valid_row) == (134, 889)


def test_polar_restriction_ignored_for_projected(mercator) -> None:
    table = _table(mercator, last=10, restrict_polar_subdivision=True)

    assert table.get(10).max_valid_row == UNBOUNDED_ROW


def test_query(geodetic) -> None:
    table = _table(geodetic, last=10, restrict_polar_subdivision=True)
    entry = table.get(6)

    assert table.query(TileKey(6, 10, 30, geodetic)) == (
        entry.visibility_range,
        entry.morph_start,
        entry.morph_end,
    )
    assert table.query(TileKey(6, 10, 0, geodetic)) == (0.0, 0.0, 0.0)
    assert table.query(TileKey(6, 10, 63, geodetic)) == (0.0, 0.0, 0.0)
    assert table.query(TileKey(11, 0, 0, geodetic)) == (0.0, 0.0, 0.0)


def test_initialize_only_once(geodetic, mercator) -> None:
    table = _table(geodetic, last=4)
    before = table.levels

    assert not table.initialize(0, 8, mercator, 3.0)
    assert table.levels == before


def test_concurrent_initialize(geodetic) -> None:
    table = LodRangeTable()
    barrier = threading.Barrier(8)
    results: list[bool] = []
    lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        outcome = table.initialize(0, 10, geodetic, 7.0)
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 1
    assert table.num_levels == 11


@pytest.mark.parametrize(
    ("first", "last", "factor"),
    [(5, 3, 7.0), (-1, 3, 7.0), (0, 3, 0.0), (0, 3, float("nan"))],
)
def test_initialize_rejects_bad_settings(geodetic, first, last, factor) -> None:
    table = LodRangeTable()

    with pytest.raises(ConfigurationError):
        table.initialize(first, last, geodetic, factor)
    assert not table.is_initialized


def test_initialize_rejects_unusable_scheme() -> None:
    degenerate = TilingScheme.from_bounds("EPSG:4326", 0.0, 0.0, 0.0, 10.0)

    with pytest.raises(ConfigurationError):
        LodRangeTable().initialize(0, 3, degenerate, 7.0)


def test_custom_tuning(geodetic) -> None:
    tuning = RangeTuning(morph_start_ratio=0.5, visibility_scale=1.0)
    entry = _table(geodetic, last=0, tuning=tuning).get(0)

    assert entry.visibility_range == pytest.approx(QUARTER_MERIDIAN * 7.0, rel=1e-6)
    assert entry.morph_start == pytest.approx(entry.visibility_range * 0.5)


def test_as_dict(geodetic) -> None:
    payload = _table(geodetic, first=2, last=3).as_dict()

    assert payload["first_level"] == 2
    assert [level["level"] for level in payload["levels"]] == [2, 3]
    assert set(payload["levels"][0]) == {
        "level",
        "visibility_range",
        "morph_start",
        "morph_end",
        "min_valid_row",
        "max_valid_row",
    }


@pytest.mark.integration
def test_deep_pyramid_sweep(geodetic) -> None:
    table = _table(geodetic, last=22, restrict_polar_subdivision=True)

    previous_min = 0
    for level in range(6, 23):
        entry = table.get(level)
        _, tiles_high = geodetic.get_num_tiles(level)
        assert entry.min_valid_row >= previous_min
        assert entry.min_valid_row + entry.max_valid_row == tiles_high - 1
        previous_min = entry.min_valid_row


def test_query_invalid_key_is_zero(geodetic) -> None:
    table = _table(geodetic, last=4)

    assert table.query(TileKey.INVALID) == (0.0, 0.0, 0.0)

"""Per-level visibility and morph ranges for continuous LOD selection."""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import asdict, dataclass
from typing import Any, ClassVar

from terrainlod.errors import ConfigurationError
from terrainlod.tiling.key import TileKey
from terrainlod.tiling.scheme import TilingScheme

LOGGER = logging.getLogger(__name__)

UNBOUNDED_ROW = 0xFFFFFFFF


@dataclass(frozen=True)
class RangeTuning:
    """Empirical constants shaping the range table.

    The defaults are tuned for a typical perspective projection and screen
    space error budget.
    """

    morph_start_ratio: float = 0.66
    visibility_scale: float = 2.0 / 1.405
    polar_start_level: int = 6
    polar_start_aspect: float = 0.1
    polar_end_aspect: float = 0.4

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LevelEntry:
    """Visibility range, morph window and valid row band for one level."""

    visibility_range: float = 0.0
    morph_start: float = 0.0
    morph_end: float = 0.0
    min_valid_row: int = 0
    max_valid_row: int = 0

    ZERO: ClassVar[LevelEntry]

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


LevelEntry.ZERO = LevelEntry()


def _visibility_range(
    scheme: TilingScheme,
    level: int,
    morph_factor: float,
    tuning: RangeTuning,
) -> float:
    tiles_wide, tiles_high = scheme.get_num_tiles(level)
    key = TileKey(level, tiles_wide // 2, tiles_high // 2, scheme)
    return key.extent.bounding_radius() * morph_factor * tuning.visibility_scale


def _morph_windows(ranges: list[float], ratio: float) -> list[tuple[float, float]]:
    """Chain morph windows from the finest level outward."""
    windows: list[tuple[float, float]] = [(0.0, 0.0)] * len(ranges)
    previous = 0.0
    for level in reversed(range(len(ranges))):
        span = ranges[level] - previous
        windows[level] = (previous + span * ratio, ranges[level])
        previous = ranges[level]
    return windows


def _polar_row_band(
    scheme: TilingScheme,
    level: int,
    max_level: int,
    tuning: RangeTuning,
) -> tuple[int, int]:
    """Return the valid (min, max) row band excluding over-thin polar tiles."""
    span = max_level - tuning.polar_start_level
    t = (level - tuning.polar_start_level) / span if span > 0 else 0.0
    min_aspect = tuning.polar_start_aspect + (tuning.polar_end_aspect - tuning.polar_start_aspect) * t

    _, tiles_high = scheme.get_num_tiles(level)
    for row in range(tiles_high // 2, -1, -1):
        extent = scheme.calculate_extent(level, 0, row)
        if extent.width_meters / extent.height_meters < min_aspect:
            min_row = min(row + 1, tiles_high - 1)
            return (min_row, tiles_high - 1 - min_row)
    return (0, UNBOUNDED_ROW)


class LodRangeTable:
    """Visibility and morph ranges per pyramid level.

    The table is populated once by :meth:`initialize` and is read-only
    afterwards; readers need no locking once initialization is published.
    """

    def __init__(self) -> None:
        self._first_level = 0
        self._levels: tuple[LevelEntry, ...] = ()
        self._lock = threading.Lock()

    @property
    def first_level(self) -> int:
        return self._first_level

    @property
    def num_levels(self) -> int:
        return len(self._levels)

    @property
    def is_initialized(self) -> bool:
        return bool(self._levels)

    @property
    def levels(self) -> tuple[LevelEntry, ...]:
        return self._levels

    def initialize(
        self,
        first_level: int,
        max_level: int,
        scheme: TilingScheme,
        morph_factor: float,
        restrict_polar_subdivision: bool = False,
        tuning: RangeTuning | None = None,
    ) -> bool:
        """Populate the table; returns False when it was already populated.

        Raises ConfigurationError for inconsistent levels, a non-positive
        morph factor, or an unusable scheme.
        """
        with self._lock:
            if self._levels:
                LOGGER.debug("LOD range table already initialized; ignoring")
                return False
            if scheme is None or not scheme.is_ok():
                raise ConfigurationError("LOD range table requires a valid tiling scheme.")
            if first_level < 0 or first_level > max_level:
                raise ConfigurationError(
                    f"Inconsistent first and max levels: {first_level} > {max_level}"
                )
            if not (math.isfinite(morph_factor) and morph_factor > 0.0):
                raise ConfigurationError(f"Morph factor must be positive: {morph_factor}")
            tuning = tuning or RangeTuning()

            ranges = [
                _visibility_range(scheme, level, morph_factor, tuning)
                for level in range(max_level + 1)
            ]
            windows = _morph_windows(ranges, tuning.morph_start_ratio)
            restrict = restrict_polar_subdivision and scheme.srs.is_geographic

            entries = []
            for level in range(first_level, max_level + 1):
                min_row, max_row = 0, UNBOUNDED_ROW
                if restrict and level >= tuning.polar_start_level:
                    min_row, max_row = _polar_row_band(scheme, level, max_level, tuning)
                morph_start, morph_end = windows[level]
                entries.append(
                    LevelEntry(
                        visibility_range=ranges[level],
                        morph_start=morph_start,
                        morph_end=morph_end,
                        min_valid_row=min_row,
                        max_valid_row=max_row,
                    )
                )

            self._first_level = first_level
            self._levels = tuple(entries)
            LOGGER.debug(
                "Initialized LOD ranges for levels %s-%s of %r",
                first_level,
                max_level,
                scheme,
            )
            return True

    def get(self, level: int) -> LevelEntry:
        """Return a level's entry, or the zero entry outside the populated range."""
        index = level - self._first_level
        if index < 0 or index >= len(self._levels):
            return LevelEntry.ZERO
        return self._levels[index]

    def query(self, key: TileKey) -> tuple[float, float, float]:
        """Return (range, morph_start, morph_end) for a key; zeros when excluded."""
        if not key.is_valid:
            return (0.0, 0.0, 0.0)
        entry = self.get(key.level)
        if not entry.min_valid_row <= key.y <= entry.max_valid_row:
            return (0.0, 0.0, 0.0)
        return (entry.visibility_range, entry.morph_start, entry.morph_end)

    def as_dict(self) -> dict[str, Any]:
        return {
            "first_level": self._first_level,
            "levels": [
                {"level": self._first_level + index, **entry.as_dict()}
                for index, entry in enumerate(self._levels)
            ],
        }

"""Tiling schemes: quadtree tile pyramids laid over a spatial reference."""

from __future__ import annotations

import logging
import math
from functools import lru_cache

from terrainlod.errors import ConfigurationError, InvalidInputError
from terrainlod.geo.extent import GeoExtent, GeoPoint
from terrainlod.geo.srs import WHOLE_WORLD_BOUNDS, Bounds, SpatialReference
from terrainlod.tiling.key import TileKey
from terrainlod.tiling.options import TilingSchemeOptions, options_signature

LOGGER = logging.getLogger(__name__)

GLOBAL_GEODETIC = "global-geodetic"
GLOBAL_MERCATOR = "global-mercator"
SPHERICAL_MERCATOR = "spherical-mercator"
PLATE_CARREE = "plate-carree"
_PLATE_CARREE_ALIASES = frozenset({PLATE_CARREE, "plate-carre", "eqc-wgs84"})

# Tile counts are unsigned 32-bit values.
MAX_TILE_COUNT = 0xFFFFFFFF
MAX_RESOLUTION_LEVEL = 23
DEFAULT_TILE_SIZE = 256
EDGE_TOLERANCE = 1e-6


def aspect_tile_counts(width: float, height: float) -> tuple[int, int]:
    """Choose a level-0 grid from an extent's aspect ratio."""
    if not (width > 0.0 and height > 0.0):
        raise InvalidInputError(f"Degenerate extent dimensions: {width} x {height}")
    ratio = width / height
    if ratio > 1.5:
        return (math.ceil(ratio), 1)
    if ratio < 0.5:
        return (1, math.ceil(1.0 / ratio))
    return (1, 1)


def _tile_range(low: float, high: float, size: float) -> tuple[int, int]:
    """Tile index range covering [low, high], snapping edges that abut a boundary."""
    first = math.floor(low / size)
    last = math.floor(high / size)
    if math.isclose(low - size * first, size, rel_tol=EDGE_TOLERANCE):
        first += 1
    if math.isclose(size * (last + 1) - high, size, rel_tol=EDGE_TOLERANCE):
        last -= 1
    if last < first:
        last = first
    return first, last


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


class TilingScheme:
    """A rectangular extent split into a tile pyramid.

    Level 0 holds ``tiles_wide x tiles_high`` tiles; every further level
    doubles both counts. Instances are immutable and compare by their full
    signature, so they may be shared freely between threads.
    """

    def __init__(
        self,
        srs: SpatialReference,
        bounds: Bounds,
        tiles_wide: int = 0,
        tiles_high: int = 0,
        *,
        geo_bounds: Bounds | None = None,
        well_known_name: str | None = None,
    ) -> None:
        if tiles_wide < 0 or tiles_high < 0:
            raise ConfigurationError(f"Invalid level-0 tile counts: {tiles_wide} x {tiles_high}")
        self._srs = srs
        self._extent = GeoExtent(srs, *bounds)
        if self._extent.crosses_antimeridian:
            raise ConfigurationError(f"Tiling scheme extent crosses the antimeridian: {self._extent}")
        self._tiles_wide = tiles_wide or (2 if srs.is_geographic else 1)
        self._tiles_high = tiles_high or 1
        if geo_bounds is not None:
            self._latlong_extent = GeoExtent(srs.geographic_srs, *geo_bounds)
        elif srs.is_geographic:
            self._latlong_extent = self._extent
        else:
            self._latlong_extent = self._extent.transform(srs.geographic_srs)
        self._well_known_name = well_known_name

        options = self.to_options()
        self._full_signature = options_signature(options)
        self._horizontal_signature = options_signature(options.horizontal())
        self._hash = int(self._full_signature[:16], 16)

    # Factories

    @classmethod
    def from_bounds(
        cls,
        srs: str | SpatialReference,
        xmin: float,
        ymin: float,
        xmax: float,
        ymax: float,
        *,
        vdatum: str | None = None,
        tiles_wide: int = 1,
        tiles_high: int = 1,
    ) -> TilingScheme:
        """Build a scheme from explicit bounds in the given reference."""
        reference = SpatialReference.create(srs, vdatum)
        return cls(reference, (xmin, ymin, xmax, ymax), tiles_wide, tiles_high)

    @classmethod
    def from_spatial_reference(
        cls,
        srs: str | SpatialReference,
        vdatum: str | None = None,
        *,
        tiles_wide: int = 0,
        tiles_high: int = 0,
    ) -> TilingScheme:
        """Build a scheme over the natural bounds of a reference.

        The level-0 grid follows the bounds' aspect ratio unless both counts
        are given.
        """
        reference = SpatialReference.create(srs, vdatum)
        bounds = reference.natural_bounds()
        if bounds is None:
            raise ConfigurationError(
                f"Failed to create tiling scheme; bounds are required for {reference.horizontal_id}"
            )
        if not (tiles_wide and tiles_high):
            tiles_wide, tiles_high = aspect_tile_counts(bounds[2] - bounds[0], bounds[3] - bounds[1])
        LOGGER.debug("No extents given for %s; using natural bounds %s", reference, bounds)
        return cls(reference, bounds, tiles_wide, tiles_high)

    @classmethod
    def from_extent(cls, extent: GeoExtent) -> TilingScheme:
        """Build a scheme covering an extent, with a grid following its aspect ratio."""
        if not extent.is_valid or extent.srs is None:
            raise InvalidInputError(f"Invalid extent: {extent}")
        tiles_wide, tiles_high = aspect_tile_counts(extent.width, extent.height)
        return cls(extent.srs, extent.bounds, tiles_wide, tiles_high)

    @classmethod
    def from_well_known_name(cls, name: str, vdatum: str | None = None) -> TilingScheme:
        """Build a named preset, or fall back to treating the name as a reference."""
        key = name.strip().lower()
        if key in _PLATE_CARREE_ALIASES:
            reference = SpatialReference.create(PLATE_CARREE, vdatum)
            x, y = reference.geographic_srs.transform_xy(-180.0, -90.0, reference)
            return cls(reference, (x, y, -x, -y), 2, 1, well_known_name=PLATE_CARREE)
        if key == GLOBAL_GEODETIC:
            reference = SpatialReference.create("wgs84", vdatum)
            return cls(reference, WHOLE_WORLD_BOUNDS, 2, 1, well_known_name=GLOBAL_GEODETIC)
        if key in (GLOBAL_MERCATOR, SPHERICAL_MERCATOR):
            reference = SpatialReference.create(key, vdatum)
            return cls(reference, reference.mercator_bounds(), 1, 1, well_known_name=key)
        return cls.from_spatial_reference(name, vdatum)

    @classmethod
    def from_full_parameters(
        cls,
        srs: str | SpatialReference,
        bounds: Bounds,
        geo_bounds: Bounds,
        *,
        vdatum: str | None = None,
        tiles_wide: int = 1,
        tiles_high: int = 1,
    ) -> TilingScheme:
        """Build a scheme whose lat/long extent is given rather than derived."""
        reference = SpatialReference.create(srs, vdatum)
        return cls(reference, bounds, tiles_wide, tiles_high, geo_bounds=geo_bounds)

    @classmethod
    def from_options(cls, options: TilingSchemeOptions) -> TilingScheme:
        if options.name:
            return cls.from_well_known_name(options.name, options.vdatum)
        if options.srs and options.bounds is not None:
            reference = SpatialReference.create(options.srs, options.vdatum)
            return cls(
                reference,
                options.bounds,
                options.tiles_wide or 0,
                options.tiles_high or 0,
            )
        if options.srs:
            return cls.from_spatial_reference(
                options.srs,
                options.vdatum,
                tiles_wide=options.tiles_wide or 0,
                tiles_high=options.tiles_high or 0,
            )
        raise ConfigurationError("Tiling scheme options need a well-known name or an SRS.")

    def with_overridden_reference(
        self,
        srs: str | SpatialReference,
        vdatum: str | None = None,
    ) -> TilingScheme:
        """Reinterpret this scheme's numeric extent and grid under another reference."""
        reference = SpatialReference.create(srs, vdatum)
        return TilingScheme(reference, self._extent.bounds, self._tiles_wide, self._tiles_high)

    # Properties

    @property
    def srs(self) -> SpatialReference:
        return self._srs

    @property
    def extent(self) -> GeoExtent:
        return self._extent

    @property
    def latlong_extent(self) -> GeoExtent:
        return self._latlong_extent

    @property
    def tiles_wide_at_lod0(self) -> int:
        return self._tiles_wide

    @property
    def tiles_high_at_lod0(self) -> int:
        return self._tiles_high

    @property
    def well_known_name(self) -> str | None:
        return self._well_known_name

    @property
    def full_signature(self) -> str:
        return self._full_signature

    @property
    def horizontal_signature(self) -> str:
        return self._horizontal_signature

    def is_ok(self) -> bool:
        return self._extent.is_valid and self._extent.width > 0.0 and self._extent.height > 0.0

    def to_options(self) -> TilingSchemeOptions:
        srs = self.srs
        if self._well_known_name:
            return TilingSchemeOptions(name=self._well_known_name, vdatum=srs.vertical_id or None)
        return TilingSchemeOptions(
            srs=srs.horizontal_id,
            vdatum=srs.vertical_id or None,
            bounds=self._extent.bounds,
            tiles_wide=self._tiles_wide,
            tiles_high=self._tiles_high,
        )

    def describe(self) -> str:
        extent = self._extent
        return (
            f"[srs={self.srs.name}, min={extent.xmin:.16g},{extent.ymin:.16g}"
            f" max={extent.xmax:.16g},{extent.ymax:.16g}"
            f" ar={self._tiles_wide}:{self._tiles_high}"
            f" vdatum={self.srs.vertical_name}]"
        )

    # Equivalence

    def is_fully_equivalent_to(self, other: TilingScheme | None) -> bool:
        return other is not None and other._full_signature == self._full_signature

    def is_horizontally_equivalent_to(self, other: TilingScheme | None) -> bool:
        return other is not None and other._horizontal_signature == self._horizontal_signature

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TilingScheme):
            return NotImplemented
        return self.is_fully_equivalent_to(other)

    def __hash__(self) -> int:
        return self._hash

    def __repr__(self) -> str:
        return f"TilingScheme{self.describe()}"

    # Tile math

    @staticmethod
    def _check_level(level: int) -> None:
        if level < 0:
            raise InvalidInputError(f"Level must be non-negative: {level}")

    def get_tile_dimensions(self, level: int) -> tuple[float, float]:
        """Return the (width, height) of one tile at a level, in native units."""
        self._check_level(level)
        width = math.ldexp(self._extent.width / self._tiles_wide, -level)
        height = math.ldexp(self._extent.height / self._tiles_high, -level)
        return (width, height)

    def _exceeds_tile_count(self, level: int) -> bool:
        tiles_x, tiles_y = self.get_num_tiles(level)
        return tiles_x > MAX_TILE_COUNT or tiles_y > MAX_TILE_COUNT

    def get_num_tiles(self, level: int) -> tuple[int, int]:
        """Return the (columns, rows) of the grid at a level."""
        self._check_level(level)
        return (self._tiles_wide << level, self._tiles_high << level)

    def get_root_keys(self) -> list[TileKey]:
        return self.get_all_keys_at_level(0)

    def get_all_keys_at_level(self, level: int) -> list[TileKey]:
        tiles_wide, tiles_high = self.get_num_tiles(level)
        return [
            TileKey(level, column, row, self)
            for column in range(tiles_wide)
            for row in range(tiles_high)
        ]

    def create_tile_key(self, x: float, y: float, level: int) -> TileKey:
        """Return the key of the tile containing (x, y).

        INVALID outside the extent, for a negative level, or when the level's
        tile count overflows.
        """
        if level < 0 or not self._extent.contains(x, y):
            return TileKey.INVALID
        if self._exceeds_tile_count(level):
            LOGGER.debug("Tile count overflow at level %s", level)
            return TileKey.INVALID
        tiles_x, tiles_y = self.get_num_tiles(level)
        extent = self._extent
        rx = (x - extent.xmin) / extent.width
        ry = (y - extent.ymin) / extent.height
        column = min(max(int(rx * tiles_x), 0), tiles_x - 1)
        row = min(max(int((1.0 - ry) * tiles_y), 0), tiles_y - 1)
        return TileKey(level, column, row, self)

    def create_tile_key_for_point(self, point: GeoPoint, level: int) -> TileKey:
        """Return the key of the tile containing a point in any reference."""
        if not point.is_valid or point.srs is None:
            return TileKey.INVALID
        if not point.srs.is_horizontally_equivalent_to(self.srs):
            point = point.transform(self.srs)
            if not point.is_valid:
                return TileKey.INVALID
        return self.create_tile_key(point.x, point.y, level)

    def calculate_extent(self, level: int, x: int, y: int) -> GeoExtent:
        """Return the extent of tile (x, y) at a level; row 0 is the northern edge."""
        width, height = self.get_tile_dimensions(level)
        xmin = self._extent.xmin + width * x
        ymax = self._extent.ymax - height * y
        return GeoExtent(self.srs, xmin, ymax - height, xmin + width, ymax)

    def get_level_for_ground_height(self, target_height: float) -> int:
        """Return the level whose tile height best matches a target height."""
        if not (math.isfinite(target_height) and target_height > 0.0):
            raise InvalidInputError(f"Target height must be positive: {target_height}")
        _, base_height = self.get_tile_dimensions(0)
        level = math.floor(math.log2(base_height / target_height) + 0.5)
        return max(level, 0)

    def get_level_for_ground_resolution(
        self,
        resolution: float,
        tile_size: int = DEFAULT_TILE_SIZE,
    ) -> int:
        """Return the level whose tiles span ``tile_size`` samples at a resolution."""
        return self.get_level_for_ground_height(resolution * tile_size)

    def get_level_for_horizontal_resolution(self, resolution: float, tile_size: int) -> int:
        """Return the first level at least as fine as a per-pixel resolution."""
        if tile_size <= 0 or resolution <= 0.0:
            return MAX_RESOLUTION_LEVEL
        tile_resolution = self._extent.width / self._tiles_wide / tile_size
        level = 0
        while tile_resolution > resolution:
            level += 1
            tile_resolution *= 0.5
        return level

    # Cross-scheme queries

    def clamp_and_transform_extent(self, extent: GeoExtent) -> tuple[GeoExtent, bool]:
        """Express an extent in this scheme's reference, clamped to its extent.

        Returns the result and whether clamping took place. The result is
        INVALID when the extent cannot be transformed or does not overlap.
        """
        if not extent.is_valid or extent.srs is None:
            return GeoExtent.INVALID, False

        if extent.is_whole_earth:
            return self._extent, not self._extent.is_whole_earth

        local = extent.transform(self.srs)
        if local.is_valid:
            intersection = local.intersection_same_srs(self._extent)
            return intersection, intersection != self._extent

        # Direct transform failed, usually outside the projection's domain.
        # Clamp in lat/long and transform back.
        if extent.srs.is_geographic:
            geo_extent = extent
        else:
            geo_extent = extent.transform(self.srs.geographic_srs)
        if not geo_extent.is_valid or not geo_extent.intersects(self._latlong_extent):
            return GeoExtent.INVALID, False

        bounds = self._latlong_extent
        clamped = GeoExtent(
            geo_extent.srs,
            _clamp(geo_extent.xmin, bounds.xmin, bounds.xmax),
            _clamp(geo_extent.ymin, bounds.ymin, bounds.ymax),
            _clamp(geo_extent.xmax, bounds.xmin, bounds.xmax),
            _clamp(geo_extent.ymax, bounds.ymin, bounds.ymax),
        )
        return clamped.transform(self.srs), clamped != geo_extent

    def get_intersecting_tiles_for_key(self, key: TileKey) -> list[TileKey]:
        """Return this scheme's keys overlapping a key from any scheme."""
        if key.scheme is None:
            return []
        if self.is_horizontally_equivalent_to(key.scheme):
            return [key]
        level = self.get_equivalent_lod(key.scheme, key.level)
        return self.get_intersecting_tiles(key.extent, level)

    def get_intersecting_tiles(self, extent: GeoExtent, level: int) -> list[TileKey]:
        """Return this scheme's keys at a level overlapping an extent."""
        if level < 0 or not extent.is_valid or extent.srs is None:
            return []

        local = extent
        if not self.srs.is_horizontally_equivalent_to(extent.srs):
            halves = extent.split_across_antimeridian()
            if halves is not None:
                return [key for half in halves for key in self.get_intersecting_tiles(half, level)]
            local, _ = self.clamp_and_transform_extent(extent)
            if not local.is_valid:
                return []

        keys: list[TileKey] = []
        for piece in local.split_across_antimeridian() or (local,):
            keys.extend(self._add_intersecting_tiles(piece, level))
        return keys

    def _add_intersecting_tiles(self, extent: GeoExtent, level: int) -> list[TileKey]:
        if extent.crosses_antimeridian:
            LOGGER.warning("Cannot collect tiles for an extent crossing the antimeridian")
            return []
        if not extent.is_valid:
            return []
        if self._exceeds_tile_count(level):
            LOGGER.debug("Tile count overflow at level %s", level)
            return []

        tile_width, tile_height = self.get_tile_dimensions(level)
        west = extent.xmin - self._extent.xmin
        east = extent.xmax - self._extent.xmin
        north = self._extent.ymax - extent.ymax
        south = self._extent.ymax - extent.ymin
        min_x, max_x = _tile_range(west, east, tile_width)
        min_y, max_y = _tile_range(north, south, tile_height)

        num_wide, num_high = self.get_num_tiles(level)
        if min_x >= num_wide or min_y >= num_high or max_x < 0 or max_y < 0:
            return []

        min_x = min(max(min_x, 0), num_wide - 1)
        max_x = min(max(max_x, 0), num_wide - 1)
        min_y = min(max(min_y, 0), num_high - 1)
        max_y = min(max(max_y, 0), num_high - 1)
        return [
            TileKey(level, column, row, self)
            for column in range(min_x, max_x + 1)
            for row in range(min_y, max_y + 1)
        ]

    def get_equivalent_lod(self, other: TilingScheme, other_level: int) -> int:
        """Return the local level closest in tile size to ``other_level`` of another scheme."""
        if other.is_horizontally_equivalent_to(self):
            return other_level

        # Geodetic and spherical Mercator pyramids are level-aligned by convention.
        geodetic = global_geodetic()
        mercator = spherical_mercator()
        if (
            other.is_horizontally_equivalent_to(mercator)
            and self.is_horizontally_equivalent_to(geodetic)
        ) or (
            other.is_horizontally_equivalent_to(geodetic)
            and self.is_horizontally_equivalent_to(mercator)
        ):
            return other_level

        other_width, other_height = other.get_tile_dimensions(other_level)
        if not (other_width > 0.0 and other_height > 0.0):
            LOGGER.warning("get_equivalent_lod: zero tile dimension in %r", other)
            return other_level

        target_height = other.srs.transform_units(other_height, self.srs)
        return self.get_level_for_ground_height(target_height)


@lru_cache(maxsize=None)
def global_geodetic() -> TilingScheme:
    """Shared global-geodetic preset."""
    return TilingScheme.from_well_known_name(GLOBAL_GEODETIC)


@lru_cache(maxsize=None)
def spherical_mercator() -> TilingScheme:
    """Shared spherical-Mercator preset."""
    return TilingScheme.from_well_known_name(SPHERICAL_MERCATOR)

"""Tiling schemes, tile keys, and scheme options."""

from terrainlod.tiling.key import TileKey
from terrainlod.tiling.options import (
    TilingSchemeOptions,
    canonical_json,
    normalize_scheme_options,
    options_signature,
)
from terrainlod.tiling.scheme import (
    GLOBAL_GEODETIC,
    GLOBAL_MERCATOR,
    PLATE_CARREE,
    SPHERICAL_MERCATOR,
    TilingScheme,
    aspect_tile_counts,
    global_geodetic,
    spherical_mercator,
)

__all__ = [
    "GLOBAL_GEODETIC",
    "GLOBAL_MERCATOR",
    "PLATE_CARREE",
    "SPHERICAL_MERCATOR",
    "TileKey",
    "TilingScheme",
    "TilingSchemeOptions",
    "aspect_tile_counts",
    "canonical_json",
    "global_geodetic",
    "normalize_scheme_options",
    "options_signature",
    "spherical_mercator",
]

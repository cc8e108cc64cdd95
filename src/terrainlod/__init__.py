"""Tile-pyramid addressing and continuous LOD range tables."""

from terrainlod.errors import ConfigurationError, InvalidInputError, TerrainLodError
from terrainlod.geo import GeoExtent, GeoPoint, SpatialReference
from terrainlod.lod import LevelEntry, LodRangeTable, RangeTuning
from terrainlod.tiling import TileKey, TilingScheme, TilingSchemeOptions

__version__ = "0.4.0"

__all__ = [
    "ConfigurationError",
    "GeoExtent",
    "GeoPoint",
    "InvalidInputError",
    "LevelEntry",
    "LodRangeTable",
    "RangeTuning",
    "SpatialReference",
    "TerrainLodError",
    "TileKey",
    "TilingScheme",
    "TilingSchemeOptions",
    "__version__",
]

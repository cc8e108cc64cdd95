"""Spatial reference and georeferenced value helpers."""

from terrainlod.geo.extent import GeoExtent, GeoPoint
from terrainlod.geo.srs import (
    SpatialReference,
    normalize_crs,
    transform_bounds,
    transformer,
)

__all__ = [
    "GeoExtent",
    "GeoPoint",
    "SpatialReference",
    "normalize_crs",
    "transform_bounds",
    "transformer",
]

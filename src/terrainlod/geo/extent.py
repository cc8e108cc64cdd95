"""Georeferenced point and extent value types."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import ClassVar

from terrainlod.errors import InvalidInputError
from terrainlod.geo.srs import Bounds, SpatialReference, transform_bounds


@dataclass(frozen=True)
class GeoPoint:
    """A 2D point tagged with its spatial reference."""

    srs: SpatialReference | None
    x: float
    y: float

    INVALID: ClassVar[GeoPoint]

    @property
    def is_valid(self) -> bool:
        return self.srs is not None and math.isfinite(self.x) and math.isfinite(self.y)

    def transform(self, srs: SpatialReference) -> GeoPoint:
        """Return this point in another reference, or INVALID on failure."""
        if self.srs is None or not self.is_valid:
            return GeoPoint.INVALID
        x, y = self.srs.transform_xy(self.x, self.y, srs)
        if not (math.isfinite(x) and math.isfinite(y)):
            return GeoPoint.INVALID
        return GeoPoint(srs, x, y)


GeoPoint.INVALID = GeoPoint(None, 0.0, 0.0)


@dataclass(frozen=True)
class GeoExtent:
    """A rectangle tagged with its spatial reference.

    Geographic extents may have ``xmin > xmax``; such extents cross the
    antimeridian and wrap through +/-180 degrees.
    """

    srs: SpatialReference | None
    xmin: float
    ymin: float
    xmax: float
    ymax: float

    INVALID: ClassVar[GeoExtent]

    @property
    def bounds(self) -> Bounds:
        return (self.xmin, self.ymin, self.xmax, self.ymax)

    @property
    def is_valid(self) -> bool:
        if self.srs is None:
            return False
        if not all(math.isfinite(value) for value in self.bounds):
            return False
        if self.ymin > self.ymax:
            return False
        return self.xmin <= self.xmax or self.srs.is_geographic

    @property
    def is_geographic(self) -> bool:
        return self.srs is not None and self.srs.is_geographic

    @property
    def crosses_antimeridian(self) -> bool:
        return self.is_valid and self.is_geographic and self.xmin > self.xmax

    @property
    def width(self) -> float:
        if self.crosses_antimeridian:
            return self.xmax - self.xmin + 360.0
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    @property
    def center(self) -> tuple[float, float]:
        x = self.xmin + self.width / 2.0
        if self.is_geographic and x > 180.0:
            x -= 360.0
        return (x, self.ymin + self.height / 2.0)

    @property
    def width_meters(self) -> float:
        """Width in metres; geographic widths are measured along the centre parallel."""
        srs = self._reference()
        if srs.is_geographic:
            latitude = math.radians(self.center[1])
            return math.radians(self.width) * srs.equatorial_radius * math.cos(latitude)
        return self.width * srs.linear_unit_factor

    @property
    def height_meters(self) -> float:
        srs = self._reference()
        if srs.is_geographic:
            return math.radians(self.height) * srs.equatorial_radius
        return self.height * srs.linear_unit_factor

    def _reference(self) -> SpatialReference:
        if self.srs is None:
            raise InvalidInputError("Invalid extent has no spatial reference.")
        return self.srs

    @property
    def is_whole_earth(self) -> bool:
        return (
            self.is_valid
            and self.is_geographic
            and math.isclose(self.width, 360.0)
            and math.isclose(self.height, 180.0)
        )

    def contains(self, x: float, y: float) -> bool:
        if not self.is_valid or not (self.ymin <= y <= self.ymax):
            return False
        if self.crosses_antimeridian:
            return x >= self.xmin or x <= self.xmax
        return self.xmin <= x <= self.xmax

    def split_across_antimeridian(self) -> tuple[GeoExtent, GeoExtent] | None:
        """Split a crossing extent into its eastern and western halves."""
        if not self.crosses_antimeridian:
            return None
        return (
            GeoExtent(self.srs, self.xmin, self.ymin, 180.0, self.ymax),
            GeoExtent(self.srs, -180.0, self.ymin, self.xmax, self.ymax),
        )

    def _pieces(self) -> tuple[GeoExtent, ...]:
        halves = self.split_across_antimeridian()
        return halves if halves is not None else (self,)

    def intersection_same_srs(self, other: GeoExtent) -> GeoExtent:
        """Intersect two extents assumed to share a reference; INVALID when disjoint."""
        if not (self.is_valid and other.is_valid):
            return GeoExtent.INVALID
        if self.crosses_antimeridian or other.crosses_antimeridian:
            return self._intersection_pieces(other)
        xmin = max(self.xmin, other.xmin)
        ymin = max(self.ymin, other.ymin)
        xmax = min(self.xmax, other.xmax)
        ymax = min(self.ymax, other.ymax)
        if xmin >= xmax or ymin >= ymax:
            return GeoExtent.INVALID
        return GeoExtent(self.srs, xmin, ymin, xmax, ymax)

    def _intersection_pieces(self, other: GeoExtent) -> GeoExtent:
        pieces = []
        for mine in self._pieces():
            for theirs in other._pieces():
                piece = mine.intersection_same_srs(theirs)
                if piece.is_valid:
                    pieces.append(piece)
        if not pieces:
            return GeoExtent.INVALID
        ymin = min(piece.ymin for piece in pieces)
        ymax = max(piece.ymax for piece in pieces)
        east = [piece for piece in pieces if piece.xmax >= 180.0]
        west = [piece for piece in pieces if piece.xmin <= -180.0]
        if east and west:
            xmin = min(piece.xmin for piece in east)
            xmax = max(piece.xmax for piece in west)
        else:
            xmin = min(piece.xmin for piece in pieces)
            xmax = max(piece.xmax for piece in pieces)
        return GeoExtent(self.srs, xmin, ymin, xmax, ymax)

    def intersects(self, other: GeoExtent) -> bool:
        if self.srs is None or not (self.is_valid and other.is_valid):
            return False
        return self.intersection_same_srs(other.transform(self.srs)).is_valid

    def transform(self, srs: SpatialReference) -> GeoExtent:
        """Return this extent in another reference, or INVALID on failure."""
        if self.srs is None or not self.is_valid:
            return GeoExtent.INVALID
        if self.srs.is_horizontally_equivalent_to(srs):
            return replace(self, srs=srs)
        halves = self.split_across_antimeridian()
        if halves is not None:
            east, west = (half.transform(srs) for half in halves)
            if not (east.is_valid and west.is_valid):
                return GeoExtent.INVALID
            ymin = min(east.ymin, west.ymin)
            ymax = max(east.ymax, west.ymax)
            if srs.is_geographic:
                return GeoExtent(srs, east.xmin, ymin, west.xmax, ymax)
            return GeoExtent(
                srs,
                min(east.xmin, west.xmin),
                ymin,
                max(east.xmax, west.xmax),
                ymax,
            )
        bounds = transform_bounds(self.bounds, self.srs.crs, srs.crs)
        if bounds is None:
            return GeoExtent.INVALID
        return GeoExtent(srs, *bounds)

    def bounding_radius(self) -> float:
        """Radius in metres of a circle centred on the extent enclosing its corners."""
        if self.srs is None or not self.is_valid:
            return 0.0
        if self.srs.is_geographic:
            cx, cy = self.center
            lons = [self.xmin, self.xmax, self.xmin, self.xmax]
            lats = [self.ymin, self.ymin, self.ymax, self.ymax]
            _, _, distances = self.srs.geod.inv([cx] * 4, [cy] * 4, lons, lats)
            return float(max(distances))
        return math.hypot(self.width / 2.0, self.height / 2.0) * self.srs.linear_unit_factor

    def __str__(self) -> str:
        if self.srs is None:
            return "GeoExtent(INVALID)"
        return (
            f"GeoExtent({self.srs.horizontal_id}, "
            f"{self.xmin!r}, {self.ymin!r}, {self.xmax!r}, {self.ymax!r})"
        )


GeoExtent.INVALID = GeoExtent(None, 0.0, 0.0, 0.0, 0.0)

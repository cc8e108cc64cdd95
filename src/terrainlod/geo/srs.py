"""Spatial reference adapter over pyproj CRS objects."""

from __future__ import annotations

import math
from functools import cached_property, lru_cache
from typing import Tuple

import numpy as np
from pyproj import CRS, Geod, Transformer
from pyproj.exceptions import CRSError

from terrainlod.errors import ConfigurationError

Bounds = Tuple[float, float, float, float]

WGS84_EQUATORIAL_RADIUS = 6378137.0
WHOLE_WORLD_BOUNDS: Bounds = (-180.0, -90.0, 180.0, 90.0)

_HORIZONTAL_ALIASES = {
    "wgs84": "EPSG:4326",
    "spherical-mercator": "EPSG:3857",
    "global-mercator": "EPSG:3395",
    "plate-carre": "EPSG:4087",
    "plate-carree": "EPSG:4087",
    "eqc-wgs84": "EPSG:4087",
}

_VERTICAL_ALIASES = {
    "egm84": "EPSG:5798",
    "egm96": "EPSG:5773",
    "egm2008": "EPSG:3855",
}


def normalize_crs(value: str | CRS) -> CRS:
    """Normalize CRS input, including named aliases, into a pyproj CRS object."""
    if isinstance(value, str):
        value = _HORIZONTAL_ALIASES.get(value.strip().lower(), value)
    return CRS.from_user_input(value)


@lru_cache(maxsize=256)
def transformer(src: CRS, dst: CRS) -> Transformer:
    """Return a cached transformer that respects lon/lat axis order."""
    return Transformer.from_crs(src, dst, always_xy=True)


def transform_bounds(
    bounds: Bounds,
    src: CRS,
    dst: CRS,
    *,
    densify_pts: int = 21,
) -> Bounds | None:
    """Transform bounding coordinates between CRSs.

    Each edge is sampled at ``densify_pts`` interior points so curved edges
    are enclosed. Returns None when any sample fails to transform.
    """
    minx, miny, maxx, maxy = bounds
    steps = max(densify_pts, 0) + 2
    edge_xs = np.linspace(minx, maxx, steps)
    edge_ys = np.linspace(miny, maxy, steps)
    xs = np.concatenate([edge_xs, edge_xs, np.full(steps, minx), np.full(steps, maxx)])
    ys = np.concatenate([np.full(steps, miny), np.full(steps, maxy), edge_ys, edge_ys])
    out_xs, out_ys = transformer(src, dst).transform(xs, ys)
    out_xs = np.asarray(out_xs, dtype=float)
    out_ys = np.asarray(out_ys, dtype=float)
    if not (np.all(np.isfinite(out_xs)) and np.all(np.isfinite(out_ys))):
        return None
    return (
        float(out_xs.min()),
        float(out_ys.min()),
        float(out_xs.max()),
        float(out_ys.max()),
    )


@lru_cache(maxsize=128)
def _resolve(identifier: str | CRS, vdatum: str) -> SpatialReference:
    try:
        horizontal = normalize_crs(identifier)
    except CRSError as exc:
        raise ConfigurationError(f"Unrecognized SRS: {identifier!r}") from exc
    vertical = None
    if vdatum:
        try:
            vertical = CRS.from_user_input(_VERTICAL_ALIASES.get(vdatum.strip().lower(), vdatum))
        except CRSError as exc:
            raise ConfigurationError(f"Unrecognized vertical datum: {vdatum!r}") from exc
        if not vertical.is_vertical:
            raise ConfigurationError(f"Not a vertical reference: {vdatum!r}")
    return SpatialReference(horizontal, vertical)


class SpatialReference:
    """A horizontal CRS with an optional vertical datum."""

    def __init__(self, crs: CRS, vertical: CRS | None = None) -> None:
        self._crs = crs
        self._vertical = vertical
        self._horizontal_id = crs.to_string()
        self._vertical_id = vertical.to_string() if vertical is not None else ""

    @classmethod
    def create(
        cls,
        identifier: str | CRS | SpatialReference,
        vdatum: str | None = None,
    ) -> SpatialReference:
        """Resolve an identifier (and optional vertical datum) into a reference.

        Raises ConfigurationError when either part cannot be resolved.
        """
        if isinstance(identifier, SpatialReference):
            if not vdatum:
                return identifier
            identifier = identifier.crs
        return _resolve(identifier, vdatum or "")

    @property
    def crs(self) -> CRS:
        return self._crs

    @property
    def vertical_crs(self) -> CRS | None:
        return self._vertical

    @property
    def name(self) -> str:
        return self._crs.name

    @property
    def horizontal_id(self) -> str:
        """Canonical identifier of the horizontal reference."""
        return self._horizontal_id

    @property
    def vertical_id(self) -> str:
        """Canonical identifier of the vertical datum, empty when geodetic."""
        return self._vertical_id

    @property
    def vertical_name(self) -> str:
        return self._vertical.name if self._vertical is not None else "geodetic"

    @property
    def is_geographic(self) -> bool:
        return bool(self._crs.is_geographic)

    @property
    def is_mercator(self) -> bool:
        operation = self._crs.coordinate_operation
        if not self._crs.is_projected or operation is None:
            return False
        method = operation.method_name.lower()
        return "mercator" in method and "transverse" not in method

    @property
    def equatorial_radius(self) -> float:
        ellipsoid = self._crs.ellipsoid
        if ellipsoid is None:
            return WGS84_EQUATORIAL_RADIUS
        return float(ellipsoid.semi_major_metre)

    @property
    def linear_unit_factor(self) -> float:
        """Metres per native unit; degrees are measured along the equator."""
        if self.is_geographic:
            return 2.0 * math.pi * self.equatorial_radius / 360.0
        axes = self._crs.axis_info
        if axes and axes[0].unit_conversion_factor:
            return float(axes[0].unit_conversion_factor)
        return 1.0

    @cached_property
    def geographic_srs(self) -> SpatialReference:
        """The geographic reference underlying this one."""
        if self.is_geographic:
            return self
        geodetic = self._crs.geodetic_crs
        if geodetic is None:
            raise ConfigurationError(f"No geographic reference for {self._horizontal_id}")
        return SpatialReference(geodetic, self._vertical)

    @cached_property
    def geod(self) -> Geod:
        geod = self._crs.get_geod()
        if geod is None:
            radius = self.equatorial_radius
            geod = Geod(a=radius, b=radius)
        return geod

    def mercator_bounds(self) -> Bounds:
        """Square bounds from the projected position of longitude 180 on the equator."""
        edge, _ = self.geographic_srs.transform_xy(180.0, 0.0, self)
        return (-edge, -edge, edge, edge)

    def natural_bounds(self) -> Bounds | None:
        """Return the bounds this reference is defined over, if known."""
        if self.is_geographic:
            return WHOLE_WORLD_BOUNDS
        if self.is_mercator:
            return self.mercator_bounds()
        area = self._crs.area_of_use
        if area is None:
            return None
        west, south, east, north = area.bounds
        if west > east:
            return None
        return transform_bounds(
            (west, south, east, north),
            self.geographic_srs.crs,
            self._crs,
        )

    def is_horizontally_equivalent_to(self, other: SpatialReference | None) -> bool:
        if other is None:
            return False
        if other is self or other._horizontal_id == self._horizontal_id:
            return True
        return bool(self._crs.equals(other._crs, ignore_axis_order=True))

    def is_equivalent_to(self, other: SpatialReference | None) -> bool:
        return (
            other is not None
            and other._vertical_id == self._vertical_id
            and self.is_horizontally_equivalent_to(other)
        )

    def transform_xy(self, x: float, y: float, target: SpatialReference) -> tuple[float, float]:
        """Transform a single coordinate; non-finite results signal failure."""
        if self.is_horizontally_equivalent_to(target):
            return (x, y)
        out_x, out_y = transformer(self._crs, target._crs).transform(x, y)
        return (float(out_x), float(out_y))

    def transform_units(self, value: float, target: SpatialReference) -> float:
        """Convert a linear distance from this reference's units to the target's."""
        if self.is_horizontally_equivalent_to(target):
            return value
        return value * self.linear_unit_factor / target.linear_unit_factor

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SpatialReference):
            return NotImplemented
        return (
            self._horizontal_id == other._horizontal_id
            and self._vertical_id == other._vertical_id
        )

    def __hash__(self) -> int:
        return hash((self._horizontal_id, self._vertical_id))

    def __repr__(self) -> str:
        if self._vertical_id:
            return f"SpatialReference({self._horizontal_id!r}, vdatum={self._vertical_id!r})"
        return f"SpatialReference({self._horizontal_id!r})"

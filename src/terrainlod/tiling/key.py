"""Tile keys: level/column/row addresses within a tiling scheme."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from terrainlod.errors import InvalidInputError
from terrainlod.geo.extent import GeoExtent

if TYPE_CHECKING:
    from terrainlod.tiling.scheme import TilingScheme


@dataclass(frozen=True)
class TileKey:
    """Address of one tile in a scheme's pyramid.

    Column ``x`` counts from the western edge and row ``y`` from the northern
    edge of the scheme's extent.
    """

    level: int
    x: int
    y: int
    scheme: TilingScheme | None = field(default=None, repr=False)

    INVALID: ClassVar[TileKey]

    @property
    def is_valid(self) -> bool:
        return self.scheme is not None

    @property
    def extent(self) -> GeoExtent:
        if self.scheme is None:
            return GeoExtent.INVALID
        return self.scheme.calculate_extent(self.level, self.x, self.y)

    def create_parent_key(self) -> TileKey:
        if self.scheme is None or self.level == 0:
            return TileKey.INVALID
        return TileKey(self.level - 1, self.x >> 1, self.y >> 1, self.scheme)

    def create_child_key(self, quadrant: int) -> TileKey:
        """Return a child key; quadrants are 0 NW, 1 NE, 2 SW, 3 SE."""
        if quadrant not in range(4):
            raise InvalidInputError(f"Invalid quadrant: {quadrant}")
        if self.scheme is None:
            return TileKey.INVALID
        return TileKey(
            self.level + 1,
            self.x * 2 + (quadrant & 1),
            self.y * 2 + (quadrant >> 1),
            self.scheme,
        )

    def create_neighbor_key(self, dx: int, dy: int) -> TileKey:
        """Return the key offset by (dx, dy); wraps east-west, clamps north-south."""
        if self.scheme is None:
            return TileKey.INVALID
        tiles_wide, tiles_high = self.scheme.get_num_tiles(self.level)
        x = (self.x + dx) % tiles_wide
        y = min(max(self.y + dy, 0), tiles_high - 1)
        return TileKey(self.level, x, y, self.scheme)

    def __str__(self) -> str:
        if self.scheme is None:
            return "invalid"
        return f"{self.level}/{self.x}/{self.y}"


TileKey.INVALID = TileKey(0, 0, 0, None)

"""Error types raised by terrainlod."""

from __future__ import annotations


class TerrainLodError(ValueError):
    """Base class for terrainlod errors."""


class ConfigurationError(TerrainLodError):
    """Raised when a tiling scheme or range table cannot be configured."""


class InvalidInputError(TerrainLodError):
    """Raised for degenerate, non-finite, or out-of-range numeric input."""

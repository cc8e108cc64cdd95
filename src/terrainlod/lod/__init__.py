"""Continuous LOD range tables."""

from terrainlod.lod.ranges import UNBOUNDED_ROW, LevelEntry, LodRangeTable, RangeTuning

__all__ = ["LevelEntry", "LodRangeTable", "RangeTuning", "UNBOUNDED_ROW"]

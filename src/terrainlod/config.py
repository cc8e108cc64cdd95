"""Terrain config loading and normalization helpers."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

import jsonschema

from terrainlod.contracts import validate_terrain_config
from terrainlod.errors import ConfigurationError
from terrainlod.lod.ranges import LodRangeTable, RangeTuning
from terrainlod.tiling.options import TilingSchemeOptions, normalize_scheme_options
from terrainlod.tiling.scheme import TilingScheme

ENV_CONFIG_PATH = "TERRAINLOD_CONFIG"

DEFAULT_MAX_LEVEL = 19
DEFAULT_MORPH_FACTOR = 7.0


@dataclass(frozen=True)
class LodOptions:
    """Range table settings."""

    first_level: int = 0
    max_level: int = DEFAULT_MAX_LEVEL
    morph_factor: float = DEFAULT_MORPH_FACTOR
    restrict_polar_subdivision: bool = False
    tuning: RangeTuning = field(default_factory=RangeTuning)

    def as_dict(self) -> dict[str, Any]:
        return {
            "first_level": self.first_level,
            "max_level": self.max_level,
            "morph_factor": self.morph_factor,
            "restrict_polar_subdivision": self.restrict_polar_subdivision,
            **self.tuning.as_dict(),
        }


@dataclass(frozen=True)
class TerrainConfig:
    """Normalized terrain config payload."""

    profile: TilingSchemeOptions
    lod: LodOptions = field(default_factory=LodOptions)
    schema_version: str | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "profile": self.profile.as_dict(),
            "lod": self.lod.as_dict(),
        }
        if self.schema_version:
            payload["schema_version"] = self.schema_version
        return payload

    def create_scheme(self) -> TilingScheme:
        return TilingScheme.from_options(self.profile)

    def create_range_table(self, scheme: TilingScheme | None = None) -> LodRangeTable:
        """Build and initialize a range table from the lod settings."""
        table = LodRangeTable()
        table.initialize(
            self.lod.first_level,
            self.lod.max_level,
            scheme or self.create_scheme(),
            self.lod.morph_factor,
            self.lod.restrict_polar_subdivision,
            self.lod.tuning,
        )
        return table


def normalize_lod_options(payload: Mapping[str, Any] | None) -> LodOptions:
    """Normalize a raw lod payload; tuning constants sit beside the level settings."""
    if not payload:
        return LodOptions()
    tuning_keys = {item.name for item in fields(RangeTuning)}
    tuning = RangeTuning(**{key: payload[key] for key in tuning_keys if key in payload})
    return LodOptions(
        first_level=int(payload.get("first_level", 0)),
        max_level=int(payload.get("max_level", DEFAULT_MAX_LEVEL)),
        morph_factor=float(payload.get("morph_factor", DEFAULT_MORPH_FACTOR)),
        restrict_polar_subdivision=bool(payload.get("restrict_polar_subdivision", False)),
        tuning=tuning,
    )


def normalize_terrain_config(payload: Mapping[str, Any]) -> TerrainConfig:
    """Normalize a raw terrain config payload into canonical options."""
    raw_profile = payload.get("profile")
    if not isinstance(raw_profile, (str, Mapping)):
        raise ConfigurationError("Terrain config requires a profile.")
    profile = normalize_scheme_options(raw_profile)
    if not profile.defined:
        raise ConfigurationError("Profile needs a well-known name or an SRS.")
    raw_lod = payload.get("lod")
    schema_version = payload.get("schema_version")
    return TerrainConfig(
        profile=profile,
        lod=normalize_lod_options(raw_lod if isinstance(raw_lod, Mapping) else None),
        schema_version=str(schema_version) if schema_version else None,
    )


def load_terrain_config(path: Path) -> TerrainConfig:
    """Load and validate a terrain config file from disk."""
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Unable to read terrain config {path}: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise ConfigurationError("Terrain config must be a JSON object.")
    try:
        validate_terrain_config(payload)
    except jsonschema.ValidationError as exc:
        raise ConfigurationError(f"Invalid terrain config {path}: {exc.message}") from exc
    return normalize_terrain_config(payload)


def default_config_path() -> Path | None:
    """Return the config path named by the environment, if any."""
    value = os.environ.get(ENV_CONFIG_PATH)
    return Path(value) if value else None

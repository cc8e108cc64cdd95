"""Schema validation helpers for terrain config payloads."""

from __future__ import annotations

import json
from importlib import resources
from typing import Any, Mapping

import jsonschema

SCHEMA_VERSION = "1"


def _load_schema(name: str) -> dict[str, Any]:
    """Load a JSON schema bundled in the package."""
    with resources.files("terrainlod.schemas").joinpath(name).open("r", encoding="utf-8") as handle:
        return json.load(handle)


def validate_terrain_config(payload: Mapping[str, Any]) -> None:
    """Validate a raw terrain config against the schema."""
    schema = _load_schema("terrain_config.schema.json")
    jsonschema.validate(dict(payload), schema)

"""Tiling scheme options and their canonical serialization."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, replace
from typing import Any, Mapping, Tuple

Bounds = Tuple[float, float, float, float]

_BOUND_KEYS = ("xmin", "ymin", "xmax", "ymax")


@dataclass(frozen=True)
class TilingSchemeOptions:
    """Defining parameters of a tiling scheme.

    A scheme is either named (``name`` plus an optional vertical datum) or
    spelled out as an SRS with optional bounds and level-0 grid shape.
    """

    name: str | None = None
    srs: str | None = None
    vdatum: str | None = None
    bounds: Bounds | None = None
    tiles_wide: int | None = None
    tiles_high: int | None = None

    @property
    def defined(self) -> bool:
        return bool(self.name or self.srs)

    def horizontal(self) -> TilingSchemeOptions:
        """Return these options without the vertical datum."""
        return replace(self, vdatum=None)

    def as_dict(self) -> dict[str, Any]:
        if self.name:
            payload: dict[str, Any] = {"name": self.name}
            if self.vdatum:
                payload["vdatum"] = self.vdatum
            return payload
        payload = {}
        if self.srs:
            payload["srs"] = self.srs
        if self.vdatum:
            payload["vdatum"] = self.vdatum
        if self.bounds is not None:
            payload.update(zip(_BOUND_KEYS, (float(value) for value in self.bounds)))
        if self.tiles_wide is not None:
            payload["num_tiles_wide_at_lod_0"] = self.tiles_wide
        if self.tiles_high is not None:
            payload["num_tiles_high_at_lod_0"] = self.tiles_high
        return payload


def canonical_json(payload: Mapping[str, Any]) -> str:
    """Serialize a payload with sorted keys and no insignificant whitespace."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def options_signature(options: TilingSchemeOptions) -> str:
    """Return the SHA-256 hex digest of the canonical options encoding."""
    digest = hashlib.sha256()
    digest.update(canonical_json(options.as_dict()).encode("utf-8"))
    return digest.hexdigest()


def _coerce_count(value: object) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise TypeError("Tile counts must be integers.")
    return int(value)


def normalize_scheme_options(payload: str | Mapping[str, Any]) -> TilingSchemeOptions:
    """Normalize a raw profile payload into TilingSchemeOptions.

    A bare string is a well-known name. Mappings may nest the real payload
    under ``profile`` and may use the short aliases ``vsrs``, ``tx`` and ``ty``.
    """
    if isinstance(payload, str):
        return TilingSchemeOptions(name=payload)
    nested = payload.get("profile")
    if isinstance(nested, (str, Mapping)):
        return normalize_scheme_options(nested)

    name = payload.get("name")
    srs = payload.get("srs")
    vdatum = payload.get("vdatum") or payload.get("vsrs")
    bounds: Bounds | None = None
    if all(key in payload for key in _BOUND_KEYS):
        xmin, ymin, xmax, ymax = (float(payload[key]) for key in _BOUND_KEYS)
        bounds = (xmin, ymin, xmax, ymax)
    tiles_wide = payload.get("num_tiles_wide_at_lod_0", payload.get("tx"))
    tiles_high = payload.get("num_tiles_high_at_lod_0", payload.get("ty"))

    return TilingSchemeOptions(
        name=str(name) if name else None,
        srs=str(srs) if srs else None,
        vdatum=str(vdatum) if vdatum else None,
        bounds=bounds,
        tiles_wide=_coerce_count(tiles_wide),
        tiles_high=_coerce_count(tiles_high),
    )

"""Command-line interface for terrainlod."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any

from terrainlod import __version__
from terrainlod.config import LodOptions, TerrainConfig, default_config_path, load_terrain_config
from terrainlod.errors import ConfigurationError, TerrainLodError
from terrainlod.geo.extent import GeoExtent, GeoPoint
from terrainlod.geo.srs import SpatialReference
from terrainlod.lod.ranges import LodRangeTable
from terrainlod.logging_utils import LogOptions, configure_logging
from terrainlod.tiling.key import TileKey
from terrainlod.tiling.options import normalize_scheme_options
from terrainlod.tiling.scheme import TilingScheme

LOGGER = logging.getLogger("terrainlod.cli")

EXIT_CONFIG_ERROR = 2


def _add_scheme_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--profile", help="Well-known profile name or SRS.")
    parser.add_argument(
        "--config",
        help="Terrain config JSON (defaults to $TERRAINLOD_CONFIG).",
    )
    parser.add_argument("--vdatum", help="Vertical datum for --profile.")


def _add_describe_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("describe", help="Describe a tiling scheme.")
    _add_scheme_arguments(parser)


def _add_key_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("key", help="Find the tile containing a point.")
    _add_scheme_arguments(parser)
    parser.add_argument("--x", type=float, required=True, help="Point x / longitude.")
    parser.add_argument("--y", type=float, required=True, help="Point y / latitude.")
    parser.add_argument("--level", type=int, required=True, help="Pyramid level.")
    parser.add_argument("--srs", help="SRS of the point (defaults to the scheme's).")


def _add_tiles_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("tiles", help="List tiles intersecting an extent.")
    _add_scheme_arguments(parser)
    parser.add_argument(
        "--bounds",
        type=float,
        nargs=4,
        required=True,
        metavar=("XMIN", "YMIN", "XMAX", "YMAX"),
        help="Query extent.",
    )
    parser.add_argument("--level", type=int, required=True, help="Pyramid level.")
    parser.add_argument("--srs", help="SRS of the extent (defaults to the scheme's).")


def _add_ranges_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("ranges", help="Print the LOD range table.")
    _add_scheme_arguments(parser)
    parser.add_argument("--first-level", type=int, help="First level to store.")
    parser.add_argument("--max-level", type=int, help="Deepest level.")
    parser.add_argument("--morph-factor", type=float, help="Tile range factor.")
    parser.add_argument(
        "--polar",
        action="store_true",
        default=None,
        help="Restrict subdivision near the poles of geographic schemes.",
    )


def _load_config(args: argparse.Namespace) -> TerrainConfig | None:
    if args.profile:
        options = replace(normalize_scheme_options(args.profile), vdatum=args.vdatum)
        return TerrainConfig(profile=options)
    config_path = Path(args.config) if args.config else default_config_path()
    if config_path is None:
        return None
    LOGGER.debug("Loading terrain config from %s", config_path)
    return load_terrain_config(config_path)


def _require_config(args: argparse.Namespace) -> TerrainConfig:
    config = _load_config(args)
    if config is None:
        raise ConfigurationError("A --profile or --config is required.")
    return config


def _scheme_payload(scheme: TilingScheme) -> dict[str, Any]:
    return {
        "description": scheme.describe(),
        "options": scheme.to_options().as_dict(),
        "srs": scheme.srs.horizontal_id,
        "vdatum": scheme.srs.vertical_id or None,
        "extent": list(scheme.extent.bounds),
        "latlong_extent": list(scheme.latlong_extent.bounds),
        "tiles_at_lod0": [scheme.tiles_wide_at_lod0, scheme.tiles_high_at_lod0],
        "full_signature": scheme.full_signature,
        "horizontal_signature": scheme.horizontal_signature,
    }


def _key_payload(key: TileKey) -> dict[str, Any]:
    if not key.is_valid:
        return {"key": str(key)}
    return {
        "key": str(key),
        "level": key.level,
        "x": key.x,
        "y": key.y,
        "extent": list(key.extent.bounds),
    }


def _query_srs(args: argparse.Namespace, scheme: TilingScheme) -> SpatialReference:
    return SpatialReference.create(args.srs) if args.srs else scheme.srs


def _run_describe(args: argparse.Namespace) -> dict[str, Any]:
    scheme = _require_config(args).create_scheme()
    return _scheme_payload(scheme)


def _run_key(args: argparse.Namespace) -> dict[str, Any]:
    scheme = _require_config(args).create_scheme()
    point = GeoPoint(_query_srs(args, scheme), args.x, args.y)
    key = scheme.create_tile_key_for_point(point, args.level)
    if not key.is_valid:
        LOGGER.warning("Point (%s, %s) is outside the scheme extent.", args.x, args.y)
    return _key_payload(key)


def _run_tiles(args: argparse.Namespace) -> dict[str, Any]:
    scheme = _require_config(args).create_scheme()
    extent = GeoExtent(_query_srs(args, scheme), *args.bounds)
    keys = scheme.get_intersecting_tiles(extent, args.level)
    LOGGER.info("Found %s intersecting tile(s).", len(keys))
    return {"level": args.level, "tiles": [_key_payload(key) for key in keys]}


def _run_ranges(args: argparse.Namespace) -> dict[str, Any]:
    config = _require_config(args)
    overrides = {
        "first_level": args.first_level,
        "max_level": args.max_level,
        "morph_factor": args.morph_factor,
        "restrict_polar_subdivision": args.polar,
    }
    lod: LodOptions = replace(
        config.lod,
        **{key: value for key, value in overrides.items() if value is not None},
    )
    scheme = config.create_scheme()
    table = LodRangeTable()
    table.initialize(
        lod.first_level,
        lod.max_level,
        scheme,
        lod.morph_factor,
        lod.restrict_polar_subdivision,
        lod.tuning,
    )
    payload = table.as_dict()
    payload["scheme"] = scheme.describe()
    payload["morph_factor"] = lod.morph_factor
    return payload


_COMMANDS = {
    "describe": _run_describe,
    "key": _run_key,
    "tiles": _run_tiles,
    "ranges": _run_ranges,
}


def main(argv: list[str] | None = None) -> int:
    """Run the CLI entrypoint and return an exit code."""
    parser = argparse.ArgumentParser(
        prog="terrainlod",
        description="TerrainLOD tile pyramid and LOD range inspector",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (repeatable).",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Reduce log output to warnings and errors.",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit logs as JSON on stderr.",
    )
    parser.add_argument(
        "--log-file",
        help="Optional path for JSON log output.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_describe_parser(subparsers)
    _add_key_parser(subparsers)
    _add_tiles_parser(subparsers)
    _add_ranges_parser(subparsers)

    args = parser.parse_args(argv)
    configure_logging(
        LogOptions(
            verbose=args.verbose or 0,
            quiet=bool(args.quiet),
            log_file=Path(args.log_file) if args.log_file else None,
            json_console=bool(args.log_json),
        )
    )

    try:
        payload = _COMMANDS[args.command](args)
    except TerrainLodError as exc:
        LOGGER.error("%s", exc)
        return EXIT_CONFIG_ERROR
    print(json.dumps(payload, indent=2))
    return 0

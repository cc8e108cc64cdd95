"""Module entrypoint for `python -m terrainlod`."""

from __future__ import annotations

from terrainlod.cli import main

if __name__ == "__main__":
    raise SystemExit(main())

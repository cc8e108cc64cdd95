from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any


def write_config(path: Path, payload: Any) -> Path:
    """Write a terrain config payload as JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def with_src_env(base_env: dict[str, str] | None = None) -> dict[str, str]:
    """Return an environment with repo src/ on PYTHONPATH."""
    env = dict(base_env or os.environ)
    repo_root = Path(__file__).resolve().parents[1]
    src_path = repo_root / "src"
    if src_path.exists():
        existing = env.get("PYTHONPATH", "")
        entries = [entry for entry in existing.split(os.pathsep) if entry]
        src_str = str(src_path)
        if src_str not in entries:
            entries.insert(0, src_str)
        env["PYTHONPATH"] = os.pathsep.join(entries)
    return env

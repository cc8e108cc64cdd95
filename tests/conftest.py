from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

import pytest  # noqa: E402

from terrainlod import config as terrain_config  # noqa: E402
from terrainlod.tiling.scheme import TilingScheme  # noqa: E402


def pytest_collection_modifyitems(config, items) -> None:
    """Skip integration tests unless explicitly selected via -m integration."""
    markexpr = config.option.markexpr or ""
    if "integration" in markexpr:
        return
    skip_integration = pytest.mark.skip(reason="integration tests run only with -m integration")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture(autouse=True)
def _isolate_config_path(monkeypatch) -> None:
    """Prevent a local terrain config from bleeding into tests."""
    monkeypatch.delenv(terrain_config.ENV_CONFIG_PATH, raising=False)


@pytest.fixture(scope="session")
def geodetic() -> TilingScheme:
    return TilingScheme.from_well_known_name("global-geodetic")


@pytest.fixture(scope="session")
def mercator() -> TilingScheme:
    return TilingScheme.from_well_known_name("spherical-mercator")


@pytest.fixture(scope="session")
def utm_scheme() -> TilingScheme:
    return TilingScheme.from_bounds("EPSG:32632", 400000.0, 5000000.0, 500000.0, 5100000.0)

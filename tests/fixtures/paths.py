import os
from pathlib import Path

import pytest


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Returns the path to the root of the repo."""
    return Path(__file__).resolve().parents[2]


@pytest.fixture(scope="session")
def workflows_dir(project_root: Path) -> Path:
    """Returns the path to the bundled workflows/ directory."""
    return project_root / "workflows"


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Points the user config directory at an empty temp dir, clears POLYFLOW_* overrides and the cached Config."""
    for key in list(os.environ):
        if key.startswith("POLYFLOW_"):
            monkeypatch.delenv(key)
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    monkeypatch.setenv("POLYFLOW_CONFIG_DIR", str(config_dir))
    monkeypatch.setattr("polyflow.config.config._default_config", None)
    return config_dir

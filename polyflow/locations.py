from __future__ import annotations

from pathlib import Path

from platformdirs import user_config_path

from polyflow.__version__ import APP_NAME
from polyflow.env import get_prefix_env


def config_dir() -> Path:
    if configured := get_prefix_env("CONFIG_DIR"):
        return Path(configured).expanduser()

    return user_config_path(APP_NAME, appauthor=False, roaming=True)


def project_root(markers=None) -> Path:
    """
    Walks up from the current working directory to find the project root,
    identified by the presence of a marker file or directory like pyproject.toml or .git.

    Returns:
        Path to the project root. If no marker is found, returns Path.cwd().
    """
    if markers is None:
        markers = {"pyproject.toml", ".git"}

    current = Path.cwd()

    for parent in [current, *current.parents]:
        if any((parent / marker).exists() for marker in markers):
            return parent

    return current


def workflows_dir(directory: str | Path) -> Path:
    path = Path(directory).expanduser()
    if path.is_absolute():
        return path
    return project_root() / path

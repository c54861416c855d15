import logging
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError

from polyflow.exceptions import ConfigLoaderError
from polyflow.locations import project_root

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE_NAME = "pyproject.toml"
DEFAULT_POLYFLOW_CONFIG_KEY = "tool.polyflow"


def load_polyflow_toml(
    config_file_path: Path | None = None,
    polyflow_config_key: str = DEFAULT_POLYFLOW_CONFIG_KEY,
) -> dict[str, Any]:
    """
    Loads the polyflow specific configuration from a TOML file (typically pyproject.toml).

    Args:
        config_file_path: Optional path to the TOML configuration file.
                          If None, defaults to 'pyproject.toml' in the project root.
        polyflow_config_key: The dot-separated key to access polyflow's
                             configuration within the TOML file (e.g., "tool.polyflow").

    Returns:
        A dictionary containing the polyflow configuration, or an empty dict if not found.

    Raises:
        ConfigLoaderError: If the file cannot be read or parsed, or if the TOML is malformed.
    """
    if config_file_path is None:
        config_file_path = project_root() / DEFAULT_CONFIG_FILE_NAME

    logger.debug(
        f"Attempting to load polyflow configuration from: {config_file_path} using key: '{polyflow_config_key}'"
    )

    if not config_file_path.exists():
        logger.debug(
            f"Configuration file not found: {config_file_path}. "
            f"No project configuration will be loaded."
        )
        return {}

    try:
        data = tomlkit.parse(config_file_path.read_text(encoding="utf-8")).unwrap()
    except TOMLKitError as e:
        raise ConfigLoaderError(
            f"Error decoding TOML file {config_file_path}: {e}"
        ) from e
    except OSError as e:
        raise ConfigLoaderError(
            f"Could not read configuration file {config_file_path}: {e}"
        ) from e

    # Navigate through the nested keys (e.g., "tool.polyflow")
    current_level_config: Any = data
    for key in polyflow_config_key.split("."):
        if isinstance(current_level_config, dict):
            current_level_config = current_level_config.get(key, {})
        else:
            current_level_config = {}
            break

    if not isinstance(current_level_config, dict):
        logger.warning(
            f"Expected a dictionary at key '{polyflow_config_key}' in {config_file_path}, "
            f"but found type {type(current_level_config)}. Returning empty config."
        )
        return {}

    if current_level_config:
        logger.info(
            f"Loaded polyflow configuration from {config_file_path} "
            f"under key '{polyflow_config_key}'."
        )
    return current_level_config

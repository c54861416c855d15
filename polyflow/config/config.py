from __future__ import annotations

import logging
import re
from collections.abc import Callable
from copy import deepcopy
from typing import Any

from tomlkit.exceptions import TOMLKitError
from tomlkit.toml_file import TOMLFile

from polyflow.config.loader import load_polyflow_toml
from polyflow.env import get_prefix_env
from polyflow.exceptions import ConfigLoaderError
from polyflow.locations import config_dir

logger = logging.getLogger(__name__)
_default_config = None


def boolean_validator(val: str) -> bool:
    return val.lower() in {"true", "false", "1", "0", "yes", "no"}


def boolean_normalizer(val: str) -> bool:
    if not boolean_validator(val):
        raise ConfigLoaderError(f"Invalid boolean value: '{val}'")
    return val.lower() in ["true", "1", "yes"]


def int_normalizer(val: str) -> int:
    try:
        return int(val)
    except ValueError as e:
        raise ConfigLoaderError(f"Invalid integer value: '{val}'") from e


def merge_dicts(d1: dict[str, Any], d2: dict[str, Any]) -> None:
    for k, v in d2.items():
        if k in d1 and isinstance(d1[k], dict) and isinstance(v, dict):
            merge_dicts(d1[k], v)
        else:
            d1[k] = v


class Config:
    default_config = {
        "workflows": {
            "directory": "workflows",
        },
        "scheduler": {
            "mode": "parallel",
            "max-concurrency": 4,
        },
        "runners": {
            "lua": {
                "enabled": True,
            },
            "python": {
                "enabled": True,
                "interpreter": "python3",
            },
            "javascript": {
                "enabled": True,
                "interpreter": "node",
            },
            "shell": {
                "enabled": True,
                "interpreter": "bash",
            },
            "wasm": {
                "enabled": True,
                "modules-dir": "",
                "wasi-enabled": False,
                "warning-min": 1,
                "warning-max": 10,
            },
        },
        "logging": {
            "level": "INFO",
        },
    }

    def __init__(self, use_environment: bool = True) -> None:
        self._config = deepcopy(self.default_config)
        self._use_environment = use_environment

    @property
    def config(self) -> dict[str, Any]:
        return self._config

    def merge(self, config: dict[str, Any]) -> None:
        merge_dicts(self._config, config)

    def all(self) -> dict[str, Any]:
        def _all(config: dict[str, Any], parent_key: str = "") -> dict[str, Any]:
            all_ = {}

            for key in config:
                value = self.get(parent_key + key)
                if isinstance(value, dict):
                    if parent_key != "":
                        current_parent = parent_key + key + "."
                    else:
                        current_parent = key + "."
                    all_[key] = _all(config[key], parent_key=current_parent)
                    continue

                all_[key] = value

            return all_

        return _all(self.config)

    def raw(self) -> dict[str, Any]:
        return self._config

    @property
    def max_concurrency(self) -> int:
        value = int(self.get("scheduler.max-concurrency", 4))
        if value < 1:
            raise ConfigLoaderError(
                f"scheduler.max-concurrency must be at least 1, got {value}"
            )
        return value

    def runner(self, name: str) -> dict[str, Any]:
        """Resolved settings table for one runner."""
        return self.get(f"runners.{name}", {}) or {}

    def get(self, setting_name: str, default: Any = None) -> Any:
        """Retrieve a setting value."""
        keys = setting_name.split(".")

        # Looking in the environment if the setting is set via a POLYFLOW_* environment variable
        if self._use_environment:
            env = "_".join(k.upper().replace("-", "_") for k in keys)
            env_value = get_prefix_env(env)
            if env_value is not None:
                return self.process(self._get_normalizer(setting_name)(env_value))

        value = self._config

        for key in keys:
            if not isinstance(value, dict) or key not in value:
                return self.process(default)

            value = value[key]

        if self._use_environment and isinstance(value, dict):
            # this is a configuration table, it is likely that we missed env vars
            # in order to capture them recurse, eg: runners.python.interpreter
            return {k: self.get(f"{setting_name}.{k}") for k in value}

        return self.process(value)

    def process(self, value: Any) -> Any:
        if not isinstance(value, str):
            return value

        def resolve_from_config(match: re.Match[str]) -> Any:
            key = match.group(1)
            config_value = self.get(key)
            if config_value:
                return str(config_value)

            # The key doesn't exist in the config but might be resolved later,
            # so we keep it as a format variable.
            return f"{{{key}}}"

        return re.sub(r"{(.+?)}", resolve_from_config, value)

    @staticmethod
    def _get_normalizer(name: str) -> Callable[[str], Any]:
        if name.endswith(".enabled") or name == "runners.wasm.wasi-enabled":
            return boolean_normalizer

        if name in {
            "scheduler.max-concurrency",
            "runners.wasm.warning-min",
            "runners.wasm.warning-max",
        }:
            return int_normalizer

        return lambda val: val

    @classmethod
    def create(cls, reload: bool = False) -> Config:
        global _default_config

        if _default_config is None or reload:
            _default_config = cls()

            # Load global config
            config_path = config_dir() / "config.toml"
            if config_path.exists():
                logger.debug("Loading configuration file %s", config_path)
                try:
                    _default_config.merge(TOMLFile(config_path).read().unwrap())
                except (TOMLKitError, OSError) as e:
                    raise ConfigLoaderError(
                        f"Error decoding TOML file {config_path}: {e}"
                    ) from e

            # Project settings win over the global file
            _default_config.merge(load_polyflow_toml())

        return _default_config

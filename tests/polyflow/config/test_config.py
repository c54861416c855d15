from pathlib import Path

import pytest

from polyflow.config import Config
from polyflow.config.loader import load_polyflow_toml
from polyflow.exceptions import ConfigLoaderError


def test_defaults():
    config = Config()

    assert config.get("scheduler.mode") == "parallel"
    assert config.max_concurrency == 4
    assert config.get("workflows.directory") == "workflows"
    assert config.runner("shell") == {"enabled": True, "interpreter": "bash"}
    assert config.get("missing.key", "fallback") == "fallback"


def test_merge_is_deep():
    config = Config()
    config.merge({"runners": {"python": {"interpreter": "pypy3"}}})

    assert config.runner("python") == {"enabled": True, "interpreter": "pypy3"}
    assert config.runner("lua") == {"enabled": True}


@pytest.mark.parametrize(
    "env, raw, setting, expected",
    [
        ("POLYFLOW_SCHEDULER_MAX_CONCURRENCY", "8", "scheduler.max-concurrency", 8),
        ("POLYFLOW_RUNNERS_WASM_WARNING_MAX", "12", "runners.wasm.warning-max", 12),
        ("POLYFLOW_RUNNERS_LUA_ENABLED", "no", "runners.lua.enabled", False),
        ("POLYFLOW_RUNNERS_WASM_WASI_ENABLED", "1", "runners.wasm.wasi-enabled", True),
        ("POLYFLOW_SCHEDULER_MODE", "sequential", "scheduler.mode", "sequential"),
    ],
)
def test_environment_overrides_are_normalized(monkeypatch, env, raw, setting, expected):
    monkeypatch.setenv(env, raw)

    assert Config().get(setting) == expected


def test_environment_reaches_nested_tables(monkeypatch):
    monkeypatch.setenv("POLYFLOW_RUNNERS_WASM_WASI_ENABLED", "true")

    assert Config().runner("wasm")["wasi-enabled"] is True
    assert Config(use_environment=False).runner("wasm")["wasi-enabled"] is False


@pytest.mark.parametrize(
    "env, value",
    [
        ("POLYFLOW_RUNNERS_SHELL_ENABLED", "maybe"),
        ("POLYFLOW_SCHEDULER_MAX_CONCURRENCY", "many"),
    ],
)
def test_invalid_environment_values(monkeypatch, env, value):
    monkeypatch.setenv(env, value)
    config = Config()

    with pytest.raises(ConfigLoaderError):
        config.all()


def test_max_concurrency_must_be_positive():
    config = Config()
    config.merge({"scheduler": {"max-concurrency": 0}})

    with pytest.raises(ConfigLoaderError, match="at least 1"):
        _ = config.max_concurrency


def test_placeholders_are_resolved():
    config = Config()
    config.merge(
        {
            "workflows": {"directory": "{runners.wasm.modules-dir}/flows"},
            "runners": {"wasm": {"modules-dir": "/srv/polyflow"}},
        }
    )

    assert config.get("workflows.directory") == "/srv/polyflow/flows"


def test_unknown_placeholder_is_kept():
    config = Config()
    config.merge({"workflows": {"directory": "{nowhere}/flows"}})

    assert config.get("workflows.directory") == "{nowhere}/flows"


def test_all_flattens_to_resolved_values(monkeypatch):
    monkeypatch.setenv("POLYFLOW_LOGGING_LEVEL", "DEBUG")

    everything = Config().all()

    assert everything["logging"] == {"level": "DEBUG"}
    assert everything["runners"]["javascript"]["interpreter"] == "node"


def test_create_reads_user_config_file(isolated_config_dir, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (isolated_config_dir / "config.toml").write_text(
        '[scheduler]\nmode = "sequential"\n\n[runners.shell]\ninterpreter = "sh"\n',
        encoding="utf-8",
    )

    config = Config.create()

    assert config.get("scheduler.mode") == "sequential"
    assert config.runner("shell")["interpreter"] == "sh"
    assert Config.create() is config
    assert Config.create(reload=True) is not config


def test_create_project_settings_win(isolated_config_dir, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (isolated_config_dir / "config.toml").write_text(
        '[scheduler]\nmode = "sequential"\nmax-concurrency = 2\n', encoding="utf-8"
    )
    (tmp_path / "pyproject.toml").write_text(
        '[project]\nname = "flows"\n\n[tool.polyflow.scheduler]\nmode = "parallel"\n',
        encoding="utf-8",
    )

    config = Config.create(reload=True)

    assert config.get("scheduler.mode") == "parallel"
    assert config.max_concurrency == 2


def test_create_rejects_malformed_user_config(isolated_config_dir, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (isolated_config_dir / "config.toml").write_text("[scheduler\n", encoding="utf-8")

    with pytest.raises(ConfigLoaderError, match="config.toml"):
        Config.create(reload=True)


class TestLoadPolyflowToml:
    def test_missing_file(self, tmp_path: Path):
        assert load_polyflow_toml(tmp_path / "pyproject.toml") == {}

    def test_reads_tool_table(self, tmp_path: Path):
        path = tmp_path / "pyproject.toml"
        path.write_text(
            '[tool.polyflow.workflows]\ndirectory = "flows"\n', encoding="utf-8"
        )

        assert load_polyflow_toml(path) == {"workflows": {"directory": "flows"}}

    def test_custom_key_and_absent_table(self, tmp_path: Path):
        path = tmp_path / "settings.toml"
        path.write_text('[polyflow]\nlogging = { level = "DEBUG" }\n', encoding="utf-8")

        assert load_polyflow_toml(path, "polyflow") == {"logging": {"level": "DEBUG"}}
        assert load_polyflow_toml(path, "tool.polyflow") == {}

    def test_non_table_value(self, tmp_path: Path):
        path = tmp_path / "pyproject.toml"
        path.write_text('[tool]\npolyflow = "oops"\n', encoding="utf-8")

        assert load_polyflow_toml(path) == {}

    def test_malformed_file(self, tmp_path: Path):
        path = tmp_path / "pyproject.toml"
        path.write_text("[tool.polyflow\n", encoding="utf-8")

        with pytest.raises(ConfigLoaderError, match="Error decoding TOML"):
            load_polyflow_toml(path)

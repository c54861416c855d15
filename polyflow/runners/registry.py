from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from polyflow.definition.schema import StepDefinition
from polyflow.definition.schema import WorkflowDefinition
from polyflow.exceptions import UnsupportedLanguageError
from polyflow.marshal import JSONValue
from polyflow.runners.base import Runner
from polyflow.runners.base import settings_value
from polyflow.runners.javascript_runner import JavaScriptRunner
from polyflow.runners.lua_runner import LuaRunner
from polyflow.runners.python_runner import PythonRunner
from polyflow.runners.shell_runner import ShellRunner
from polyflow.runners.wasm_runner import WasmRunner

if TYPE_CHECKING:
    from polyflow.config.config import Config

logger = logging.getLogger(__name__)


class RunnerRegistry:
    """Maps language tags and their aliases to runners."""

    def __init__(self, runners: Iterable[Runner] = ()) -> None:
        self._runners: dict[str, Runner] = {}
        self._aliases: dict[str, Runner] = {}
        for runner in runners:
            self.register(runner)

    def register(self, runner: Runner) -> None:
        self._runners[runner.name] = runner
        for alias in (runner.name, *runner.aliases):
            self._aliases[alias.lower()] = runner
        logger.debug(f"Registered runner '{runner.name}' (aliases: {runner.aliases})")

    def resolve(self, language: str) -> Runner:
        try:
            return self._aliases[language.lower()]
        except KeyError:
            raise UnsupportedLanguageError(language) from None

    def supports(self, language: str) -> bool:
        return language.lower() in self._aliases

    @property
    def languages(self) -> list[str]:
        return sorted(self._aliases)

    @property
    def runners(self) -> list[Runner]:
        return list(self._runners.values())

    def unsupported(self, workflow: WorkflowDefinition) -> list[StepDefinition]:
        """Steps whose language no registered runner handles."""
        return [s for s in workflow.step_list if not self.supports(s.language)]

    @contextmanager
    def dispatcher(self) -> Iterator[Dispatcher]:
        dispatcher = Dispatcher(self)
        try:
            yield dispatcher
        finally:
            dispatcher.close()

    @classmethod
    def default(cls) -> RunnerRegistry:
        return cls(
            [LuaRunner(), PythonRunner(), JavaScriptRunner(), ShellRunner(), WasmRunner()]
        )

    @classmethod
    def from_config(cls, config: Config) -> RunnerRegistry:
        """Registers every enabled runner with its configured settings."""
        registry = cls()

        def enabled(name: str) -> bool:
            return bool(settings_value(config.runner(name), "enabled", True))

        if enabled("lua"):
            registry.register(LuaRunner())
        for runner_cls in (PythonRunner, JavaScriptRunner, ShellRunner):
            if enabled(runner_cls.name):
                settings = config.runner(runner_cls.name)
                registry.register(
                    runner_cls(interpreter=settings_value(settings, "interpreter"))
                )
        if enabled("wasm"):
            settings = config.runner("wasm")
            registry.register(
                WasmRunner(
                    modules_dir=settings_value(settings, "modules-dir"),
                    wasi_enabled=bool(settings_value(settings, "wasi-enabled", False)),
                    warning_min=int(settings_value(settings, "warning-min", 1)),
                    warning_max=int(settings_value(settings, "warning-max", 10)),
                )
            )

        logger.debug(f"Runner registry built with languages: {registry.languages}")
        return registry


class Dispatcher:
    """Routes steps to runners and owns the per-run runner sessions."""

    def __init__(self, registry: RunnerRegistry) -> None:
        self._registry = registry
        self._sessions: dict[str, Runner] = {}
        self._lock = threading.Lock()
        self._closed = False

    def session_for(self, language: str) -> Runner:
        runner = self._registry.resolve(language)
        with self._lock:
            if self._closed:
                raise RuntimeError("Dispatcher is closed.")
            session = self._sessions.get(runner.name)
            if session is None:
                session = runner.session()
                self._sessions[runner.name] = session
            return session

    def execute(self, step: StepDefinition, inputs: dict[str, JSONValue]) -> JSONValue:
        try:
            session = self.session_for(step.language)
        except UnsupportedLanguageError:
            raise UnsupportedLanguageError(step.language, step.name) from None
        return session.execute(step, inputs)

    def close(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
            self._closed = True

        for session in sessions:
            try:
                session.close()
            except Exception:
                logger.warning(f"Failed to close runner session {session!r}", exc_info=True)

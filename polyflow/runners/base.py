from __future__ import annotations

import json
import logging
import os
import re
import shutil
import subprocess
import tempfile
from abc import ABC
from abc import abstractmethod
from pathlib import Path
from typing import Any
from typing import ClassVar

from polyflow.definition.schema import StepDefinition
from polyflow.exceptions import InterpreterUnavailableError
from polyflow.exceptions import RunnerExecutionError
from polyflow.marshal import JSONValue
from polyflow.marshal import dumps
from polyflow.marshal import loads
from polyflow.marshal import parse_output

logger = logging.getLogger(__name__)

INPUTS_ENV_VAR = "POLYFLOW_INPUTS"
RESULT_MARKER = "__POLYFLOW_RESULT__"


class Runner(ABC):
    """
    Executes the code of one step in one language.

    `inputs` holds the outputs of the step's dependencies keyed by step name;
    it is empty for steps without dependencies. The return value is always a
    JSON value.
    """

    name: ClassVar[str] = ""
    aliases: ClassVar[tuple[str, ...]] = ()

    @abstractmethod
    def execute(self, step: StepDefinition, inputs: dict[str, JSONValue]) -> JSONValue:
        raise NotImplementedError

    def session(self) -> Runner:
        """Returns the executor used for a single run. Stateless runners return themselves."""
        return self

    def close(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


def extract_result(stdout: str, stderr: str = "", exit_code: int = 0) -> JSONValue:
    """Reads the harness result line if there is one, otherwise parses stdout as is."""
    lines = stdout.splitlines()
    for index in range(len(lines) - 1, -1, -1):
        line = lines[index]
        if line.startswith(RESULT_MARKER):
            return loads(line[len(RESULT_MARKER) :].strip())
    return parse_output(stdout, stderr, exit_code)


class SubprocessRunner(Runner):
    """Runs a generated script with an external interpreter."""

    default_interpreter: ClassVar[str] = ""
    suffix: ClassVar[str] = ".txt"

    def __init__(self, interpreter: str | None = None) -> None:
        self.interpreter = interpreter or self.default_interpreter

    @abstractmethod
    def build_script(self, step: StepDefinition, inputs: dict[str, JSONValue]) -> str:
        raise NotImplementedError

    def build_env(self, step: StepDefinition, inputs: dict[str, JSONValue]) -> dict[str, str]:
        env = dict(os.environ)
        env[INPUTS_ENV_VAR] = dumps(inputs)
        return env

    def resolve_interpreter(self) -> str:
        resolved = shutil.which(self.interpreter)
        if resolved is None:
            raise InterpreterUnavailableError(self.name, self.interpreter)
        return resolved

    def execute(self, step: StepDefinition, inputs: dict[str, JSONValue]) -> JSONValue:
        interpreter = self.resolve_interpreter()
        script = self.build_script(step, inputs)
        env = self.build_env(step, inputs)

        with tempfile.TemporaryDirectory(prefix="polyflow-") as tmp:
            script_path = Path(tmp) / f"{_safe_file_name(step.name)}{self.suffix}"
            script_path.write_text(script, encoding="utf-8")
            logger.debug(f"Running step '{step.name}' with {interpreter} {script_path}")

            try:
                completed = subprocess.run(
                    [interpreter, str(script_path)],
                    capture_output=True,
                    text=True,
                    env=env,
                    check=False,
                )
            except OSError as e:
                raise RunnerExecutionError(
                    step.name, f"could not start '{interpreter}': {e}"
                ) from e

        if completed.returncode != 0:
            stderr = completed.stderr.strip() or completed.stdout.strip()
            raise RunnerExecutionError(
                step.name,
                f"{self.name} exited with code {completed.returncode}: {stderr}",
            )

        if completed.stderr.strip():
            logger.debug(f"Step '{step.name}' stderr: {completed.stderr.strip()}")

        try:
            return extract_result(
                completed.stdout, completed.stderr, completed.returncode
            )
        except json.JSONDecodeError as e:
            raise RunnerExecutionError(
                step.name, f"malformed result emitted by the {self.name} harness: {e}"
            ) from e


def _safe_file_name(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]", "_", name) or "step"


def settings_value(settings: dict[str, Any], key: str, default: Any = None) -> Any:
    value = settings.get(key)
    return default if value in (None, "") else value

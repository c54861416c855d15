import re

from polyflow.definition.schema import StepDefinition
from polyflow.marshal import JSONValue
from polyflow.marshal import dumps
from polyflow.runners.base import SubprocessRunner

_PRELUDE = """\
set -e

# parse_input <step>: prints the JSON output of a dependency
parse_input() {
  local var
  var=$(printf '%s' "INPUT_$1" | tr -c 'A-Za-z0-9_' '_' | tr '[:lower:]' '[:upper:]')
  printf '%s\\n' "${!var}"
}
"""

_EPILOGUE = """
if declare -F run > /dev/null; then
  run
fi
"""


def input_variable(step_name: str) -> str:
    """Environment variable holding a dependency's output, e.g. INPUT_FETCH_DATA."""
    return "INPUT_" + re.sub(r"[^A-Za-z0-9_]", "_", step_name).upper()


class ShellRunner(SubprocessRunner):
    """
    Runs shell steps with bash.

    Dependency outputs are exported as JSON in `INPUT_<NAME>` variables; the
    step's stdout is its result, parsed as JSON when it holds any.
    """

    name = "shell"
    aliases = ("bash", "sh")
    default_interpreter = "bash"
    suffix = ".sh"

    def build_env(
        self, step: StepDefinition, inputs: dict[str, JSONValue]
    ) -> dict[str, str]:
        env = super().build_env(step, inputs)
        for name, value in inputs.items():
            env[input_variable(name)] = dumps(value)
        return env

    def build_script(self, step: StepDefinition, inputs: dict[str, JSONValue]) -> str:
        return f"{_PRELUDE}\n{step.code}\n{_EPILOGUE}"

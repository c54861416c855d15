import textwrap

from polyflow.definition.schema import StepDefinition
from polyflow.marshal import JSONValue
from polyflow.runners.base import INPUTS_ENV_VAR
from polyflow.runners.base import RESULT_MARKER
from polyflow.runners.base import SubprocessRunner

_PRELUDE = f"""\
import json as _pf_json
import os as _pf_os
import sys as _pf_sys

inputs = _pf_json.loads(_pf_os.environ.get("{INPUTS_ENV_VAR}") or "{{}}")
"""

_EPILOGUE = f"""

def _pf_to_json(value):
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if value == value and value not in (float("inf"), float("-inf")) else None
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, dict):
        keys = list(value)
        if keys and all(isinstance(k, int) and not isinstance(k, bool) for k in keys) \\
                and sorted(keys) == list(range(1, len(keys) + 1)):
            return [_pf_to_json(value[k]) for k in sorted(keys)]
        return {{str(k): _pf_to_json(v) for k, v in value.items()}}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_pf_to_json(v) for v in value]
    return str(value)


if not callable(globals().get("run")):
    print("no 'run' function defined", file=_pf_sys.stderr)
    _pf_sys.exit(1)

_pf_result = run(inputs) if inputs else run()
_pf_result = {{}} if _pf_result is None else _pf_to_json(_pf_result)
_pf_sys.stdout.flush()
print("{RESULT_MARKER}" + _pf_json.dumps(_pf_result))
"""


class PythonRunner(SubprocessRunner):
    """Runs Python steps in a fresh interpreter process."""

    name = "python"
    aliases = ("python3", "py")
    default_interpreter = "python3"
    suffix = ".py"

    def build_script(self, step: StepDefinition, inputs: dict[str, JSONValue]) -> str:
        return f"{_PRELUDE}\n{textwrap.dedent(step.code)}\n{_EPILOGUE}"

from polyflow.definition.schema import StepDefinition
from polyflow.marshal import JSONValue
from polyflow.marshal import dumps
from polyflow.runners.base import RESULT_MARKER
from polyflow.runners.base import SubprocessRunner

_EPILOGUE = f"""
(async () => {{
  if (typeof run !== "function") {{
    console.error("no 'run' function defined");
    process.exit(1);
  }}
  let result = Object.keys(inputs).length > 0 ? run(inputs) : run();
  if (result && typeof result.then === "function") {{
    result = await result;
  }}
  if (result === undefined || result === null) {{
    result = {{}};
  }}
  process.stdout.write("{RESULT_MARKER}" + JSON.stringify(result) + "\\n");
}})().catch((err) => {{
  console.error(err && err.stack ? err.stack : String(err));
  process.exit(1);
}});
"""


class JavaScriptRunner(SubprocessRunner):
    """Runs JavaScript steps with node."""

    name = "javascript"
    aliases = ("js", "node", "nodejs")
    default_interpreter = "node"
    suffix = ".js"

    def build_script(self, step: StepDefinition, inputs: dict[str, JSONValue]) -> str:
        return f"const inputs = {dumps(inputs)};\n\n{step.code}\n{_EPILOGUE}"

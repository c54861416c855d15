"""
Embedded Lua runner.

A run gets its own `LuaRuntime`; each step's chunk is loaded into a private
environment table that falls back to the runtime's globals, so helper
functions and `run` definitions of one step never leak into another.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from lupa import LuaError
from lupa import LuaRuntime
from lupa import lua_type

from polyflow.definition.schema import StepDefinition
from polyflow.exceptions import RunnerExecutionError
from polyflow.marshal import JSONValue
from polyflow.marshal import normalize_result
from polyflow.runners.base import Runner

logger = logging.getLogger(__name__)

# lupa registers a `python` module even without eval or builtins.
_HIDE_PYTHON = """
python = nil
if package and package.loaded then package.loaded.python = nil end
"""

_LOAD_STEP = """
return function(code, chunkname)
  local env = setmetatable({}, {__index = _G})
  local chunk, err
  if setfenv then
    chunk, err = loadstring(code, chunkname)
    if chunk then setfenv(chunk, env) end
  else
    chunk, err = load(code, chunkname, "t", env)
  end
  if not chunk then error(err, 0) end
  chunk()
  local run = rawget(env, "run")
  if type(run) ~= "function" then
    error("no 'run' function defined", 0)
  end
  return run
end
"""


def from_lua(value: Any) -> Any:
    """Copies Lua tables into Python dicts; other values pass through."""
    if lua_type(value) == "table":
        return {k: from_lua(v) for k, v in value.items()}
    return value


class LuaSession(Runner):
    """One Lua interpreter shared by every Lua step of a run."""

    name = "lua"

    def __init__(self) -> None:
        self._runtime = LuaRuntime(
            register_eval=False,
            register_builtins=False,
            unpack_returned_tuples=True,
        )
        self._runtime.execute(_HIDE_PYTHON)
        self._load_step = self._runtime.execute(_LOAD_STEP)
        self._lock = threading.Lock()

    def execute(self, step: StepDefinition, inputs: dict[str, JSONValue]) -> JSONValue:
        with self._lock:
            try:
                run = self._load_step(step.code, f"={step.name}")
                if inputs:
                    result = run(self._runtime.table_from(inputs, recursive=True))
                else:
                    result = run()
                return normalize_result(from_lua(result))
            except LuaError as e:
                raise RunnerExecutionError(step.name, str(e)) from e

    def close(self) -> None:
        logger.debug("Closing Lua session")
        self._runtime = None
        self._load_step = None


class LuaRunner(Runner):
    """Runs Lua steps inside an embedded interpreter."""

    name = "lua"

    def session(self) -> LuaSession:
        return LuaSession()

    def execute(self, step: StepDefinition, inputs: dict[str, JSONValue]) -> JSONValue:
        session = self.session()
        try:
            return session.execute(step, inputs)
        finally:
            session.close()

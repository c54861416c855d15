"""
Language runners and the registry that dispatches steps to them.
"""

from .base import Runner
from .base import SubprocessRunner
from .javascript_runner import JavaScriptRunner
from .lua_runner import LuaRunner
from .python_runner import PythonRunner
from .registry import Dispatcher
from .registry import RunnerRegistry
from .shell_runner import ShellRunner
from .wasm_runner import WasmRunner

__all__ = [
    "Dispatcher",
    "JavaScriptRunner",
    "LuaRunner",
    "PythonRunner",
    "Runner",
    "RunnerRegistry",
    "ShellRunner",
    "SubprocessRunner",
    "WasmRunner",
]

"""
WebAssembly runner built on wasmtime.

The exported entry point is matched against a fixed list of signatures and
the first one that fits is called. The return code becomes the step status:
0 is success, codes inside the warning band are warnings, anything else fails
the step.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC
from datetime import datetime
from pathlib import Path
from typing import Any

from wasmtime import Engine
from wasmtime import Func
from wasmtime import Instance
from wasmtime import Linker
from wasmtime import Module
from wasmtime import Store
from wasmtime import Trap
from wasmtime import WasiConfig
from wasmtime import WasmtimeError

from polyflow.definition.schema import StepDefinition
from polyflow.exceptions import RunnerExecutionError
from polyflow.marshal import JSONValue
from polyflow.marshal import dumps
from polyflow.marshal import summarize
from polyflow.runners.base import INPUTS_ENV_VAR
from polyflow.runners.base import Runner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignatureProbe:
    label: str
    params: tuple[str, ...]
    results: tuple[str, ...]
    call: Callable[[Func, Store, int], Any]


PROBES = (
    SignatureProbe("() -> i32", (), ("i32",), lambda f, store, n: f(store)),
    SignatureProbe("(i32) -> i32", ("i32",), ("i32",), lambda f, store, n: f(store, n)),
    SignatureProbe("() -> ()", (), (), lambda f, store, n: f(store) or 0),
)


def _signature(func: Func, store: Store) -> tuple[tuple[str, ...], tuple[str, ...]]:
    func_type = func.type(store)
    return (
        tuple(str(p) for p in func_type.params),
        tuple(str(r) for r in func_type.results),
    )


class WasmSession(Runner):
    """Engine and compiled modules shared by the wasm steps of one run."""

    name = "wasm"

    def __init__(self, runner: WasmRunner) -> None:
        self._runner = runner
        self._engine = Engine()
        self._modules: dict[Path, Module] = {}
        self._lock = threading.Lock()

    def _module(self, path: Path) -> Module:
        with self._lock:
            if path not in self._modules:
                logger.debug(f"Compiling wasm module {path}")
                if path.suffix == ".wat":
                    # Text format modules are compiled on load.
                    self._modules[path] = Module(self._engine, path.read_text(encoding="utf-8"))
                else:
                    self._modules[path] = Module.from_file(self._engine, str(path))
            return self._modules[path]

    def _instantiate(
        self, store: Store, module: Module, inputs: dict[str, JSONValue]
    ) -> Instance:
        if not self._runner.wasi_enabled:
            return Instance(store, module, [])

        wasi = WasiConfig()
        wasi.env = [(INPUTS_ENV_VAR, dumps(inputs))]
        wasi.inherit_stderr()
        store.set_wasi(wasi)

        linker = Linker(self._engine)
        linker.define_wasi()
        return linker.instantiate(store, module)

    def execute(self, step: StepDefinition, inputs: dict[str, JSONValue]) -> JSONValue:
        path = self._runner.resolve_module(step)
        function_name = step.function

        try:
            module = self._module(path)
            store = Store(self._engine)
            instance = self._instantiate(store, module, inputs)
        except (Trap, WasmtimeError) as e:
            raise RunnerExecutionError(
                step.name, f"could not load wasm module {path}: {e}"
            ) from e

        try:
            export = instance.exports(store)[function_name]
        except KeyError:
            export = None
        if not isinstance(export, Func):
            names = [e.name for e in module.exports]
            raise RunnerExecutionError(
                step.name,
                f"function '{function_name}' is not exported by {path.name}; "
                f"available exports: {names}",
            )

        params, results = _signature(export, store)
        probe = next(
            (p for p in PROBES if p.params == params and p.results == results), None
        )
        if probe is None:
            names = [e.name for e in module.exports]
            raise RunnerExecutionError(
                step.name,
                f"function '{function_name}' has unsupported signature "
                f"({', '.join(params)}) -> ({', '.join(results)}); "
                f"supported: {[p.label for p in PROBES]}; exports: {names}",
            )

        try:
            return_code = int(probe.call(export, store, len(inputs)))
        except (Trap, WasmtimeError) as e:
            raise RunnerExecutionError(step.name, f"wasm trap: {e}") from e

        status = self._runner.status_for(return_code)
        if status is None:
            raise RunnerExecutionError(
                step.name,
                f"wasm function '{function_name}' returned error code {return_code}",
            )
        if status == "warning":
            logger.warning(
                f"Step '{step.name}' finished with warning code {return_code}"
            )

        return {
            "wasm_execution": {
                "module": str(path),
                "function": function_name,
                "signature": probe.label,
                "return_code": return_code,
                "status": status,
                "input_count": len(inputs),
            },
            "input_summary": {name: summarize(value) for name, value in inputs.items()},
            "processed_data": {
                "inputs_received": sorted(inputs),
                "timestamp": datetime.now(UTC).isoformat(),
            },
        }

    def close(self) -> None:
        with self._lock:
            self._modules.clear()


class WasmRunner(Runner):
    """Runs exported functions of compiled WebAssembly modules."""

    name = "wasm"
    aliases = ("webassembly",)

    def __init__(
        self,
        modules_dir: str | Path | None = None,
        wasi_enabled: bool = False,
        warning_min: int = 1,
        warning_max: int = 10,
    ) -> None:
        if warning_min > warning_max:
            raise ValueError(
                f"warning_min ({warning_min}) must not exceed warning_max ({warning_max})"
            )
        self.modules_dir = Path(modules_dir) if modules_dir else None
        self.wasi_enabled = wasi_enabled
        self.warning_min = warning_min
        self.warning_max = warning_max

    def resolve_module(self, step: StepDefinition) -> Path:
        """Looks for the module as given, then under the modules directory."""
        candidates = [Path(step.module)]
        if self.modules_dir is not None:
            candidates.append(self.modules_dir / step.module)

        for candidate in candidates:
            if candidate.is_file():
                return candidate

        raise RunnerExecutionError(
            step.name,
            f"wasm module not found: {step.module} "
            f"(searched: {[str(c) for c in candidates]})",
        )

    def status_for(self, return_code: int) -> str | None:
        if return_code == 0:
            return "success"
        if self.warning_min <= return_code <= self.warning_max:
            return "warning"
        return None

    def session(self) -> WasmSession:
        return WasmSession(self)

    def execute(self, step: StepDefinition, inputs: dict[str, JSONValue]) -> JSONValue:
        session = self.session()
        try:
            return session.execute(step, inputs)
        finally:
            session.close()

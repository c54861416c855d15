from __future__ import annotations

from collections.abc import Sequence

from click import ClickException


class PolyflowError(Exception):
    """Base exception for all polyflow application errors."""

    pass


class PolyflowConsoleError(PolyflowError, ClickException):
    """Custom exception for polyflow console errors."""

    pass


class ConfigLoaderError(PolyflowError):
    """Custom exception for configuration loading errors."""

    pass


class DefinitionError(PolyflowError):
    """Raised when a workflow document is malformed, incomplete or uses a legacy shape."""

    pass


class GraphError(PolyflowError):
    """Base exception for dependency graph resolution errors."""

    pass


class UnknownDependencyError(GraphError):
    """Raised when a step depends on a step that does not exist in the workflow."""

    def __init__(self, step: str, dependency: str, known: Sequence[str] = ()) -> None:
        self.step = step
        self.dependency = dependency
        message = f"Step '{step}' depends on missing step '{dependency}'."
        if known:
            message += f" Known steps: {sorted(known)}"
        super().__init__(message)


class CycleError(GraphError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, step: str, cycle: Sequence[str] = ()) -> None:
        self.step = step
        self.cycle = list(cycle)
        message = f"Circular dependency detected involving step '{step}'"
        if self.cycle:
            message += f" ({' -> '.join(self.cycle)})"
        super().__init__(message)


class RunnerError(PolyflowError):
    """Base exception for failures raised while dispatching or running a step."""

    pass


class UnsupportedLanguageError(RunnerError):
    """Raised when no runner is registered for a step's language."""

    def __init__(self, language: str, step: str | None = None) -> None:
        self.language = language
        self.step = step
        message = f"Unsupported language: '{language}'"
        if step:
            message += f" (step '{step}')"
        super().__init__(message)


class InterpreterUnavailableError(RunnerError):
    """Raised when a subprocess runner cannot find its interpreter on the host."""

    def __init__(self, language: str, interpreter: str) -> None:
        self.language = language
        self.interpreter = interpreter
        super().__init__(
            f"Interpreter '{interpreter}' for language '{language}' is not installed "
            f"or not available in PATH."
        )


class RunnerExecutionError(RunnerError):
    """Raised when step code fails: runtime error, non-zero exit or trap."""

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        super().__init__(f"Step '{step}' failed: {message}")


class ResultStoreError(PolyflowError):
    """Raised when a step result is published more than once."""

    pass


class WorkflowRunError(PolyflowError):
    """Custom exception for errors during workflow run coordination."""

    pass

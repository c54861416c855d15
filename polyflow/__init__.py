"""
polyflow: run workflows whose steps are written in different languages.

A workflow document declares steps (Lua, Python, JavaScript, shell or
WebAssembly) and the steps they depend on; polyflow resolves the dependency
graph and runs each step with the matching runner, passing JSON results from
one step to the next.
"""

from polyflow.__version__ import __version__
from polyflow.config.config import Config
from polyflow.definition import StepDefinition
from polyflow.definition import WorkflowDefinition
from polyflow.definition import WorkflowDefinitionLoader
from polyflow.run import ExecutionMode
from polyflow.run import ExecutionTrace
from polyflow.run import Scheduler
from polyflow.run import WorkflowRunCoordinator
from polyflow.runners import RunnerRegistry

__all__ = [
    "Config",
    "ExecutionMode",
    "ExecutionTrace",
    "RunnerRegistry",
    "Scheduler",
    "StepDefinition",
    "WorkflowDefinition",
    "WorkflowDefinitionLoader",
    "WorkflowRunCoordinator",
    "__version__",
]

"""
Exposes the primary classes for running and inspecting a workflow run.

This module provides the main entry point for executing a workflow,
the `WorkflowRunCoordinator`, the `Scheduler` it drives, and the data model
for the run's result, `ExecutionTrace`.
"""

from .coordinator import WorkflowInfo
from .coordinator import WorkflowRunCoordinator
from .scheduler import Scheduler
from .store import ResultStore
from .summary_model import ExecutionMode
from .summary_model import ExecutionTrace
from .summary_model import RunStatus
from .summary_model import StepOutcome
from .summary_model import StepStatus

__all__ = [
    "ExecutionMode",
    "ExecutionTrace",
    "ResultStore",
    "RunStatus",
    "Scheduler",
    "StepOutcome",
    "StepStatus",
    "WorkflowInfo",
    "WorkflowRunCoordinator",
]

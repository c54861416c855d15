from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from datetime import UTC
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from polyflow.config.config import Config
from polyflow.definition.loader import SUPPORTED_SUFFIXES
from polyflow.definition.loader import WorkflowDefinitionLoader
from polyflow.definition.schema import WorkflowDefinition
from polyflow.exceptions import DefinitionError
from polyflow.exceptions import GraphError
from polyflow.exceptions import PolyflowError
from polyflow.exceptions import WorkflowRunError
from polyflow.locations import workflows_dir
from polyflow.run.scheduler import Scheduler
from polyflow.run.summary_model import ExecutionMode
from polyflow.run.summary_model import ExecutionTrace
from polyflow.run.summary_model import RunStatus
from polyflow.runners.registry import RunnerRegistry
from polyflow.utils.helpers import display_name
from polyflow.utils.helpers import generate_unique_id

if TYPE_CHECKING:
    from polyflow.console.reporter import ConsoleReporter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowInfo:
    name: str
    display_name: str
    description: str | None
    path: Path


class WorkflowRunCoordinator:
    """
    Orchestrates a workflow run, from loading the definition to executing its
    steps and summarizing the results.
    """

    def __init__(
        self,
        config: Config | None = None,
        definition_loader: WorkflowDefinitionLoader | None = None,
        registry: RunnerRegistry | None = None,
        reporter: ConsoleReporter | None = None,
    ) -> None:
        self.config = config or Config.create()
        self.definition_loader = definition_loader or WorkflowDefinitionLoader()
        self.registry = registry or RunnerRegistry.from_config(self.config)
        self.reporter = reporter

    @property
    def workflows_directory(self) -> Path:
        return workflows_dir(self.config.get("workflows.directory", "workflows"))

    def execute_workflow(
        self,
        workflow_file_path: Path,
        mode: ExecutionMode | str | None = None,
        max_concurrency: int | None = None,
        run_id: str | None = None,
    ) -> ExecutionTrace:
        mode = ExecutionMode(mode or self.config.get("scheduler.mode", "sequential"))
        concurrency = max_concurrency or self.config.max_concurrency

        if self.reporter:
            self.reporter.print_welcome_message()

        run_id = run_id or generate_unique_id(Path(workflow_file_path).stem)
        workflow: WorkflowDefinition | None = None

        try:
            with self._report_status("Loading workflow definition..."):
                workflow = self.definition_loader.from_path(workflow_file_path)

            scheduler = Scheduler(
                self.registry, max_concurrency=concurrency, reporter=self.reporter
            )
            trace = scheduler.run(
                workflow, mode, run_id=run_id, workflow_file=workflow_file_path
            )
        except (DefinitionError, GraphError) as e:
            logger.error(f"Workflow run '{run_id}' could not start: {e}")
            trace = self._failed_trace(e, run_id, workflow, workflow_file_path, mode)
        except PolyflowError:
            raise
        except Exception as e:
            logger.error(f"Workflow run '{run_id}' failed: {e}", exc_info=True)
            raise WorkflowRunError(f"Run '{run_id}' failed.") from e

        if self.reporter:
            self.reporter.display_step_table(trace)
            self.reporter.display_run_summary_panel(trace)
        return trace

    def list_workflows(self, directory: Path | None = None) -> list[WorkflowInfo]:
        """Every loadable workflow document in the workflows directory."""
        directory = Path(directory) if directory else self.workflows_directory
        if not directory.is_dir():
            logger.warning(f"Workflows directory not found: {directory}")
            return []

        workflows = []
        for path in sorted(directory.iterdir()):
            if not path.is_file() or path.suffix not in SUPPORTED_SUFFIXES:
                continue
            try:
                workflow = self.definition_loader.from_path(path)
            except DefinitionError as e:
                logger.warning(f"Skipping {path.name}: {e}")
                continue
            workflows.append(
                WorkflowInfo(
                    name=path.stem,
                    display_name=display_name(workflow.name),
                    description=workflow.description,
                    path=path,
                )
            )
        return workflows

    def find_workflow(self, identifier: str | Path) -> Path:
        """Resolves a file path, or a workflow name inside the workflows directory."""
        path = Path(identifier)
        if path.is_file():
            return path

        directory = self.workflows_directory
        for suffix in SUPPORTED_SUFFIXES:
            candidate = directory / f"{identifier}{suffix}"
            if candidate.is_file():
                return candidate

        raise DefinitionError(
            f"Workflow '{identifier}' not found as a file or in {directory}"
        )

    def _failed_trace(
        self,
        error: Exception,
        run_id: str,
        workflow: WorkflowDefinition | None,
        workflow_file_path: Path,
        mode: ExecutionMode,
    ) -> ExecutionTrace:
        now = datetime.now(UTC)
        return ExecutionTrace(
            run_id=run_id,
            workflow_name=workflow.name if workflow else Path(workflow_file_path).stem,
            workflow_file=workflow_file_path,
            mode=mode,
            status=RunStatus.FAILED,
            start_time=now,
            end_time=now,
            error_message=str(error),
        )

    def _report_status(self, message: str):
        if self.reporter:
            return self.reporter.status(message)
        return contextlib.nullcontext()

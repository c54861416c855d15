import logging
import threading
from collections.abc import Sequence
from datetime import UTC
from datetime import datetime
from pathlib import Path

from polyflow.definition.schema import StepDefinition
from polyflow.marshal import JSONValue
from polyflow.run.summary_model import ExecutionMode
from polyflow.run.summary_model import ExecutionTrace
from polyflow.run.summary_model import RunStatus
from polyflow.run.summary_model import StepOutcome
from polyflow.run.summary_model import StepStatus
from polyflow.utils.helpers import generate_unique_id

logger = logging.getLogger(__name__)


class RunStateTracker:
    """Tracks run and step state for a single workflow run."""

    def __init__(
        self,
        workflow_name: str,
        run_id: str | None = None,
        workflow_file: Path | None = None,
        mode: ExecutionMode = ExecutionMode.SEQUENTIAL,
        max_concurrency: int = 1,
    ) -> None:
        self._trace = ExecutionTrace(
            run_id=run_id or generate_unique_id(workflow_name),
            workflow_name=workflow_name,
            workflow_file=workflow_file,
            mode=mode,
            max_concurrency=max_concurrency,
        )
        self._lock = threading.Lock()
        logger.debug(f"RunStateTracker initialized: {self._trace.run_id}")

    @property
    def run_id(self) -> str:
        return self._trace.run_id

    def plan(
        self, steps: Sequence[StepDefinition], levels: Sequence[Sequence[str]] = ()
    ) -> None:
        """Registers every planned step as pending."""
        with self._lock:
            self._trace.steps = [
                StepOutcome(name=s.name, language=s.language) for s in steps
            ]
            self._trace.levels = [list(level) for level in levels]

    def start_run(self) -> None:
        with self._lock:
            if self._trace.status != RunStatus.NOT_STARTED:
                logger.warning(f"Run '{self.run_id}' already started; restarting.")
            self._trace.status = RunStatus.RUNNING
            self._trace.start_time = datetime.now(UTC)
        logger.info(
            f"Run started: {self.run_id} ({self._trace.workflow_name}, "
            f"{self._trace.mode.value}, {len(self._trace.steps)} steps)"
        )

    def step_started(self, name: str) -> None:
        with self._lock:
            outcome = self._require_outcome(name)
            outcome.status = StepStatus.RUNNING
            outcome.start_time = datetime.now(UTC)
        logger.info(f"Step '{name}' started")

    def step_succeeded(self, name: str, output: JSONValue) -> None:
        with self._lock:
            outcome = self._require_outcome(name)
            outcome.status = StepStatus.SUCCESS
            outcome.end_time = datetime.now(UTC)
            outcome.output = output
            duration = outcome.duration_seconds
        logger.info(f"Step '{name}' succeeded in {duration or 0:.2f}s")

    def step_failed(self, name: str, error: BaseException) -> None:
        with self._lock:
            outcome = self._require_outcome(name)
            outcome.status = StepStatus.FAILED
            outcome.end_time = datetime.now(UTC)
            outcome.error = str(error)
            outcome.error_type = type(error).__name__
        logger.error(f"Step '{name}' failed: {error}")

    def complete_run(self, status: RunStatus, error: str | None = None) -> None:
        with self._lock:
            self._trace.status = status
            self._trace.end_time = datetime.now(UTC)
            self._trace.error_message = error
            duration = self._trace.duration_seconds

        msg = f"Run '{self.run_id}' finished with {status.value}"
        if duration is not None:
            msg += f" in {duration:.2f}s"
        if error:
            msg += f": {error}"
        logger.info(msg)

    def get_trace(self) -> ExecutionTrace:
        with self._lock:
            return self._trace.model_copy(deep=True)

    def _require_outcome(self, name: str) -> StepOutcome:
        outcome = self._trace.outcome(name)
        if outcome is None:
            raise RuntimeError(f"Step '{name}' is not part of run '{self.run_id}'.")
        return outcome

"""
Runs the steps of a workflow in dependency order.

Sequential runs execute one step at a time in topological order. Parallel
runs execute execution levels strictly one after another; the steps of a
level run on a thread pool, with a workflow-wide semaphore bounding how many
of them execute at once.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from polyflow.definition.schema import StepDefinition
from polyflow.definition.schema import WorkflowDefinition
from polyflow.graph.resolver import ExecutionLevel
from polyflow.graph.resolver import execution_levels
from polyflow.graph.resolver import topological_order
from polyflow.run.state_tracker import RunStateTracker
from polyflow.run.store import ResultStore
from polyflow.run.summary_model import ExecutionMode
from polyflow.run.summary_model import ExecutionTrace
from polyflow.run.summary_model import RunStatus
from polyflow.runners.registry import Dispatcher
from polyflow.runners.registry import RunnerRegistry

if TYPE_CHECKING:
    from polyflow.console.reporter import ConsoleReporter

logger = logging.getLogger(__name__)
log = structlog.get_logger(__name__)

DEFAULT_MAX_CONCURRENCY = 4


class Scheduler:
    def __init__(
        self,
        registry: RunnerRegistry,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        reporter: ConsoleReporter | None = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")
        self.registry = registry
        self.max_concurrency = max_concurrency
        self.reporter = reporter

    def run(
        self,
        workflow: WorkflowDefinition,
        mode: ExecutionMode | str = ExecutionMode.SEQUENTIAL,
        run_id: str | None = None,
        workflow_file: Path | None = None,
    ) -> ExecutionTrace:
        """
        Executes the workflow and returns its trace.

        Unknown dependencies and cycles raise before any step runs. Step
        failures never raise; they are recorded in the returned trace.
        """
        mode = ExecutionMode(mode)

        levels: list[ExecutionLevel] = []
        if mode == ExecutionMode.PARALLEL:
            levels = execution_levels(workflow.step_list)
            order = [step for level in levels for step in level.steps]
        else:
            order = topological_order(workflow.step_list)

        tracker = RunStateTracker(
            workflow.name,
            run_id=run_id,
            workflow_file=workflow_file,
            mode=mode,
            max_concurrency=self.max_concurrency if levels else 1,
        )
        tracker.plan(order, [level.names for level in levels])
        store = ResultStore()

        tracker.start_run()
        with self.registry.dispatcher() as dispatcher:
            if mode == ExecutionMode.PARALLEL:
                error = self._run_parallel(levels, dispatcher, store, tracker)
            else:
                error = self._run_sequential(order, dispatcher, store, tracker)

        if error is None:
            tracker.complete_run(RunStatus.COMPLETED)
        else:
            tracker.complete_run(RunStatus.FAILED, error)
        return tracker.get_trace()

    def _run_sequential(
        self,
        order: list[StepDefinition],
        dispatcher: Dispatcher,
        store: ResultStore,
        tracker: RunStateTracker,
    ) -> str | None:
        for step in order:
            error = self._execute_step(step, dispatcher, store, tracker)
            if error is not None:
                return str(error)
        return None

    def _run_parallel(
        self,
        levels: list[ExecutionLevel],
        dispatcher: Dispatcher,
        store: ResultStore,
        tracker: RunStateTracker,
    ) -> str | None:
        if not levels:
            return None

        semaphore = threading.BoundedSemaphore(self.max_concurrency)

        def task(step: StepDefinition) -> Exception | None:
            with semaphore:
                return self._execute_step(step, dispatcher, store, tracker)

        widest = max(len(level) for level in levels)
        with ThreadPoolExecutor(
            max_workers=widest, thread_name_prefix="polyflow-step"
        ) as pool:
            for level in levels:
                logger.info(f"Starting level {level.index}: {level.names}")
                futures = [pool.submit(task, step) for step in level.steps]
                # Waits for the whole level; in-flight siblings are never cancelled.
                errors = [future.result() for future in futures]

                failed = [e for e in errors if e is not None]
                if failed:
                    logger.error(
                        f"Level {level.index} had {len(failed)} failed step(s); "
                        f"stopping the run."
                    )
                    return str(failed[0])
        return None

    def _execute_step(
        self,
        step: StepDefinition,
        dispatcher: Dispatcher,
        store: ResultStore,
        tracker: RunStateTracker,
    ) -> Exception | None:
        step_log = log.bind(run_id=tracker.run_id, step=step.name, language=step.language)
        inputs = store.gather(step.depends_on)

        tracker.step_started(step.name)
        if self.reporter:
            self.reporter.step_started(step)
        step_log.debug("Dispatching step", inputs=sorted(inputs))

        try:
            output = dispatcher.execute(step, inputs)
        except Exception as e:
            step_log.debug("Step raised", error=str(e), exc_info=True)
            tracker.step_failed(step.name, e)
            if self.reporter:
                self.reporter.step_failed(step, e)
            return e

        store.publish(step.name, output)
        tracker.step_succeeded(step.name, output)
        if self.reporter:
            self.reporter.step_succeeded(step)
        return None

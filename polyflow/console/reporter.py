from __future__ import annotations

import contextlib
import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from polyflow.marshal import summarize
from polyflow.run.summary_model import ExecutionTrace
from polyflow.run.summary_model import RunStatus
from polyflow.run.summary_model import StepStatus

if TYPE_CHECKING:
    from polyflow.definition.schema import StepDefinition

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    StepStatus.PENDING: "dim",
    StepStatus.RUNNING: "yellow",
    StepStatus.SUCCESS: "green",
    StepStatus.FAILED: "bold red",
}


class ConsoleReporter:
    """Handles displaying information to the console (status, tables, summaries)."""

    def __init__(
        self, rich_console: Console | None = None, verbose: bool = False
    ) -> None:
        if rich_console is None:
            from polyflow.console import console as global_polyflow_console

            self.console = global_polyflow_console
        else:
            self.console = rich_console
        self.verbose = verbose

    @contextlib.contextmanager
    def status(self, message: str, ephemeral: bool = True) -> Iterator[None]:
        """
        Displays a status message using rich.status.
        The `verbose` attribute of the reporter instance controls behavior.
        """
        if not self.verbose and ephemeral:
            yield
            return

        with self.console.status(message, spinner="dots"):
            yield

    def step_started(self, step: StepDefinition) -> None:
        if self.verbose:
            self.console.print(
                f"[yellow]▶[/yellow] {step.name} [dim]({step.language})[/dim]"
            )

    def step_succeeded(self, step: StepDefinition) -> None:
        self.console.print(f"[green]✔[/green] {step.name} [dim]({step.language})[/dim]")

    def step_failed(self, step: StepDefinition, error: Exception) -> None:
        self.console.print(f"[bold red]✘[/bold red] {step.name}: {error}")

    def display_step_table(self, trace: ExecutionTrace) -> None:
        if not trace.steps:
            self.console.print("[italic]No steps were executed.[/italic]")
            return

        table = Table(title="Steps", show_header=True, header_style="bold magenta")
        table.add_column("Step", style="cyan")
        table.add_column("Language")
        table.add_column("Status")
        table.add_column("Duration", justify="right")
        table.add_column("Output / Error", overflow="fold")

        for outcome in trace.steps:
            duration = (
                f"{outcome.duration_seconds:.2f}s"
                if outcome.duration_seconds is not None
                else "-"
            )
            if outcome.status == StepStatus.SUCCESS:
                detail = summarize(outcome.output)
            else:
                detail = outcome.error or ""
            table.add_row(
                outcome.name,
                outcome.language,
                Text(outcome.status.value, style=STATUS_STYLES[outcome.status]),
                duration,
                detail,
            )
        self.console.print(table)

    def display_run_summary_panel(self, trace: ExecutionTrace) -> None:
        if not trace:
            return

        panel_title = f"📝 Run Summary: {trace.status.value.upper()}"
        border_style = "green" if trace.status == RunStatus.COMPLETED else "red"

        content = Text()
        content.append(f"Run ID: {trace.run_id}\n")
        content.append(f"Workflow: {trace.workflow_name}\n")
        if trace.workflow_file:
            content.append(f"File: {trace.workflow_file!s}\n")
        content.append(f"Mode: {trace.mode.value}")
        if trace.levels:
            content.append(
                f" ({len(trace.levels)} levels, max concurrency {trace.max_concurrency})"
            )
        content.append("\n")
        content.append(f"Status: {trace.status.value}\n")
        if trace.start_time:
            content.append(
                f"Started: {trace.start_time.strftime('%Y-%m-%d %H:%M:%S %Z')}\n"
            )
        if trace.end_time:
            content.append(
                f"Finished: {trace.end_time.strftime('%Y-%m-%d %H:%M:%S %Z')}\n"
            )
        if trace.duration_seconds is not None:
            content.append(f"Duration: {trace.duration_seconds:.2f}s\n")
        if trace.error_message:
            content.append(f"Error: {trace.error_message}\n", style="bold red")
        self.console.print(
            Panel(content, title=panel_title, border_style=border_style, expand=False)
        )

    def print_welcome_message(self) -> None:
        self.console.print("[bold cyan]polyflow Workflow Execution[/bold cyan]")

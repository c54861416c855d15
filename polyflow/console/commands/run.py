import logging
import sys
from pathlib import Path

import click
from rich.panel import Panel

from polyflow.config.config import Config
from polyflow.console import console
from polyflow.console import err_console
from polyflow.console.logging.structlog import add_json_file_handler
from polyflow.console.logging.structlog import remove_json_file_handler
from polyflow.console.reporter import ConsoleReporter
from polyflow.exceptions import DefinitionError
from polyflow.exceptions import PolyflowError
from polyflow.run import ExecutionMode
from polyflow.run import RunStatus
from polyflow.run import WorkflowRunCoordinator

logger = logging.getLogger(__name__)


@click.command()
@click.argument("workflow", type=str)
@click.option(
    "--mode",
    "-m",
    type=click.Choice([m.value for m in ExecutionMode], case_sensitive=False),
    default=None,
    help="Execution mode. Defaults to the 'scheduler.mode' setting.",
)
@click.option(
    "--max-concurrency",
    "-c",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum number of steps executing at once in parallel mode.",
)
@click.option(
    "--run-id",
    "custom_run_id",
    type=str,
    help="A specific run ID to use instead of a generated one.",
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Print the execution trace as JSON instead of tables.",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write JSON-lines logs to this file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output for status messages.",
)
@click.pass_obj
def run(
    config: Config,
    workflow: str,
    mode: str | None,
    max_concurrency: int | None,
    custom_run_id: str | None,
    as_json: bool,
    log_file: Path | None,
    verbose: bool,
) -> None:
    """
    Executes a workflow.

    WORKFLOW: Path to a workflow document, or the name of one in the workflows directory.
    """
    reporter = None if as_json else ConsoleReporter(rich_console=console, verbose=verbose)
    coordinator = WorkflowRunCoordinator(config=config, reporter=reporter)

    if log_file:
        add_json_file_handler(log_file)

    try:
        workflow_path = coordinator.find_workflow(workflow)
        trace = coordinator.execute_workflow(
            workflow_path,
            mode=mode,
            max_concurrency=max_concurrency,
            run_id=custom_run_id,
        )
    except DefinitionError as e:
        err_console.print(f"[bold red]Error:[/] {e}")
        sys.exit(1)
    except PolyflowError as e:
        err_console.print(
            Panel(
                f"[bold red]Workflow Execution Error:[/] {e}",
                border_style="red",
                expand=False,
            )
        )
        logger.error(f"Workflow execution failed: {e}", exc_info=True)
        sys.exit(1)
    finally:
        if log_file:
            remove_json_file_handler()

    if as_json:
        click.echo(trace.model_dump_json(indent=2))
    elif trace.status == RunStatus.COMPLETED:
        console.print(
            f"\n✅ Workflow '{trace.workflow_name}' (Run ID: {trace.run_id}) executed successfully."
        )
    else:
        console.print(
            f"\n❌ Workflow '{trace.workflow_name}' (Run ID: {trace.run_id}) failed."
            f"{(' Error: ' + trace.error_message) if trace.error_message else ''}"
        )

    sys.exit(0 if trace.status == RunStatus.COMPLETED else 1)

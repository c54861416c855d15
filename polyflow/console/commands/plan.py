import sys

import click
from rich.panel import Panel
from rich.table import Table

from polyflow.config.config import Config
from polyflow.console import console
from polyflow.console import err_console
from polyflow.exceptions import DefinitionError
from polyflow.exceptions import GraphError
from polyflow.graph.resolver import execution_levels
from polyflow.graph.resolver import topological_order
from polyflow.run import ExecutionMode
from polyflow.run import WorkflowRunCoordinator


@click.command(name="plan", help="Shows the order in which a workflow's steps would run.")
@click.argument("workflow", type=str)
@click.option(
    "--mode",
    "-m",
    type=click.Choice([m.value for m in ExecutionMode], case_sensitive=False),
    default=ExecutionMode.PARALLEL.value,
    show_default=True,
    help="Show the parallel execution levels or the sequential order.",
)
@click.pass_obj
def plan(config: Config, workflow: str, mode: str) -> None:
    coordinator = WorkflowRunCoordinator(config=config)

    try:
        model = coordinator.definition_loader.from_path(
            coordinator.find_workflow(workflow)
        )
        if mode == ExecutionMode.PARALLEL.value:
            rows = [
                (str(level.index), step)
                for level in execution_levels(model.step_list)
                for step in level.steps
            ]
        else:
            rows = [
                (str(position), step)
                for position, step in enumerate(topological_order(model.step_list), 1)
            ]
    except (DefinitionError, GraphError) as e:
        err_console.print(Panel(f"[bold red]Error:[/]\n{e}", border_style="red", expand=False))
        sys.exit(1)

    table = Table(
        title=f"{model.name} ({mode})", show_header=True, header_style="bold magenta"
    )
    table.add_column("Level" if mode == ExecutionMode.PARALLEL.value else "#", justify="right")
    table.add_column("Step", style="cyan")
    table.add_column("Language")
    table.add_column("Depends On", overflow="fold")
    for position, step in rows:
        table.add_row(position, step.name, step.language, ", ".join(step.depends_on) or "-")
    console.print(table)

import sys

import click
from rich.panel import Panel

from polyflow.config.config import Config
from polyflow.console import console
from polyflow.console import err_console
from polyflow.console.reporter import ConsoleReporter
from polyflow.exceptions import DefinitionError
from polyflow.exceptions import GraphError
from polyflow.graph.resolver import execution_levels
from polyflow.graph.resolver import topological_order
from polyflow.run import WorkflowRunCoordinator


@click.command(name="validate", help="Validates a workflow definition and its dependency graph.")
@click.argument("workflow", type=str)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable verbose output for loading steps.",
)
@click.pass_obj
def validate(config: Config, workflow: str, verbose: bool) -> None:
    """
    Loads a workflow, resolves its dependencies and checks that every step's
    language has a registered runner. Nothing is executed.
    """
    reporter = ConsoleReporter(rich_console=console, verbose=verbose)
    coordinator = WorkflowRunCoordinator(config=config)
    console.print(f"[cyan]Validating workflow: {workflow}[/cyan]")

    try:
        with reporter.status("[cyan]Loading workflow definition...[/cyan]"):
            path = coordinator.find_workflow(workflow)
            model = coordinator.definition_loader.from_path(path)
        console.print("[dim]Schema and basic structure: OK[/dim]")

        topological_order(model.step_list)
        levels = execution_levels(model.step_list)
        console.print(
            f"[dim]Dependency graph: OK ({len(model.steps)} steps, {len(levels)} levels)[/dim]"
        )
    except (DefinitionError, GraphError) as e:
        error_title = (
            "Dependency Graph Error"
            if isinstance(e, GraphError)
            else "Workflow Loading Error"
        )
        err_console.print(
            Panel(f"[bold red]{error_title}:[/]\n{e}", border_style="red", expand=False)
        )
        sys.exit(1)

    unsupported = coordinator.registry.unsupported(model)
    if unsupported:
        for step in unsupported:
            err_console.print(
                f"[bold red]Unsupported language:[/] '{step.language}' (step '{step.name}')"
            )
        err_console.print(
            f"[dim]Registered languages: {', '.join(coordinator.registry.languages)}[/dim]"
        )
        sys.exit(1)

    console.print("[dim]Languages: OK[/dim]")
    console.print(f"[green]Validation successful. '{model.name}' is valid.[/green]")

from pathlib import Path

import click
from rich.table import Table

from polyflow.config.config import Config
from polyflow.console import console
from polyflow.run import WorkflowRunCoordinator


@click.command(name="list", help="Lists the workflows available in the workflows directory.")
@click.option(
    "--directory",
    "-d",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory to scan instead of the 'workflows.directory' setting.",
)
@click.pass_obj
def list_workflows(config: Config, directory: Path | None) -> None:
    coordinator = WorkflowRunCoordinator(config=config)
    workflows = coordinator.list_workflows(directory)

    if not workflows:
        console.print(
            f"[italic]No workflows found in {directory or coordinator.workflows_directory}.[/italic]"
        )
        return

    table = Table(title="Workflows", show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Title")
    table.add_column("Description", overflow="fold")
    table.add_column("Path", style="dim", overflow="fold")
    for info in workflows:
        table.add_row(info.name, info.display_name, info.description or "", str(info.path))
    console.print(table)

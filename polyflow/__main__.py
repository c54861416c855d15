import click

from polyflow.__version__ import __version__
from polyflow.config.config import Config
from polyflow.console import err_console
from polyflow.console.commands import about
from polyflow.console.commands import list_workflows
from polyflow.console.commands import plan
from polyflow.console.commands import run
from polyflow.console.commands import validate
from polyflow.console.logging.structlog import configure_structlog
from polyflow.exceptions import ConfigLoaderError
from polyflow.exceptions import PolyflowConsoleError


@click.group()
@click.version_option(__version__, prog_name="polyflow")
@click.option(
    "--log-level",
    type=click.Choice(
        ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False
    ),
    default=None,
    help="Logging level. Defaults to the 'logging.level' setting.",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """polyflow CLI - Run multi-language workflows."""
    try:
        config = Config.create()
    except ConfigLoaderError as e:
        raise PolyflowConsoleError(str(e)) from e

    configure_structlog(
        log_level or config.get("logging.level", "INFO"), console=err_console
    )
    ctx.obj = config


# Register subcommands
cli.add_command(about)
cli.add_command(list_workflows)
cli.add_command(plan)
cli.add_command(run)
cli.add_command(validate)

if __name__ == "__main__":
    cli()

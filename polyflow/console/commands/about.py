import textwrap

import click
from rich.panel import Panel

from polyflow.__version__ import POLYFLOW_LOGO
from polyflow.__version__ import __version__
from polyflow.config.config import Config
from polyflow.console import console
from polyflow.runners.registry import RunnerRegistry


@click.command(name="about", help="Shows information about polyflow.")
@click.pass_obj
def about(config: Config) -> None:
    registry = RunnerRegistry.from_config(config)
    runners = ", ".join(runner.name for runner in registry.runners) or "none"

    info_text = textwrap.dedent(f"""
        polyflow – A multi-language workflow orchestrator.

        Version: {__version__}
        Runners: {runners}
    """)

    console.print(POLYFLOW_LOGO, style="cyan", highlight=False)
    console.print(
        Panel.fit(info_text.strip(), title="About polyflow", border_style="cyan")
    )

from rich.console import Console as RichConsole
from rich.traceback import install

from polyflow.console.reporter import ConsoleReporter

console = RichConsole()
# Logs and spinners go to stderr so stdout stays clean for --json output.
err_console = RichConsole(stderr=True)
install(console=err_console, width=200)


__all__ = [
    "ConsoleReporter",
    "console",
    "err_console",
]

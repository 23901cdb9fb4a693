"""CLI entry point for deskhost."""

from __future__ import annotations

import typer
from rich.console import Console

from deskhost import __version__
from deskhost.cli.command_groups.commands_command import register_commands_commands
from deskhost.cli.command_groups.plugins_command import register_plugins_commands
from deskhost.cli.shared.logging_utils import configure_cli_logging

app = typer.Typer(
    name="deskhost",
    help="deskhost - plugin runtime and command palette for developer workspaces",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"deskhost v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", "-V", callback=version_callback, is_eager=True),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print debug logs to stderr"),
    log_file: bool = typer.Option(False, "--log-file", help="Also write logs to ~/.deskhost/logs/cli.log"),
):
    """deskhost - plugin runtime and command palette."""
    configure_cli_logging(verbose=verbose, log_name="cli" if log_file else None)


register_plugins_commands(app=app, console=console)
register_commands_commands(app=app, console=console)


if __name__ == "__main__":
    app()

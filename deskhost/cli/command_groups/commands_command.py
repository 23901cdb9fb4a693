"""Command palette search from the terminal."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from deskhost.cli.command_groups.plugins_command import open_workspace_project, resolve_workspace
from deskhost.commands.registry import get_command_registry
from deskhost.plugins.manager import get_plugin_manager
from deskhost.utils.exceptions import DeskhostError


def register_commands_commands(app: typer.Typer, console: Console) -> None:
    """Register the commands command group."""
    commands_app = typer.Typer(help="Search palette commands")
    app.add_typer(commands_app, name="commands")

    @commands_app.command("search")
    def commands_search(
        text: str = typer.Argument("", help="Query; a leading ? > < & ~ $ scopes the command type"),
        workspace: str = typer.Option(None, "--workspace", "-w", help="Load this workspace's plugins first"),
    ) -> None:
        registry = get_command_registry()
        if workspace:
            manager = get_plugin_manager(commands=registry)
            path = resolve_workspace(manager, workspace)
            open_workspace_project(manager, path)
            try:
                asyncio.run(manager.list(path))
            except DeskhostError as e:
                console.print(f"[red]{e.message}[/red]")
                raise typer.Exit(1)
        results = registry.search(text)
        table = Table(title=f"Commands ({len(results)})")
        table.add_column("ID", style="cyan")
        table.add_column("Type")
        table.add_column("Label")
        table.add_column("Keybinding")
        for command in results:
            binding = registry.keybinding_for(command.id)
            table.add_row(command.id, command.type.value, command.label, ", ".join(binding.sequences) if binding else "")
        console.print(table)

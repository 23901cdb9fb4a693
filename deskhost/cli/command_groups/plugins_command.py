"""Plugins command group: discovery and lifecycle for a workspace."""

from __future__ import annotations

import asyncio
import os
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from deskhost.plugins.core.types import Plugin, Project
from deskhost.plugins.manager import PluginManager, get_plugin_manager
from deskhost.utils.exceptions import DeskhostError


def plugin_table_row(plugin: Plugin) -> tuple[str, str, str, str, str]:
    return (
        plugin.id,
        plugin.version_range or "-",
        "installed" if plugin.installed else "missing",
        "official" if plugin.official else "community",
        plugin.kind.value + (" (hidden)" if plugin.hidden else ""),
    )


def filter_plugins(plugins: list[Plugin], keyword: str) -> list[Plugin]:
    needle = keyword.strip().lower()
    if not needle:
        return plugins
    return [p for p in plugins if needle in p.id.lower()]


def resolve_workspace(manager: PluginManager, workspace: str | None) -> str:
    path = os.path.abspath(os.path.expanduser(workspace)) if workspace else manager.host.cwd.get()
    manager.host.cwd.set(path)
    return path


def open_workspace_project(manager: PluginManager, workspace: str) -> Project:
    """Register the workspace as the current project so the plugin API can load."""
    projects: Any = manager.projects
    project = projects.find_by_path(workspace)
    if project is None:
        name = os.path.basename(workspace.rstrip(os.sep)) or workspace
        project = projects.add(Project(id=name, name=name, path=workspace, type="vue"))
    projects.open(project.id)
    return project


def register_plugins_commands(app: typer.Typer, console: Console) -> None:
    """Register the plugins command group."""
    plugins_app = typer.Typer(help="Discover and manage workspace plugins")
    app.add_typer(plugins_app, name="plugins")

    def _run(coro: Any) -> Any:
        try:
            return asyncio.run(coro)
        except DeskhostError as e:
            console.print(f"[red]{e.message}[/red]")
            raise typer.Exit(1)

    @plugins_app.command("list")
    def plugins_list(
        workspace: str = typer.Option(None, "--workspace", "-w", help="Workspace directory (default: configured workspace)"),
        show_all: bool = typer.Option(False, "--all", "-a", help="Include hidden bundle members"),
        keyword: str = typer.Option("", "--keyword", "-k", help="Filter by plugin id"),
    ) -> None:
        manager = get_plugin_manager()
        path = resolve_workspace(manager, workspace)
        visible = _run(manager.list(path, reset_api=False, light=True, auto_load=False))
        rows = manager.discovery.get_plugins(path) if show_all else visible
        rows = filter_plugins(rows, keyword)
        table = Table(title=f"Plugins ({len(rows)})")
        table.add_column("ID", style="cyan")
        table.add_column("Version")
        table.add_column("Status")
        table.add_column("Origin")
        table.add_column("Kind")
        for plugin in rows:
            table.add_row(*plugin_table_row(plugin))
        console.print(table)

    @plugins_app.command("info")
    def plugins_info(
        plugin_id: str = typer.Argument(..., help="Plugin package id"),
        workspace: str = typer.Option(None, "--workspace", "-w", help="Workspace directory"),
    ) -> None:
        manager = get_plugin_manager()
        path = resolve_workspace(manager, workspace)
        _run(manager.list(path, reset_api=False, light=True, auto_load=False))
        plugin = manager.find_one(plugin_id, path)
        if plugin is None:
            console.print(f"[red]Plugin not found: {plugin_id}[/red]")
            raise typer.Exit(1)
        table = Table(title=f"Plugin {plugin.id}")
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        for key, value in plugin.to_dict().items():
            table.add_row(key, str(value))
        table.add_row("logo", str(manager.get_logo(plugin)))
        console.print(table)

    @plugins_app.command("install")
    def plugins_install(
        plugin_id: str = typer.Argument(..., help="Plugin package id"),
        workspace: str = typer.Option(None, "--workspace", "-w", help="Workspace directory"),
    ) -> None:
        manager = get_plugin_manager()
        resolve_workspace(manager, workspace)
        state = _run(manager.install(plugin_id))
        for prompt in state.get("prompts") or []:
            console.print(f"[dim]prompt {prompt.get('name')} = {prompt.get('value')!r}[/dim]")
        manager.finish_install()
        console.print(f"[green]Installed {plugin_id}[/green]")

    @plugins_app.command("uninstall")
    def plugins_uninstall(
        plugin_id: str = typer.Argument(..., help="Plugin package id"),
        workspace: str = typer.Option(None, "--workspace", "-w", help="Workspace directory"),
    ) -> None:
        manager = get_plugin_manager()
        resolve_workspace(manager, workspace)
        _run(manager.uninstall(plugin_id))
        console.print(f"[green]Uninstalled {plugin_id}[/green]")

    @plugins_app.command("update")
    def plugins_update(
        plugin_id: str = typer.Argument(None, help="Plugin package id (omit to update all)"),
        workspace: str = typer.Option(None, "--workspace", "-w", help="Workspace directory"),
        full: bool = typer.Option(True, "--full/--partial", help="Local packages: full resync or overlay copy"),
    ) -> None:
        manager = get_plugin_manager()
        path = resolve_workspace(manager, workspace)
        open_workspace_project(manager, path)

        async def _update() -> list[Plugin]:
            await manager.list(path, reset_api=False, auto_load=False)
            if plugin_id:
                plugin = await manager.update(plugin_id, full=full)
                return [plugin] if plugin else []
            return await manager.update_all()

        updated = _run(_update())
        if not updated:
            console.print("[dim]No plugin updated[/dim]")
            return
        for plugin in updated:
            console.print(f"[green]Updated {plugin.id}[/green]")

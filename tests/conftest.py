"""Pytest hooks and fixtures."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest

from deskhost.bus import EventBus
from deskhost.commands.registry import CommandRegistry
from deskhost.config.schema import Config, PluginsConfig
from deskhost.host import create_default_host
from deskhost.host.projects import ProjectRegistry
from deskhost.plugins.core.types import Project
from deskhost.plugins.manager import PluginManager
from deskhost.plugins.native.loader import FilesystemModuleLoader
from plugin_helpers import FakePackageManager, FakeRunner, FakeVersions, write_manifest


def pytest_configure(config):
    """Register custom markers (also in pyproject.toml)."""
    config.addinivalue_line(
        "markers",
        "requires_network: touches a real package registry (skipped in CI)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip requires_network tests when running in CI."""
    if os.environ.get("CI") != "true":
        return
    skip = pytest.mark.skip(reason="Requires a package registry (skipped in CI)")
    for item in items:
        if "requires_network" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    ws = tmp_path / "ws"
    write_manifest(ws, {"name": "ws", "devDependencies": {}})
    return ws


@pytest.fixture
def make_manager():
    """Factory for a PluginManager wired with real in-process collaborators and fake externals."""

    def _make(
        workspace: Path,
        *,
        project_type: str | None = "vue",
        debug: bool = False,
        package_manager: Any = None,
        versions: Any = None,
        runner: Any = None,
        loader: Any = None,
    ) -> PluginManager:
        bus = EventBus()
        host = create_default_host(
            config=Config(),
            bus=bus,
            loader=loader or FilesystemModuleLoader(),
            cwd=str(workspace),
        )
        host.package_manager = package_manager or FakePackageManager()
        host.versions = versions or FakeVersions()
        host.runner = runner or FakeRunner()
        projects = ProjectRegistry()
        if project_type is not None:
            projects.add(Project(id="ws", name="ws", path=str(workspace), type=project_type))
            projects.open("ws")
        manager = PluginManager(host, config=PluginsConfig(debug=debug), commands=CommandRegistry(bus=bus))
        manager.bind_projects(lambda: projects)
        return manager

    return _make

"""Default in-process collaborators for the plugin runtime."""

from __future__ import annotations

from typing import Any

from deskhost.config.schema import Config
from deskhost.host.logs import ConsoleLogStore
from deskhost.host.notifications import Notifier
from deskhost.host.packages import NpmPackageManager, PackagePathResolver, PackageVersions, SubprocessRunner
from deskhost.host.projects import ProjectRegistry
from deskhost.host.prompts import PromptCollector
from deskhost.host.registries import (
    ClientAddonRegistry,
    IpcRegistry,
    LocaleRegistry,
    SharedDataStore,
    SuggestionRegistry,
    ViewRegistry,
    WidgetRegistry,
)
from deskhost.host.workspace import JsonManifestStore, WorkspaceCwd
from deskhost.plugins.core.contracts import ModuleLoader, PluginHost


def create_default_host(*, config: Config, bus: Any, loader: ModuleLoader, cwd: str | None = None) -> PluginHost:
    """Wire the in-process collaborators from config."""
    plugins_cfg = config.plugins
    runner = SubprocessRunner()
    paths = PackagePathResolver(modules_dir=plugins_cfg.modules_dir)
    return PluginHost(
        bus=bus,
        cwd=WorkspaceCwd(cwd or str(config.workspace_path)),
        manifests=JsonManifestStore(filename=plugins_cfg.manifest_filename),
        paths=paths,
        package_manager=NpmPackageManager(runner, configured=plugins_cfg.package_manager),
        versions=PackageVersions(paths, runner, manifest_filename=plugins_cfg.manifest_filename),
        runner=runner,
        loader=loader,
        views=ViewRegistry(bus),
        widgets=WidgetRegistry(bus),
        client_addons=ClientAddonRegistry(),
        suggestions=SuggestionRegistry(),
        shared_data=SharedDataStore(),
        ipc=IpcRegistry(),
        locales=LocaleRegistry(),
        prompts=PromptCollector(),
        logs=ConsoleLogStore(bus, max_entries=config.logs.max_entries),
        notifier=Notifier(bus),
    )


__all__ = ["ProjectRegistry", "WorkspaceCwd", "create_default_host"]

"""Plugin discovery from workspace manifests, and plugin store lookups."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from loguru import logger

from deskhost.plugins.core.types import Plugin, PluginKind
from deskhost.plugins.naming import (
    BUNDLE_ID,
    SERVICE_ID,
    bundle_member_id,
    get_plugin_link,
    is_official_plugin,
    is_plugin_or_service,
)
from deskhost.plugins.package_store import bundle_section

if TYPE_CHECKING:
    from deskhost.plugins.manager import PluginManager


def _visible(plugins: list[Plugin]) -> list[Plugin]:
    return [p for p in plugins if not p.hidden]


def _service_first(plugins: list[Plugin]) -> list[Plugin]:
    for index, plugin in enumerate(plugins):
        if plugin.id in (SERVICE_ID, BUNDLE_ID):
            return [plugin, *plugins[:index], *plugins[index + 1:]]
    return plugins


class PluginDiscovery:
    """Derives each workspace's plugin list and keeps the plugin store current."""

    def __init__(self, manager: PluginManager):
        self._manager = manager

    async def list(
        self,
        workspace: str,
        *,
        reset_api: bool = True,
        light: bool = False,
        auto_load: bool = True,
    ) -> list[Plugin]:
        """
        Scan the workspace manifest and return its visible plugins.

        An unchanged result keeps the stored list and triggers nothing. On change
        the store is replaced and the API is reset when `reset_api` is set, or
        when `auto_load` is set and the workspace has no runtime yet.

        Raises:
            ManifestError: the manifest is missing or unreadable.
        """
        manager = self._manager
        entry = manager.packages.resolve(workspace)
        manifest = entry.manifest
        plugins = [
            *self._find_plugins(manifest.get("devDependencies"), workspace, entry.context_dir),
            *self._find_plugins(manifest.get("dependencies"), workspace, entry.context_dir),
            *self._bundle_plugins(manifest, workspace),
        ]
        plugins = _service_first(plugins)

        previous = manager.plugins.get(workspace)
        if previous is not None and previous == plugins:
            return _visible(previous)

        manager.plugins[workspace] = plugins
        logger.info("Plugins found: {} ({})", len(plugins), workspace)

        if reset_api or (auto_load and workspace not in manager.instances):
            await manager.runtime.reset(workspace, light=light)
        return _visible(plugins)

    def find_one(self, plugin_id: str, workspace: str) -> Plugin | None:
        for plugin in self.get_plugins(workspace):
            if plugin.id == plugin_id:
                return plugin
        logger.info("Plugin not found: {} ({})", plugin_id, workspace)
        return None

    def get_plugins(self, workspace: str) -> list[Plugin]:
        """Stored list including hidden entries."""
        return self._manager.plugins.get(workspace, [])

    def _find_plugins(self, deps: Any, workspace: str, context_dir: str) -> list[Plugin]:
        if not isinstance(deps, dict):
            return []
        found: list[Plugin] = []
        for package_id, version_range in deps.items():
            if not is_plugin_or_service(package_id):
                continue
            found.append(
                Plugin(
                    id=package_id,
                    version_range=str(version_range),
                    official=is_official_plugin(package_id),
                    installed=self._is_installed(package_id, context_dir),
                    website=get_plugin_link(package_id),
                    base_dir=workspace,
                )
            )
        return found

    def _bundle_plugins(self, manifest: dict[str, Any], workspace: str) -> list[Plugin]:
        section = bundle_section(manifest)
        if section is None:
            return []
        version = str(section.get("version") or "")
        members = section.get("plugins")
        plugins = [
            Plugin(
                id=BUNDLE_ID,
                version_range=version,
                official=True,
                installed=True,
                website=None,
                base_dir=workspace,
                kind=PluginKind.BUNDLE,
            )
        ]
        for short_id in members if isinstance(members, list) else []:
            plugins.append(
                Plugin(
                    id=bundle_member_id(str(short_id)),
                    version_range=version,
                    official=True,
                    installed=True,
                    website=None,
                    base_dir=workspace,
                    hidden=True,
                    kind=PluginKind.BUNDLE_MEMBER,
                )
            )
        return plugins

    def _is_installed(self, package_id: str, context_dir: str) -> bool:
        try:
            return self._manager.host.paths.get_installed_path(package_id, context_dir) is not None
        except OSError as e:
            logger.debug("Installed path lookup failed for {}: {}", package_id, e)
            return False

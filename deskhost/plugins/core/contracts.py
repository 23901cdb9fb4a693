"""Collaborator contracts consumed by the plugin runtime."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

from .types import Plugin, Project, VersionInfo

OutputCallback = Callable[[str], None]


@runtime_checkable
class EventPublisher(Protocol):
    def publish(self, channel: str, payload: Any) -> int: ...


@runtime_checkable
class ManifestStore(Protocol):
    def read_manifest(self, directory: str) -> dict[str, Any]: ...
    def write_manifest(self, directory: str, data: dict[str, Any]) -> None: ...


@runtime_checkable
class PackagePathResolver(Protocol):
    def get_installed_path(self, package_id: str, from_dir: str) -> str | None: ...


@runtime_checkable
class PackageManager(Protocol):
    async def install(self, cwd: str, package: str) -> None: ...
    async def uninstall(self, cwd: str, package: str) -> None: ...
    async def update(self, cwd: str, packages: list[str]) -> None: ...


@runtime_checkable
class DependencyVersions(Protocol):
    async def get_version(self, plugin: Plugin, modules_root: str | None = None) -> VersionInfo: ...
    def invalidate(self, package_id: str) -> None: ...


@runtime_checkable
class CommandRunner(Protocol):
    async def run(self, argv: list[str], cwd: str, on_output: OutputCallback | None = None) -> str: ...


@runtime_checkable
class ModuleLoader(Protocol):
    def resolve(self, module_path: str, base_dir: str) -> str | None: ...
    def load(self, module_path: str, base_dir: str, allow_missing: bool = False, force: bool = False) -> Any: ...
    def invalidate_cache(self, module_path: str, base_dir: str) -> None: ...


@runtime_checkable
class ProjectRegistry(Protocol):
    def find_by_path(self, path: str) -> Project | None: ...
    def get_type(self, project: Project) -> str: ...
    def get_current(self) -> Project | None: ...
    def get_last(self) -> Project | None: ...


@runtime_checkable
class ViewRegistry(Protocol):
    async def add(self, view: dict[str, Any], project: Project) -> None: ...
    def remove(self, view_id: str) -> None: ...
    def get_current(self) -> dict[str, Any] | None: ...
    def open(self, view_id: str) -> None: ...


@runtime_checkable
class WidgetRegistry(Protocol):
    async def register_definition(self, definition: dict[str, Any], project: Project) -> None: ...
    def reset(self) -> None: ...
    def load(self) -> None: ...


@runtime_checkable
class ClientAddonRegistry(Protocol):
    def add(self, addon: dict[str, Any]) -> None: ...
    def clear(self) -> None: ...


@runtime_checkable
class SuggestionRegistry(Protocol):
    def add(self, suggestion: dict[str, Any]) -> None: ...
    def clear(self) -> None: ...


@runtime_checkable
class SharedDataStore(Protocol):
    def un_watch_all(self, project_id: str) -> None: ...


@runtime_checkable
class IpcRegistry(Protocol):
    def on(self, handler: Callable[..., Any]) -> None: ...
    def off(self, handler: Callable[..., Any]) -> None: ...


@runtime_checkable
class LocaleRegistry(Protocol):
    def load_folder(self, folder: str) -> None: ...


@runtime_checkable
class PromptCollector(Protocol):
    async def reset(self) -> None: ...
    def add(self, prompt: dict[str, Any]) -> None: ...
    async def start(self) -> None: ...
    def list(self) -> list[dict[str, Any]]: ...
    def get_answers(self) -> dict[str, Any]: ...


@runtime_checkable
class ConsoleLog(Protocol):
    def add(self, message: str, type: str = "info", tag: str | None = None) -> dict[str, Any]: ...


@runtime_checkable
class Notifier(Protocol):
    def notify(self, title: str, message: str, icon: str = "done") -> None: ...


@runtime_checkable
class WorkspaceCwd(Protocol):
    def get(self) -> str: ...
    def set(self, path: str) -> None: ...


ProjectRegistryProvider = Callable[[], ProjectRegistry]


@dataclass(slots=True)
class PluginHost:
    """Every collaborator the plugin runtime talks to, bundled for injection."""

    bus: EventPublisher
    cwd: WorkspaceCwd
    manifests: ManifestStore
    paths: PackagePathResolver
    package_manager: PackageManager
    versions: DependencyVersions
    runner: CommandRunner
    loader: ModuleLoader
    views: ViewRegistry
    widgets: WidgetRegistry
    client_addons: ClientAddonRegistry
    suggestions: SuggestionRegistry
    shared_data: SharedDataStore
    ipc: IpcRegistry
    locales: LocaleRegistry
    prompts: PromptCollector
    logs: ConsoleLog
    notifier: Notifier

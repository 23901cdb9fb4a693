"""Package manager invocation, installed-path lookup and dependency versions."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

from loguru import logger

from deskhost.plugins.core.contracts import CommandRunner, OutputCallback
from deskhost.plugins.core.types import Plugin, VersionInfo
from deskhost.utils.exceptions import ExternalProcessError

LOCAL_RANGE_PREFIX = "file:"

_INSTALL_ARGS = {
    "npm": ["install", "--save-dev"],
    "yarn": ["add", "--dev"],
    "pnpm": ["add", "--save-dev"],
}
_UNINSTALL_ARGS = {
    "npm": ["uninstall"],
    "yarn": ["remove"],
    "pnpm": ["remove"],
}
_UPDATE_ARGS = {
    "npm": ["update"],
    "yarn": ["upgrade"],
    "pnpm": ["update"],
}


class SubprocessRunner:
    """Runs external commands, streaming merged stdout/stderr line by line."""

    async def run(self, argv: list[str], cwd: str, on_output: OutputCallback | None = None) -> str:
        logger.debug("Running {} in {}", " ".join(argv), cwd)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except FileNotFoundError as e:
            raise ExternalProcessError(argv, 127, str(e)) from e
        lines: list[str] = []
        assert proc.stdout is not None
        while True:
            raw = await proc.stdout.readline()
            if not raw:
                break
            text = raw.decode("utf-8", errors="replace").rstrip()
            lines.append(text)
            if text.strip() and on_output is not None:
                on_output(text.strip())
        exit_code = await proc.wait()
        output = "\n".join(lines)
        if exit_code != 0:
            raise ExternalProcessError(argv, exit_code, output)
        return output


def detect_package_manager(cwd: str, configured: str = "auto") -> str:
    """Pick the package manager a workspace uses from its lockfile."""
    if configured != "auto":
        return configured
    if (Path(cwd) / "yarn.lock").exists():
        return "yarn"
    if (Path(cwd) / "pnpm-lock.yaml").exists():
        return "pnpm"
    return "npm"


class NpmPackageManager:
    """npm / yarn / pnpm front-end; the concrete tool is chosen per workspace."""

    def __init__(self, runner: CommandRunner, configured: str = "auto"):
        self.runner = runner
        self.configured = configured

    async def install(self, cwd: str, package: str) -> None:
        tool = detect_package_manager(cwd, self.configured)
        await self.runner.run([tool, *_INSTALL_ARGS[tool], package], cwd)

    async def uninstall(self, cwd: str, package: str) -> None:
        tool = detect_package_manager(cwd, self.configured)
        await self.runner.run([tool, *_UNINSTALL_ARGS[tool], package], cwd)

    async def update(self, cwd: str, packages: list[str]) -> None:
        if not packages:
            return
        tool = detect_package_manager(cwd, self.configured)
        await self.runner.run([tool, *_UPDATE_ARGS[tool], *packages], cwd)


class PackagePathResolver:
    """Locates installed packages under `<from_dir>/<modules_dir>/<id>`."""

    def __init__(self, modules_dir: str = "node_modules"):
        self.modules_dir = modules_dir

    def package_dir(self, package_id: str, from_dir: str) -> Path:
        return Path(from_dir) / self.modules_dir / Path(*package_id.split("/"))

    def get_installed_path(self, package_id: str, from_dir: str) -> str | None:
        path = self.package_dir(package_id, from_dir)
        return str(path) if path.is_dir() else None


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


class PackageVersions:
    """
    Current/wanted versions for plugins.

    `current` comes from the installed package manifest. `wanted` is the newest
    registry version satisfying the declared range (via `npm view`); for local
    `file:` ranges it is the version found at the local path.
    """

    def __init__(
        self,
        paths: PackagePathResolver,
        runner: CommandRunner,
        manifest_filename: str = "package.json",
    ):
        self.paths = paths
        self.runner = runner
        self.manifest_filename = manifest_filename
        self._cache: dict[str, VersionInfo] = {}

    async def get_version(self, plugin: Plugin, modules_root: str | None = None) -> VersionInfo:
        """`modules_root` is the directory holding the dependency tree; defaults to the plugin's workspace."""
        cached = self._cache.get(plugin.id)
        if cached is not None:
            return cached
        root = modules_root or plugin.base_dir
        installed = self.paths.get_installed_path(plugin.id, root)
        current = None
        if installed:
            current = _read_json(Path(installed) / self.manifest_filename).get("version")
        if plugin.version_range.startswith(LOCAL_RANGE_PREFIX):
            local_path = plugin.version_range[len(LOCAL_RANGE_PREFIX):]
            local_dir = Path(root) / local_path
            wanted = _read_json(local_dir / self.manifest_filename).get("version")
            info = VersionInfo(current=current, wanted=wanted, local_path=local_path)
        else:
            info = VersionInfo(current=current, wanted=await self._wanted(plugin, root))
        self._cache[plugin.id] = info
        return info

    def invalidate(self, package_id: str) -> None:
        self._cache.pop(package_id, None)

    async def _wanted(self, plugin: Plugin, cwd: str) -> str | None:
        spec = f"{plugin.id}@{plugin.version_range}" if plugin.version_range else plugin.id
        try:
            output = await self.runner.run(["npm", "view", spec, "version", "--json"], cwd)
        except ExternalProcessError as e:
            logger.warning("Could not resolve wanted version for {}: {}", plugin.id, e)
            return None
        try:
            data = json.loads(output or "null")
        except json.JSONDecodeError:
            return output.strip() or None
        if isinstance(data, list):
            return str(data[-1]) if data else None
        return str(data) if data else None

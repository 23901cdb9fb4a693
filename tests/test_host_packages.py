import sys

import pytest

from deskhost.host.packages import (
    NpmPackageManager,
    PackagePathResolver,
    PackageVersions,
    SubprocessRunner,
    detect_package_manager,
)
from deskhost.host.workspace import JsonManifestStore, WorkspaceCwd
from deskhost.plugins.core.types import Plugin
from deskhost.utils.exceptions import ExternalProcessError, ManifestError
from plugin_helpers import FakeRunner, write_manifest, write_plugin


def _plugin(plugin_id, version_range, base_dir):
    return Plugin(
        id=plugin_id,
        version_range=version_range,
        official=False,
        installed=True,
        website=None,
        base_dir=str(base_dir),
    )


def test_detect_package_manager_from_lockfile(tmp_path):
    assert detect_package_manager(str(tmp_path)) == "npm"
    (tmp_path / "yarn.lock").write_text("", encoding="utf-8")
    assert detect_package_manager(str(tmp_path)) == "yarn"
    assert detect_package_manager(str(tmp_path), configured="pnpm") == "pnpm"


@pytest.mark.asyncio
async def test_package_manager_builds_tool_specific_argv(tmp_path):
    runner = FakeRunner()
    manager = NpmPackageManager(runner)
    (tmp_path / "pnpm-lock.yaml").write_text("", encoding="utf-8")

    await manager.install(str(tmp_path), "deskhost-plugin-a")
    await manager.uninstall(str(tmp_path), "deskhost-plugin-a")
    await manager.update(str(tmp_path), ["deskhost-plugin-a", "deskhost-plugin-b"])
    await manager.update(str(tmp_path), [])

    assert [argv for argv, _ in runner.calls] == [
        ["pnpm", "add", "--save-dev", "deskhost-plugin-a"],
        ["pnpm", "remove", "deskhost-plugin-a"],
        ["pnpm", "update", "deskhost-plugin-a", "deskhost-plugin-b"],
    ]


def test_installed_path_lookup(tmp_path):
    resolver = PackagePathResolver()
    write_plugin(tmp_path, "@deskhost/plugin-router", {})

    assert resolver.get_installed_path("@deskhost/plugin-router", str(tmp_path)).endswith("plugin-router")
    assert resolver.get_installed_path("deskhost-plugin-none", str(tmp_path)) is None


@pytest.mark.asyncio
async def test_versions_for_local_range_read_local_manifest(tmp_path):
    workspace = tmp_path / "ws"
    write_plugin(workspace, "deskhost-plugin-local", {}, version="1.0.0")
    write_manifest(tmp_path / "src", {"name": "deskhost-plugin-local", "version": "1.3.0"})
    runner = FakeRunner()
    versions = PackageVersions(PackagePathResolver(), runner)

    info = await versions.get_version(_plugin("deskhost-plugin-local", "file:../src", workspace))

    assert (info.current, info.wanted, info.local_path) == ("1.0.0", "1.3.0", "../src")
    assert info.outdated is True
    assert runner.calls == []


@pytest.mark.asyncio
async def test_versions_resolve_from_custom_modules_root(tmp_path):
    workspace = tmp_path / "ws"
    app = workspace / "app"
    write_plugin(app, "deskhost-plugin-local", {}, version="1.0.0")
    write_manifest(app / "src", {"name": "deskhost-plugin-local", "version": "2.0.0"})
    versions = PackageVersions(PackagePathResolver(), FakeRunner())

    info = await versions.get_version(_plugin("deskhost-plugin-local", "file:src", workspace), str(app))

    assert (info.current, info.wanted) == ("1.0.0", "2.0.0")


@pytest.mark.asyncio
async def test_versions_for_registry_range_are_cached_until_invalidated(tmp_path):
    write_plugin(tmp_path, "deskhost-plugin-a", {}, version="1.0.0")
    runner = FakeRunner(lines=['["1.1.0", "1.2.0"]'])
    versions = PackageVersions(PackagePathResolver(), runner)
    plugin = _plugin("deskhost-plugin-a", "^1.0.0", tmp_path)

    info = await versions.get_version(plugin)
    await versions.get_version(plugin)

    assert (info.current, info.wanted) == ("1.0.0", "1.2.0")
    assert runner.calls[0][0] == ["npm", "view", "deskhost-plugin-a@^1.0.0", "version", "--json"]
    assert len(runner.calls) == 1

    versions.invalidate("deskhost-plugin-a")
    await versions.get_version(plugin)
    assert len(runner.calls) == 2


@pytest.mark.asyncio
async def test_subprocess_runner_streams_lines(tmp_path):
    lines = []
    output = await SubprocessRunner().run(
        [sys.executable, "-c", "print('one'); print(''); print('two')"],
        str(tmp_path),
        on_output=lines.append,
    )

    assert lines == ["one", "two"]
    assert output.splitlines()[0] == "one"


@pytest.mark.asyncio
async def test_subprocess_runner_raises_on_failure(tmp_path):
    with pytest.raises(ExternalProcessError) as exc_info:
        await SubprocessRunner().run([sys.executable, "-c", "import sys; print('bad'); sys.exit(3)"], str(tmp_path))
    assert exc_info.value.exit_code == 3
    assert "bad" in exc_info.value.output

    with pytest.raises(ExternalProcessError) as exc_info:
        await SubprocessRunner().run(["deskhost-no-such-binary"], str(tmp_path))
    assert exc_info.value.exit_code == 127


def test_manifest_store_round_trip_and_errors(tmp_path):
    store = JsonManifestStore()
    store.write_manifest(str(tmp_path), {"name": "ws"})
    assert store.read_manifest(str(tmp_path)) == {"name": "ws"}

    (tmp_path / "package.json").write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ManifestError):
        store.read_manifest(str(tmp_path))
    with pytest.raises(ManifestError):
        store.read_manifest(str(tmp_path / "missing"))


def test_workspace_cwd_normalizes(tmp_path):
    cwd = WorkspaceCwd(str(tmp_path / "a" / ".." / "b"))
    assert cwd.get() == str(tmp_path / "b")

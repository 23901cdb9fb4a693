import asyncio
import json

import pytest

from deskhost.bus import events
from deskhost.plugins.core.types import VersionInfo
from deskhost.plugins.lifecycle import PROGRESS_INSTALL
from deskhost.plugins.naming import BUNDLE_LOGO, logo_url
from deskhost.utils.exceptions import (
    ExternalProcessError,
    NotFoundError,
    OperationInProgressError,
    RuntimeUnavailableError,
)
from plugin_helpers import (
    FakePackageManager,
    FakeRunner,
    FakeVersions,
    read_manifest,
    write_manifest,
    write_plugin,
)

PROMPTS = "prompts = [{'name': 'greeting', 'type': 'input', 'default': 'hello'}]\n"
UI = "def register(api):\n    api.on_action('hello.after', lambda params: 'ok')\n"


def _notifications(manager):
    seen = []
    manager.host.bus.subscribe(events.NOTIFICATION, lambda event: seen.append(event.payload["title"]))
    return seen


@pytest.mark.asyncio
async def test_install_runs_package_manager_and_collects_prompts(workspace, make_manager):
    write_plugin(workspace, "deskhost-plugin-hello", {"prompts.py": PROMPTS})
    pm = FakePackageManager()
    manager = make_manager(workspace, package_manager=pm)
    titles = _notifications(manager)

    state = await manager.install("deskhost-plugin-hello")

    assert pm.calls == [("install", str(workspace), "deskhost-plugin-hello")]
    assert state["id"] == "plugin-install"
    assert state["pluginId"] == "deskhost-plugin-hello"
    assert state["step"] == "config"
    assert state["prompts"][0]["name"] == "greeting"
    assert state["prompts"][0]["value"] == "hello"
    assert titles == ["Plugin installed"]
    assert manager.progress.get(PROGRESS_INSTALL) is None
    assert manager.progress.active(str(workspace)) is None


@pytest.mark.asyncio
async def test_concurrent_operations_on_one_workspace_are_rejected(workspace, make_manager):
    gate = asyncio.Event()
    pm = FakePackageManager(gate=gate)
    manager = make_manager(workspace, package_manager=pm)

    first = asyncio.create_task(manager.install("deskhost-plugin-a"))
    await asyncio.sleep(0)

    assert manager.progress.active(str(workspace)) == PROGRESS_INSTALL
    with pytest.raises(OperationInProgressError):
        await manager.install("deskhost-plugin-b")
    with pytest.raises(OperationInProgressError):
        await manager.update("deskhost-plugin-a")

    gate.set()
    await first
    assert [call[2] for call in pm.calls] == ["deskhost-plugin-a"]


@pytest.mark.asyncio
async def test_install_waits_for_finish_before_next_install(workspace, make_manager):
    manager = make_manager(workspace)
    await manager.install("deskhost-plugin-a")

    with pytest.raises(OperationInProgressError):
        await manager.install("deskhost-plugin-b")
    with pytest.raises(OperationInProgressError):
        await manager.uninstall("deskhost-plugin-a")

    assert manager.finish_install()["step"] is None
    await manager.install("deskhost-plugin-b")


@pytest.mark.asyncio
async def test_failed_install_returns_state_to_idle(workspace, make_manager):
    pm = FakePackageManager(fail=ExternalProcessError(["npm", "install"], 1, "E404"))
    manager = make_manager(workspace, package_manager=pm)

    with pytest.raises(ExternalProcessError):
        await manager.install("deskhost-plugin-missing")

    assert manager.installation.idle
    assert manager.get_installation()["pluginId"] is None
    assert manager.progress.active(str(workspace)) is None


@pytest.mark.asyncio
async def test_debug_mode_mocks_official_plugins_through_manifest(workspace, make_manager):
    pm = FakePackageManager()
    manager = make_manager(workspace, debug=True, package_manager=pm)

    await manager.install("@deskhost/plugin-router")
    assert read_manifest(workspace)["devDependencies"]["@deskhost/plugin-router"] == "*"
    manager.finish_install()

    await manager.uninstall("@deskhost/plugin-router")
    assert "@deskhost/plugin-router" not in read_manifest(workspace)["devDependencies"]
    assert pm.calls == []

    await manager.install("deskhost-plugin-community")
    assert pm.calls == [("install", str(workspace), "deskhost-plugin-community")]


@pytest.mark.asyncio
async def test_uninstall_uses_package_manager_and_ends_idle(workspace, make_manager):
    pm = FakePackageManager()
    manager = make_manager(workspace, package_manager=pm)
    titles = _notifications(manager)

    state = await manager.uninstall("deskhost-plugin-a")

    assert pm.calls == [("uninstall", str(workspace), "deskhost-plugin-a")]
    assert state["step"] is None
    assert titles == ["Plugin uninstalled"]


@pytest.mark.asyncio
async def test_invoke_runs_generator_with_answers_and_reloads_plugin(workspace, make_manager):
    write_manifest(workspace, {"devDependencies": {"deskhost-plugin-hello": "^1.0.0"}})
    write_plugin(
        workspace,
        "deskhost-plugin-hello",
        {"prompts.py": PROMPTS, "ui.py": UI, "generator.py": "def generate(api, options):\n    pass\n"},
    )
    runner = FakeRunner(lines=["Invoking generator", "Done"])
    manager = make_manager(workspace, runner=runner)
    await manager.list(str(workspace))
    await manager.install("deskhost-plugin-hello")
    manager.host.prompts.answer("greeting", "hey")

    state = await manager.invoke("deskhost-plugin-hello")

    argv, cwd = runner.calls[0]
    assert argv == [
        "deskhost-cli",
        "invoke",
        "deskhost-plugin-hello",
        "--inline-options",
        json.dumps({"greeting": "hey"}),
    ]
    assert cwd == str(workspace)
    assert state["step"] == "diff"
    messages = [e["message"] for e in manager.host.logs.list() if e["tag"] == "deskhost-plugin-hello"]
    assert messages == ["Invoking generator", "Done"]
    assert len(manager.get_api(str(workspace)).actions["hello.after"]) == 2

    with pytest.raises(OperationInProgressError):
        await manager.invoke("deskhost-plugin-hello")
    manager.finish_install()


@pytest.mark.asyncio
async def test_invoke_without_generator_skips_external_command(workspace, make_manager):
    write_manifest(workspace, {"devDependencies": {"deskhost-plugin-hello": "^1.0.0"}})
    write_plugin(workspace, "deskhost-plugin-hello", {"ui.py": UI})
    runner = FakeRunner()
    manager = make_manager(workspace, runner=runner)
    await manager.list(str(workspace))

    state = await manager.invoke("deskhost-plugin-hello")

    assert runner.calls == []
    assert state["step"] == "diff"


@pytest.mark.asyncio
async def test_invoke_requires_runtime(workspace, make_manager):
    manager = make_manager(workspace, project_type=None)

    with pytest.raises(RuntimeUnavailableError):
        await manager.invoke("deskhost-plugin-hello")


def _local_plugin_setup(tmp_path, workspace):
    source = tmp_path / "local-plugin"
    write_manifest(source, {"name": "deskhost-plugin-local", "version": "1.1.0"})
    (source / "ui.py").write_text(UI, encoding="utf-8")
    (source / ".git").mkdir()
    (source / ".git" / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")
    (source / "node_modules" / "dep").mkdir(parents=True)
    (source / "node_modules" / "dep" / "index.js").write_text("", encoding="utf-8")
    write_manifest(workspace, {"devDependencies": {"deskhost-plugin-local": "file:../local-plugin"}})
    return write_plugin(workspace, "deskhost-plugin-local", {"stale.txt": "old"})


@pytest.mark.asyncio
async def test_local_update_resyncs_files_without_package_manager(tmp_path, workspace, make_manager):
    dest = _local_plugin_setup(tmp_path, workspace)
    pm = FakePackageManager()
    versions = FakeVersions(
        {"deskhost-plugin-local": VersionInfo(current="1.0.0", wanted="1.1.0", local_path="../local-plugin")}
    )
    manager = make_manager(workspace, package_manager=pm, versions=versions)
    await manager.list(str(workspace))

    plugin = await manager.update("deskhost-plugin-local", full=False)

    assert plugin is not None and plugin.id == "deskhost-plugin-local"
    assert (dest / "ui.py").is_file()
    assert (dest / "stale.txt").is_file()
    assert not (dest / ".git").exists()
    assert not (dest / "node_modules").exists()
    assert pm.calls == []
    assert versions.invalidated == ["deskhost-plugin-local"]
    assert "from 1.0.0 to 1.1.0" in manager.host.logs.last()["message"]


@pytest.mark.asyncio
async def test_local_update_runs_the_resynced_plugin_code(tmp_path, workspace, make_manager):
    dest = _local_plugin_setup(tmp_path, workspace)
    (dest / "ui.py").write_text("def register(api):\n    api.on_action('local.before', lambda params: 0)\n", encoding="utf-8")
    versions = FakeVersions(
        {"deskhost-plugin-local": VersionInfo(current="1.0.0", wanted="1.1.0", local_path="../local-plugin")}
    )
    manager = make_manager(workspace, versions=versions)
    await manager.list(str(workspace))
    assert "local.before" in manager.get_api(str(workspace)).actions

    await manager.update("deskhost-plugin-local")

    actions = manager.get_api(str(workspace)).actions
    assert "hello.after" in actions
    assert "local.before" not in actions


@pytest.mark.asyncio
async def test_update_reads_versions_from_the_resolved_manifest_root(workspace, make_manager):
    write_manifest(workspace, {"deskPlugins": {"resolveFrom": "app"}})
    write_manifest(workspace / "app", {"devDependencies": {"deskhost-plugin-a": "^1.0.0"}})
    write_plugin(workspace / "app", "deskhost-plugin-a", {})
    versions = FakeVersions()
    manager = make_manager(workspace, versions=versions)
    await manager.list(str(workspace))

    await manager.update("deskhost-plugin-a")

    assert versions.roots == [str(workspace / "app")]


@pytest.mark.asyncio
async def test_full_local_update_replaces_package_folder(tmp_path, workspace, make_manager):
    dest = _local_plugin_setup(tmp_path, workspace)
    versions = FakeVersions(
        {"deskhost-plugin-local": VersionInfo(current="1.0.0", wanted="1.1.0", local_path="../local-plugin")}
    )
    manager = make_manager(workspace, versions=versions)
    await manager.list(str(workspace))

    await manager.update("deskhost-plugin-local", full=True)

    assert not (dest / "stale.txt").exists()
    assert (dest / "node_modules" / "dep" / "index.js").is_file()
    assert not (dest / ".git").exists()


@pytest.mark.asyncio
async def test_registry_update_never_copies_files(workspace, make_manager, monkeypatch):
    def _no_copy(*args, **kwargs):
        raise AssertionError("copytree must not run for registry packages")

    monkeypatch.setattr("deskhost.plugins.lifecycle.shutil.copytree", _no_copy)
    write_manifest(workspace, {"devDependencies": {"deskhost-plugin-a": "^1.0.0"}})
    pm = FakePackageManager()
    versions = FakeVersions({"deskhost-plugin-a": VersionInfo(current="1.0.0", wanted="1.4.0")})
    manager = make_manager(workspace, package_manager=pm, versions=versions)
    await manager.list(str(workspace))
    titles = _notifications(manager)

    plugin = await manager.update("deskhost-plugin-a")

    assert plugin.id == "deskhost-plugin-a"
    assert pm.calls == [("update", str(workspace), ["deskhost-plugin-a"])]
    assert versions.invalidated == ["deskhost-plugin-a"]
    assert titles == ["Plugin updated"]
    assert manager.get_api(str(workspace)) is not None


@pytest.mark.asyncio
async def test_update_unknown_plugin_raises_and_frees_lane(workspace, make_manager):
    manager = make_manager(workspace)
    await manager.list(str(workspace))

    with pytest.raises(NotFoundError):
        await manager.update("deskhost-plugin-ghost")

    assert manager.progress.active(str(workspace)) is None
    assert manager.installation.plugin_id is None


@pytest.mark.asyncio
async def test_update_all_with_nothing_outdated(workspace, make_manager):
    write_manifest(workspace, {"devDependencies": {"deskhost-plugin-a": "^1.0.0"}})
    pm = FakePackageManager()
    manager = make_manager(workspace, package_manager=pm)
    titles = _notifications(manager)

    assert await manager.update_all() == []
    assert pm.calls == []
    assert titles == ["No updates available"]


@pytest.mark.asyncio
async def test_update_all_batches_outdated_declared_plugins(workspace, make_manager):
    write_manifest(
        workspace,
        {
            "devDependencies": {
                "deskhost-plugin-a": "^1.0.0",
                "deskhost-plugin-b": "^1.0.0",
                "deskhost-plugin-local": "file:../local",
            },
            "deskBundle": {"version": "3.0.0", "plugins": ["router"]},
        },
    )
    pm = FakePackageManager()
    versions = FakeVersions(
        {
            "deskhost-plugin-a": VersionInfo(current="1.0.0", wanted="1.2.0"),
            "deskhost-plugin-local": VersionInfo(current="0.1.0", wanted="0.2.0", local_path="../local"),
            "deskhost-build-bundle": VersionInfo(current="2.0.0", wanted="3.0.0"),
            "@deskhost/plugin-router": VersionInfo(current="2.0.0", wanted="3.0.0"),
        }
    )
    manager = make_manager(workspace, package_manager=pm, versions=versions)

    updated = await manager.update_all()

    assert [p.id for p in updated] == ["deskhost-plugin-a"]
    assert pm.calls == [("update", str(workspace), ["deskhost-plugin-a"])]
    assert versions.invalidated == ["deskhost-plugin-a"]


@pytest.mark.asyncio
async def test_install_local_links_and_copies_folder(tmp_path, workspace, make_manager):
    source = tmp_path / "my-plugin"
    write_manifest(source, {"name": "deskhost-plugin-mine", "version": "0.1.0"})
    (source / "ui.py").write_text(UI, encoding="utf-8")
    manager = make_manager(workspace)
    manager.host.cwd.set(str(tmp_path))

    state = await manager.install_local(str(source))

    assert manager.host.cwd.get() == str(workspace)
    assert read_manifest(workspace)["devDependencies"]["deskhost-plugin-mine"] == f"file:{source}"
    assert (workspace / "node_modules" / "deskhost-plugin-mine" / "ui.py").is_file()
    assert state["pluginId"] == "deskhost-plugin-mine"
    assert state["step"] == "config"


@pytest.mark.asyncio
async def test_install_local_needs_open_project(tmp_path, workspace, make_manager):
    manager = make_manager(workspace, project_type=None)

    with pytest.raises(NotFoundError):
        await manager.install_local(str(tmp_path))


@pytest.mark.asyncio
async def test_logo_lookup(workspace, make_manager):
    write_manifest(
        workspace,
        {
            "devDependencies": {"@deskhost/plugin-router": "^1.0.0", "deskhost-plugin-plain": "^1.0.0"},
            "deskBundle": {"version": "3.0.0", "plugins": []},
        },
    )
    write_plugin(workspace, "@deskhost/plugin-router", {"logo.png": "png"})
    write_plugin(workspace, "deskhost-plugin-plain", {})
    manager = make_manager(workspace)
    await manager.list(str(workspace), reset_api=False, auto_load=False)
    ws = str(workspace)

    assert manager.get_logo(manager.find_one("@deskhost/plugin-router", ws)) == logo_url("@deskhost/plugin-router")
    assert logo_url("@deskhost/plugin-router") == "/_plugin-logo/%40deskhost%2Fplugin-router"
    assert manager.get_logo(manager.find_one("deskhost-build-bundle", ws)) == BUNDLE_LOGO
    assert manager.get_logo(manager.find_one("deskhost-plugin-plain", ws)) is None

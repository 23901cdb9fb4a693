from datetime import datetime, timedelta, timezone

import pytest

from deskhost.bus import EventBus, events
from deskhost.commands.models import Command, CommandType, parse_query
from deskhost.commands.registry import CommandRegistry, client_filter


def _cmd(command_id, label, command_type=CommandType.ACTION, **kwargs):
    return Command(id=command_id, type=command_type, label=label, **kwargs)


def test_parse_query_splits_scope_symbol():
    assert parse_query("&lodash") == (CommandType.PACKAGE, "lodash")
    assert parse_query(">") == (CommandType.ACTION, "")
    assert parse_query("build") == (None, "build")
    assert parse_query("") == (None, "")


def test_recent_orders_by_last_used_then_registration():
    registry = CommandRegistry()
    for command_id in ("a", "b", "c"):
        registry.add(_cmd(command_id, f"Command {command_id}"))
    now = datetime.now(timezone.utc)
    registry.get("a").last_used = now - timedelta(seconds=10)
    registry.get("b").last_used = now

    assert [c.id for c in registry.recent()] == ["b", "a", "c"]


def test_empty_search_excludes_help_and_hidden_and_is_capped():
    registry = CommandRegistry(recent_limit=20)
    registry.add_builtins()
    for index in range(30):
        registry.add(_cmd(f"cmd-{index}", f"Command {index}"))

    results = registry.search("")

    assert len(results) == 20
    assert all(c.type != CommandType.HELP for c in results)
    assert all(not c.hidden for c in results)


def test_scoped_search_only_returns_that_type():
    registry = CommandRegistry()
    registry.add(_cmd("pkg:foo", "foo", CommandType.PACKAGE))
    registry.add(_cmd("action:foo", "foo", CommandType.ACTION))
    registry.add(_cmd("pkg:foobar", "foobar", CommandType.PACKAGE))

    assert [c.id for c in registry.search("&foo")] == ["pkg:foo", "pkg:foobar"]
    assert {c.id for c in registry.search("foo")} == {"pkg:foo", "action:foo", "pkg:foobar"}


def test_type_symbol_alone_lists_recent_of_that_type():
    registry = CommandRegistry()
    registry.add_builtins()
    registry.add(_cmd("run-build", "Run build"))
    registry.add(_cmd("open-project", "Open project", CommandType.PROJECT))

    assert [c.id for c in registry.search(">")] == ["run-build"]
    assert {c.id for c in registry.search("?")} == {">", "<", "&", "~", "$"}


def test_prefix_matching_and_label_ranking():
    registry = CommandRegistry()
    registry.add(_cmd("install-deps", "Install dependencies"))
    registry.add(_cmd("lint", "Lint the project files"))
    registry.add(_cmd("serve", "Serve"))

    assert [c.id for c in registry.search("inst")] == ["install-deps"]
    assert [c.id for c in registry.search("serve")] == ["serve"]
    assert registry.search("nothing-matches-this") == []


def test_first_registration_wins():
    registry = CommandRegistry()
    first = registry.add(_cmd("dup", "First"))
    second = registry.add(_cmd("dup", "Second"))

    assert second is first
    assert registry.get("dup").label == "First"
    assert [c.id for c in registry.search("second")] == []


def test_hidden_commands_are_retrievable_but_never_searchable():
    registry = CommandRegistry()
    registry.add(_cmd("secret", "Secret thing", hidden=True))

    assert registry.get("secret") is not None
    assert registry.search("secret") == []
    assert registry.recent() == []


@pytest.mark.asyncio
async def test_run_marks_used_calls_handler_and_publishes():
    bus = EventBus()
    registry = CommandRegistry(bus=bus)
    calls = []

    async def handler():
        calls.append("ran")

    registry.add(_cmd("build", "Build", handler=handler))
    mine, others = [], []
    bus.subscribe(events.COMMAND_RAN, lambda event: mine.append(event.payload), client_filter("client-1"))
    bus.subscribe(events.COMMAND_RAN, lambda event: others.append(event.payload), client_filter("client-2"))

    command = await registry.run("build", client_id="client-1")

    assert calls == ["ran"]
    assert command.last_used is not None
    assert mine[0]["clientId"] == "client-1"
    assert mine[0]["commandRan"]["id"] == "build"
    assert mine[0]["commandRan"]["lastUsed"] is not None
    assert others == []
    assert registry.recent()[0].id == "build"


@pytest.mark.asyncio
async def test_run_unknown_command_returns_none():
    registry = CommandRegistry(bus=EventBus())

    assert await registry.run("missing") is None


def test_builtins_register_help_entries_and_keybindings():
    registry = CommandRegistry()
    registry.add_builtins()

    assert registry.get("&").type == CommandType.HELP
    assert registry.get("find").hidden is True
    described = registry.describe(registry.get("command"))
    assert described["keybinding"]["sequences"] == ["mod+shift+p", "mod+shift+k"]
    assert described["keybinding"]["global"] is True
    assert registry.describe(registry.get("&"))["keybinding"] is None

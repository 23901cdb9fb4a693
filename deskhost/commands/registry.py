"""Command registry: per-type and global label indexes plus recency ranking."""

from __future__ import annotations

import inspect
from datetime import datetime, timezone
from typing import Any

from loguru import logger

from deskhost.bus import events
from deskhost.commands.keybindings import KeybindingRegistry
from deskhost.commands.models import TYPE_PREFIXES, Command, CommandType, Keybinding, parse_query
from deskhost.commands.search_index import SearchIndex

DEFAULT_RECENT_LIMIT = 20


class CommandRegistry:
    """
    Process-wide command set.

    Commands are only ever added; the first registration of an id wins. Hidden
    commands stay runnable and retrievable by id but never enter a search index.
    """

    def __init__(self, bus: Any = None, recent_limit: int = DEFAULT_RECENT_LIMIT):
        self.bus = bus
        self.recent_limit = recent_limit
        self.keybindings = KeybindingRegistry()
        self._commands: list[Command] = []
        self._by_id: dict[str, Command] = {}
        self._global_index = SearchIndex("global")
        self._type_indexes: dict[CommandType, SearchIndex] = {t: SearchIndex(t.value) for t in CommandType}

    def add(self, command: Command) -> Command:
        existing = self._by_id.get(command.id)
        if existing is not None:
            logger.debug("Command {} already registered, ignoring duplicate", command.id)
            return existing
        self._commands.append(command)
        self._by_id[command.id] = command
        if not command.hidden:
            self._type_indexes[command.type].add(command.id, command.label)
            self._global_index.add(command.id, command.label)
        return command

    def get(self, command_id: str) -> Command | None:
        return self._by_id.get(command_id)

    def all(self) -> list[Command]:
        return list(self._commands)

    def search(self, text: str) -> list[Command]:
        """Search labels; a leading type symbol scopes the search, empty text returns recent commands."""
        command_type, query = parse_query(text)
        if not query:
            return self.recent(command_type)
        index = self._type_indexes[command_type] if command_type else self._global_index
        return [self._by_id[ref] for ref in index.search(query) if ref in self._by_id]

    def recent(self, command_type: CommandType | None = None) -> list[Command]:
        if command_type is not None:
            candidates = [c for c in self._commands if not c.hidden and c.type == command_type]
        else:
            candidates = [c for c in self._commands if not c.hidden and c.type != CommandType.HELP]
        # Stable: timestamped first (newest first), untimed keep insertion order.
        candidates.sort(key=lambda c: (c.last_used is None, -c.last_used.timestamp() if c.last_used else 0.0))
        return candidates[: self.recent_limit]

    async def run(self, command_id: str, client_id: str | None = None) -> Command | None:
        command = self.get(command_id)
        if command is None:
            logger.warning("Command {} not found", command_id)
            return None
        command.last_used = datetime.now(timezone.utc)
        if command.handler is not None:
            result = command.handler()
            if inspect.isawaitable(result):
                await result
        if self.bus is not None:
            self.bus.publish(events.COMMAND_RAN, {"commandRan": command.to_dict(), "clientId": client_id})
        return command

    def keybinding_for(self, command_id: str) -> Keybinding | None:
        return self.keybindings.find(command_id)

    def describe(self, command: Command) -> dict[str, Any]:
        data = command.to_dict()
        binding = self.keybinding_for(command.id)
        data["keybinding"] = binding.to_dict() if binding else None
        return data

    def add_builtins(self) -> None:
        """Register help entries for each scope symbol and the hidden find/command palette openers."""
        for symbol, command_type in TYPE_PREFIXES.items():
            if command_type == CommandType.HELP:
                continue
            self.add(
                Command(
                    id=symbol,
                    type=CommandType.HELP,
                    label=symbol,
                    description=f"deskhost.find.help.{command_type.value}",
                )
            )
        self.add(Command(id="find", type=CommandType.ACTION, label="Find", hidden=True))
        self.keybindings.add(Keybinding(id="find", sequences=["mod+p", "mod+k"], scope="root", global_=True))
        self.add(Command(id="command", type=CommandType.ACTION, label="Command", hidden=True))
        self.keybindings.add(
            Keybinding(id="command", sequences=["mod+shift+p", "mod+shift+k"], scope="root", global_=True)
        )


def client_filter(client_id: str | None):
    """Bus filter that keeps only commandRan events triggered by the given client."""

    def _matches(payload: Any) -> bool:
        return isinstance(payload, dict) and payload.get("clientId") == client_id

    return _matches


_registry: CommandRegistry | None = None


def get_command_registry(bus: Any = None) -> CommandRegistry:
    """Get or create the process-global command registry (built-ins included)."""
    global _registry
    if _registry is None:
        from deskhost.config.access import get_config

        _registry = CommandRegistry(bus=bus, recent_limit=get_config().commands.recent_limit)
        _registry.add_builtins()
    return _registry

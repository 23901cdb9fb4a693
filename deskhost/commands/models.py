"""Command palette records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable


class CommandType(str, Enum):
    HELP = "help"
    ACTION = "action"
    PROJECT = "project"
    PACKAGE = "package"
    CONFIG = "config"
    SCRIPT = "script"


# Leading query symbol -> command type scope
TYPE_PREFIXES: dict[str, CommandType] = {
    "?": CommandType.HELP,
    ">": CommandType.ACTION,
    "<": CommandType.PROJECT,
    "&": CommandType.PACKAGE,
    "~": CommandType.CONFIG,
    "$": CommandType.SCRIPT,
}


@dataclass(slots=True)
class Command:
    """A searchable, runnable palette entry. Only `last_used` changes after registration."""

    id: str
    type: CommandType
    label: str
    icon: str | None = None
    description: str | None = None
    hidden: bool = False
    last_used: datetime | None = None
    handler: Callable[[], Any] | None = field(default=None, repr=False, compare=False)
    plugin_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "label": self.label,
            "icon": self.icon,
            "description": self.description,
            "hidden": self.hidden,
            "lastUsed": self.last_used.isoformat() if self.last_used else None,
            "pluginId": self.plugin_id,
        }


@dataclass(slots=True)
class Keybinding:
    id: str
    sequences: list[str]
    scope: str = "root"
    global_: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "sequences": list(self.sequences), "scope": self.scope, "global": self.global_}


def parse_query(text: str) -> tuple[CommandType | None, str]:
    """Split a palette query into its type scope (from the leading symbol) and the search text."""
    if text and text[0] in TYPE_PREFIXES:
        return TYPE_PREFIXES[text[0]], text[1:]
    return None, text

"""Command palette: registry, search indexes and keybindings."""

from deskhost.commands.models import Command, CommandType, Keybinding, parse_query
from deskhost.commands.registry import CommandRegistry, client_filter, get_command_registry

__all__ = [
    "Command",
    "CommandRegistry",
    "CommandType",
    "Keybinding",
    "client_filter",
    "get_command_registry",
    "parse_query",
]

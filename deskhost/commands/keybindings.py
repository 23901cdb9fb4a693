"""Keybinding table for palette commands."""

from __future__ import annotations

from deskhost.commands.models import Keybinding


class KeybindingRegistry:
    def __init__(self):
        self._bindings: list[Keybinding] = []

    def add(self, binding: Keybinding) -> Keybinding:
        self._bindings.append(binding)
        return binding

    def find(self, command_id: str) -> Keybinding | None:
        for binding in self._bindings:
            if binding.id == command_id:
                return binding
        return None

    def all(self) -> list[Keybinding]:
        return list(self._bindings)

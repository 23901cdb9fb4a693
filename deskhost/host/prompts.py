"""Prompt set collected from the user after a plugin install."""

from __future__ import annotations

from typing import Any


class PromptCollector:
    def __init__(self):
        self._prompts: list[dict[str, Any]] = []
        self._answers: dict[str, Any] = {}

    async def reset(self) -> None:
        self._prompts = []
        self._answers = {}

    def add(self, prompt: dict[str, Any]) -> None:
        name = str(prompt.get("name") or "").strip()
        if not name:
            raise ValueError("prompt name is required")
        self._prompts.append(dict(prompt))

    async def start(self) -> None:
        """Seed answers with each prompt's default."""
        for prompt in self._prompts:
            self._answers.setdefault(prompt["name"], prompt.get("default"))

    def answer(self, name: str, value: Any) -> None:
        self._answers[name] = value

    def list(self) -> list[dict[str, Any]]:
        return [{**p, "value": self._answers.get(p["name"])} for p in self._prompts]

    def get_answers(self) -> dict[str, Any]:
        return dict(self._answers)

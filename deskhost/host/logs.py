"""User-visible console log, mirrored to loguru."""

from __future__ import annotations

import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Any

from loguru import logger

from deskhost.bus import events

_LEVELS = {"info": "INFO", "warn": "WARNING", "error": "ERROR", "done": "SUCCESS"}


class ConsoleLogStore:
    def __init__(self, bus: Any = None, max_entries: int = 500):
        self.bus = bus
        self._entries: deque[dict[str, Any]] = deque(maxlen=max_entries)

    def add(self, message: str, type: str = "info", tag: str | None = None) -> dict[str, Any]:
        entry = {
            "id": uuid.uuid4().hex,
            "type": type,
            "tag": tag,
            "message": message,
            "date": datetime.now(timezone.utc).isoformat(),
        }
        self._entries.append(entry)
        logger.log(_LEVELS.get(type, "INFO"), "[{}] {}", tag or "console", message)
        if self.bus is not None:
            self.bus.publish(events.CONSOLE_LOG_ADDED, entry)
        return entry

    def list(self) -> list[dict[str, Any]]:
        return list(self._entries)

    def last(self) -> dict[str, Any] | None:
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()

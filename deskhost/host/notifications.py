"""Notifications for finished lifecycle operations."""

from __future__ import annotations

from typing import Any

from loguru import logger

from deskhost.bus import events


class Notifier:
    def __init__(self, bus: Any = None):
        self.bus = bus

    def notify(self, title: str, message: str, icon: str = "done") -> None:
        logger.info("{}: {}", title, message)
        if self.bus is not None:
            self.bus.publish(events.NOTIFICATION, {"title": title, "message": message, "icon": icon})

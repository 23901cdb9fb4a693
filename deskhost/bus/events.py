"""Event channel names and the event envelope."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

PLUGIN_ACTION_CALLED = "pluginActionCalled"
PLUGIN_ACTION_RESOLVED = "pluginActionResolved"
PLUGIN_ERROR = "pluginError"
COMMAND_RAN = "commandRan"
PROGRESS_CHANGED = "progress.changed"
PROGRESS_REMOVED = "progress.removed"
CONSOLE_LOG_ADDED = "console.log.added"
NOTIFICATION = "notification"


@dataclass(slots=True)
class Event:
    """One published event."""

    channel: str
    payload: Any

"""Event bus for plugin runtime, progress and command events."""

from deskhost.bus.bus import EventBus
from deskhost.bus.events import Event

__all__ = ["EventBus", "Event"]

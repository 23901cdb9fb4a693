"""Serialized progress channel for lifecycle operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

from deskhost.bus import events
from deskhost.utils.exceptions import OperationInProgressError

T = TypeVar("T")
SetProgress = Callable[..., None]


@dataclass(slots=True)
class ProgressEntry:
    id: str
    status: str | None = None
    args: list[Any] = field(default_factory=list)
    info: str | None = None
    progress: float = -1

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "status": self.status, "args": list(self.args), "info": self.info, "progress": self.progress}


class ProgressChannel:
    """
    Progress entries keyed by id, plus lanes that admit one operation at a time.

    A lane is claimed synchronously when `wrap` starts, so a second operation on
    the same lane is rejected before it can run anything.
    """

    def __init__(self, bus: Any = None):
        self.bus = bus
        self._entries: dict[str, ProgressEntry] = {}
        self._lanes: dict[str, str] = {}

    def get(self, progress_id: str) -> ProgressEntry | None:
        return self._entries.get(progress_id)

    def active(self, lane: str) -> str | None:
        """Progress id of the operation holding the lane, if any."""
        return self._lanes.get(lane)

    def set(self, progress_id: str, **fields: Any) -> ProgressEntry:
        entry = self._entries.get(progress_id)
        if entry is None:
            entry = ProgressEntry(id=progress_id)
            self._entries[progress_id] = entry
        for name, value in fields.items():
            setattr(entry, name, value)
        if self.bus is not None:
            self.bus.publish(events.PROGRESS_CHANGED, entry.to_dict())
        return entry

    def remove(self, progress_id: str) -> None:
        if self._entries.pop(progress_id, None) is not None and self.bus is not None:
            self.bus.publish(events.PROGRESS_REMOVED, {"id": progress_id})

    async def wrap(
        self,
        progress_id: str,
        fn: Callable[[SetProgress], Awaitable[T]],
        *,
        lane: str | None = None,
    ) -> T:
        """Run `fn` as the only operation on `lane`; raises OperationInProgressError if it is taken."""
        lane_key = lane or progress_id
        active = self._lanes.get(lane_key)
        if active is not None:
            raise OperationInProgressError(progress_id, active)
        self._lanes[lane_key] = progress_id
        self.set(progress_id)

        def set_progress(**fields: Any) -> None:
            self.set(progress_id, **fields)

        try:
            return await fn(set_progress)
        except Exception as e:
            logger.warning("Operation {} failed: {}", progress_id, e)
            raise
        finally:
            self._lanes.pop(lane_key, None)
            self.remove(progress_id)

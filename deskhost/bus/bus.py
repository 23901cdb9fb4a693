"""In-process publish/subscribe bus used by the plugin runtime and command registry."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import AsyncIterator
from typing import Any, Callable

from loguru import logger

from deskhost.bus.events import Event

EventFilter = Callable[[Any], bool]
EventHandler = Callable[[Event], Any]


class EventBus:
    """
    Fan-out event bus.

    Subscribers register per channel with an optional payload filter. Handlers
    may be sync or async; async handlers are scheduled on the running loop.
    """

    def __init__(self):
        self._subscribers: dict[str, list[tuple[EventHandler, EventFilter | None]]] = {}
        self._tasks: set[asyncio.Task] = set()

    def publish(self, channel: str, payload: Any) -> int:
        """Deliver payload to every matching subscriber. Returns delivery count."""
        event = Event(channel=channel, payload=payload)
        delivered = 0
        for handler, event_filter in list(self._subscribers.get(channel, [])):
            if event_filter is not None and not event_filter(payload):
                continue
            delivered += 1
            try:
                result = handler(event)
            except Exception as e:
                logger.error("Event handler for {} failed: {}", channel, e)
                continue
            if inspect.isawaitable(result):
                self._schedule(channel, result)
        return delivered

    def subscribe(
        self,
        channel: str,
        handler: EventHandler,
        event_filter: EventFilter | None = None,
    ) -> Callable[[], None]:
        """Register a handler; returns a callable that removes it."""
        entry = (handler, event_filter)
        self._subscribers.setdefault(channel, []).append(entry)

        def _unsubscribe() -> None:
            entries = self._subscribers.get(channel, [])
            if entry in entries:
                entries.remove(entry)

        return _unsubscribe

    async def stream(self, channel: str, event_filter: EventFilter | None = None) -> AsyncIterator[Any]:
        """Yield payloads published on channel until the consumer stops iterating."""
        queue: asyncio.Queue[Any] = asyncio.Queue()
        unsubscribe = self.subscribe(channel, lambda event: queue.put_nowait(event.payload), event_filter)
        try:
            while True:
                yield await queue.get()
        finally:
            unsubscribe()

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, []))

    def _schedule(self, channel: str, awaitable: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Async handler for {} dropped: no running event loop", channel)
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return
        task = asyncio.ensure_future(awaitable, loop=loop)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

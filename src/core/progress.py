"""Progress reporting for background fetches.

Events flow one way, from the orchestrator to a single consumer (the browser
or a test harness). The stream is bounded, but sized so that one whole fetch
session fits without the producer ever waiting on the consumer.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Union

from core.errors import ProgressChannelClosedError
from core.models import DetailedActivities

DEFAULT_CAPACITY = 100


@dataclass(frozen=True)
class Started:
    platform_id: str


@dataclass(frozen=True)
class Completed:
    """One platform finished. ``activities`` is set only on success."""

    platform_id: str
    success: bool
    item_count: Optional[int] = None
    error_message: Optional[str] = None
    activities: Optional[DetailedActivities] = None


@dataclass(frozen=True)
class AllCompleted:
    total: int
    successful: int


@dataclass(frozen=True)
class Cancelled:
    pass


ProgressEvent = Union[Started, Completed, AllCompleted, Cancelled]


def is_terminal(event: ProgressEvent) -> bool:
    return isinstance(event, (AllCompleted, Cancelled))


def channel_capacity(platform_count: int) -> int:
    """Started + Completed per platform plus the terminal event."""

    return max(DEFAULT_CAPACITY, 2 * platform_count + 1)


class ProgressStream:
    """Bounded single-producer, single-consumer event channel."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self._queue: asyncio.Queue[ProgressEvent] = asyncio.Queue(maxsize=capacity)
        self._capacity = capacity
        self._closed = False
        self._finished = False

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def finished(self) -> bool:
        """True once the consumer has received the terminal event."""

        return self._finished

    async def emit(self, event: ProgressEvent) -> None:
        if self._closed:
            raise ProgressChannelClosedError(
                f"Progress consumer closed the stream before {type(event).__name__}"
            )
        await self._queue.put(event)

    def close(self) -> None:
        """Consumer-side: stop receiving. Any further emit is fatal to the fetch."""

        self._closed = True

    async def next(self) -> ProgressEvent:
        event = await self._queue.get()
        if is_terminal(event):
            self._finished = True
        return event

    def get_nowait(self) -> Optional[ProgressEvent]:
        try:
            event = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        if is_terminal(event):
            self._finished = True
        return event

    def drain(self) -> list[ProgressEvent]:
        """Return every event already queued without waiting."""

        events: list[ProgressEvent] = []
        while True:
            event = self.get_nowait()
            if event is None:
                return events
            events.append(event)

    def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ProgressEvent]:
        while not self._finished:
            yield await self.next()

"""Concurrent fetch orchestrator.

The orchestrator fans out one retrieval per configured platform, reports each
one on the progress stream as it finishes, and hands the aggregated results
over to the caller once everything is done. Strict order per fetch:
1) Fail fast when no platform is configured (no events, no tasks)
2) Emit Started and launch the retrieval, platform by platform
3) Emit one Completed per retrieval in completion order
4) Emit exactly one terminal event, AllCompleted or Cancelled

A platform failure is reported and isolated; only a closed progress stream
aborts the fetch as a whole.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping, Sequence

from core.errors import NoConfiguredPlatformsError, ProgressChannelClosedError
from core.models import DetailedActivities
from core.ports import PlatformAdapter
from core.progress import (
    AllCompleted,
    Cancelled,
    Completed,
    ProgressStream,
    Started,
    channel_capacity,
)
from core.registry import PlatformRegistry

LOGGER = logging.getLogger(__name__)

STATUS_WAITING = "waiting"
STATUS_FETCHING = "fetching"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"


def done_status(item_count: int) -> str:
    return f"done ({item_count})"


class CancelHandle:
    """Caller-side switch that stops a fetch early. Safe to call repeatedly."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        if not self._event.is_set():
            LOGGER.info("Fetch cancellation requested")
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass(frozen=True)
class FetchSnapshot:
    """Immutable result of one fetch session, handed to the caller at the end."""

    subject: str
    days: int
    statuses: Mapping[str, str]
    errors: Mapping[str, str]
    activities: Mapping[str, DetailedActivities]
    cancelled: bool
    total: int
    successful: int


@dataclass
class FetchSession:
    """Working state owned by the orchestrator while a fetch is running."""

    subject: str
    days: int
    platform_ids: tuple[str, ...]
    cancel_handle: CancelHandle = field(default_factory=CancelHandle)
    statuses: dict[str, str] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)
    activities: dict[str, DetailedActivities] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for platform_id in self.platform_ids:
            self.statuses.setdefault(platform_id, STATUS_WAITING)

    def record_started(self, platform_id: str) -> None:
        self.statuses[platform_id] = STATUS_FETCHING

    def record_success(self, platform_id: str, activities: DetailedActivities) -> None:
        self.statuses[platform_id] = done_status(activities.total_items)
        self.activities[platform_id] = activities

    def record_failure(self, platform_id: str, message: str) -> None:
        self.statuses[platform_id] = STATUS_FAILED
        self.errors[platform_id] = message

    def snapshot(self, cancelled: bool) -> FetchSnapshot:
        """Move the session data into an immutable snapshot.

        A cancelled session produces no aggregated activities. The session is
        left empty afterwards so nothing keeps mutating what the caller holds.
        """

        statuses = dict(self.statuses)
        if cancelled:
            for platform_id, status in statuses.items():
                if status in (STATUS_WAITING, STATUS_FETCHING):
                    statuses[platform_id] = STATUS_CANCELLED
        snapshot = FetchSnapshot(
            subject=self.subject,
            days=self.days,
            statuses=MappingProxyType(statuses),
            errors=MappingProxyType(dict(self.errors)),
            activities=MappingProxyType({} if cancelled else dict(self.activities)),
            cancelled=cancelled,
            total=len(self.platform_ids),
            successful=len(self.activities),
        )
        self.statuses = {}
        self.errors = {}
        self.activities = {}
        return snapshot


class FetchHandle:
    """What ``start_fetch`` gives back: the progress stream plus controls.

    Unpacks as ``(progress, cancel_handle)``.
    """

    def __init__(
        self,
        progress: ProgressStream,
        cancel_handle: CancelHandle,
        task: "asyncio.Task[FetchSnapshot]",
    ) -> None:
        self._progress = progress
        self._cancel_handle = cancel_handle
        self._task = task

    @property
    def progress(self) -> ProgressStream:
        return self._progress

    @property
    def cancel_handle(self) -> CancelHandle:
        return self._cancel_handle

    @property
    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> None:
        self._cancel_handle.cancel()

    async def wait(self) -> FetchSnapshot:
        """Return the final snapshot, or raise the fatal error that ended the fetch."""

        return await self._task

    def __iter__(self) -> Iterator[object]:
        return iter((self._progress, self._cancel_handle))


class FetchOrchestrator:
    """Runs one retrieval per configured platform of a registry."""

    def __init__(self, registry: PlatformRegistry) -> None:
        self._registry = registry

    def start_fetch(self, subject: str, days: int) -> FetchHandle:
        """Launch a fetch in the running event loop.

        Raises NoConfiguredPlatformsError synchronously, before any task is
        created or any event is produced.
        """

        adapters = self._registry.get_configured_platforms()
        if not adapters:
            raise NoConfiguredPlatformsError()

        session = FetchSession(
            subject=subject,
            days=days,
            platform_ids=tuple(adapter.platform_id() for adapter in adapters),
        )
        progress = ProgressStream(channel_capacity(len(adapters)))
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(adapters, session, progress), name=f"fetch:{subject}")
        LOGGER.info("Fetching %s day(s) of activity for %s from %s platform(s)", days, subject, len(adapters))
        return FetchHandle(progress, session.cancel_handle, task)

    async def _run(
        self,
        adapters: Sequence[PlatformAdapter],
        session: FetchSession,
        progress: ProgressStream,
    ) -> FetchSnapshot:
        cancel = session.cancel_handle
        tasks: dict[asyncio.Task, str] = {}
        cancel_waiter = asyncio.ensure_future(cancel.wait())
        try:
            for adapter in adapters:
                if cancel.cancelled:
                    break
                platform_id = adapter.platform_id()
                session.record_started(platform_id)
                await progress.emit(Started(platform_id))
                task = asyncio.create_task(
                    _retrieve(adapter, session.subject, session.days),
                    name=f"fetch:{platform_id}",
                )
                tasks[task] = platform_id

            pending = set(tasks)
            while pending and not cancel.cancelled:
                done, _ = await asyncio.wait(
                    pending | {cancel_waiter},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                # Registration order keeps simultaneous completions deterministic.
                for task in [task for task in tasks if task in done]:
                    if cancel.cancelled:
                        break
                    pending.discard(task)
                    await self._report(task, tasks[task], session, progress)

            if cancel.cancelled:
                LOGGER.info("Fetch for %s cancelled with %s platform(s) outstanding", session.subject, len(pending))
                await progress.emit(Cancelled())
                return session.snapshot(cancelled=True)

            successful = len(session.activities)
            LOGGER.info("Fetch for %s finished: %s/%s platform(s) succeeded", session.subject, successful, len(tasks))
            await progress.emit(AllCompleted(total=len(tasks), successful=successful))
            return session.snapshot(cancelled=False)
        except ProgressChannelClosedError:
            LOGGER.error("Progress stream closed by its consumer; abandoning fetch for %s", session.subject)
            raise
        finally:
            cancel_waiter.cancel()
            # Retrievals still in flight are abandoned, never awaited.
            for task in tasks:
                if not task.done():
                    task.cancel()
                elif not task.cancelled():
                    # Results discarded after a cancel still count as retrieved.
                    task.exception()

    @staticmethod
    async def _report(
        task: asyncio.Task,
        platform_id: str,
        session: FetchSession,
        progress: ProgressStream,
    ) -> None:
        try:
            activities = task.result()
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            LOGGER.warning("Fetch failed for %s: %s", platform_id, message)
            session.record_failure(platform_id, message)
            await progress.emit(Completed(platform_id, success=False, error_message=message))
            return

        if not isinstance(activities, DetailedActivities):
            activities = DetailedActivities.from_mapping(activities or {})
        session.record_success(platform_id, activities)
        LOGGER.info("Fetched %s item(s) from %s", activities.total_items, platform_id)
        await progress.emit(
            Completed(
                platform_id,
                success=True,
                item_count=activities.total_items,
                activities=activities,
            )
        )


async def _retrieve(adapter: PlatformAdapter, subject: str, days: int) -> DetailedActivities:
    return await adapter.get_detailed_activities(subject, days)


def start_fetch(registry: PlatformRegistry, subject: str, days: int) -> FetchHandle:
    """Shortcut for ``FetchOrchestrator(registry).start_fetch(subject, days)``."""

    return FetchOrchestrator(registry).start_fetch(subject, days)
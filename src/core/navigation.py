"""Hierarchical navigation state for the activity browser.

Three view levels (summary, platform, category) with item selection inside the
category level. The machine is driven by two inputs only: abstract navigation
events from the user and progress events from a running fetch. It never waits
on either; it reflects whatever data has arrived so far.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from types import MappingProxyType
from typing import Mapping, Optional, Sequence, Union

from core.fetcher import (
    STATUS_CANCELLED,
    STATUS_FAILED,
    STATUS_FETCHING,
    STATUS_WAITING,
    CancelHandle,
    FetchSnapshot,
    done_status,
)
from core.models import ActivityCategory, ActivityItem, DetailedActivities, PlatformHandle
from core.progress import AllCompleted, Cancelled, Completed, ProgressEvent, Started
from core.registry import PlatformRegistry

LOGGER = logging.getLogger(__name__)


class NavEvent(Enum):
    SELECT_NEXT_PLATFORM = auto()
    SELECT_PREVIOUS_PLATFORM = auto()
    ENTER = auto()
    BACK = auto()
    MOVE_CURSOR_UP = auto()
    MOVE_CURSOR_DOWN = auto()
    GO_TO_SUMMARY = auto()
    REQUEST_CANCEL = auto()


@dataclass(frozen=True)
class SummaryView:
    pass


@dataclass(frozen=True)
class PlatformView:
    platform_id: str
    category_cursor: int = 0


@dataclass(frozen=True)
class CategoryView:
    platform_id: str
    category: ActivityCategory
    item_cursor: int = 0


NavigationState = Union[SummaryView, PlatformView, CategoryView]


def _clamp(cursor: int, size: int) -> int:
    if size <= 0:
        return 0
    return max(0, min(cursor, size - 1))


@dataclass(frozen=True)
class NavigationSnapshot:
    """Read-only view of everything a renderer needs for one frame."""

    view: NavigationState
    platforms: tuple[PlatformHandle, ...]
    platform_cursor: int
    statuses: Mapping[str, str]
    errors: Mapping[str, str]
    activities: Mapping[str, DetailedActivities]
    loading: bool
    cancelled: bool
    fetch_active: bool = False
    finished_platforms: frozenset[str] = field(default_factory=frozenset)

    def platform(self, platform_id: str) -> Optional[PlatformHandle]:
        for handle in self.platforms:
            if handle.id == platform_id:
                return handle
        return None

    def categories(self, platform_id: str) -> tuple[ActivityCategory, ...]:
        activities = self.activities.get(platform_id)
        return activities.categories if activities else ()

    def items(self, platform_id: str, category: ActivityCategory) -> tuple[ActivityItem, ...]:
        activities = self.activities.get(platform_id)
        return activities.items(category) if activities else ()

    @property
    def highlighted_platform(self) -> Optional[PlatformHandle]:
        if not self.platforms:
            return None
        return self.platforms[self.platform_cursor]

    @property
    def highlighted_category(self) -> Optional[ActivityCategory]:
        view = self.view
        if isinstance(view, CategoryView):
            return view.category
        if isinstance(view, PlatformView):
            categories = self.categories(view.platform_id)
            if view.category_cursor < len(categories):
                return categories[view.category_cursor]
        return None

    @property
    def highlighted_item(self) -> Optional[ActivityItem]:
        view = self.view
        if not isinstance(view, CategoryView):
            return None
        items = self.items(view.platform_id, view.category)
        if view.item_cursor < len(items):
            return items[view.item_cursor]
        return None

    @property
    def completed_count(self) -> int:
        return len(self.finished_platforms)


class NavigationMachine:
    """Owns the current view, cursors and per-platform display status."""

    def __init__(self, platforms: Sequence[PlatformHandle]) -> None:
        self._platforms = tuple(platforms)
        self._view: NavigationState = SummaryView()
        self._platform_cursor = 0
        # Remembered per platform so re-entering restores the last category.
        self._category_cursors: dict[str, int] = {}
        self._statuses: dict[str, str] = {handle.id: STATUS_WAITING for handle in self._platforms}
        self._errors: dict[str, str] = {}
        self._activities: dict[str, DetailedActivities] = {}
        self._finished: set[str] = set()
        self._loading = False
        self._cancelled = False
        self._cancel_handle: Optional[CancelHandle] = None

    @classmethod
    def from_registry(cls, registry: PlatformRegistry) -> "NavigationMachine":
        return cls(registry.handles(configured_only=True))

    @property
    def view(self) -> NavigationState:
        return self._view

    @property
    def platform_cursor(self) -> int:
        return self._platform_cursor

    @property
    def platforms(self) -> tuple[PlatformHandle, ...]:
        return self._platforms

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def fetch_active(self) -> bool:
        return self._cancel_handle is not None

    def status(self, platform_id: str) -> Optional[str]:
        return self._statuses.get(platform_id)

    def categories(self, platform_id: str) -> tuple[ActivityCategory, ...]:
        activities = self._activities.get(platform_id)
        return activities.categories if activities else ()

    def items(self, platform_id: str, category: ActivityCategory) -> tuple[ActivityItem, ...]:
        activities = self._activities.get(platform_id)
        return activities.items(category) if activities else ()

    # fetch wiring

    def attach_fetch(self, cancel_handle: CancelHandle) -> None:
        """Bind a running fetch so RequestCancel can reach it."""

        self._cancel_handle = cancel_handle
        self._loading = True
        self._cancelled = False

    def apply_progress(self, event: ProgressEvent) -> None:
        if isinstance(event, Started):
            self._statuses[event.platform_id] = STATUS_FETCHING
            self._loading = True
        elif isinstance(event, Completed):
            self._finished.add(event.platform_id)
            if event.success:
                activities = event.activities or DetailedActivities()
                self._activities[event.platform_id] = activities
                self._statuses[event.platform_id] = done_status(activities.total_items)
            else:
                self._statuses[event.platform_id] = STATUS_FAILED
                if event.error_message:
                    self._errors[event.platform_id] = event.error_message
        elif isinstance(event, AllCompleted):
            self._finish_fetch()
        elif isinstance(event, Cancelled):
            self._cancelled = True
            for platform_id, status in self._statuses.items():
                if status in (STATUS_WAITING, STATUS_FETCHING):
                    self._statuses[platform_id] = STATUS_CANCELLED
            self._finish_fetch()
        else:
            LOGGER.warning("Ignoring unknown progress event %r", event)
            return
        self._clamp_view()

    def adopt_results(self, snapshot: FetchSnapshot) -> None:
        """Take over the final results of a finished fetch.

        A cancelled snapshot carries no aggregate, so data that already
        arrived through Completed events stays browsable.
        """

        self._statuses.update(snapshot.statuses)
        self._errors.update(snapshot.errors)
        if not snapshot.cancelled:
            self._activities = dict(snapshot.activities)
        self._cancelled = snapshot.cancelled
        self._finish_fetch()
        self._clamp_view()

    def _finish_fetch(self) -> None:
        self._loading = False
        self._cancel_handle = None

    # input handling

    def handle_input(self, event: NavEvent) -> Optional[ActivityItem]:
        """Apply one navigation event.

        Returns the item to open externally when Enter is pressed on an item;
        every other transition returns None.
        """

        if event is NavEvent.SELECT_NEXT_PLATFORM:
            self._cycle_platform(1)
        elif event is NavEvent.SELECT_PREVIOUS_PLATFORM:
            self._cycle_platform(-1)
        elif event is NavEvent.ENTER:
            return self._enter()
        elif event is NavEvent.BACK:
            self._back()
        elif event is NavEvent.MOVE_CURSOR_UP:
            self._move_cursor(-1)
        elif event is NavEvent.MOVE_CURSOR_DOWN:
            self._move_cursor(1)
        elif event is NavEvent.GO_TO_SUMMARY:
            self._view = SummaryView()
        elif event is NavEvent.REQUEST_CANCEL:
            if self._cancel_handle is not None:
                self._cancel_handle.cancel()
        return None

    def _cycle_platform(self, step: int) -> None:
        if not isinstance(self._view, SummaryView) or not self._platforms:
            return
        self._platform_cursor = (self._platform_cursor + step) % len(self._platforms)

    def _enter(self) -> Optional[ActivityItem]:
        view = self._view
        if isinstance(view, SummaryView):
            if not self._platforms:
                return None
            platform_id = self._platforms[self._platform_cursor].id
            remembered = self._category_cursors.get(platform_id, 0)
            cursor = _clamp(remembered, len(self.categories(platform_id)))
            self._view = PlatformView(platform_id, cursor)
            return None
        if isinstance(view, PlatformView):
            categories = self.categories(view.platform_id)
            if view.category_cursor < len(categories):
                self._category_cursors[view.platform_id] = view.category_cursor
                self._view = CategoryView(view.platform_id, categories[view.category_cursor], 0)
            return None
        items = self.items(view.platform_id, view.category)
        if view.item_cursor < len(items):
            return items[view.item_cursor]
        return None

    def _back(self) -> None:
        view = self._view
        if isinstance(view, CategoryView):
            cursor = self._category_cursors.get(view.platform_id, 0)
            self._view = PlatformView(view.platform_id, cursor)
        elif isinstance(view, PlatformView):
            self._category_cursors[view.platform_id] = view.category_cursor
            self._view = SummaryView()

    def _move_cursor(self, step: int) -> None:
        view = self._view
        if isinstance(view, SummaryView):
            self._platform_cursor = _clamp(self._platform_cursor + step, len(self._platforms))
        elif isinstance(view, PlatformView):
            size = len(self.categories(view.platform_id))
            cursor = _clamp(view.category_cursor + step, size)
            self._category_cursors[view.platform_id] = cursor
            self._view = PlatformView(view.platform_id, cursor)
        else:
            size = len(self.items(view.platform_id, view.category))
            self._view = CategoryView(
                view.platform_id, view.category, _clamp(view.item_cursor + step, size)
            )

    def _clamp_view(self) -> None:
        view = self._view
        if isinstance(view, PlatformView):
            size = len(self.categories(view.platform_id))
            self._view = PlatformView(view.platform_id, _clamp(view.category_cursor, size))
        elif isinstance(view, CategoryView):
            size = len(self.items(view.platform_id, view.category))
            self._view = CategoryView(view.platform_id, view.category, _clamp(view.item_cursor, size))

    def snapshot(self) -> NavigationSnapshot:
        return NavigationSnapshot(
            view=self._view,
            platforms=self._platforms,
            platform_cursor=self._platform_cursor,
            statuses=MappingProxyType(dict(self._statuses)),
            errors=MappingProxyType(dict(self._errors)),
            activities=MappingProxyType(dict(self._activities)),
            loading=self._loading,
            cancelled=self._cancelled,
            fetch_active=self.fetch_active,
            finished_platforms=frozenset(self._finished),
        )

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Mapping, Optional

import pytest

from core.models import (
    ActivityCategory,
    ActivityItem,
    ActivityMetrics,
    ConnectionStatus,
    DetailedActivities,
)

FAKE_BASE_URL = "https://fake.example"


def build_item(platform_id: str, category: ActivityCategory, number: int, project: str = "demo/project") -> ActivityItem:
    return ActivityItem(
        id=str(number),
        title=f"{category.display_name} #{number}",
        status="NEW",
        created=datetime(2024, 1, number % 28 + 1, tzinfo=timezone.utc),
        updated=None,
        url=f"{FAKE_BASE_URL}/{platform_id}/{number}",
        platform=platform_id,
        category=category,
        project=project,
    )


def build_activities(platform_id: str, counts: Mapping[ActivityCategory, int]) -> DetailedActivities:
    """Build numbered items per category; numbering continues across categories."""

    number = 0
    grouped = {}
    for category, count in counts.items():
        items = []
        for _ in range(count):
            number += 1
            items.append(build_item(platform_id, category, number))
        grouped[category] = items
    return DetailedActivities.from_mapping(grouped)


class FakePlatform:
    """Configurable in-memory platform adapter.

    ``gate`` holds the retrieval until set, ``delay`` sleeps first, and
    ``error`` is raised instead of returning ``activities``.
    """

    def __init__(
        self,
        platform_id: str,
        activities: Optional[DetailedActivities] = None,
        *,
        name: Optional[str] = None,
        icon: str = "📄",
        configured: bool = True,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        gate: Optional[asyncio.Event] = None,
        connection: Optional[ConnectionStatus] = None,
        connection_error: Optional[Exception] = None,
    ) -> None:
        self._id = platform_id
        self._name = name or platform_id.title()
        self._icon = icon
        self._configured = configured
        self.activities = activities if activities is not None else DetailedActivities()
        self.error = error
        self.delay = delay
        self.gate = gate
        self.connection = connection or ConnectionStatus.connected()
        self.connection_error = connection_error
        self.calls: list[tuple[str, int]] = []
        self.probed = False

    def platform_id(self) -> str:
        return self._id

    def platform_name(self) -> str:
        return self._name

    def platform_icon(self) -> str:
        return self._icon

    def is_configured(self) -> bool:
        return self._configured

    def get_item_url(self, item: ActivityItem) -> str:
        return f"{FAKE_BASE_URL}/{self._id}/{item.id}"

    async def get_detailed_activities(self, subject: str, days: int):
        self.calls.append((subject, days))
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.activities

    async def get_activity_metrics(self, subject: str, days: int) -> ActivityMetrics:
        return ActivityMetrics.from_activities(await self.get_detailed_activities(subject, days))

    async def search_items(self, query: str, subject: str) -> list[ActivityItem]:
        return [
            item
            for category in self.activities.categories
            for item in self.activities.items(category)
            if item.matches(query)
        ]

    async def test_connection(self) -> ConnectionStatus:
        self.probed = True
        if self.connection_error is not None:
            raise self.connection_error
        return self.connection


@pytest.fixture
def make_platform():
    return FakePlatform


@pytest.fixture
def make_activities():
    return build_activities


@pytest.fixture
def gerrit_activities() -> DetailedActivities:
    return build_activities(
        "gerrit",
        {
            ActivityCategory.CHANGES_CREATED: 4,
            ActivityCategory.CHANGES_MERGED: 3,
            ActivityCategory.REVIEWS_GIVEN: 2,
            ActivityCategory.REVIEWS_RECEIVED: 1,
        },
    )

"""Ports (interfaces) used by the core.

A platform adapter is the only contract a backend has to satisfy for the
orchestrator and the browser to use it. Adapters must not share mutable state
with each other because the orchestrator runs them concurrently.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from core.models import (
    ActivityItem,
    ActivityMetrics,
    ConnectionStatus,
    DetailedActivities,
)


@runtime_checkable
class PlatformAdapter(Protocol):
    """Capabilities every review/issue platform must provide.

    Everything except the identity getters may raise; the core only ever
    surfaces ``str(exc)``.
    """

    async def get_activity_metrics(self, subject: str, days: int) -> ActivityMetrics:
        ...

    async def get_detailed_activities(self, subject: str, days: int) -> DetailedActivities:
        ...

    async def search_items(self, query: str, subject: str) -> Sequence[ActivityItem]:
        ...

    def platform_id(self) -> str:
        ...

    def platform_name(self) -> str:
        ...

    def platform_icon(self) -> str:
        ...

    def is_configured(self) -> bool:
        ...

    async def test_connection(self) -> ConnectionStatus:
        ...

    def get_item_url(self, item: ActivityItem) -> str:
        ...



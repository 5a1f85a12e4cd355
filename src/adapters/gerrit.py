"""Gerrit platform adapter.

Implements the core PlatformAdapter port on top of the Gerrit REST API using
HTTP basic auth (username + HTTP password from the Gerrit settings page).
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import quote

from adapters.http import build_basic_auth, get_json, is_timeout, record_platform_error
from core.config import GerritConfig
from core.error_log import PathLike
from core.errors import AuthenticationError, DataParseError, PlatformError
from core.models import (
    ActivityCategory,
    ActivityItem,
    ActivityMetrics,
    ConnectionStatus,
    DetailedActivities,
)

LOGGER = logging.getLogger(__name__)

PLATFORM_ID = "gerrit"
GERRIT_JSON_PREFIX = ")]}'"

# One search per category; {subject} and {days} are filled per fetch.
CATEGORY_QUERIES: tuple[tuple[ActivityCategory, str], ...] = (
    (ActivityCategory.CHANGES_CREATED, "owner:{subject} -age:{days}d"),
    (ActivityCategory.CHANGES_MERGED, "owner:{subject} status:merged -age:{days}d"),
    (ActivityCategory.REVIEWS_GIVEN, "reviewer:{subject} -owner:{subject} -age:{days}d"),
    (ActivityCategory.REVIEWS_RECEIVED, "owner:{subject} label:Code-Review -age:{days}d"),
)

_METRIC_KEYS = {
    ActivityCategory.CHANGES_CREATED: "changes_created",
    ActivityCategory.CHANGES_MERGED: "commits_merged",
    ActivityCategory.REVIEWS_GIVEN: "reviews_given",
    ActivityCategory.REVIEWS_RECEIVED: "reviews_received",
}


def parse_gerrit_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse Gerrit's ``2024-01-15 10:30:00.000000000`` (always UTC)."""

    if not value:
        return None
    try:
        parsed = datetime.strptime(value.split(".", 1)[0], "%Y-%m-%d %H:%M:%S")
    except ValueError:
        return None
    return parsed.replace(tzinfo=timezone.utc)


def change_to_item(change: dict[str, Any], category: ActivityCategory, base_url: str) -> ActivityItem:
    number = str(change.get("_number", ""))
    project = str(change.get("project", ""))
    metadata: dict[str, str] = {}
    for key in ("branch", "change_id", "topic"):
        if change.get(key):
            metadata[key] = str(change[key])
    for key in ("insertions", "deletions"):
        if key in change:
            metadata[key] = str(change[key])
    owner = change.get("owner") or {}
    if owner.get("name") or owner.get("email"):
        metadata["owner"] = str(owner.get("name") or owner.get("email"))

    return ActivityItem(
        id=number,
        title=str(change.get("subject", "")),
        status=str(change.get("status", "")),
        created=parse_gerrit_timestamp(change.get("created")),
        updated=parse_gerrit_timestamp(change.get("updated")),
        url=f"{base_url}/c/{project}/+/{number}",
        platform=PLATFORM_ID,
        category=category,
        project=project,
        metadata=metadata,
    )


class GerritPlatform:
    """PlatformAdapter for a single Gerrit instance."""

    def __init__(self, config: GerritConfig, error_log_path: Optional[PathLike] = None) -> None:
        self._config = config
        self._error_log_path = error_log_path
        self._auth_header = build_basic_auth(config.username, config.http_password or "")

    def platform_id(self) -> str:
        return PLATFORM_ID

    def platform_name(self) -> str:
        return "Gerrit"

    def platform_icon(self) -> str:
        return "🔍"

    def is_configured(self) -> bool:
        return self._config.is_configured()

    def get_item_url(self, item: ActivityItem) -> str:
        return f"{self._config.base_url}/c/{item.project}/+/{item.id}"

    async def _query_changes(self, query: str, operation: str, subject: Optional[str]) -> list[dict[str, Any]]:
        url = f"{self._config.base_url}/a/changes/?q={quote(query, safe='')}"
        LOGGER.info("Querying Gerrit: %s", query)
        try:
            payload = await asyncio.to_thread(
                get_json,
                url,
                self._auth_header,
                self._config.timeout_seconds,
                GERRIT_JSON_PREFIX,
            )
            if not isinstance(payload, list):
                raise DataParseError("Expected a list of changes", url=url)
        except PlatformError as exc:
            record_platform_error(exc, PLATFORM_ID, operation, subject, self._error_log_path, query=query)
            raise
        return payload

    async def get_detailed_activities(self, subject: str, days: int) -> DetailedActivities:
        queries = [(category, template.format(subject=subject, days=days)) for category, template in CATEGORY_QUERIES]
        results = await asyncio.gather(
            *(self._query_changes(query, "get_detailed_activities", subject) for _, query in queries)
        )
        base_url = self._config.base_url
        return DetailedActivities.from_mapping(
            {
                category: [change_to_item(change, category, base_url) for change in changes]
                for (category, _), changes in zip(queries, results)
            }
        )

    async def get_activity_metrics(self, subject: str, days: int) -> ActivityMetrics:
        activities = await self.get_detailed_activities(subject, days)
        counts = {category: len(activities.items(category)) for category, _ in CATEGORY_QUERIES}
        return ActivityMetrics(
            total_items=sum(counts.values()),
            items_by_category=counts,
            platform_specific={_METRIC_KEYS[category]: count for category, count in counts.items()},
        )

    async def search_items(self, query: str, subject: str) -> list[ActivityItem]:
        changes = await self._query_changes(f"owner:{subject} {query}", "search_items", subject)
        base_url = self._config.base_url
        return [change_to_item(change, ActivityCategory.CHANGES_CREATED, base_url) for change in changes]

    async def test_connection(self) -> ConnectionStatus:
        if not self.is_configured():
            return ConnectionStatus.not_configured()
        url = f"{self._config.base_url}/a/accounts/self"
        try:
            await asyncio.to_thread(
                get_json,
                url,
                self._auth_header,
                self._config.timeout_seconds,
                GERRIT_JSON_PREFIX,
            )
        except AuthenticationError:
            return ConnectionStatus.error("Authentication failed")
        except PlatformError as exc:
            if is_timeout(exc):
                return ConnectionStatus.warning("Connection timeout")
            return ConnectionStatus.error(f"Connection failed: {exc}")
        return ConnectionStatus.connected()

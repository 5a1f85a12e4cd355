"""JIRA platform adapter.

Implements the core PlatformAdapter port with JQL searches against the JIRA
REST API (v3), authenticated with an account email and API token.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional
from urllib.parse import urlencode

from adapters.http import build_basic_auth, get_json, is_timeout, record_platform_error
from core.config import JiraConfig
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

PLATFORM_ID = "jira"
SEARCH_FIELDS = (
    "summary,status,assignee,reporter,created,updated,resolutiondate,"
    "project,issuetype,priority,components"
)

CATEGORY_JQL: tuple[tuple[ActivityCategory, str], ...] = (
    (
        ActivityCategory.ISSUES_CREATED,
        'reporter = "{subject}" AND created >= -{days}d ORDER BY created DESC',
    ),
    (
        ActivityCategory.ISSUES_RESOLVED,
        'assignee = "{subject}" AND resolved >= -{days}d ORDER BY resolved DESC',
    ),
    (
        ActivityCategory.ISSUES_ASSIGNED,
        'assignee = "{subject}" AND resolution = Unresolved ORDER BY updated DESC',
    ),
    (
        ActivityCategory.ISSUES_COMMENTED,
        'watcher = "{subject}" AND reporter != "{subject}" AND updated >= -{days}d ORDER BY updated DESC',
    ),
)

_METRIC_KEYS = {
    ActivityCategory.ISSUES_CREATED: "tickets_created",
    ActivityCategory.ISSUES_RESOLVED: "tickets_resolved",
    ActivityCategory.ISSUES_ASSIGNED: "tickets_assigned",
    ActivityCategory.ISSUES_COMMENTED: "comments_added",
}


def parse_jira_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse JIRA's ``2024-01-15T10:30:00.000+0000``."""

    if not value:
        return None
    for fmt in ("%Y-%m-%dT%H:%M:%S.%f%z", "%Y-%m-%dT%H:%M:%S%z"):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def _name(value: Any, key: str = "name") -> Optional[str]:
    if isinstance(value, dict) and value.get(key):
        return str(value[key])
    return None


def issue_to_item(issue: dict[str, Any], category: ActivityCategory, base_url: str) -> ActivityItem:
    key = str(issue.get("key", ""))
    fields = issue.get("fields") or {}
    project = _name(fields.get("project"), "key") or ""
    status = _name(fields.get("status")) or ""

    metadata: dict[str, str] = {"project": project, "status": status}
    issue_type = _name(fields.get("issuetype"))
    if issue_type:
        metadata["issue_type"] = issue_type
    assignee = _name(fields.get("assignee"), "displayName")
    if assignee:
        metadata["assignee"] = assignee
    priority = _name(fields.get("priority"))
    if priority:
        metadata["priority"] = priority
    components = [_name(component) for component in fields.get("components") or []]
    components = [component for component in components if component]
    if components:
        metadata["components"] = ", ".join(components)
    if fields.get("resolutiondate"):
        metadata["resolved"] = str(fields["resolutiondate"])

    return ActivityItem(
        id=key,
        title=str(fields.get("summary", "")),
        status=status,
        created=parse_jira_timestamp(fields.get("created")),
        updated=parse_jira_timestamp(fields.get("updated")),
        url=f"{base_url}/browse/{key}",
        platform=PLATFORM_ID,
        category=category,
        project=project,
        metadata=metadata,
    )


def _quote_jql(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


class JiraPlatform:
    """PlatformAdapter for a JIRA site."""

    def __init__(self, config: JiraConfig, error_log_path: Optional[PathLike] = None) -> None:
        self._config = config
        self._error_log_path = error_log_path
        self._auth_header = build_basic_auth(config.username, config.api_token or "")

    def platform_id(self) -> str:
        return PLATFORM_ID

    def platform_name(self) -> str:
        return "JIRA"

    def platform_icon(self) -> str:
        return "🎫"

    def is_configured(self) -> bool:
        return self._config.is_configured()

    def get_item_url(self, item: ActivityItem) -> str:
        return f"{self._config.base_url}/browse/{item.id}"

    def _scoped(self, jql: str) -> str:
        """Restrict a query to the configured projects, keeping ORDER BY last."""

        if not self._config.project_filter:
            return jql
        projects = ", ".join(f'"{_quote_jql(project)}"' for project in self._config.project_filter)
        clause, sep, order = jql.partition(" ORDER BY ")
        return f"({clause}) AND project in ({projects}){sep}{order}"

    async def _search(
        self,
        jql: str,
        operation: str,
        subject: Optional[str],
        max_results: int,
    ) -> dict[str, Any]:
        params = {"jql": self._scoped(jql), "maxResults": str(max_results), "fields": SEARCH_FIELDS}
        url = f"{self._config.base_url}/rest/api/3/search?{urlencode(params)}"
        LOGGER.info("JIRA JQL query: %s", params["jql"])
        try:
            payload = await asyncio.to_thread(get_json, url, self._auth_header, self._config.timeout_seconds)
            if not isinstance(payload, dict) or not isinstance(payload.get("issues", []), list):
                raise DataParseError("Unexpected search response", url=url)
        except PlatformError as exc:
            record_platform_error(exc, PLATFORM_ID, operation, subject, self._error_log_path, jql=jql)
            raise
        return payload

    async def get_detailed_activities(self, subject: str, days: int) -> DetailedActivities:
        safe_subject = _quote_jql(subject)
        queries = [(category, template.format(subject=safe_subject, days=days)) for category, template in CATEGORY_JQL]
        payloads = await asyncio.gather(
            *(
                self._search(jql, "get_detailed_activities", subject, self._config.max_results)
                for _, jql in queries
            )
        )
        base_url = self._config.base_url
        return DetailedActivities.from_mapping(
            {
                category: [issue_to_item(issue, category, base_url) for issue in payload.get("issues", [])]
                for (category, _), payload in zip(queries, payloads)
            }
        )

    async def get_activity_metrics(self, subject: str, days: int) -> ActivityMetrics:
        safe_subject = _quote_jql(subject)
        queries = [(category, template.format(subject=safe_subject, days=days)) for category, template in CATEGORY_JQL]
        payloads = await asyncio.gather(
            *(self._search(jql, "get_activity_metrics", subject, 0) for _, jql in queries)
        )
        counts = {category: int(payload.get("total", 0)) for (category, _), payload in zip(queries, payloads)}
        return ActivityMetrics(
            total_items=sum(counts.values()),
            items_by_category=counts,
            platform_specific={_METRIC_KEYS[category]: count for category, count in counts.items()},
        )

    async def search_items(self, query: str, subject: str) -> list[ActivityItem]:
        safe_subject = _quote_jql(subject)
        jql = (
            f'(reporter = "{safe_subject}" OR assignee = "{safe_subject}") '
            f'AND text ~ "{_quote_jql(query)}" ORDER BY updated DESC'
        )
        payload = await self._search(jql, "search_items", subject, self._config.max_results)
        base_url = self._config.base_url
        return [
            issue_to_item(issue, ActivityCategory.other("Search Results"), base_url)
            for issue in payload.get("issues", [])
        ]

    async def test_connection(self) -> ConnectionStatus:
        if not self.is_configured():
            return ConnectionStatus.not_configured()
        url = f"{self._config.base_url}/rest/api/3/myself"
        try:
            await asyncio.to_thread(get_json, url, self._auth_header, self._config.timeout_seconds)
        except AuthenticationError:
            return ConnectionStatus.error("Authentication failed")
        except PlatformError as exc:
            if is_timeout(exc):
                return ConnectionStatus.warning("Connection timeout")
            return ConnectionStatus.error(f"Connection failed: {exc}")
        return ConnectionStatus.connected()

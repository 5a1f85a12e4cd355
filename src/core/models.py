"""Core domain models.

These frozen dataclasses are shared by every platform adapter, the fetch
orchestrator and the UI, so none of them depend on a specific backend.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, ClassVar, Iterable, Mapping, Optional

if TYPE_CHECKING:
    from core.ports import PlatformAdapter

OTHER_PREFIX = "other:"


@dataclass(frozen=True)
class ActivityCategory:
    """Kind of activity an item represents.

    The known cases are class constants; adapters that surface something the
    core has no name for use ``ActivityCategory.other(name)``.
    """

    key: str
    display_name: str

    CHANGES_CREATED: ClassVar["ActivityCategory"]
    CHANGES_REVIEWED: ClassVar["ActivityCategory"]
    CHANGES_MERGED: ClassVar["ActivityCategory"]
    REVIEWS_GIVEN: ClassVar["ActivityCategory"]
    REVIEWS_RECEIVED: ClassVar["ActivityCategory"]
    ISSUES_CREATED: ClassVar["ActivityCategory"]
    ISSUES_ASSIGNED: ClassVar["ActivityCategory"]
    ISSUES_RESOLVED: ClassVar["ActivityCategory"]
    ISSUES_COMMENTED: ClassVar["ActivityCategory"]
    MERGE_REQUESTS_CREATED: ClassVar["ActivityCategory"]
    MERGE_REQUESTS_REVIEWED: ClassVar["ActivityCategory"]
    MERGE_REQUESTS_MERGED: ClassVar["ActivityCategory"]
    COMMITS_PUSHED: ClassVar["ActivityCategory"]

    @classmethod
    def other(cls, name: str) -> "ActivityCategory":
        return cls(key=f"{OTHER_PREFIX}{name}", display_name=name)

    def __str__(self) -> str:
        return self.display_name


ActivityCategory.CHANGES_CREATED = ActivityCategory("changes_created", "Changes Created")
ActivityCategory.CHANGES_REVIEWED = ActivityCategory("changes_reviewed", "Changes Reviewed")
ActivityCategory.CHANGES_MERGED = ActivityCategory("changes_merged", "Changes Merged")
ActivityCategory.REVIEWS_GIVEN = ActivityCategory("reviews_given", "Reviews Given")
ActivityCategory.REVIEWS_RECEIVED = ActivityCategory("reviews_received", "Reviews Received")
ActivityCategory.ISSUES_CREATED = ActivityCategory("issues_created", "Issues Created")
ActivityCategory.ISSUES_ASSIGNED = ActivityCategory("issues_assigned", "Issues Assigned")
ActivityCategory.ISSUES_RESOLVED = ActivityCategory("issues_resolved", "Issues Resolved")
ActivityCategory.ISSUES_COMMENTED = ActivityCategory("issues_commented", "Issues Commented")
ActivityCategory.MERGE_REQUESTS_CREATED = ActivityCategory(
    "merge_requests_created", "Merge Requests Created"
)
ActivityCategory.MERGE_REQUESTS_REVIEWED = ActivityCategory(
    "merge_requests_reviewed", "Merge Requests Reviewed"
)
ActivityCategory.MERGE_REQUESTS_MERGED = ActivityCategory(
    "merge_requests_merged", "Merge Requests Merged"
)
ActivityCategory.COMMITS_PUSHED = ActivityCategory("commits_pushed", "Commits Pushed")


@dataclass(frozen=True)
class ActivityItem:
    """A single change, ticket or merge request attributed to the subject."""

    id: str
    title: str
    status: str
    created: Optional[datetime]
    updated: Optional[datetime]
    url: str
    platform: str
    category: ActivityCategory
    project: str
    metadata: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        # Copy so later edits to the caller's dict cannot leak into the item.
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def matches(self, query: str) -> bool:
        """Case-insensitive match on id, title and project."""

        needle = query.lower()
        return (
            needle in self.id.lower()
            or needle in self.title.lower()
            or needle in self.project.lower()
        )


@dataclass(frozen=True)
class DetailedActivities:
    """Items of one platform grouped by category, in the adapter's order."""

    items_by_category: Mapping[ActivityCategory, tuple[ActivityItem, ...]] = field(
        default_factory=dict
    )

    def __post_init__(self) -> None:
        frozen = {category: tuple(items) for category, items in self.items_by_category.items()}
        object.__setattr__(self, "items_by_category", MappingProxyType(frozen))

    def __hash__(self) -> int:
        return hash(frozenset(self.items_by_category.items()))

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[ActivityCategory, Iterable[ActivityItem]]
    ) -> "DetailedActivities":
        return cls(items_by_category={category: tuple(items) for category, items in mapping.items()})

    @property
    def categories(self) -> tuple[ActivityCategory, ...]:
        return tuple(self.items_by_category)

    def items(self, category: ActivityCategory) -> tuple[ActivityItem, ...]:
        return self.items_by_category.get(category, ())

    @property
    def total_items(self) -> int:
        return sum(len(items) for items in self.items_by_category.values())

    @property
    def is_empty(self) -> bool:
        return self.total_items == 0


@dataclass(frozen=True)
class ActivityMetrics:
    """Cheap summary counts for one platform."""

    total_items: int = 0
    items_by_category: Mapping[ActivityCategory, int] = field(default_factory=dict)
    platform_specific: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "items_by_category", MappingProxyType(dict(self.items_by_category)))
        object.__setattr__(self, "platform_specific", MappingProxyType(dict(self.platform_specific)))

    def __hash__(self) -> int:
        return hash(
            (
                self.total_items,
                frozenset(self.items_by_category.items()),
                frozenset(self.platform_specific.items()),
            )
        )

    @classmethod
    def from_activities(cls, activities: DetailedActivities) -> "ActivityMetrics":
        counts = {category: len(items) for category, items in activities.items_by_category.items()}
        return cls(total_items=sum(counts.values()), items_by_category=counts)


class ConnectionState(Enum):
    CONNECTED = "connected"
    WARNING = "warning"
    ERROR = "error"
    NOT_CONFIGURED = "not_configured"


_STATUS_ICONS = {
    ConnectionState.CONNECTED: "✅",
    ConnectionState.WARNING: "⚠️",
    ConnectionState.ERROR: "❌",
    ConnectionState.NOT_CONFIGURED: "⚪",
}


@dataclass(frozen=True)
class ConnectionStatus:
    """Result of a health probe or the terminal state of a fetch attempt."""

    state: ConnectionState
    reason: Optional[str] = None

    @classmethod
    def connected(cls) -> "ConnectionStatus":
        return cls(ConnectionState.CONNECTED)

    @classmethod
    def warning(cls, reason: str) -> "ConnectionStatus":
        return cls(ConnectionState.WARNING, reason)

    @classmethod
    def error(cls, reason: str) -> "ConnectionStatus":
        return cls(ConnectionState.ERROR, reason)

    @classmethod
    def not_configured(cls) -> "ConnectionStatus":
        return cls(ConnectionState.NOT_CONFIGURED)

    @property
    def is_ok(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def icon(self) -> str:
        return _STATUS_ICONS[self.state]

    def describe(self) -> str:
        label = self.state.value.replace("_", " ")
        if self.reason:
            return f"{label}: {self.reason}"
        return label


@dataclass(frozen=True)
class PlatformHandle:
    """Identity of a platform as seen by the UI; never mutated by the core."""

    id: str
    name: str
    icon: str
    configured: bool

    @classmethod
    def from_adapter(cls, adapter: "PlatformAdapter") -> "PlatformHandle":
        return cls(
            id=adapter.platform_id(),
            name=adapter.platform_name(),
            icon=adapter.platform_icon(),
            configured=adapter.is_configured(),
        )

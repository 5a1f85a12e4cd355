from __future__ import annotations

import pytest

from core.models import (
    ActivityCategory,
    ActivityItem,
    ActivityMetrics,
    ConnectionState,
    ConnectionStatus,
    DetailedActivities,
    PlatformHandle,
)
from core.progress import Completed


def _item(**overrides) -> ActivityItem:
    values = dict(
        id="42",
        title="Fix flaky login test",
        status="MERGED",
        created=None,
        updated=None,
        url="https://review.example/c/web/+/42",
        platform="gerrit",
        category=ActivityCategory.CHANGES_MERGED,
        project="web/frontend",
    )
    values.update(overrides)
    return ActivityItem(**values)


def test_other_category_keeps_given_name() -> None:
    custom = ActivityCategory.other("Pipelines Triggered")

    assert custom.display_name == "Pipelines Triggered"
    assert custom == ActivityCategory.other("Pipelines Triggered")
    assert custom != ActivityCategory.CHANGES_MERGED
    assert str(ActivityCategory.ISSUES_RESOLVED) == "Issues Resolved"


def test_frozen_values_are_hashable() -> None:
    item = _item(metadata={"branch": "main"})
    same = _item(metadata={"branch": "main"})
    activities = DetailedActivities.from_mapping({ActivityCategory.CHANGES_MERGED: [item]})
    metrics = ActivityMetrics.from_activities(activities)

    assert hash(item) == hash(same)
    assert len({item, same}) == 1
    assert hash(activities) == hash(DetailedActivities.from_mapping({ActivityCategory.CHANGES_MERGED: [same]}))
    assert hash(metrics) == hash(ActivityMetrics.from_activities(activities))
    assert isinstance(hash(Completed("gerrit", True, item_count=1, activities=activities)), int)


def test_item_metadata_is_a_private_copy() -> None:
    metadata = {"branch": "main"}
    item = _item(metadata=metadata)
    metadata["branch"] = "feature"

    assert item.metadata["branch"] == "main"
    with pytest.raises(TypeError):
        item.metadata["branch"] = "other"  # type: ignore[index]


def test_item_matches_id_title_and_project_case_insensitively() -> None:
    item = _item()

    assert item.matches("flaky")
    assert item.matches("FRONTEND")
    assert item.matches("42")
    assert not item.matches("backend")


def test_detailed_activities_preserve_category_order() -> None:
    first = _item(id="1", category=ActivityCategory.REVIEWS_GIVEN)
    second = _item(id="2", category=ActivityCategory.CHANGES_CREATED)
    activities = DetailedActivities.from_mapping(
        {
            ActivityCategory.REVIEWS_GIVEN: [first],
            ActivityCategory.CHANGES_CREATED: [second],
            ActivityCategory.CHANGES_MERGED: [],
        }
    )

    assert activities.categories == (
        ActivityCategory.REVIEWS_GIVEN,
        ActivityCategory.CHANGES_CREATED,
        ActivityCategory.CHANGES_MERGED,
    )
    assert activities.items(ActivityCategory.REVIEWS_GIVEN) == (first,)
    assert activities.items(ActivityCategory.ISSUES_CREATED) == ()
    assert activities.total_items == 2
    assert not activities.is_empty
    assert DetailedActivities().is_empty


def test_metrics_from_activities(gerrit_activities) -> None:
    metrics = ActivityMetrics.from_activities(gerrit_activities)

    assert metrics.total_items == 10
    assert metrics.items_by_category[ActivityCategory.CHANGES_CREATED] == 4
    assert metrics.items_by_category[ActivityCategory.REVIEWS_RECEIVED] == 1


def test_connection_status_description() -> None:
    assert ConnectionStatus.connected().is_ok
    assert ConnectionStatus.connected().describe() == "connected"
    warning = ConnectionStatus.warning("Connection timeout")
    assert warning.state is ConnectionState.WARNING
    assert not warning.is_ok
    assert warning.describe() == "warning: Connection timeout"
    assert ConnectionStatus.not_configured().describe() == "not configured"
    assert ConnectionStatus.error("boom").icon == "❌"


def test_platform_handle_from_adapter(make_platform) -> None:
    handle = PlatformHandle.from_adapter(make_platform("jira", name="JIRA", icon="🎫", configured=False))

    assert handle == PlatformHandle(id="jira", name="JIRA", icon="🎫", configured=False)

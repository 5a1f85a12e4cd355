from __future__ import annotations

from datetime import datetime, timezone

from core.fetcher import CancelHandle
from core.models import ActivityCategory, ActivityItem, PlatformHandle
from core.navigation import NavEvent, NavigationMachine
from core.progress import AllCompleted, Completed, Started
from frontend import views

GERRIT = PlatformHandle(id="gerrit", name="Gerrit", icon="🔍", configured=True)
JIRA = PlatformHandle(id="jira", name="JIRA", icon="🎫", configured=True)


def _machine(gerrit_activities) -> NavigationMachine:
    machine = NavigationMachine([GERRIT, JIRA])
    machine.attach_fetch(CancelHandle())
    machine.apply_progress(Started("gerrit"))
    machine.apply_progress(Started("jira"))
    machine.apply_progress(Completed("gerrit", success=True, item_count=10, activities=gerrit_activities))
    return machine


def test_summary_lines(gerrit_activities) -> None:
    snapshot = _machine(gerrit_activities).snapshot()

    assert views.platform_summary_line(snapshot, GERRIT) == (
        "🔍 Gerrit [done (10)] - 10 items across 4 categories"
    )
    assert views.platform_summary_line(snapshot, JIRA) == "🎫 JIRA [fetching] - No data available"

    text = views.main_text(snapshot).plain
    assert "Platform Summary" in text
    assert "▶ 🔍 Gerrit" in text


def test_status_and_controls_follow_fetch_state(gerrit_activities) -> None:
    machine = _machine(gerrit_activities)
    snapshot = machine.snapshot()

    assert views.status_text(snapshot).plain == "Loading... 1/2 platforms done"
    assert "c: Cancel Fetch" in views.controls_text(snapshot).plain

    machine.apply_progress(Completed("jira", success=False, error_message="HTTP 401"))
    machine.apply_progress(AllCompleted(total=2, successful=1))
    snapshot = machine.snapshot()
    assert views.status_text(snapshot).plain == "Ready (1 platform(s) failed)"
    assert "Cancel" not in views.controls_text(snapshot).plain


def test_empty_platform_view_explains_why(gerrit_activities) -> None:
    machine = _machine(gerrit_activities)
    machine.handle_input(NavEvent.SELECT_NEXT_PLATFORM)
    machine.handle_input(NavEvent.ENTER)

    loading = views.main_text(machine.snapshot()).plain
    assert loading.startswith("No categories available")
    assert "Still loading (fetching)" in loading

    machine.apply_progress(Completed("jira", success=False, error_message="Authentication failed"))
    failed = views.main_text(machine.snapshot()).plain
    assert "No categories available" in failed
    assert "Fetch failed: Authentication failed" in failed


def test_category_view_lists_items_and_details(gerrit_activities) -> None:
    machine = _machine(gerrit_activities)
    machine.handle_input(NavEvent.ENTER)
    machine.handle_input(NavEvent.ENTER)
    snapshot = machine.snapshot()

    text = views.main_text(snapshot).plain
    assert text.startswith("Changes Created Items")
    assert "▶ [1] Changes Created #1 - demo/project" in text
    assert views.view_title(snapshot) == "Gerrit > Changes Created"
    details = views.details_text(snapshot).plain
    assert "ID: 1" in details
    assert "Created: 2024-01-02 00:00" in details
    assert "Updated: -" in details


def test_item_line_clips_long_fields() -> None:
    item = ActivityItem(
        id="PROJ-7",
        title="x" * 61,
        status="Open",
        created=datetime(2024, 1, 1, tzinfo=timezone.utc),
        updated=None,
        url="https://jira.example/browse/PROJ-7",
        platform="jira",
        category=ActivityCategory.ISSUES_CREATED,
        project="p" * 21,
    )

    assert views.item_line(item) == f"[PROJ-7] {'x' * 57}... - {'p' * 17}..."
    assert views.clip("y" * 60, 60) == "y" * 60


def test_header_names_the_subject(gerrit_activities) -> None:
    snapshot = _machine(gerrit_activities).snapshot()

    header = views.header_text(snapshot, "alice@example.com", "Alice", 30).plain

    assert header == "📋 Alice (alice@example.com) - last 30 days - Summary"


def test_every_named_category_has_its_own_icon() -> None:
    named = [value for value in vars(ActivityCategory).values() if isinstance(value, ActivityCategory)]

    assert len(named) == 13
    assert all(views.category_icon(category) != views.DEFAULT_ICON for category in named)
    assert views.category_icon(ActivityCategory.COMMITS_PUSHED) == "⬆️"
    assert views.category_icon(ActivityCategory.other("Pipelines")) == views.DEFAULT_ICON

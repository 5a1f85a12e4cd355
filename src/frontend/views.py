"""Text builders for the activity browser.

Everything here is a pure function of a NavigationSnapshot, so rendering can
be tested without running the Textual app.
"""

from __future__ import annotations

from typing import Optional

from rich.text import Text

from core.models import ActivityCategory, ActivityItem, PlatformHandle
from core.navigation import NavigationSnapshot, PlatformView, SummaryView

from .constants import (
    ACCENT,
    CATEGORY_ICONS,
    DEFAULT_ICON,
    ERROR_RED,
    HIGHLIGHT_SYMBOL,
    MUTED,
    PROJECT_WIDTH,
    SUCCESS_GREEN,
    TITLE_WIDTH,
)


def clip(value: str, width: int) -> str:
    if len(value) > width:
        return value[: width - 3] + "..."
    return value


def category_icon(category: ActivityCategory) -> str:
    return CATEGORY_ICONS.get(category.key, DEFAULT_ICON)


def view_title(snapshot: NavigationSnapshot) -> str:
    view = snapshot.view
    if isinstance(view, SummaryView):
        return "Summary"
    handle = snapshot.platform(view.platform_id)
    name = handle.name if handle else view.platform_id
    if isinstance(view, PlatformView):
        return name
    return f"{name} > {view.category.display_name}"


def header_text(
    snapshot: NavigationSnapshot,
    subject: str,
    subject_name: Optional[str],
    days: int,
) -> Text:
    who = f"{subject_name} ({subject})" if subject_name else subject
    return Text.assemble(
        ("📋 ", ""),
        (who, "bold"),
        (f" - last {days} days - ", MUTED),
        (view_title(snapshot), ACCENT),
    )


def status_text(snapshot: NavigationSnapshot) -> Text:
    total = len(snapshot.platforms)
    if snapshot.loading:
        return Text(f"Loading... {snapshot.completed_count}/{total} platforms done", style=ACCENT)
    if snapshot.cancelled:
        return Text(f"Fetch cancelled ({snapshot.completed_count}/{total} platforms done)", style=ERROR_RED)
    failed = len(snapshot.errors)
    if failed:
        return Text(f"Ready ({failed} platform(s) failed)", style=ERROR_RED)
    return Text("Ready", style=SUCCESS_GREEN)


def platform_summary_line(snapshot: NavigationSnapshot, handle: PlatformHandle) -> str:
    status = snapshot.statuses.get(handle.id, "")
    prefix = f"{handle.icon} {handle.name} [{status}]"
    activities = snapshot.activities.get(handle.id)
    if activities is None:
        return f"{prefix} - No data available"
    return f"{prefix} - {activities.total_items} items across {len(activities.categories)} categories"


def category_line(snapshot: NavigationSnapshot, platform_id: str, category: ActivityCategory) -> str:
    count = len(snapshot.items(platform_id, category))
    return f"{category_icon(category)} {category.display_name} ({count})"


def item_line(item: ActivityItem) -> str:
    return f"[{item.id}] {clip(item.title, TITLE_WIDTH)} - {clip(item.project, PROJECT_WIDTH)}"


def _list_text(title: str, lines: list[str], cursor: int) -> Text:
    text = Text(title + "\n", style="bold")
    for index, line in enumerate(lines):
        if index == cursor:
            text.append(HIGHLIGHT_SYMBOL + line, style="reverse")
        else:
            text.append(" " * len(HIGHLIGHT_SYMBOL) + line)
        if index < len(lines) - 1:
            text.append("\n")
    return text


def _empty_platform_text(snapshot: NavigationSnapshot, platform_id: str) -> Text:
    text = Text("No categories available\n", style="bold")
    error = snapshot.errors.get(platform_id)
    status = snapshot.statuses.get(platform_id, "")
    if error:
        text.append(f"Fetch failed: {error}", style=ERROR_RED)
    elif snapshot.loading and platform_id not in snapshot.finished_platforms:
        text.append(f"Still loading ({status})", style=ACCENT)
    else:
        text.append(f"Status: {status}", style=MUTED)
    return text


def main_text(snapshot: NavigationSnapshot) -> Text:
    view = snapshot.view
    if isinstance(view, SummaryView):
        if not snapshot.platforms:
            return Text("No platforms configured", style=ERROR_RED)
        tabs = Text()
        for index, handle in enumerate(snapshot.platforms):
            if index:
                tabs.append(" | ", style=MUTED)
            style = f"bold {ACCENT}" if index == snapshot.platform_cursor else ""
            tabs.append(f"{handle.icon} {handle.name}", style=style)
        lines = [platform_summary_line(snapshot, handle) for handle in snapshot.platforms]
        return Text.assemble(tabs, "\n\n", _list_text("Platform Summary", lines, snapshot.platform_cursor))

    handle = snapshot.platform(view.platform_id)
    name = handle.name if handle else view.platform_id
    if isinstance(view, PlatformView):
        categories = snapshot.categories(view.platform_id)
        if not categories:
            return _empty_platform_text(snapshot, view.platform_id)
        lines = [category_line(snapshot, view.platform_id, category) for category in categories]
        return _list_text(f"Categories in {name}", lines, view.category_cursor)

    items = snapshot.items(view.platform_id, view.category)
    if not items:
        return Text(f"No items in {view.category.display_name}", style=MUTED)
    lines = [item_line(item) for item in items]
    return _list_text(f"{view.category.display_name} Items", lines, view.item_cursor)


def _format_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


def details_text(snapshot: NavigationSnapshot) -> Text:
    item = snapshot.highlighted_item
    if item is None:
        return Text("")
    text = Text()
    text.append(f"ID: {item.id}\n")
    text.append(f"Title: {item.title}\n")
    text.append(f"Project: {item.project}\n")
    text.append(f"Status: {item.status}\n")
    text.append(f"Created: {_format_time(item.created)}\n")
    text.append(f"Updated: {_format_time(item.updated)}")
    for key, value in item.metadata.items():
        text.append(f"\n{key}: {value}", style=MUTED)
    return text


def controls_text(snapshot: NavigationSnapshot) -> Text:
    view = snapshot.view
    if isinstance(view, SummaryView):
        hint = "Tab/Shift+Tab: Switch Platform | Enter: View Platform"
    elif isinstance(view, PlatformView):
        hint = "↑/↓: Navigate | Enter: View Category | Backspace: Back"
    else:
        hint = "↑/↓: Navigate | Enter: Open in Browser | Backspace: Back"
    if snapshot.fetch_active:
        hint += " | c: Cancel Fetch"
    return Text(hint + " | h: Help | q: Quit", style=MUTED)

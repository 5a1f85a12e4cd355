"""Shared constants for the Textual UI."""

from __future__ import annotations

ACCENT = "#F5C242"
MUTED = "#8899a6"
ERROR_RED = "#E5534B"
SUCCESS_GREEN = "#57AB5A"

DEFAULT_ICON = "📄"
CATEGORY_ICONS = {
    "changes_created": "📝",
    "changes_reviewed": "🔎",
    "changes_merged": "✅",
    "reviews_given": "👀",
    "reviews_received": "📥",
    "issues_created": "🎫",
    "issues_resolved": "✅",
    "issues_assigned": "📌",
    "issues_commented": "💬",
    "merge_requests_created": "🔀",
    "merge_requests_reviewed": "👀",
    "merge_requests_merged": "✅",
    "commits_pushed": "⬆️",
}

TITLE_WIDTH = 60
PROJECT_WIDTH = 20
HIGHLIGHT_SYMBOL = "▶ "

HELP_TEXT = """📋 Multi-Platform Activity Browser Help

NAVIGATION:
  ↑/↓ or k/j  Navigate through lists
  Enter       Select item / View details / Open in browser
  Backspace   Go back to previous view
  Tab         Switch between platforms (in summary)
  Shift+Tab   Switch platforms backwards

VIEWS:
  s           Go to Summary view
  c           Cancel the running fetch
  h/?         Show/hide this help
  q           Quit application

FEATURES:
  • Summary: Overview of all configured platforms
  • Platform View: Browse categories within a platform
  • Category View: View specific items (changes, tickets, etc.)
  • Open items directly in your web browser

Press h, ? or Esc to close this help."""

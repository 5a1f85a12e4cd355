from __future__ import annotations

import asyncio

from core.models import ActivityCategory
from core.navigation import CategoryView, PlatformView, SummaryView
from core.registry import PlatformRegistry
from frontend.app import ActivityBrowserApp
from frontend.modals import ConfirmQuitScreen, HelpScreen


def test_browse_and_open_item(make_platform, gerrit_activities) -> None:
    opened: list[str] = []

    async def scenario() -> None:
        registry = PlatformRegistry(
            [
                make_platform("gerrit", gerrit_activities, name="Gerrit", icon="🔍"),
                make_platform("jira", error=RuntimeError("Authentication failed"), name="JIRA", icon="🎫"),
            ]
        )
        app = ActivityBrowserApp(registry, "alice", 30, subject_name="Alice", opener=opened.append)
        async with app.run_test() as pilot:
            await asyncio.wait_for(app.fetch_finished.wait(), timeout=5)
            await pilot.pause()

            assert app.machine.status("gerrit") == "done (10)"
            assert app.machine.status("jira") == "failed"

            await pilot.press("enter")
            assert app.machine.view == PlatformView("gerrit", 0)
            await pilot.press("j", "enter")
            assert app.machine.view == CategoryView("gerrit", ActivityCategory.CHANGES_MERGED, 0)
            await pilot.press("down", "enter")
            await pilot.pause()
            assert opened == ["https://fake.example/gerrit/6"]

            await pilot.press("backspace", "backspace", "tab", "enter")
            assert app.machine.view == PlatformView("jira", 0)
            await pilot.press("s")
            assert app.machine.view == SummaryView()

    asyncio.run(scenario())


def test_quit_during_fetch_asks_first(make_platform) -> None:
    async def scenario() -> None:
        gate = asyncio.Event()
        registry = PlatformRegistry([make_platform("gerrit", gate=gate)])
        app = ActivityBrowserApp(registry, "alice", 30, opener=lambda url: None)
        async with app.run_test() as pilot:
            await pilot.pause()
            assert app.machine.fetch_active

            await pilot.press("q")
            assert isinstance(app.screen, ConfirmQuitScreen)
            await pilot.press("n")
            await pilot.pause()
            assert not isinstance(app.screen, ConfirmQuitScreen)

            await pilot.press("c")
            await asyncio.wait_for(app.fetch_finished.wait(), timeout=5)
            await pilot.pause()
            assert app.machine.status("gerrit") == "cancelled"
            assert app.machine.snapshot().cancelled
            assert not app.machine.fetch_active

    asyncio.run(scenario())


def test_help_screen_toggles(make_platform, gerrit_activities) -> None:
    async def scenario() -> None:
        registry = PlatformRegistry([make_platform("gerrit", gerrit_activities)])
        app = ActivityBrowserApp(registry, "alice", 30, opener=lambda url: None)
        async with app.run_test() as pilot:
            await pilot.press("h")
            assert isinstance(app.screen, HelpScreen)
            await pilot.press("escape")
            await pilot.pause()
            assert not isinstance(app.screen, HelpScreen)

    asyncio.run(scenario())

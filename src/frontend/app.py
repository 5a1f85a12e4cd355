"""Main Textual app for the multi-platform activity browser."""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from typing import Any, Callable, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, VerticalScroll
from textual.widgets import Static

from core.errors import NoConfiguredPlatformsError, ProgressChannelClosedError
from core.fetcher import FetchHandle, FetchOrchestrator
from core.navigation import NavEvent, NavigationMachine
from core.registry import PlatformRegistry

from . import views
from .modals import ConfirmQuitScreen, HelpScreen

LOGGER = logging.getLogger(__name__)


class _Body(VerticalScroll, can_focus=False):
    """Scrollable list area that leaves the arrow keys to the app."""


class ActivityBrowserApp(App):
    """Browse one person's activity across every configured platform.

    The fetch starts on mount; the browser is usable right away and fills in
    platform by platform as results arrive.
    """

    CSS = """
    Screen {
        background: #0f1a21;
        color: #e8eef5;
    }

    #header, #status, #controls {
        height: auto;
        padding: 0 2;
        border: round #2a3a46;
    }

    #body {
        height: 1fr;
        padding: 0 2;
        border: round #2a3a46;
    }

    #details {
        height: auto;
        max-height: 10;
        padding: 0 2;
        border: round #2a3a46;
    }

    #details.empty {
        display: none;
    }

    .modal-dialog {
        width: 60;
        height: auto;
        padding: 1 2;
        border: thick #F5C242;
        background: #15232d;
    }

    .modal-dialog--help {
        width: 80;
    }

    .modal-title {
        text-style: bold;
        padding-bottom: 1;
    }

    .modal-actions {
        height: auto;
        padding-top: 1;
    }

    ConfirmQuitScreen, HelpScreen {
        align: center middle;
    }
    """

    BINDINGS = [
        Binding("tab", "next_platform", "Next platform", priority=True),
        Binding("right", "next_platform", "Next platform", show=False),
        Binding("shift+tab", "previous_platform", "Previous platform", priority=True),
        Binding("left", "previous_platform", "Previous platform", show=False),
        Binding("up,k", "cursor_up", "Up", show=False),
        Binding("down,j", "cursor_down", "Down", show=False),
        Binding("enter", "enter", "Select"),
        Binding("backspace", "back", "Back"),
        Binding("s", "summary", "Summary"),
        Binding("c", "cancel_fetch", "Cancel fetch"),
        Binding("h,question_mark", "help", "Help"),
        Binding("q", "request_quit", "Quit"),
        Binding("ctrl+c", "request_quit", "Quit", show=False, priority=True),
    ]

    def __init__(
        self,
        registry: PlatformRegistry,
        subject: str,
        days: int,
        subject_name: Optional[str] = None,
        opener: Callable[[str], Any] = webbrowser.open,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._platform_registry = registry
        self._subject = subject
        self._days = days
        self._subject_name = subject_name
        self._opener = opener
        self._fetch: Optional[FetchHandle] = None
        self._fatal_error: Optional[str] = None
        self._quit_when_idle = False
        self.machine = NavigationMachine.from_registry(registry)
        self.fetch_finished = asyncio.Event()
        self.title = f"reviewscope - {subject}"

    def compose(self) -> ComposeResult:
        yield Static("", id="header")
        yield Static("", id="status")
        with _Body(id="body"):
            yield Static("", id="main")
        with Container(id="details", classes="empty"):
            yield Static("", id="details-body")
        yield Static("", id="controls")

    def on_mount(self) -> None:
        self._start_fetch()
        self._refresh_view()

    # fetch lifecycle

    def _start_fetch(self) -> None:
        try:
            handle = FetchOrchestrator(self._platform_registry).start_fetch(self._subject, self._days)
        except NoConfiguredPlatformsError as exc:
            LOGGER.error("Cannot start fetch: %s", exc)
            self._fatal_error = str(exc)
            self.fetch_finished.set()
            return
        self._fetch = handle
        self.machine.attach_fetch(handle.cancel_handle)
        self.run_worker(self._consume_progress(handle), group="fetch", exclusive=True)

    async def _consume_progress(self, handle: FetchHandle) -> None:
        try:
            async for event in handle.progress:
                self.machine.apply_progress(event)
                self._refresh_view()
                # Let pending key presses in between progress events.
                await asyncio.sleep(0)
            self.machine.adopt_results(await handle.wait())
        except ProgressChannelClosedError as exc:
            LOGGER.error("Fetch aborted: %s", exc)
            self._fatal_error = str(exc)
        finally:
            self._fetch = None
            self.fetch_finished.set()
        self._refresh_view()
        if self._quit_when_idle:
            self.exit()

    # rendering

    def _refresh_view(self) -> None:
        snapshot = self.machine.snapshot()
        self.query_one("#header", Static).update(
            views.header_text(snapshot, self._subject, self._subject_name, self._days)
        )
        status = views.status_text(snapshot)
        if self._fatal_error:
            status.append(f" | {self._fatal_error}", style="bold red")
        self.query_one("#status", Static).update(status)
        self.query_one("#main", Static).update(views.main_text(snapshot))

        details = views.details_text(snapshot)
        panel = self.query_one("#details", Container)
        panel.set_class(not details.plain, "empty")
        self.query_one("#details-body", Static).update(details)
        self.query_one("#controls", Static).update(views.controls_text(snapshot))

    def _navigate(self, event: NavEvent) -> None:
        item = self.machine.handle_input(event)
        if item is not None:
            adapter = self._platform_registry.get_platform(item.platform)
            url = adapter.get_item_url(item) if adapter else item.url
            LOGGER.info("Opening %s", url)
            try:
                self._opener(url)
            except (webbrowser.Error, OSError) as exc:
                LOGGER.warning("Failed to open URL in browser: %s", exc)
                self.notify(f"Could not open {url}", severity="warning")
        self._refresh_view()

    # actions

    def action_next_platform(self) -> None:
        self._navigate(NavEvent.SELECT_NEXT_PLATFORM)

    def action_previous_platform(self) -> None:
        self._navigate(NavEvent.SELECT_PREVIOUS_PLATFORM)

    def action_cursor_up(self) -> None:
        self._navigate(NavEvent.MOVE_CURSOR_UP)

    def action_cursor_down(self) -> None:
        self._navigate(NavEvent.MOVE_CURSOR_DOWN)

    def action_enter(self) -> None:
        self._navigate(NavEvent.ENTER)

    def action_back(self) -> None:
        self._navigate(NavEvent.BACK)

    def action_summary(self) -> None:
        self._navigate(NavEvent.GO_TO_SUMMARY)

    def action_cancel_fetch(self) -> None:
        self._navigate(NavEvent.REQUEST_CANCEL)

    def action_help(self) -> None:
        if isinstance(self.screen, HelpScreen):
            self.screen.dismiss(None)
            return
        self.push_screen(HelpScreen())

    def action_request_quit(self) -> None:
        if isinstance(self.screen, ConfirmQuitScreen):
            return
        if self.machine.fetch_active:
            self.push_screen(ConfirmQuitScreen(), self._handle_quit_choice)
        else:
            self.exit()

    def _handle_quit_choice(self, confirmed: bool | None) -> None:
        if not confirmed:
            return
        if self._fetch is None:
            self.exit()
            return
        # Exit once the progress worker has seen the Cancelled event.
        self._quit_when_idle = True
        self._navigate(NavEvent.REQUEST_CANCEL)

"""Modal dialogs for the activity browser."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Static

from .constants import HELP_TEXT


class ConfirmQuitScreen(ModalScreen[bool]):
    """Prompt when quitting while a fetch is still running."""

    BINDINGS = [
        ("y", "confirm", "Quit"),
        ("n", "abort", "Stay"),
        ("escape", "abort", "Stay"),
    ]

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Quit while fetching?", classes="modal-title"),
            Static("The running fetch will be cancelled.", classes="modal-body"),
            Horizontal(
                Button("Quit", id="quit-confirm", variant="error"),
                Button("Stay", id="quit-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "quit-confirm")

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_abort(self) -> None:
        self.dismiss(False)


class HelpScreen(ModalScreen[None]):
    """Static list of the browser controls."""

    BINDINGS = [
        ("escape", "close", "Close"),
        ("h", "close", "Close"),
        ("question_mark", "close", "Close"),
        ("q", "close", "Close"),
    ]

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Help", classes="modal-title"),
            Static(HELP_TEXT, id="help-body", classes="modal-body"),
            classes="modal-dialog modal-dialog--help",
        )

    def action_close(self) -> None:
        self.dismiss(None)

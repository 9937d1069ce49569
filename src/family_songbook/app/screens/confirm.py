"""Confirmation dialog.

Asks a yes/no question before a destructive action.
"""

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label


class ConfirmScreen(ModalScreen[bool]):
    """Modal yes/no question. Dismisses with True when confirmed."""

    BINDINGS = [
        ("y", "confirm", "Yes"),
        ("n", "decline", "No"),
        ("escape", "decline", "No"),
    ]

    def __init__(self, message: str):
        """Initialize the dialog.

        Args:
            message: Question to ask
        """
        super().__init__()
        self.message = message

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm_dialog"):
            yield Label(self.message, id="confirm_message")
            with Horizontal(id="confirm_buttons"):
                yield Button("Yes", id="btn_yes", variant="error")
                yield Button("No", id="btn_no", variant="primary")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button presses."""
        if event.button.id == "btn_yes":
            self.action_confirm()
        elif event.button.id == "btn_no":
            self.action_decline()

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_decline(self) -> None:
        self.dismiss(False)

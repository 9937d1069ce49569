"""Add song screen.

Modal form for adding a new song to the family's catalog.
"""

import asyncio

from textual import work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Select, TextArea

from family_songbook.app.db.models import SCROLL_SPEEDS, STARTING_NOTES, ScrollSpeed, SongFormData
from family_songbook.app.errors import AuthError, StoreError, ValidationError
from family_songbook.app.logging_config import get_logger
from family_songbook.app.services.auth import AuthService
from family_songbook.app.services.catalog import SongCatalog

logger = get_logger(__name__)


class AddSongScreen(ModalScreen[bool]):
    """Modal form for a new song. Dismisses with True once added."""

    BINDINGS = [
        ("ctrl+s", "submit", "Add"),
        ("escape", "cancel", "Cancel"),
    ]

    def __init__(self, catalog: SongCatalog, auth: AuthService):
        """Initialize the form.

        Args:
            catalog: Song catalog service
            auth: Auth service providing the owner session
        """
        super().__init__()
        self.catalog = catalog
        self.auth = auth
        self.form = SongFormData()
        self.is_submitting = False

    def compose(self) -> ComposeResult:
        with Vertical(id="add_dialog"):
            yield Label("[bold]Add New Song[/bold]", id="add_title")
            yield Input(placeholder="Title", id="title_input")
            with Horizontal(id="add_options"):
                yield Select(
                    [(note, note) for note in STARTING_NOTES],
                    value=self.form.starting_note,
                    allow_blank=False,
                    id="note_select",
                )
                yield Select(
                    [(ScrollSpeed(speed).label, speed) for speed in SCROLL_SPEEDS],
                    value=self.form.scroll_speed,
                    allow_blank=False,
                    id="speed_select",
                )
            yield TextArea(id="lyrics_input")
            yield Label("", id="add_error")
            with Horizontal(id="add_buttons"):
                yield Button("Add Song", id="btn_submit", variant="primary")
                yield Button("Cancel", id="btn_cancel")

    def on_mount(self) -> None:
        self.query_one("#title_input", Input).focus()

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "title_input":
            self.form.title = event.value

    def on_select_changed(self, event: Select.Changed) -> None:
        if not isinstance(event.value, str):
            return
        if event.select.id == "note_select":
            self.form.starting_note = event.value
        elif event.select.id == "speed_select":
            self.form.scroll_speed = event.value

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        if event.text_area.id == "lyrics_input":
            self.form.lyrics = event.text_area.text

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button presses."""
        if event.button.id == "btn_submit":
            self.action_submit()
        elif event.button.id == "btn_cancel":
            self.action_cancel()

    def _show_error(self, message: str) -> None:
        self.query_one("#add_error", Label).update(f"[red]{message}[/red]")

    def action_submit(self) -> None:
        """Validate the form and add the song."""
        if self.is_submitting:
            return
        try:
            self.form.validate()
        except ValidationError as e:
            self._show_error(str(e))
            return
        self._submit()

    @work(exclusive=True, group="add_song")
    async def _submit(self) -> None:
        self.is_submitting = True
        self.query_one("#btn_submit", Button).disabled = True
        try:
            session = await asyncio.to_thread(self.auth.require_session)
            await asyncio.to_thread(self.catalog.add_song, self.form, session)
        except ValidationError as e:
            self._show_error(str(e))
        except AuthError as e:
            logger.warning(f"Add song without a session: {e}")
            self._show_error("Please sign in again")
        except StoreError as e:
            logger.error(f"Failed to add song: {e}")
            self._show_error("Failed to add song")
        else:
            self.dismiss(True)
            return
        finally:
            self.is_submitting = False
        self.query_one("#btn_submit", Button).disabled = False

    def action_cancel(self) -> None:
        if not self.is_submitting:
            self.dismiss(False)

"""Player screen.

Shows a song's lyrics in a modal that scrolls them automatically, with
speed controls and an edit form for the song's fields.
"""

from typing import Callable, Optional

from textual import work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widget import Widget
from textual.widgets import Button, Input, Label, Select, Static, TextArea

from family_songbook.app.config import AppConfig
from family_songbook.app.db.models import STARTING_NOTES, Song
from family_songbook.app.db.song_client import SongClient
from family_songbook.app.logging_config import get_logger
from family_songbook.app.screens.confirm import ConfirmScreen
from family_songbook.app.services.scroll_player import ScrollPlayer, monotonic_ms

logger = get_logger(__name__)

EDIT_FIELDS = ("edit_title", "edit_note", "edit_lyrics")


class TimerFrameScheduler:
    """Frame scheduler backed by Textual timers on a widget.

    Timers die with the widget, so no frame fires after the screen closes.
    """

    def __init__(self, widget: Widget, interval_ms: int, clock: Callable[[], float] = monotonic_ms):
        self._widget = widget
        self._interval = interval_ms / 1000.0
        self._clock = clock

    def request_frame(self, callback: Callable[[float], None]) -> None:
        self._widget.set_timer(self._interval, lambda: callback(self._clock()))


class LyricsViewport:
    """Adapts a VerticalScroll container to the player's viewport."""

    def __init__(self, container: VerticalScroll):
        self.container = container

    @property
    def content_height(self) -> float:
        return self.container.virtual_size.height

    @property
    def viewport_height(self) -> float:
        return self.container.scrollable_content_region.height

    @property
    def is_attached(self) -> bool:
        return self.container.is_attached

    def scroll_to(self, offset: float) -> None:
        self.container.scroll_to(y=offset, animate=False)


class PlayerScreen(ModalScreen[None]):
    """Modal lyrics player for one song."""

    # Keys drive the player until the edit form takes focus
    AUTO_FOCUS = None

    BINDINGS = [
        ("space", "toggle_scroll", "Play/Stop"),
        ("up", "faster", "Faster"),
        ("down", "slower", "Slower"),
        ("e", "edit", "Edit"),
        ("ctrl+s", "save", "Save"),
        ("d", "delete", "Delete"),
        ("escape", "cancel_or_close", "Close"),
    ]

    def __init__(
        self,
        song: Song,
        song_client: SongClient,
        config: AppConfig,
        on_saved: Optional[Callable[[Song], None]] = None,
        on_deleted: Optional[Callable[[Song], None]] = None,
    ):
        """Initialize the screen.

        Args:
            song: Song to play
            song_client: Song CRUD client
            config: Application configuration (player settings)
            on_saved: Called after the song is saved
            on_deleted: Called after the song is deleted
        """
        super().__init__()
        self.config = config
        self._unmounting = False
        self.player = ScrollPlayer(
            song,
            song_client,
            scheduler=TimerFrameScheduler(self, config.frame_interval_ms),
            on_saved=on_saved,
            on_deleted=on_deleted,
            on_close=self._on_player_closed,
            toggle_debounce_ms=config.toggle_debounce_ms,
            live_speed_changes=config.live_speed_changes,
            auto_stop_at_end=config.auto_stop_at_end,
        )

    def compose(self) -> ComposeResult:
        """Compose the screen layout."""
        song = self.player.working_copy

        with Vertical(id="player_dialog"):
            with Vertical(id="player_header"):
                yield Label(f"[bold]{song.title}[/bold]", id="player_title")
                yield Label(f"Starting note: {song.starting_note.value}", id="player_note")

            with VerticalScroll(id="lyrics_scroll") as lyrics_scroll:
                # Arrow keys belong to the speed controls
                lyrics_scroll.can_focus = False
                yield Static(song.lyrics, id="lyrics_text", markup=False)

            with Vertical(id="edit_form", classes="hidden"):
                yield Input(value=song.title, placeholder="Title", id="edit_title")
                yield Select(
                    [(note, note) for note in STARTING_NOTES],
                    value=song.starting_note.value,
                    allow_blank=False,
                    id="edit_note",
                )
                yield TextArea(song.lyrics, id="edit_lyrics")

            yield Label("", id="player_error")

            with Horizontal(id="player_controls"):
                yield Label(self._speed_text(), id="speed_label")
                yield Button("▲", id="btn_faster")
                yield Button("▼", id="btn_slower")
                yield Button("Start scrolling", id="btn_toggle", variant="primary")
                yield Button("Edit", id="btn_edit")
                yield Button("Delete", id="btn_delete", variant="error")
                yield Button("Save", id="btn_save", variant="primary", classes="hidden")
                yield Button("Cancel", id="btn_cancel", classes="hidden")
                yield Button("Close", id="btn_close")

    def on_mount(self) -> None:
        """Attach the lyrics view to the player."""
        self.player.attach_viewport(LyricsViewport(self.query_one("#lyrics_scroll", VerticalScroll)))
        self._sync_view()

    def on_unmount(self) -> None:
        """Close the player so no pending frame or store response touches it."""
        self._unmounting = True
        self.player.close()

    def _speed_text(self) -> str:
        return f"Scroll speed: {self.player.speed_percent}%"

    def _sync_view(self) -> None:
        """Update widgets from player state."""
        song = self.player.working_copy
        editing = self.player.is_editing

        self.query_one("#player_title", Label).update(f"[bold]{song.title}[/bold]")
        self.query_one("#player_note", Label).update(f"Starting note: {song.starting_note.value}")
        self.query_one("#speed_label", Label).update(self._speed_text())
        self.query_one("#player_error", Label).update(self.player.error_message or "")

        if not editing and self.focused is not None and self.focused.id in EDIT_FIELDS:
            self.set_focus(None)

        self.query_one("#lyrics_scroll").set_class(editing, "hidden")
        self.query_one("#edit_form").set_class(not editing, "hidden")
        for field_id in EDIT_FIELDS:
            self.query_one(f"#{field_id}").disabled = not editing

        for button_id in ("#btn_toggle", "#btn_edit", "#btn_delete"):
            self.query_one(button_id).set_class(editing, "hidden")
        for button_id in ("#btn_save", "#btn_cancel"):
            self.query_one(button_id).set_class(not editing, "hidden")

        toggle = self.query_one("#btn_toggle", Button)
        toggle.label = "Stop scrolling" if self.player.is_scrolling else "Start scrolling"
        toggle.variant = "error" if self.player.is_scrolling else "primary"

        busy = self.player.is_busy
        for button_id in ("#btn_save", "#btn_cancel", "#btn_delete"):
            self.query_one(button_id, Button).disabled = busy

    def _load_edit_form(self) -> None:
        """Fill the edit widgets from the player's draft."""
        song = self.player.working_copy
        self.query_one("#edit_title", Input).value = song.title
        self.query_one("#edit_note", Select).value = song.starting_note.value
        self.query_one("#edit_lyrics", TextArea).text = song.lyrics

    def _show_lyrics(self) -> None:
        self.query_one("#lyrics_text", Static).update(self.player.working_copy.lyrics)
        self.query_one("#lyrics_scroll", VerticalScroll).scroll_home(animate=False)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button presses."""
        button_id = event.button.id

        if button_id == "btn_toggle":
            self.action_toggle_scroll()
        elif button_id == "btn_faster":
            self.action_faster()
        elif button_id == "btn_slower":
            self.action_slower()
        elif button_id == "btn_edit":
            self.action_edit()
        elif button_id == "btn_save":
            self.action_save()
        elif button_id == "btn_cancel":
            self.action_cancel_or_close()
        elif button_id == "btn_delete":
            self.action_delete()
        elif button_id == "btn_close":
            self.action_close()

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "edit_title":
            self.player.update_draft(title=event.value)

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id == "edit_note" and isinstance(event.value, str):
            self.player.update_draft(starting_note=str(event.value))

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        if event.text_area.id == "edit_lyrics":
            self.player.update_draft(lyrics=event.text_area.text)

    def action_toggle_scroll(self) -> None:
        """Start or stop scrolling."""
        if self.player.toggle_scroll():
            logger.debug(f"Scrolling: {self.player.is_scrolling}")
        self._sync_view()

    def action_faster(self) -> None:
        self.player.adjust_speed(self.config.speed_step_percent)
        self._sync_view()

    def action_slower(self) -> None:
        self.player.adjust_speed(-self.config.speed_step_percent)
        self._sync_view()

    def action_edit(self) -> None:
        """Open the edit form."""
        if self.player.enter_edit():
            self._load_edit_form()
            self._sync_view()
            self.query_one("#edit_title", Input).focus()

    def action_save(self) -> None:
        """Save the edit form."""
        if self.player.is_editing:
            self._save()

    @work(exclusive=True, group="player_store")
    async def _save(self) -> None:
        self._sync_view()
        saved = await self.player.save_edit()
        if self.player.is_closed:
            return
        if saved:
            self._show_lyrics()
            self.notify("Song saved")
        elif self.player.error_message:
            self.notify(self.player.error_message, severity="error")
        self._sync_view()

    def action_delete(self) -> None:
        """Delete the song after confirmation."""
        if not self.player.is_editing:
            self._delete()

    @work(exclusive=True, group="player_store")
    async def _delete(self) -> None:
        title = self.player.working_copy.title

        async def confirm() -> bool:
            return bool(await self.app.push_screen_wait(ConfirmScreen(f"Delete '{title}'?")))

        deleted = await self.player.delete_song(confirm)
        if deleted:
            self.app.notify(f"Deleted '{title}'")
        elif not self.player.is_closed:
            if self.player.error_message:
                self.notify(self.player.error_message, severity="error")
            self._sync_view()

    def action_cancel_or_close(self) -> None:
        """Cancel editing, or close the player when viewing."""
        if self.player.is_editing:
            if self.player.cancel_edit():
                self._sync_view()
        else:
            self.action_close()

    def action_close(self) -> None:
        self.player.close()

    def _on_player_closed(self) -> None:
        if not self._unmounting and self.is_current:
            self.dismiss()

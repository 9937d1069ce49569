"""Dashboard screen.

Lists the family's songs with search and starting-note filtering, and
opens the add form and the player.
"""

from typing import Callable, Optional

from textual import events, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import Button, DataTable, Footer, Header, Input, Label, Select, Static

from family_songbook.app.config import AppConfig
from family_songbook.app.db.models import ALL_NOTES, STARTING_NOTES, Song
from family_songbook.app.logging_config import get_logger
from family_songbook.app.screens.add_song import AddSongScreen
from family_songbook.app.screens.player import PlayerScreen
from family_songbook.app.services.auth import AuthService
from family_songbook.app.services.catalog import SongCatalog
from family_songbook.app.state import AppState

logger = get_logger(__name__)


class DashboardScreen(Screen):
    """Screen listing the family's songs."""

    AUTO_FOCUS = "#song_table"

    BINDINGS = [
        ("a", "add_song", "Add Song"),
        ("p", "play", "Play"),
        ("r", "refresh", "Refresh"),
        ("f", "focus_search", "Search"),
        ("escape", "focus_songs", "Songs"),
        ("ctrl+o", "sign_out", "Sign Out"),
        ("q", "app.quit", "Quit"),
    ]

    def __init__(
        self,
        state: AppState,
        catalog: SongCatalog,
        auth: AuthService,
        config: AppConfig,
    ):
        """Initialize the screen.

        Args:
            state: Application state
            catalog: Song catalog service
            auth: Auth service
            config: Application configuration
        """
        super().__init__()
        self.state = state
        self.catalog = catalog
        self.auth = auth
        self.config = config
        self.songs: list[Song] = []

    def compose(self) -> ComposeResult:
        """Compose the screen layout."""
        yield Header()

        with Vertical():
            yield Label("[bold]My Songs[/bold]", id="title")
            email = self.state.session.email if self.state.session else ""
            yield Label(f"Signed in as {email}" if email else "", id="user_label")

            with Horizontal(id="search_row"):
                yield Input(
                    value=self.state.search_term,
                    placeholder="Search songs by title or lyrics...",
                    id="search_input",
                )
                yield Select(
                    [("All Notes", ALL_NOTES)] + [(note, note) for note in STARTING_NOTES],
                    value=self.state.selected_note,
                    allow_blank=False,
                    id="note_select",
                )

            yield Label("", id="error_label")

            table = DataTable(id="song_table")
            table.add_columns("Title", "Note", "Speed", "Lyrics")
            table.cursor_type = "row"
            yield table

            with Vertical(id="empty_state", classes="hidden"):
                yield Static("Loading songs...", id="empty_message")

            with Horizontal(id="buttons"):
                yield Button("Add New Song", id="btn_add", variant="primary")
                yield Button("Play", id="btn_play")
                yield Button("Refresh", id="btn_refresh")
                yield Button("Sign Out", id="btn_sign_out")

        yield Footer()

    def on_mount(self) -> None:
        """Handle mount event."""
        logger.info("DashboardScreen mounted")
        self.state.add_listener("error_message", self._show_error)
        self._show_error(self.state.error_message)
        self.refresh_songs()

    def on_unmount(self) -> None:
        self.state.remove_listener("error_message", self._show_error)

    def on_screen_resume(self, event: events.ScreenResume) -> None:
        """Re-render when a modal closes."""
        self._render_songs()

    @work(thread=True, exclusive=True, group="catalog")
    def refresh_songs(self, reload: Optional[Callable[[], object]] = None) -> None:
        """Reload songs from the store off the UI thread.

        Args:
            reload: Catalog call that performs the reload (defaults to refresh)
        """
        self.app.call_from_thread(self.state.set_loading, True)
        (reload or self.catalog.refresh)()
        self.app.call_from_thread(self._finish_refresh)

    def _finish_refresh(self) -> None:
        self.state.set_loading(False)
        self.state.set_error(self.catalog.error_message)
        self._render_songs()

    def _show_error(self, message: Optional[str]) -> None:
        self.query_one("#error_label", Label).update(f"[red]{message}[/red]" if message else "")

    def _render_songs(self) -> None:
        """Display the filtered song list with empty state handling."""
        self.songs = self.catalog.filtered(self.state.search_term, self.state.selected_note)

        table = self.query_one("#song_table", DataTable)
        table.clear()

        empty_state = self.query_one("#empty_state")
        if not self.songs:
            message = (
                "Loading songs..."
                if self.state.is_loading
                else "No songs found. Add your first song!"
            )
            self.query_one("#empty_message", Static).update(message)
            empty_state.remove_class("hidden")
            table.add_class("hidden")
            return

        empty_state.add_class("hidden")
        table.remove_class("hidden")

        for song in self.songs:
            table.add_row(
                song.title,
                song.starting_note.value,
                song.scroll_speed.label,
                song.lyrics_preview,
                key=song.id,
            )

    def _get_selected_song(self) -> Optional[Song]:
        """Get the song under the table cursor."""
        table = self.query_one("#song_table", DataTable)
        if table.cursor_row is not None:
            rows = list(table.rows.keys())
            if table.cursor_row < len(rows):
                return self.catalog.get_song(rows[table.cursor_row].value)
        return self.state.selected_song

    def on_input_changed(self, event: Input.Changed) -> None:
        """Filter as the search text changes."""
        if event.input.id == "search_input":
            self.state.set_search_term(event.value)
            self._render_songs()

    def on_select_changed(self, event: Select.Changed) -> None:
        """Filter by starting note."""
        if event.select.id == "note_select" and isinstance(event.value, str):
            self.state.set_selected_note(event.value)
            self._render_songs()

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        """Open the player on the selected row."""
        song = self.catalog.get_song(event.row_key.value)
        if song:
            self._open_player(song)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button presses."""
        button_id = event.button.id

        if button_id == "btn_add":
            self.action_add_song()
        elif button_id == "btn_play":
            self.action_play()
        elif button_id == "btn_refresh":
            self.action_refresh()
        elif button_id == "btn_sign_out":
            self.action_sign_out()

    def _open_player(self, song: Song) -> None:
        logger.info(f"Opening player: {song.id}")
        self.state.select_song(song)
        self.app.push_screen(
            PlayerScreen(
                song,
                self.catalog.song_client,
                self.config,
                on_saved=self._on_song_saved,
                on_deleted=self._on_song_deleted,
            ),
            lambda _: self.state.select_song(None),
        )

    def _on_song_saved(self, song: Song) -> None:
        self.refresh_songs(lambda: self.catalog.on_player_saved(song))

    def _on_song_deleted(self, song: Song) -> None:
        self.refresh_songs(lambda: self.catalog.on_player_deleted(song))

    def action_play(self) -> None:
        """Play the highlighted song."""
        song = self._get_selected_song()
        if not song:
            self.notify("No song selected", severity="warning")
            return
        self._open_player(song)

    def action_add_song(self) -> None:
        """Open the add form."""

        def on_dismissed(added: Optional[bool]) -> None:
            if added:
                self.notify("Song added")
                self._render_songs()

        self.app.push_screen(AddSongScreen(self.catalog, self.auth), on_dismissed)

    def action_refresh(self) -> None:
        self.refresh_songs()
        self.notify("Songs refreshed")

    def action_focus_search(self) -> None:
        """Focus the search input."""
        self.query_one("#search_input", Input).focus()

    def action_focus_songs(self) -> None:
        """Return focus from the search box to the song list."""
        self.query_one("#song_table", DataTable).focus()

    def action_sign_out(self) -> None:
        self.app.sign_out()

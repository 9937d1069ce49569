"""Song catalog service for the songbook.

Keeps the signed-in family's song list, filters it for display and adds
new songs. Acts as a facade over SongClient for the screens and receives
the player's save/delete notifications.
"""

from typing import Optional

from family_songbook.app.db.models import ALL_NOTES, Session, Song, SongFormData
from family_songbook.app.db.song_client import SongClient
from family_songbook.app.errors import StoreError
from family_songbook.app.logging_config import get_logger

logger = get_logger(__name__)

LOAD_ERROR_MESSAGE = "Could not load songs"


def filter_songs(songs: list[Song], search_term: str = "", note: str = ALL_NOTES) -> list[Song]:
    """Filter songs by search term and starting note.

    The search term matches case-insensitively against title or lyrics.

    Args:
        songs: Songs to filter
        search_term: Text to look for
        note: Starting note to keep, or "All"

    Returns:
        Matching songs in their original order
    """
    term = search_term.lower()
    results = []
    for song in songs:
        matches_search = term in song.title.lower() or term in song.lyrics.lower()
        matches_note = note == ALL_NOTES or song.starting_note.value == note
        if matches_search and matches_note:
            results.append(song)
    return results


class SongCatalog:
    """The family's song list.

    Attributes:
        song_client: Song CRUD client
        songs: Last loaded songs, newest first
        error_message: Message from the last failed load, if any
        is_loading: Whether a load is in progress
    """

    def __init__(self, song_client: SongClient):
        """Initialize the catalog.

        Args:
            song_client: Song CRUD client
        """
        self.song_client = song_client
        self.songs: list[Song] = []
        self.error_message: Optional[str] = None
        self.is_loading = False

    def refresh(self) -> bool:
        """Reload the song list from the store.

        On failure the previous list is kept and error_message is set.

        Returns:
            True if the list was reloaded
        """
        self.is_loading = True
        try:
            songs = self.song_client.list_songs()
        except StoreError as e:
            logger.error(f"Failed to fetch songs: {e}")
            self.error_message = LOAD_ERROR_MESSAGE
            return False
        finally:
            self.is_loading = False

        self.songs = songs
        self.error_message = None
        logger.debug(f"Loaded {len(songs)} song(s)")
        return True

    def filtered(self, search_term: str = "", note: str = ALL_NOTES) -> list[Song]:
        """Get the loaded songs matching a search term and note."""
        return filter_songs(self.songs, search_term, note)

    def get_song(self, song_id: str) -> Optional[Song]:
        """Get a loaded song by ID."""
        for song in self.songs:
            if song.id == song_id:
                return song
        return None

    def add_song(self, form: SongFormData, session: Session) -> Song:
        """Validate and store a new song, then refresh the list.

        Args:
            form: Form input
            session: Signed-in session (owner of the new song)

        Returns:
            Created song

        Raises:
            ValidationError: If a required field is empty
            StoreError: If the insert fails
        """
        form.validate()
        song = self.song_client.add_song(form, user_id=session.user_id)
        logger.info(f"Added song {song.id}: {song.title}")
        self.refresh()
        return song

    def on_player_saved(self, song: Song) -> None:
        """Player callback: a song was edited."""
        logger.debug(f"Song {song.id} saved, refreshing catalog")
        self.refresh()

    def on_player_deleted(self, song: Song) -> None:
        """Player callback: a song was deleted."""
        logger.debug(f"Song {song.id} deleted, refreshing catalog")
        self.refresh()

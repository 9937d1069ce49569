"""Read-write client for the songs table.

Provides typed CRUD operations for songs on top of SupabaseClient.
"""

from typing import Any, Optional

from family_songbook.app.db.client import SupabaseClient
from family_songbook.app.db.models import Song, SongFormData
from family_songbook.app.errors import StoreError
from family_songbook.app.logging_config import get_logger

logger = get_logger(__name__)

SONGS_TABLE = "songs"


def _to_song(row: dict[str, Any]) -> Song:
    """Build a Song from a row, treating malformed rows as store errors."""
    try:
        return Song.from_row(row)
    except (KeyError, ValueError) as e:
        raise StoreError(f"Malformed song row {row.get('id')}: {e}") from e


class SongClient:
    """Client for song CRUD operations.

    Attributes:
        client: Hosted store client
    """

    def __init__(self, client: SupabaseClient):
        """Initialize the song client.

        Args:
            client: Hosted store client
        """
        self.client = client

    def list_songs(self, starting_note: Optional[str] = None) -> list[Song]:
        """List songs, newest first.

        Args:
            starting_note: Only return songs starting on this note

        Returns:
            List of songs ordered by created_at desc. Malformed rows are
            skipped.
        """
        filters = {"starting_note": starting_note} if starting_note else None
        rows = self.client.table(SONGS_TABLE).select(
            filters=filters, order="created_at", ascending=False
        )
        songs = []
        for row in rows:
            try:
                songs.append(_to_song(row))
            except StoreError as e:
                logger.warning(f"Skipping song: {e}")
        return songs

    def get_song(self, song_id: str) -> Optional[Song]:
        """Get a song by ID.

        Args:
            song_id: The song ID

        Returns:
            Song or None if not found

        Raises:
            StoreError: If the request fails or the row is malformed
        """
        rows = self.client.table(SONGS_TABLE).select(filters={"id": song_id})
        if rows:
            return _to_song(rows[0])
        return None

    def add_song(self, form: SongFormData, user_id: str) -> Song:
        """Insert a new song owned by a user.

        Args:
            form: Validated form data
            user_id: Owner's user ID

        Returns:
            Created Song as stored

        Raises:
            StoreError: If the insert fails or returns nothing
        """
        row = form.to_row()
        row["user_id"] = user_id
        rows = self.client.table(SONGS_TABLE).insert([row])
        if not rows:
            raise StoreError("Insert returned no row")
        return _to_song(rows[0])

    def update_song(self, song_id: str, form: SongFormData) -> Song:
        """Update a song's editable fields in a single row update.

        Args:
            song_id: The song ID
            form: New field values

        Returns:
            Updated Song as stored

        Raises:
            StoreError: If the update fails or no row matched
        """
        rows = self.client.table(SONGS_TABLE).update(song_id, form.to_row())
        if not rows:
            raise StoreError(f"Song not found: {song_id}", status_code=404)
        return _to_song(rows[0])

    def delete_song(self, song_id: str) -> bool:
        """Delete a song.

        Args:
            song_id: The song ID

        Returns:
            True if deleted, False if not found
        """
        rows = self.client.table(SONGS_TABLE).delete(song_id)
        return len(rows) > 0

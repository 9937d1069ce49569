"""Database layer for the songbook app.

Provides the hosted database client, typed song client and models.
"""

from family_songbook.app.db.client import SupabaseClient
from family_songbook.app.db.models import Session, Song, SongFormData
from family_songbook.app.db.song_client import SongClient

__all__ = ["Session", "Song", "SongClient", "SongFormData", "SupabaseClient"]

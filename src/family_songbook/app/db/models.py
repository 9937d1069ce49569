"""Data models for songbook entities.

Provides dataclasses for songs, the add/edit form and the auth session,
with serialization to/from the JSON rows returned by the hosted store.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from family_songbook.app.errors import ValidationError


class StartingNote(str, Enum):
    """Solfège note a singer begins on."""

    DO = "Do"
    RE = "Ré"
    MI = "Mi"
    FA = "Fa"
    SOL = "Sol"
    LA = "La"
    SI = "Si"


class ScrollSpeed(str, Enum):
    """Persisted coarse scroll speed label."""

    SLOW = "slow"
    MEDIUM = "medium"
    FAST = "fast"

    @property
    def label(self) -> str:
        """Capitalized label for display."""
        return self.value.capitalize()


ALL_NOTES = "All"

STARTING_NOTES = [note.value for note in StartingNote]
SCROLL_SPEEDS = [speed.value for speed in ScrollSpeed]

# Seconds before expiry at which a session is treated as expired
SESSION_EXPIRY_LEEWAY_SECONDS = 30.0


@dataclass(frozen=True)
class Song:
    """A song row from the ``songs`` table.

    Instances are immutable snapshots; edits produce new instances.

    Attributes:
        id: Unique song ID
        user_id: ID of the user who added the song
        title: Song title
        lyrics: Full lyrics text
        starting_note: Note to start singing on
        scroll_speed: Persisted scroll speed class
        created_at: ISO timestamp when created (server-assigned)
        updated_at: ISO timestamp when last updated (server-assigned)
    """

    id: str
    title: str
    lyrics: str
    starting_note: StartingNote = StartingNote.DO
    scroll_speed: ScrollSpeed = ScrollSpeed.MEDIUM
    user_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Song":
        """Create a Song from a JSON row.

        Args:
            row: Row dictionary as returned by the store

        Returns:
            Song instance
        """
        return cls(
            id=str(row["id"]),
            user_id=row.get("user_id"),
            title=row.get("title") or "",
            lyrics=row.get("lyrics") or "",
            starting_note=StartingNote(row.get("starting_note") or StartingNote.DO.value),
            scroll_speed=ScrollSpeed(row.get("scroll_speed") or ScrollSpeed.MEDIUM.value),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert Song to dictionary.

        Returns:
            Dictionary representation of the song
        """
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "lyrics": self.lyrics,
            "starting_note": self.starting_note.value,
            "scroll_speed": self.scroll_speed.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @property
    def lyrics_preview(self) -> str:
        """First lines of the lyrics collapsed onto one line."""
        lines = [line.strip() for line in self.lyrics.splitlines() if line.strip()]
        preview = " / ".join(lines[:3])
        if len(preview) > 60:
            preview = preview[:57] + "..."
        return preview


@dataclass
class SongFormData:
    """Editable song fields for the add and edit forms.

    Attributes:
        title: Song title
        lyrics: Lyrics text
        starting_note: Note to start on (defaults to Do)
        scroll_speed: Scroll speed class (defaults to medium)
    """

    title: str = ""
    lyrics: str = ""
    starting_note: str = StartingNote.DO.value
    scroll_speed: str = ScrollSpeed.MEDIUM.value

    @classmethod
    def from_song(cls, song: Song) -> "SongFormData":
        """Build form data from an existing song."""
        return cls(
            title=song.title,
            lyrics=song.lyrics,
            starting_note=song.starting_note.value,
            scroll_speed=song.scroll_speed.value,
        )

    def validate(self) -> None:
        """Check required fields and enumerated values.

        Raises:
            ValidationError: If a field is empty or out of range
        """
        if not self.title.strip():
            raise ValidationError("Title is required", field="title")
        if not self.lyrics.strip():
            raise ValidationError("Lyrics are required", field="lyrics")
        if self.starting_note not in STARTING_NOTES:
            raise ValidationError(
                f"Unknown starting note: {self.starting_note}", field="starting_note"
            )
        if self.scroll_speed not in SCROLL_SPEEDS:
            raise ValidationError(
                f"Unknown scroll speed: {self.scroll_speed}", field="scroll_speed"
            )

    def to_row(self) -> dict[str, Any]:
        """Convert to the column payload sent to the store."""
        return {
            "title": self.title,
            "lyrics": self.lyrics,
            "starting_note": self.starting_note,
            "scroll_speed": self.scroll_speed,
        }


@dataclass
class Session:
    """Authenticated session returned by the auth service.

    Attributes:
        access_token: Bearer token for API calls
        refresh_token: Token used to obtain a new access token
        user_id: Authenticated user's ID
        email: Authenticated user's email
        expires_at: Expiry as epoch seconds
    """

    access_token: str
    refresh_token: str
    user_id: str
    email: Optional[str] = None
    expires_at: Optional[float] = None

    @classmethod
    def from_auth_response(cls, data: dict[str, Any]) -> "Session":
        """Create a Session from a token response.

        Args:
            data: Token endpoint JSON body

        Returns:
            Session instance
        """
        user = data.get("user") or {}
        expires_at = data.get("expires_at")
        if expires_at is None and data.get("expires_in") is not None:
            expires_at = time.time() + float(data["expires_in"])

        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token", ""),
            user_id=user.get("id", ""),
            email=user.get("email"),
            expires_at=expires_at,
        )

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Check whether the access token has expired.

        Args:
            now: Current epoch seconds (defaults to time.time())

        Returns:
            True if expired or about to expire
        """
        if self.expires_at is None:
            return False
        if now is None:
            now = time.time()
        return now >= self.expires_at - SESSION_EXPIRY_LEEWAY_SECONDS

    def to_dict(self) -> dict[str, Any]:
        """Convert Session to dictionary for persistence."""
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "user_id": self.user_id,
            "email": self.email,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Session":
        """Create a Session from a persisted dictionary."""
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token", ""),
            user_id=data.get("user_id", ""),
            email=data.get("email"),
            expires_at=data.get("expires_at"),
        )

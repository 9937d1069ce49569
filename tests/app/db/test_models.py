"""Tests for songbook data models."""

import pytest

from family_songbook.app.db.models import (
    SCROLL_SPEEDS,
    STARTING_NOTES,
    ScrollSpeed,
    Session,
    Song,
    SongFormData,
    StartingNote,
)
from family_songbook.app.errors import ValidationError


class TestSong:
    """Tests for Song model."""

    def test_from_row(self, sample_song_row):
        """Creates a song from a JSON row."""
        song = Song.from_row(sample_song_row)

        assert song.id == sample_song_row["id"]
        assert song.user_id == "user-1"
        assert song.title == "Amazing Grace"
        assert song.starting_note == StartingNote.SOL
        assert song.scroll_speed == ScrollSpeed.SLOW
        assert song.created_at == "2024-01-01T12:00:00+00:00"

    def test_from_row_defaults_missing_enums(self):
        """Missing note and speed fall back to Do and medium."""
        song = Song.from_row({"id": 7, "title": "T", "lyrics": "L"})

        assert song.id == "7"
        assert song.starting_note == StartingNote.DO
        assert song.scroll_speed == ScrollSpeed.MEDIUM

    def test_from_row_rejects_unknown_note(self, sample_song_row):
        """Unknown enum values are not silently accepted."""
        sample_song_row["starting_note"] = "H"

        with pytest.raises(ValueError):
            Song.from_row(sample_song_row)

    def test_to_dict_uses_enum_values(self, sample_song_row):
        """Serializes enums as their stored strings."""
        data = Song.from_row(sample_song_row).to_dict()

        assert data["starting_note"] == "Sol"
        assert data["scroll_speed"] == "slow"
        assert data["title"] == "Amazing Grace"

    def test_song_is_frozen(self, sample_song):
        """Snapshots cannot be mutated."""
        with pytest.raises(AttributeError):
            sample_song.title = "Changed"

    def test_lyrics_preview_joins_first_lines(self, sample_song):
        """Preview joins the first three non-empty lines."""
        assert sample_song.lyrics_preview == "Frère Jacques / Dormez-vous? / Sonnez les matines"

    def test_lyrics_preview_truncates(self):
        """Long previews are cut with an ellipsis."""
        song = Song(id="1", title="T", lyrics="x" * 100)

        assert len(song.lyrics_preview) == 60
        assert song.lyrics_preview.endswith("...")


class TestEnums:
    """Tests for the enumerated song fields."""

    def test_starting_notes_in_order(self):
        assert STARTING_NOTES == ["Do", "Ré", "Mi", "Fa", "Sol", "La", "Si"]

    def test_scroll_speeds(self):
        assert SCROLL_SPEEDS == ["slow", "medium", "fast"]

    def test_scroll_speed_label(self):
        assert ScrollSpeed.FAST.label == "Fast"


class TestSongFormData:
    """Tests for SongFormData validation."""

    def test_defaults(self):
        """New forms start on Do at medium speed."""
        form = SongFormData()

        assert form.starting_note == "Do"
        assert form.scroll_speed == "medium"

    def test_from_song(self, sample_song):
        form = SongFormData.from_song(sample_song)

        assert form.title == sample_song.title
        assert form.lyrics == sample_song.lyrics
        assert form.starting_note == "Do"
        assert form.scroll_speed == "medium"

    def test_validate_accepts_complete_form(self):
        SongFormData(title="Song", lyrics="La la").validate()

    def test_validate_requires_title(self):
        """Whitespace-only title is rejected."""
        with pytest.raises(ValidationError, match="Title is required") as exc_info:
            SongFormData(title="   ", lyrics="La la").validate()

        assert exc_info.value.field == "title"

    def test_validate_requires_lyrics(self):
        with pytest.raises(ValidationError, match="Lyrics are required"):
            SongFormData(title="Song", lyrics="\n\n").validate()

    def test_validate_rejects_unknown_note(self):
        with pytest.raises(ValidationError, match="Unknown starting note"):
            SongFormData(title="Song", lyrics="La", starting_note="Ut").validate()

    def test_validate_rejects_unknown_speed(self):
        with pytest.raises(ValidationError, match="Unknown scroll speed"):
            SongFormData(title="Song", lyrics="La", scroll_speed="warp").validate()

    def test_to_row(self):
        """Row payload holds only the editable columns."""
        row = SongFormData(title="Song", lyrics="La", starting_note="Mi", scroll_speed="fast").to_row()

        assert row == {
            "title": "Song",
            "lyrics": "La",
            "starting_note": "Mi",
            "scroll_speed": "fast",
        }


class TestSession:
    """Tests for Session model."""

    def test_from_auth_response(self, sample_auth_response):
        session = Session.from_auth_response(sample_auth_response)

        assert session.access_token == "access-1"
        assert session.refresh_token == "refresh-1"
        assert session.user_id == "user-1"
        assert session.email == "mum@example.com"
        assert session.expires_at == 1_700_003_600

    def test_from_auth_response_computes_expiry(self, sample_auth_response, monkeypatch):
        """expires_in is used when expires_at is absent."""
        del sample_auth_response["expires_at"]
        monkeypatch.setattr("family_songbook.app.db.models.time.time", lambda: 1000.0)

        session = Session.from_auth_response(sample_auth_response)

        assert session.expires_at == 4600.0

    def test_is_expired_with_leeway(self):
        """Sessions count as expired shortly before their expiry."""
        session = Session("a", "r", "u", expires_at=1000.0)

        assert not session.is_expired(now=900.0)
        assert session.is_expired(now=980.0)
        assert session.is_expired(now=1200.0)

    def test_without_expiry_never_expires(self):
        assert not Session("a", "r", "u").is_expired(now=1e12)

    def test_dict_round_trip(self, sample_session):
        assert Session.from_dict(sample_session.to_dict()) == sample_session

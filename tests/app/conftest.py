"""Shared fixtures for app tests."""

from unittest.mock import MagicMock

import pytest

from family_songbook.app.config import AppConfig
from family_songbook.app.db.models import ScrollSpeed, Session, Song, StartingNote


@pytest.fixture
def supabase_env(monkeypatch):
    """Set the hosted store environment variables."""
    monkeypatch.setenv("SONGBOOK_SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("SONGBOOK_SUPABASE_ANON_KEY", "test-anon-key")


@pytest.fixture
def tmp_cache_dir(tmp_path):
    """Temporary cache directory."""
    cache = tmp_path / "cache"
    cache.mkdir()
    return cache


@pytest.fixture
def app_config(tmp_path):
    """AppConfig with all paths under a temporary directory."""
    return AppConfig(
        supabase_url="https://project.supabase.co",
        cache_dir=tmp_path / "cache",
        session_path=tmp_path / "session.json",
    )


@pytest.fixture
def sample_song_row():
    """Sample JSON row for Song.from_row()."""
    return {
        "id": "6f1c2a9e-0000-4000-8000-000000000001",
        "user_id": "user-1",
        "title": "Amazing Grace",
        "lyrics": "Amazing grace\nHow sweet the sound\nThat saved a wretch like me\nI once was lost",
        "starting_note": "Sol",
        "scroll_speed": "slow",
        "created_at": "2024-01-01T12:00:00+00:00",
        "updated_at": "2024-01-01T12:00:00+00:00",
    }


@pytest.fixture
def sample_song():
    """A stored song with a medium scroll speed."""
    return Song(
        id="song-1",
        user_id="user-1",
        title="Frère Jacques",
        lyrics="Frère Jacques\nDormez-vous?\nSonnez les matines\nDing dang dong",
        starting_note=StartingNote.DO,
        scroll_speed=ScrollSpeed.MEDIUM,
    )


@pytest.fixture
def sample_auth_response():
    """Sample token endpoint response body."""
    return {
        "access_token": "access-1",
        "refresh_token": "refresh-1",
        "token_type": "bearer",
        "expires_in": 3600,
        "expires_at": 1_700_003_600,
        "user": {"id": "user-1", "email": "mum@example.com"},
    }


@pytest.fixture
def sample_session():
    """A session that expires far in the future."""
    return Session(
        access_token="access-1",
        refresh_token="refresh-1",
        user_id="user-1",
        email="mum@example.com",
        expires_at=4_000_000_000,
    )


@pytest.fixture
def mock_song_client():
    """SongClient double."""
    return MagicMock()

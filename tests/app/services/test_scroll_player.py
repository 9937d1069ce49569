"""Tests for ScrollPlayer.

Drives the animation with a fake frame scheduler and clock so frame
timing is deterministic.
"""

import asyncio
import threading
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from family_songbook.app.db.models import ScrollSpeed, StartingNote
from family_songbook.app.errors import ConfirmationAborted, StoreError
from family_songbook.app.services.scroll_player import (
    PlayerMode,
    ScrollPlayer,
    percent_to_ticks,
    speed_class_to_percent,
    ticks_to_percent,
    ticks_to_speed_class,
)


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeScheduler:
    """Collects frame requests until the test runs them."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.pending = []

    def request_frame(self, callback):
        self.pending.append(callback)

    def run_frame(self) -> int:
        """Run every pending callback once at the current clock time."""
        callbacks, self.pending = self.pending, []
        for callback in callbacks:
            callback(self.clock())
        return len(callbacks)


class FakeViewport:
    """Lyrics view 1000 units tall shown through a 200 unit window."""

    def __init__(self, content_height: float = 1000, viewport_height: float = 200):
        self.content_height = content_height
        self.viewport_height = viewport_height
        self.is_attached = True
        self.offsets = []

    def scroll_to(self, offset: float) -> None:
        self.offsets.append(offset)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return FakeScheduler(clock)


@pytest.fixture
def viewport():
    return FakeViewport()


@pytest.fixture
def callbacks():
    return {"saved": MagicMock(), "deleted": MagicMock(), "close": MagicMock()}


@pytest.fixture
def make_player(sample_song, mock_song_client, scheduler, viewport, clock, callbacks):
    """Factory for players on the sample song."""

    def _make(song=None, **kwargs):
        return ScrollPlayer(
            song or sample_song,
            mock_song_client,
            scheduler=scheduler,
            viewport=kwargs.pop("viewport", viewport),
            clock=clock,
            on_saved=callbacks["saved"],
            on_deleted=callbacks["deleted"],
            on_close=callbacks["close"],
            **kwargs,
        )

    return _make


@pytest.fixture
def player(make_player):
    return make_player()


async def _wait_for(event: threading.Event) -> None:
    """Yield to the loop until a worker thread signals."""
    for _ in range(500):
        if event.is_set():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("worker thread never started")


class TestSpeedMapping:
    """Tests for the percent / ticks / speed class conversions."""

    @pytest.mark.parametrize(
        "speed,percent",
        [(ScrollSpeed.SLOW, 10), (ScrollSpeed.MEDIUM, 14), (ScrollSpeed.FAST, 17)],
    )
    def test_speed_class_to_percent(self, speed, percent):
        assert speed_class_to_percent(speed) == percent

    def test_ticks_to_percent_rounds(self):
        assert ticks_to_percent(50) == 10
        assert ticks_to_percent(30) == 14
        assert ticks_to_percent(15) == 17

    def test_percent_to_ticks(self):
        assert percent_to_ticks(10) == 50
        assert percent_to_ticks(14) == 30
        assert percent_to_ticks(0) == 100

    def test_percent_to_ticks_has_floor(self):
        """High percents never reach zero or negative ticks."""
        assert percent_to_ticks(19) == 5
        assert percent_to_ticks(20) == 5
        assert percent_to_ticks(100) == 5

    @pytest.mark.parametrize(
        "ticks,speed",
        [
            (5, ScrollSpeed.FAST),
            (18, ScrollSpeed.FAST),
            (20, ScrollSpeed.FAST),
            (21, ScrollSpeed.MEDIUM),
            (35, ScrollSpeed.MEDIUM),
            (36, ScrollSpeed.SLOW),
            (100, ScrollSpeed.SLOW),
        ],
    )
    def test_ticks_to_speed_class(self, ticks, speed):
        assert ticks_to_speed_class(ticks) == speed

    @pytest.mark.parametrize("speed", list(ScrollSpeed))
    def test_speed_class_survives_quantization(self, speed):
        """Opening and saving without adjusting keeps the class."""
        percent = speed_class_to_percent(speed)
        assert ticks_to_speed_class(percent_to_ticks(percent)) == speed


class TestOpenPlayer:
    """Tests for the initial player state."""

    def test_starts_viewing_and_still(self, player, sample_song):
        assert player.mode == PlayerMode.VIEWING
        assert not player.is_scrolling
        assert player.working_copy == sample_song
        assert player.current_run is None

    def test_initial_speed_from_song(self, make_player, sample_song):
        player = make_player(replace(sample_song, scroll_speed=ScrollSpeed.SLOW))

        assert player.speed_percent == 10
        assert player.ticks_per_unit == 50


class TestToggleScroll:
    """Tests for starting and stopping the scroll animation."""

    def test_start_requests_frame(self, player, scheduler):
        assert player.toggle_scroll()

        assert player.is_scrolling
        assert len(scheduler.pending) == 1
        run = player.current_run
        assert run.scroll_range == 800
        assert run.duration_ms == 800 * 30

    def test_offset_follows_elapsed_time(self, player, scheduler, viewport, clock):
        player.toggle_scroll()

        clock.advance(12000)
        scheduler.run_frame()

        assert viewport.offsets == [400]
        assert len(scheduler.pending) == 1

    def test_pass_finishes_at_end(self, player, scheduler, viewport, clock):
        """The chain stops at the bottom but scrolling stays on."""
        player.toggle_scroll()
        run = player.current_run

        clock.advance(30000)
        scheduler.run_frame()

        assert viewport.offsets == [800]
        assert scheduler.pending == []
        assert run.finished
        assert player.is_scrolling

    def test_auto_stop_at_end(self, make_player, scheduler, clock):
        player = make_player(auto_stop_at_end=True)
        player.toggle_scroll()

        clock.advance(30000)
        scheduler.run_frame()

        assert not player.is_scrolling
        assert player.current_run is None

    def test_stop_ends_chain(self, player, scheduler, viewport, clock):
        player.toggle_scroll()
        clock.advance(500)
        assert player.toggle_scroll()

        scheduler.run_frame()

        assert not player.is_scrolling
        assert viewport.offsets == []
        assert scheduler.pending == []

    def test_repeated_toggle_is_debounced(self, player, clock):
        """A second toggle inside the window is ignored."""
        assert player.toggle_scroll()
        clock.advance(100)

        assert not player.toggle_scroll()
        assert player.is_scrolling

    def test_debounce_window_configurable(self, make_player, clock):
        player = make_player(toggle_debounce_ms=0)
        player.toggle_scroll()

        assert player.toggle_scroll()
        assert not player.is_scrolling

    def test_restart_scrolls_from_top(self, player, scheduler, viewport, clock):
        player.toggle_scroll()
        clock.advance(12000)
        scheduler.run_frame()
        player.toggle_scroll()

        clock.advance(1000)
        player.toggle_scroll()
        scheduler.run_frame()

        assert viewport.offsets == [400, 0]

    def test_old_run_frames_do_not_scroll(self, player, scheduler, viewport, clock):
        """Only the newest run drives the view after a restart."""
        player.toggle_scroll()
        stale = scheduler.pending[:]
        clock.advance(300)
        player.toggle_scroll()
        clock.advance(300)
        player.toggle_scroll()

        for callback in stale:
            callback(clock())

        assert viewport.offsets == []

    def test_without_viewport(self, make_player, scheduler):
        """Scrolling flips on but nothing animates."""
        player = make_player(viewport=None)

        assert player.toggle_scroll()

        assert player.is_scrolling
        assert scheduler.pending == []

    def test_lyrics_fit_viewport(self, make_player, scheduler):
        player = make_player(viewport=FakeViewport(content_height=150, viewport_height=200))

        player.toggle_scroll()

        assert player.is_scrolling
        assert scheduler.pending == []

    def test_detached_viewport_stops_chain(self, player, scheduler, viewport, clock):
        player.toggle_scroll()
        viewport.is_attached = False

        clock.advance(100)
        scheduler.run_frame()

        assert viewport.offsets == []
        assert scheduler.pending == []


class TestAdjustSpeed:
    """Tests for speed changes."""

    def test_adjust(self, player):
        assert player.adjust_speed(5) == 19
        assert player.adjust_speed(-10) == 9

    def test_clamped(self, player):
        assert player.adjust_speed(500) == 100
        assert player.adjust_speed(-500) == 0
        assert player.ticks_per_unit == 100

    def test_running_pass_keeps_timing(self, make_player, scheduler, viewport, clock):
        """Without live changes the position is not reset."""
        player = make_player(live_speed_changes=False)
        player.toggle_scroll()
        clock.advance(12000)
        scheduler.run_frame()

        player.adjust_speed(-5)
        scheduler.run_frame()

        assert player.current_run.duration_ms == 800 * 30
        assert viewport.offsets == [400, 400]

    def test_live_speed_change_keeps_offset(self, player, scheduler, viewport, clock):
        player.toggle_scroll()
        clock.advance(12000)
        scheduler.run_frame()

        player.adjust_speed(5)
        scheduler.run_frame()

        assert player.current_run.duration_ms == 800 * 5
        assert viewport.offsets == [400, 400]

        clock.advance(1000)
        scheduler.run_frame()
        assert viewport.offsets[-1] == 600


class TestEditing:
    """Tests for the edit sub-mode."""

    def test_enter_edit_stops_scrolling(self, player, scheduler, viewport, clock):
        player.toggle_scroll()

        assert player.enter_edit()

        assert player.mode == PlayerMode.EDITING
        assert not player.is_scrolling
        clock.advance(1000)
        scheduler.run_frame()
        assert viewport.offsets == []

    def test_toggle_ignored_while_editing(self, player):
        player.enter_edit()

        assert not player.toggle_scroll()
        assert not player.is_scrolling

    def test_draft_starts_from_song(self, player, sample_song):
        player.enter_edit()

        draft = player.state.draft
        assert draft.title == sample_song.title
        assert draft.lyrics == sample_song.lyrics
        assert draft.starting_note == "Do"

    def test_update_draft_changes_working_copy(self, player):
        player.enter_edit()

        assert player.update_draft(title="New", starting_note="La")

        assert player.working_copy.title == "New"
        assert player.working_copy.starting_note == StartingNote.LA

    def test_update_draft_outside_edit(self, player, sample_song):
        assert not player.update_draft(title="New")
        assert player.working_copy == sample_song

    def test_cancel_restores_snapshot(self, player, sample_song):
        player.enter_edit()
        player.update_draft(title="New", lyrics="Other")

        assert player.cancel_edit()

        assert player.mode == PlayerMode.VIEWING
        assert player.working_copy == sample_song

    def test_cancel_keeps_speed(self, player):
        player.enter_edit()
        player.adjust_speed(3)

        player.cancel_edit()

        assert player.speed_percent == 17


class TestSaveEdit:
    """Tests for saving edits."""

    async def test_save_success(self, player, mock_song_client, callbacks, sample_song):
        saved = replace(sample_song, title="New", scroll_speed=ScrollSpeed.FAST)
        mock_song_client.update_song.return_value = saved
        player.enter_edit()
        player.update_draft(title="New")
        player.adjust_speed(3)

        assert await player.save_edit()

        song_id, form = mock_song_client.update_song.call_args.args
        assert song_id == "song-1"
        assert form.title == "New"
        assert form.scroll_speed == "fast"
        assert player.mode == PlayerMode.VIEWING
        assert player.working_copy == saved
        callbacks["saved"].assert_called_once_with(saved)

    async def test_unchanged_speed_keeps_class(self, player, mock_song_client, sample_song):
        mock_song_client.update_song.return_value = sample_song
        player.enter_edit()

        await player.save_edit()

        _, form = mock_song_client.update_song.call_args.args
        assert form.scroll_speed == "medium"

    async def test_validation_error(self, player, mock_song_client, callbacks):
        player.enter_edit()
        player.update_draft(title="  ")

        assert not await player.save_edit()

        assert player.error_message == "Title is required"
        assert player.is_editing
        mock_song_client.update_song.assert_not_called()
        callbacks["saved"].assert_not_called()

    async def test_store_error_stays_editing(self, player, mock_song_client, callbacks):
        mock_song_client.update_song.side_effect = StoreError("permission denied", status_code=403)
        player.enter_edit()
        player.update_draft(title="New")

        assert not await player.save_edit()

        assert player.error_message == "Could not save changes"
        assert player.is_editing
        assert player.working_copy.title == "New"
        assert not player.is_busy
        callbacks["saved"].assert_not_called()

    async def test_save_outside_edit(self, player, mock_song_client):
        assert not await player.save_edit()
        mock_song_client.update_song.assert_not_called()

    async def test_second_save_rejected_while_in_flight(self, player, mock_song_client, sample_song):
        started, release = threading.Event(), threading.Event()

        def slow_update(song_id, form):
            started.set()
            release.wait(timeout=5)
            return sample_song

        mock_song_client.update_song.side_effect = slow_update
        player.enter_edit()

        first = asyncio.create_task(player.save_edit())
        await _wait_for(started)

        assert player.is_busy
        assert not await player.save_edit()
        assert not player.cancel_edit()

        release.set()
        assert await first
        assert mock_song_client.update_song.call_count == 1

    async def test_draft_locked_while_saving(self, player, mock_song_client, sample_song):
        started, release = threading.Event(), threading.Event()

        def slow_update(song_id, form):
            started.set()
            release.wait(timeout=5)
            return replace(sample_song, title=form.title)

        mock_song_client.update_song.side_effect = slow_update
        player.enter_edit()
        player.update_draft(title="Brother John")

        task = asyncio.create_task(player.save_edit())
        await _wait_for(started)

        assert not player.update_draft(title="Typed during save")
        assert player.working_copy.title == "Brother John"

        release.set()
        assert await task
        assert player.working_copy.title == "Brother John"

    async def test_result_after_close_is_discarded(self, player, mock_song_client, callbacks, sample_song):
        started, release = threading.Event(), threading.Event()

        def slow_update(song_id, form):
            started.set()
            release.wait(timeout=5)
            return replace(sample_song, title="New")

        mock_song_client.update_song.side_effect = slow_update
        player.enter_edit()

        task = asyncio.create_task(player.save_edit())
        await _wait_for(started)
        player.close()
        release.set()

        assert not await task
        callbacks["saved"].assert_not_called()
        assert player.working_copy == sample_song


class TestDeleteSong:
    """Tests for deleting the song."""

    async def test_declined(self, player, mock_song_client, callbacks):
        async def confirm():
            return False

        assert not await player.delete_song(confirm)

        mock_song_client.delete_song.assert_not_called()
        assert not player.is_closed

    async def test_aborted(self, player, mock_song_client):
        async def confirm():
            raise ConfirmationAborted()

        assert not await player.delete_song(confirm)
        mock_song_client.delete_song.assert_not_called()

    async def test_confirmed(self, player, mock_song_client, callbacks, sample_song):
        mock_song_client.delete_song.return_value = True

        async def confirm():
            return True

        assert await player.delete_song(confirm)

        mock_song_client.delete_song.assert_called_once_with("song-1")
        callbacks["deleted"].assert_called_once_with(sample_song)
        callbacks["close"].assert_called_once()
        assert player.is_closed

    async def test_confirmed_delete_refreshes_catalog_once(
        self, mock_song_client, scheduler, viewport, clock, sample_song
    ):
        from family_songbook.app.services.catalog import SongCatalog

        mock_song_client.delete_song.return_value = True
        mock_song_client.list_songs.return_value = []
        catalog = SongCatalog(mock_song_client)
        player = ScrollPlayer(
            sample_song,
            mock_song_client,
            scheduler=scheduler,
            viewport=viewport,
            clock=clock,
            on_deleted=catalog.on_player_deleted,
        )

        async def confirm():
            return True

        await player.delete_song(confirm)
        player.close()

        mock_song_client.list_songs.assert_called_once()

    async def test_delete_stops_scrolling(self, player, mock_song_client, scheduler, viewport, clock):
        mock_song_client.delete_song.return_value = True
        player.toggle_scroll()

        async def confirm():
            return True

        await player.delete_song(confirm)
        clock.advance(1000)
        scheduler.run_frame()

        assert viewport.offsets == []

    async def test_store_error_keeps_player_open(self, player, mock_song_client, callbacks):
        mock_song_client.delete_song.side_effect = StoreError("offline")

        async def confirm():
            return True

        assert not await player.delete_song(confirm)

        assert player.error_message == "Could not delete song"
        assert not player.is_closed
        callbacks["deleted"].assert_not_called()

    async def test_edit_blocked_while_delete_in_flight(self, player, mock_song_client, callbacks):
        started, release = threading.Event(), threading.Event()

        def slow_delete(song_id):
            started.set()
            release.wait(timeout=5)
            raise StoreError("offline")

        mock_song_client.delete_song.side_effect = slow_delete

        async def confirm():
            return True

        task = asyncio.create_task(player.delete_song(confirm))
        await _wait_for(started)

        assert not player.enter_edit()

        release.set()
        assert not await task
        assert not player.is_editing
        assert not player.is_closed
        assert player.error_message == "Could not delete song"
        callbacks["deleted"].assert_not_called()

    async def test_not_while_editing(self, player, mock_song_client):
        player.enter_edit()
        confirm = MagicMock()

        assert not await player.delete_song(confirm)
        confirm.assert_not_called()


class TestClose:
    """Tests for closing the player."""

    def test_close_stops_animation(self, player, scheduler, viewport, clock):
        player.toggle_scroll()

        player.close()
        clock.advance(1000)
        scheduler.run_frame()

        assert player.is_closed
        assert not player.is_scrolling
        assert viewport.offsets == []
        assert scheduler.pending == []

    def test_close_is_idempotent(self, player, callbacks):
        player.close()
        player.close()

        callbacks["close"].assert_called_once()

    def test_closed_player_ignores_input(self, player):
        player.close()

        assert not player.toggle_scroll()
        assert not player.enter_edit()

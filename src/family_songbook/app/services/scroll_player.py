"""Auto-scrolling lyrics player for the songbook.

Owns playback state for one song: whether the lyrics are scrolling, the
scroll speed, and an edit sub-mode for the song's fields. The scroll
animation is a self-rescheduling chain of frame callbacks; each step
checks that its run is still the active one before touching the view, so
stopping or closing the player ends the chain on its next frame.

Speed is held as a percent in [0, 100] for display and converted to
ticks-per-unit (milliseconds of animation per unit of scroll range) for
the animation. The persisted speed class maps to ticks through a fixed
table and is re-quantized from ticks on save.
"""

import asyncio
import time
from dataclasses import dataclass, replace
from enum import Enum, auto
from functools import partial
from typing import Awaitable, Callable, Optional, Protocol, Union

from family_songbook.app.db.models import (
    STARTING_NOTES,
    ScrollSpeed,
    Song,
    SongFormData,
    StartingNote,
)
from family_songbook.app.db.song_client import SongClient
from family_songbook.app.errors import ConfirmationAborted, StoreError, ValidationError
from family_songbook.app.logging_config import get_logger

logger = get_logger(__name__)

SPEED_CLASS_TICKS = {
    ScrollSpeed.SLOW: 50,
    ScrollSpeed.MEDIUM: 30,
    ScrollSpeed.FAST: 15,
}

# Fastest rate; keeps the animation duration positive at high percents
MIN_TICKS_PER_UNIT = 5

FAST_MAX_TICKS = 20
MEDIUM_MAX_TICKS = 35

MIN_SPEED_PERCENT = 0
MAX_SPEED_PERCENT = 100


def clamp_percent(percent: int) -> int:
    """Clamp a speed percent to [0, 100]."""
    return max(MIN_SPEED_PERCENT, min(MAX_SPEED_PERCENT, percent))


def ticks_to_percent(ticks: int) -> int:
    """Convert ticks-per-unit to the displayed speed percent."""
    return clamp_percent(round((100 - ticks) / 5))


def percent_to_ticks(percent: int) -> int:
    """Convert a speed percent to ticks-per-unit."""
    return max(100 - clamp_percent(percent) * 5, MIN_TICKS_PER_UNIT)


def speed_class_to_percent(speed: ScrollSpeed) -> int:
    """Initial speed percent for a persisted speed class."""
    return ticks_to_percent(SPEED_CLASS_TICKS[ScrollSpeed(speed)])


def ticks_to_speed_class(ticks: int) -> ScrollSpeed:
    """Quantize ticks-per-unit back to a persisted speed class.

    Args:
        ticks: Ticks-per-unit

    Returns:
        FAST for <= 20, MEDIUM for 21-35, SLOW above 35
    """
    if ticks <= FAST_MAX_TICKS:
        return ScrollSpeed.FAST
    if ticks <= MEDIUM_MAX_TICKS:
        return ScrollSpeed.MEDIUM
    return ScrollSpeed.SLOW


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000.0


class FrameScheduler(Protocol):
    """Runs a callback on the next display refresh."""

    def request_frame(self, callback: Callable[[float], None]) -> None:
        """Schedule ``callback(now_ms)`` for the next frame."""
        ...


class ScrollViewport(Protocol):
    """The scrollable view holding the lyrics."""

    @property
    def content_height(self) -> float: ...

    @property
    def viewport_height(self) -> float: ...

    @property
    def is_attached(self) -> bool: ...

    def scroll_to(self, offset: float) -> None: ...


class PlayerMode(Enum):
    """Player mode."""

    VIEWING = auto()
    EDITING = auto()


@dataclass(frozen=True)
class ViewingState:
    """Lyrics are displayed (and possibly scrolling)."""

    song: Song

    @property
    def mode(self) -> PlayerMode:
        return PlayerMode.VIEWING


@dataclass
class EditingState:
    """The song's fields are being edited.

    Attributes:
        snapshot: Working copy at the time editing started
        draft: Current form values
    """

    snapshot: Song
    draft: SongFormData

    @property
    def mode(self) -> PlayerMode:
        return PlayerMode.EDITING


PlayerState = Union[ViewingState, EditingState]


@dataclass
class ScrollRun:
    """One pass of the scroll animation.

    Attributes:
        scroll_range: Distance to scroll (content minus viewport height)
        duration_ms: Time the full pass takes
        start_time: Clock time the pass (re)started at
        active: Cleared when the pass is stopped or completes
        finished: Set when the pass reached the end
    """

    scroll_range: float
    duration_ms: float
    start_time: float
    active: bool = True
    finished: bool = False

    def progress_at(self, now: float) -> float:
        """Fraction of the pass completed at a clock time."""
        if self.duration_ms <= 0:
            return 1.0
        elapsed = max(now - self.start_time, 0.0)
        return min(elapsed / self.duration_ms, 1.0)


class ScrollPlayer:
    """Playback and edit state for one song's lyrics.

    Attributes:
        song_client: Store client for saving and deleting the song
        scheduler: Frame scheduler driving the animation
        viewport: Scrollable lyrics view, once attached
        error_message: Message from the last failed save/delete, if any
    """

    def __init__(
        self,
        song: Song,
        song_client: SongClient,
        scheduler: FrameScheduler,
        viewport: Optional[ScrollViewport] = None,
        clock: Callable[[], float] = monotonic_ms,
        on_saved: Optional[Callable[[Song], None]] = None,
        on_deleted: Optional[Callable[[Song], None]] = None,
        on_close: Optional[Callable[[], None]] = None,
        toggle_debounce_ms: float = 250.0,
        live_speed_changes: bool = True,
        auto_stop_at_end: bool = False,
    ):
        """Open the player on a song.

        Args:
            song: Snapshot of the song to play
            song_client: Store client for saving and deleting the song
            scheduler: Frame scheduler driving the animation
            viewport: Scrollable lyrics view (may be attached later)
            clock: Millisecond clock shared with the scheduler
            on_saved: Called with the stored song after a successful save
            on_deleted: Called with the song after a successful delete
            on_close: Called once when the player closes
            toggle_debounce_ms: Window in which a repeated toggle is ignored
            live_speed_changes: Re-time a running pass when speed changes
            auto_stop_at_end: Stop scrolling when a pass completes
        """
        self.song_client = song_client
        self.scheduler = scheduler
        self.viewport = viewport
        self.error_message: Optional[str] = None

        self._clock = clock
        self._on_saved = on_saved
        self._on_deleted = on_deleted
        self._on_close = on_close
        self._toggle_debounce_ms = toggle_debounce_ms
        self._live_speed_changes = live_speed_changes
        self._auto_stop_at_end = auto_stop_at_end

        self._working_copy = song
        self._state: PlayerState = ViewingState(song)
        self._speed_percent = speed_class_to_percent(song.scroll_speed)
        self._is_scrolling = False
        self._run: Optional[ScrollRun] = None
        self._last_toggle_at: Optional[float] = None
        self._pending: Optional[str] = None
        self._closed = False

        logger.info(
            f"Player opened: {song.id} ({song.scroll_speed.value}, {self._speed_percent}%)"
        )

    # State

    @property
    def state(self) -> PlayerState:
        return self._state

    @property
    def mode(self) -> PlayerMode:
        return self._state.mode

    @property
    def is_editing(self) -> bool:
        return self.mode == PlayerMode.EDITING

    @property
    def is_scrolling(self) -> bool:
        return self._is_scrolling

    @property
    def speed_percent(self) -> int:
        return self._speed_percent

    @property
    def ticks_per_unit(self) -> int:
        return percent_to_ticks(self._speed_percent)

    @property
    def working_copy(self) -> Song:
        return self._working_copy

    @property
    def current_run(self) -> Optional[ScrollRun]:
        return self._run

    @property
    def is_busy(self) -> bool:
        """Whether a save or delete is in flight."""
        return self._pending is not None

    @property
    def is_closed(self) -> bool:
        return self._closed

    def attach_viewport(self, viewport: ScrollViewport) -> None:
        """Attach the lyrics view once it exists."""
        self.viewport = viewport

    # Scrolling

    def toggle_scroll(self) -> bool:
        """Start or stop scrolling.

        Ignored while editing, after close, and when repeated within the
        debounce window of the previous toggle.

        Returns:
            True if the scrolling state flipped
        """
        if self._closed or self.is_editing:
            logger.debug("Toggle ignored: player closed or editing")
            return False

        now = self._clock()
        if (
            self._last_toggle_at is not None
            and now - self._last_toggle_at < self._toggle_debounce_ms
        ):
            logger.debug("Toggle ignored: repeated within debounce window")
            return False
        self._last_toggle_at = now

        if self._is_scrolling:
            self._stop_scrolling()
        else:
            self._start_scrolling(now)
        return True

    def _start_scrolling(self, now: float) -> None:
        self._is_scrolling = True

        if self.viewport is None or not self.viewport.is_attached:
            logger.debug("Scrolling started without a viewport, nothing to animate")
            return

        scroll_range = self.viewport.content_height - self.viewport.viewport_height
        if scroll_range <= 0:
            logger.debug("Lyrics fit the viewport, nothing to scroll")
            return

        run = ScrollRun(
            scroll_range=scroll_range,
            duration_ms=scroll_range * self.ticks_per_unit,
            start_time=now,
        )
        self._run = run
        logger.debug(
            f"Scroll pass started: range={scroll_range}, duration={run.duration_ms:.0f}ms"
        )
        self.scheduler.request_frame(partial(self._step, run))

    def _stop_scrolling(self) -> None:
        self._is_scrolling = False
        if self._run is not None:
            self._run.active = False
            self._run = None

    def _step(self, run: ScrollRun, now: float) -> None:
        """Advance one animation frame."""
        if (
            not run.active
            or run is not self._run
            or self._closed
            or self.viewport is None
            or not self.viewport.is_attached
        ):
            run.active = False
            return

        progress = run.progress_at(now)
        self.viewport.scroll_to(run.scroll_range * progress)

        if progress < 1.0:
            self.scheduler.request_frame(partial(self._step, run))
            return

        run.active = False
        run.finished = True
        logger.debug("Scroll pass complete")
        if self._auto_stop_at_end:
            self._is_scrolling = False
            self._run = None

    def adjust_speed(self, delta_percent: int) -> int:
        """Change the scroll speed.

        The current scroll position is never reset. With live speed changes
        (the default) a running pass continues from its current offset at
        the new rate; otherwise it keeps its timing until the next start.

        Args:
            delta_percent: Percent to add (negative to slow down)

        Returns:
            New speed percent
        """
        new_percent = clamp_percent(self._speed_percent + delta_percent)
        if new_percent == self._speed_percent:
            return new_percent
        self._speed_percent = new_percent

        run = self._run
        if self._live_speed_changes and run is not None and run.active:
            now = self._clock()
            progress = run.progress_at(now)
            run.duration_ms = run.scroll_range * self.ticks_per_unit
            run.start_time = now - progress * run.duration_ms

        logger.debug(f"Speed set to {new_percent}% ({self.ticks_per_unit} ticks/unit)")
        return new_percent

    # Editing

    def enter_edit(self) -> bool:
        """Switch to the edit form, stopping any scroll in progress.

        Returns:
            True if editing started
        """
        if self._closed or self.is_editing or self.is_busy:
            return False

        if self._is_scrolling:
            self._stop_scrolling()

        self._state = EditingState(
            snapshot=self._working_copy,
            draft=SongFormData.from_song(self._working_copy),
        )
        self.error_message = None
        return True

    def update_draft(
        self,
        title: Optional[str] = None,
        lyrics: Optional[str] = None,
        starting_note: Optional[str] = None,
    ) -> bool:
        """Change fields of the edit form.

        Rejected while a save is in flight.

        Returns:
            True if the draft was updated
        """
        if self._closed or self.is_busy or not isinstance(self._state, EditingState):
            return False

        draft = self._state.draft
        if title is not None:
            draft.title = title
        if lyrics is not None:
            draft.lyrics = lyrics
        if starting_note is not None:
            draft.starting_note = starting_note

        note = self._state.snapshot.starting_note
        if draft.starting_note in STARTING_NOTES:
            note = StartingNote(draft.starting_note)
        self._working_copy = replace(
            self._state.snapshot, title=draft.title, lyrics=draft.lyrics, starting_note=note
        )
        return True

    def cancel_edit(self) -> bool:
        """Discard edits and return to viewing the pre-edit snapshot.

        Returns:
            True if editing was cancelled
        """
        if self._closed or self.is_busy or not isinstance(self._state, EditingState):
            return False

        self._working_copy = self._state.snapshot
        self._state = ViewingState(self._working_copy)
        self.error_message = None
        return True

    async def save_edit(self) -> bool:
        """Store the edited fields and return to viewing.

        The speed class is re-quantized from the current speed. On failure
        the player stays in the edit form with error_message set.

        Returns:
            True if the song was saved
        """
        if self._closed or not isinstance(self._state, EditingState):
            return False
        if self.is_busy:
            logger.warning(f"Save rejected: {self._pending} already in progress")
            return False

        editing = self._state
        form = replace(
            editing.draft, scroll_speed=ticks_to_speed_class(self.ticks_per_unit).value
        )
        try:
            form.validate()
        except ValidationError as e:
            self.error_message = str(e)
            return False

        song_id = editing.snapshot.id
        self._pending = "save"
        try:
            saved = await asyncio.to_thread(self.song_client.update_song, song_id, form)
        except StoreError as e:
            logger.error(f"Failed to save song {song_id}: {e}")
            if not self._closed:
                self.error_message = "Could not save changes"
            return False
        finally:
            self._pending = None

        if self._closed:
            logger.debug(f"Save of {song_id} finished after close, result discarded")
            return False

        self._working_copy = saved
        self._state = ViewingState(saved)
        self.error_message = None
        logger.info(f"Saved song {song_id} ({saved.scroll_speed.value})")
        if self._on_saved:
            self._on_saved(saved)
        return True

    # Deleting and closing

    async def delete_song(self, confirm: Callable[[], Awaitable[bool]]) -> bool:
        """Delete the song after the user confirms, then close the player.

        Args:
            confirm: Asks the user; returns False or raises
                ConfirmationAborted to decline

        Returns:
            True if the song was deleted
        """
        if self._closed or self.is_editing or self.is_busy:
            return False

        try:
            confirmed = await confirm()
        except ConfirmationAborted:
            confirmed = False
        if not confirmed:
            logger.info("Delete cancelled by user")
            return False

        if self._closed or self.is_editing or self.is_busy:
            return False

        song = self._working_copy
        self._pending = "delete"
        try:
            deleted = await asyncio.to_thread(self.song_client.delete_song, song.id)
        except StoreError as e:
            logger.error(f"Failed to delete song {song.id}: {e}")
            if not self._closed:
                self.error_message = "Could not delete song"
            return False
        finally:
            self._pending = None

        if not deleted:
            logger.warning(f"Song {song.id} was already gone")
        logger.info(f"Deleted song {song.id}")

        # The record is gone either way, so the catalog must hear about it
        if self._on_deleted:
            self._on_deleted(song)
        self.close()
        return True

    def close(self) -> None:
        """Stop any animation and release the player. Safe to call twice."""
        if self._closed:
            return
        self._stop_scrolling()
        self._closed = True
        logger.info(f"Player closed: {self._working_copy.id}")
        if self._on_close:
            self._on_close()

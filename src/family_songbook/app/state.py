"""Application state for the songbook.

Manages reactive state for the TUI with observable properties.
Provides centralized state management for screens.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Optional

from family_songbook.app.db.models import ALL_NOTES, Session, Song
from family_songbook.app.logging_config import get_logger

logger = get_logger(__name__)


class AppScreen(Enum):
    """Available screens in the app."""

    LOGIN = auto()
    DASHBOARD = auto()


@dataclass
class AppState:
    """Reactive application state.

    Attributes:
        current_screen: Currently active screen
        session: Signed-in session, if any
        selected_song: Song open in the player
        search_term: Current search text
        selected_note: Starting note filter ("All" for every note)
        is_loading: Whether a store request is in progress
        error_message: Current error message to display
    """

    # Navigation
    current_screen: AppScreen = AppScreen.LOGIN

    # Auth
    session: Optional[Session] = None

    # Dashboard
    selected_song: Optional[Song] = None
    search_term: str = ""
    selected_note: str = ALL_NOTES

    # UI state
    is_loading: bool = False
    error_message: Optional[str] = None

    _listeners: dict[str, list[Callable]] = field(default_factory=dict)

    def add_listener(self, property_name: str, callback: Callable) -> None:
        """Add a listener for a property change.

        Args:
            property_name: Name of the property to watch
            callback: Function to call when property changes
        """
        self._listeners.setdefault(property_name, []).append(callback)

    def remove_listener(self, property_name: str, callback: Callable) -> None:
        """Remove a property change listener.

        Args:
            property_name: Name of the property
            callback: Callback to remove
        """
        if property_name in self._listeners:
            self._listeners[property_name] = [
                cb for cb in self._listeners[property_name] if cb != callback
            ]

    def _notify(self, property_name: str, value: Any) -> None:
        """Notify listeners of a property change."""
        for callback in list(self._listeners.get(property_name, [])):
            callback(value)

    def navigate_to(self, screen: AppScreen) -> None:
        """Navigate to a screen.

        Args:
            screen: Screen to navigate to
        """
        self.current_screen = screen
        self._notify("current_screen", screen)

    def set_session(self, session: Optional[Session]) -> None:
        """Set or clear the signed-in session."""
        self.session = session
        self._notify("session", session)

    def select_song(self, song: Optional[Song]) -> None:
        """Select the song to play (None to clear)."""
        self.selected_song = song
        self._notify("selected_song", song)

    def set_search_term(self, term: str) -> None:
        """Update the search text."""
        self.search_term = term
        self._notify("search_term", term)

    def set_selected_note(self, note: str) -> None:
        """Update the starting note filter."""
        self.selected_note = note
        self._notify("selected_note", note)

    def set_loading(self, loading: bool) -> None:
        """Set loading state."""
        self.is_loading = loading
        self._notify("is_loading", loading)

    def set_error(self, message: Optional[str]) -> None:
        """Set error message (None to clear)."""
        if message:
            logger.debug(f"Error shown: {message}")
        self.error_message = message
        self._notify("error_message", message)

    def clear_error(self) -> None:
        """Clear the current error message."""
        self.set_error(None)

    def reset(self) -> None:
        """Clear user data after sign-out."""
        self.set_session(None)
        self.select_song(None)
        self.search_term = ""
        self.selected_note = ALL_NOTES
        self.clear_error()

"""Main TUI application for the Family Songbook.

Textual-based application for a family to keep its song lyrics and play
them back with automatic scrolling.
"""

from typing import Optional

from textual.app import App

from family_songbook.app.config import AppConfig
from family_songbook.app.db.client import SupabaseClient
from family_songbook.app.db.models import Session
from family_songbook.app.db.song_client import SongClient
from family_songbook.app.logging_config import get_logger
from family_songbook.app.services.auth import AuthService
from family_songbook.app.services.catalog import SongCatalog
from family_songbook.app.state import AppScreen, AppState

logger = get_logger(__name__)


class SongbookApp(App):
    """Main Family Songbook application.

    Provides a Textual TUI for signing in, browsing the family's songs
    and playing their lyrics.
    """

    CSS_PATH = "screens/app.tcss"
    TITLE = "Family Songbook"
    SUB_TITLE = "Lyrics Player"

    def __init__(
        self,
        config: AppConfig,
        client: Optional[SupabaseClient] = None,
        auth: Optional[AuthService] = None,
        *args,
        **kwargs,
    ):
        """Initialize the application.

        Args:
            config: Application configuration
            client: Hosted store client (built from config if omitted)
            auth: Auth service (built from the client if omitted)

        Raises:
            ConfigError: If the hosted store is not configured
        """
        super().__init__(*args, **kwargs)

        self.config = config
        self.config.ensure_directories()

        self.state = AppState()

        self.client = client or SupabaseClient(
            config.supabase_url,
            config.supabase_anon_key,
            timeout=config.request_timeout,
        )
        self.auth = auth or AuthService(self.client, config.session_path)

        self.song_client = SongClient(self.client)
        self.catalog = SongCatalog(self.song_client)

    def on_mount(self) -> None:
        """Handle app mount event."""
        session = self.auth.current_session()
        self.state.set_session(session)
        screen = AppScreen.DASHBOARD if session else AppScreen.LOGIN
        logger.info(f"App mounted, pushing initial screen: {screen.name}")
        self.state.current_screen = screen
        self.push_screen(self._create_screen(screen))

    def _create_screen(self, screen: AppScreen):
        """Create a fresh screen instance.

        Args:
            screen: Screen enum value

        Returns:
            New screen instance
        """
        logger.debug(f"Creating fresh screen instance: {screen.name}")
        if screen == AppScreen.LOGIN:
            from family_songbook.app.screens.login import LoginScreen
            return LoginScreen(self.state, self.auth)
        elif screen == AppScreen.DASHBOARD:
            from family_songbook.app.screens.dashboard import DashboardScreen
            return DashboardScreen(self.state, self.catalog, self.auth, self.config)

    def navigate_to(self, screen: AppScreen) -> None:
        """Replace the current screen.

        Args:
            screen: Screen to navigate to
        """
        logger.info(f"Navigate to: {screen.name} (from {self.state.current_screen.name})")
        self.state.navigate_to(screen)
        self.switch_screen(self._create_screen(screen))

    def on_signed_in(self, session: Session) -> None:
        """Show the dashboard for a freshly signed-in user."""
        self.state.set_session(session)
        self.navigate_to(AppScreen.DASHBOARD)

    def sign_out(self) -> None:
        """Sign out and return to the login screen."""
        self.auth.sign_out()
        self.catalog.songs = []
        self.state.reset()
        self.notify("Signed out")
        self.navigate_to(AppScreen.LOGIN)

    def action_quit(self) -> None:
        """Quit the application."""
        logger.info("Quit requested")
        self.exit()

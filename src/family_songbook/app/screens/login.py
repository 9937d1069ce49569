"""Login screen.

Email/password sign-in and registration against the hosted auth service.
"""

import asyncio

from textual import work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Input, Label

from family_songbook.app.errors import AuthError, StoreError
from family_songbook.app.logging_config import get_logger
from family_songbook.app.services.auth import AuthService
from family_songbook.app.state import AppState

logger = get_logger(__name__)


class LoginScreen(Screen):
    """Screen for signing in or creating an account."""

    BINDINGS = [
        ("ctrl+r", "register", "Register"),
        ("escape", "app.quit", "Quit"),
    ]

    def __init__(self, state: AppState, auth: AuthService):
        """Initialize the screen.

        Args:
            state: Application state
            auth: Auth service
        """
        super().__init__()
        self.state = state
        self.auth = auth
        self.is_submitting = False

    def compose(self) -> ComposeResult:
        """Compose the screen layout."""
        yield Header()

        with Vertical(id="login_form"):
            yield Label("[bold]Family Songbook[/bold]", id="title")
            yield Input(placeholder="Email", id="email_input")
            yield Input(placeholder="Password", password=True, id="password_input")
            yield Label("", id="login_error")

            with Horizontal(id="buttons"):
                yield Button("Sign In", id="btn_sign_in", variant="primary")
                yield Button("Register", id="btn_register")

        yield Footer()

    def on_mount(self) -> None:
        logger.info("LoginScreen mounted")
        self.query_one("#email_input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Enter in either field signs in."""
        self.action_sign_in()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button presses."""
        if event.button.id == "btn_sign_in":
            self.action_sign_in()
        elif event.button.id == "btn_register":
            self.action_register()

    def _credentials(self) -> tuple[str, str]:
        email = self.query_one("#email_input", Input).value.strip()
        password = self.query_one("#password_input", Input).value
        return email, password

    def _show_error(self, message: str) -> None:
        self.query_one("#login_error", Label).update(f"[red]{message}[/red]" if message else "")

    def action_sign_in(self) -> None:
        self._start(register=False)

    def action_register(self) -> None:
        self._start(register=True)

    def _start(self, register: bool) -> None:
        if self.is_submitting:
            return
        email, password = self._credentials()
        if not email or not password:
            self._show_error("Email and password are required")
            return
        self._authenticate(email, password, register)

    @work(exclusive=True, group="auth")
    async def _authenticate(self, email: str, password: str, register: bool) -> None:
        """Run sign-in or registration off the UI thread."""
        self.is_submitting = True
        self._show_error("")
        for button in self.query(Button):
            button.disabled = True
        failed = False
        try:
            if register:
                session = await asyncio.to_thread(self.auth.sign_up, email, password)
            else:
                session = await asyncio.to_thread(self.auth.sign_in, email, password)
        except AuthError as e:
            logger.warning(f"Authentication refused for {email}: {e}")
            self._show_error(str(e))
            session, failed = None, True
        except StoreError as e:
            logger.error(f"Authentication failed: {e}")
            self._show_error("Could not reach the server")
            session, failed = None, True
        finally:
            self.is_submitting = False
            for button in self.query(Button):
                button.disabled = False

        if session is not None:
            logger.info(f"Signed in as {email}")
            self.app.on_signed_in(session)
        elif register and not failed:
            self.notify("Check your email to confirm your account, then sign in")

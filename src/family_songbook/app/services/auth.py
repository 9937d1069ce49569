"""Authentication service for the songbook.

Wraps the hosted auth endpoints and keeps the signed-in session on disk
so the user stays signed in between launches.
"""

import json
import time
from pathlib import Path
from typing import Callable, Optional

from family_songbook.app.db.client import SupabaseClient
from family_songbook.app.db.models import Session
from family_songbook.app.errors import AuthError, StoreError
from family_songbook.app.logging_config import get_logger

logger = get_logger(__name__)


class AuthService:
    """Session management on top of SupabaseClient.

    Attributes:
        client: Hosted store client
        session_path: File holding the persisted session
    """

    def __init__(
        self,
        client: SupabaseClient,
        session_path: Path,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the auth service.

        Args:
            client: Hosted store client
            session_path: File holding the persisted session
            clock: Source of epoch seconds
        """
        self.client = client
        self.session_path = session_path
        self._clock = clock
        self._session: Optional[Session] = None

    def current_session(self) -> Optional[Session]:
        """Get the valid session, refreshing it if it has expired.

        Returns:
            Session, or None if no user is signed in
        """
        session = self._session or self._load_session()
        if session is None:
            return None

        if session.is_expired(self._clock()):
            logger.info("Session expired, refreshing")
            try:
                session = self.client.refresh_session(session.refresh_token)
            except StoreError as e:
                logger.warning(f"Session refresh failed: {e}")
                self._clear_session()
                return None
            self._save_session(session)

        self._session = session
        self.client.set_session(session)
        return session

    def sign_in(self, email: str, password: str) -> Session:
        """Sign in and persist the session.

        Raises:
            AuthError: If the credentials are rejected
            StoreError: If the request fails
        """
        session = self.client.sign_in_with_password(email, password)
        self._session = session
        self._save_session(session)
        return session

    def sign_up(self, email: str, password: str) -> Optional[Session]:
        """Register a new account, signing in when the project allows it.

        Returns:
            Session, or None when email confirmation is pending
        """
        session = self.client.sign_up(email, password)
        if session is not None:
            self._session = session
            self._save_session(session)
        return session

    def sign_out(self) -> None:
        """Sign out locally, revoking the session on the server if possible."""
        session = self._session or self._load_session()
        if session is not None:
            try:
                self.client.sign_out(session.access_token)
            except StoreError as e:
                logger.warning(f"Server sign-out failed, clearing local session anyway: {e}")
        self._clear_session()
        logger.info("Signed out")

    def require_session(self) -> Session:
        """Get the current session or fail.

        Raises:
            AuthError: If no user is signed in
        """
        session = self.current_session()
        if session is None:
            raise AuthError("Not signed in")
        return session

    def _load_session(self) -> Optional[Session]:
        """Read the persisted session, ignoring unreadable files."""
        if not self.session_path.exists():
            return None
        try:
            data = json.loads(self.session_path.read_text(encoding="utf-8"))
            return Session.from_dict(data)
        except (OSError, ValueError, KeyError) as e:
            logger.warning(f"Ignoring unreadable session file {self.session_path}: {e}")
            return None

    def _save_session(self, session: Session) -> None:
        """Persist a session with owner-only permissions."""
        self.session_path.parent.mkdir(parents=True, exist_ok=True)
        self.session_path.write_text(json.dumps(session.to_dict()), encoding="utf-8")
        try:
            self.session_path.chmod(0o600)
        except OSError as e:
            logger.debug(f"Could not restrict session file permissions: {e}")

    def _clear_session(self) -> None:
        """Forget the session in memory and on disk."""
        self._session = None
        self.client.set_session(None)
        if self.session_path.exists():
            self.session_path.unlink()

"""HTTP client for the hosted Supabase project.

Provides SupabaseClient for the auth (GoTrue) and table (PostgREST)
endpoints the songbook uses. Construct it once from configuration and
pass it to the services that need it.
"""

from typing import Any, Optional

import requests

from family_songbook.app.db.models import Session
from family_songbook.app.errors import AuthError, ConfigError, StoreError
from family_songbook.app.logging_config import get_logger

logger = get_logger(__name__)


class SupabaseClient:
    """HTTP client for the Supabase auth and REST APIs.

    Requests are authenticated with the project anon key and, once a user
    has signed in, with the session's access token.

    Attributes:
        base_url: Base URL of the Supabase project
        timeout: Request timeout in seconds
        access_token: Bearer token of the signed-in user, if any
    """

    def __init__(self, base_url: str, anon_key: Optional[str], timeout: int = 30):
        """Initialize the client.

        Args:
            base_url: Base URL of the Supabase project
            anon_key: Public anon key of the project
            timeout: Request timeout in seconds

        Raises:
            ConfigError: If the URL or the anon key is missing
        """
        if not base_url:
            raise ConfigError(
                "Supabase URL is not set. Set SONGBOOK_SUPABASE_URL or "
                "[supabase] url in the config file."
            )
        if not anon_key:
            raise ConfigError(
                "SONGBOOK_SUPABASE_ANON_KEY environment variable is not set. "
                "Set it to your project's anon key."
            )

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.access_token: Optional[str] = None
        self._anon_key = anon_key

    def _headers(self, token: Optional[str] = None) -> dict[str, str]:
        """Get request headers.

        Args:
            token: Bearer token overriding the session token

        Returns:
            Dictionary with apikey and Authorization headers
        """
        bearer = token or self.access_token or self._anon_key
        return {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {bearer}",
            "Content-Type": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, str]] = None,
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
        token: Optional[str] = None,
    ) -> Any:
        """Send a request and translate failures into StoreError.

        Args:
            method: HTTP method
            path: Path below the project base URL
            params: Query string parameters
            json: JSON body
            headers: Extra headers
            token: Bearer token overriding the session token

        Returns:
            Decoded JSON body, or None for empty responses

        Raises:
            AuthError: On 401/403 responses
            StoreError: On connection failures and other HTTP errors
        """
        url = f"{self.base_url}{path}"
        request_headers = self._headers(token)
        if headers:
            request_headers.update(headers)

        try:
            response = requests.request(
                method,
                url,
                params=params,
                json=json,
                headers=request_headers,
                timeout=self.timeout,
            )
        except requests.exceptions.ConnectionError as e:
            raise StoreError(f"Cannot connect to {self.base_url}: {e}")
        except requests.exceptions.RequestException as e:
            raise StoreError(f"{method} {path} failed: {e}")

        if response.status_code in (401, 403):
            raise AuthError(
                f"Not authorized ({response.status_code}): {self._error_detail(response)}",
                status_code=response.status_code,
            )

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError:
            raise StoreError(
                f"{method} {path} failed (HTTP {response.status_code}): "
                f"{self._error_detail(response)}",
                status_code=response.status_code,
            )

        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        """Extract a readable error message from an error response."""
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason or ""
        if isinstance(body, dict):
            for key in ("msg", "message", "error_description", "error"):
                if body.get(key):
                    return str(body[key])
        return str(body)

    # Auth operations

    def sign_in_with_password(self, email: str, password: str) -> Session:
        """Sign in with email and password.

        Args:
            email: Account email
            password: Account password

        Returns:
            New Session

        Raises:
            AuthError: If the credentials are rejected
            StoreError: If the request fails
        """
        try:
            data = self._request(
                "POST",
                "/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
                token=self._anon_key,
            )
        except StoreError as e:
            if e.status_code == 400:
                raise AuthError("Invalid email or password", status_code=400)
            raise

        session = Session.from_auth_response(data)
        self.access_token = session.access_token
        logger.info(f"Signed in as {session.email}")
        return session

    def sign_up(self, email: str, password: str) -> Optional[Session]:
        """Register a new account.

        Args:
            email: Account email
            password: Account password

        Returns:
            Session if the project signs users in immediately, None when
            email confirmation is required
        """
        data = self._request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password},
            token=self._anon_key,
        )
        if not data or "access_token" not in data:
            logger.info(f"Registered {email}, confirmation pending")
            return None

        session = Session.from_auth_response(data)
        self.access_token = session.access_token
        logger.info(f"Registered and signed in as {session.email}")
        return session

    def refresh_session(self, refresh_token: str) -> Session:
        """Exchange a refresh token for a new session.

        Args:
            refresh_token: Refresh token of the expiring session

        Returns:
            New Session
        """
        data = self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
            token=self._anon_key,
        )
        session = Session.from_auth_response(data)
        self.access_token = session.access_token
        return session

    def sign_out(self, access_token: Optional[str] = None) -> None:
        """Revoke the session on the server.

        Args:
            access_token: Token to revoke (defaults to the current one)
        """
        token = access_token or self.access_token
        try:
            if token:
                self._request("POST", "/auth/v1/logout", token=token)
        finally:
            self.access_token = None

    def set_session(self, session: Optional[Session]) -> None:
        """Use the given session's token for subsequent requests."""
        self.access_token = session.access_token if session else None

    def table(self, name: str) -> "TableQuery":
        """Get a query builder for a table.

        Args:
            name: Table name

        Returns:
            TableQuery bound to this client
        """
        return TableQuery(self, name)


class TableQuery:
    """Row operations on a single PostgREST table.

    Attributes:
        client: Owning SupabaseClient
        name: Table name
    """

    def __init__(self, client: SupabaseClient, name: str):
        self.client = client
        self.name = name

    @property
    def path(self) -> str:
        return f"/rest/v1/{self.name}"

    def select(
        self,
        filters: Optional[dict[str, Any]] = None,
        order: Optional[str] = None,
        ascending: bool = True,
        columns: str = "*",
    ) -> list[dict[str, Any]]:
        """Select rows.

        Args:
            filters: Column equality filters
            order: Column to order by
            ascending: Sort direction
            columns: Columns to return

        Returns:
            List of row dictionaries
        """
        params = {"select": columns}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"
        if order:
            params["order"] = f"{order}.{'asc' if ascending else 'desc'}"

        return self.client._request("GET", self.path, params=params) or []

    def insert(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Insert rows and return them as stored.

        Args:
            rows: Row dictionaries to insert

        Returns:
            Inserted rows with server-assigned columns
        """
        return self.client._request(
            "POST",
            self.path,
            json=rows,
            headers={"Prefer": "return=representation"},
        ) or []

    def update(self, row_id: str, values: dict[str, Any]) -> list[dict[str, Any]]:
        """Update one row by id.

        Args:
            row_id: Value of the id column
            values: Columns to set

        Returns:
            Updated rows (empty if no row matched)
        """
        return self.client._request(
            "PATCH",
            self.path,
            params={"id": f"eq.{row_id}"},
            json=values,
            headers={"Prefer": "return=representation"},
        ) or []

    def delete(self, row_id: str) -> list[dict[str, Any]]:
        """Delete one row by id.

        Args:
            row_id: Value of the id column

        Returns:
            Deleted rows (empty if no row matched)
        """
        return self.client._request(
            "DELETE",
            self.path,
            params={"id": f"eq.{row_id}"},
            headers={"Prefer": "return=representation"},
        ) or []

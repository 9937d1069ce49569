"""Error kinds for the songbook app."""

from typing import Optional


class SongbookError(Exception):
    """Base exception for the songbook app."""
    pass


class ConfigError(SongbookError):
    """Required configuration is missing or invalid."""
    pass


class ValidationError(SongbookError):
    """Form input rejected before reaching the store.

    Attributes:
        field: Name of the offending field, if known
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class StoreError(SongbookError):
    """A call to the hosted store failed (network, permission, constraint)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthError(StoreError):
    """Authentication was refused or the session is no longer valid."""
    pass


class ConfirmationAborted(SongbookError):
    """The user declined a destructive action."""
    pass

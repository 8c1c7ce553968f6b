"""
OAuth token storage and lifecycle management for Media Tracker.

Each tracking service owns one TokenStore and one TokenLifecycleManager.
Stores hand out immutable Credentials snapshots; every mutation swaps in
a new snapshot.
"""

import time
import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional

from .errors import (
    AuthenticationExpiredError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    TrackerError,
)

logger = logging.getLogger('media_tracker')

# Refresh proactively when the token expires within this many seconds
TOKEN_REFRESH_SKEW = 300


@dataclass(frozen=True)
class Credentials:
    """Snapshot of one service's OAuth tokens."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[float] = None  # epoch seconds, None = never expires

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)


class TokenStore:
    """Holds access/refresh tokens and their absolute expiry."""

    def __init__(self, credentials: Optional[Credentials] = None):
        self._credentials = credentials or Credentials()

    def set(self, access_token: str,
            refresh_token: Optional[str] = None,
            expires_in: Optional[float] = None,
            expires_at: Optional[float] = None) -> Credentials:
        """
        Store a new access token.

        Args:
            access_token: Bearer token, must not be empty
            refresh_token: New refresh token; the stored one is kept if omitted
            expires_in: Lifetime in seconds; values <= 0 are ignored
            expires_at: Absolute expiry in epoch seconds, wins over expires_in

        Returns:
            The new credentials snapshot

        Raises:
            InvalidCredentialsError: If access_token is empty
        """
        if not access_token:
            raise InvalidCredentialsError()

        current = self._credentials
        if expires_at is None:
            if expires_in and expires_in > 0:
                expires_at = time.time() + expires_in
            else:
                expires_at = current.expires_at

        self._credentials = replace(
            current,
            access_token=access_token,
            refresh_token=refresh_token or current.refresh_token,
            expires_at=expires_at,
        )
        logger.debug(
            "Tokens set: has_access_token=%s has_refresh_token=%s expires_at=%s",
            True, bool(self._credentials.refresh_token), self._credentials.expires_at
        )
        return self._credentials

    def restore(self, credentials: Credentials) -> Credentials:
        """Load a persisted snapshot verbatim (an expired token stays expired)."""
        self._credentials = credentials
        return self._credentials

    def clear(self) -> Credentials:
        """Forget all tokens, e.g. before re-authenticating."""
        self._credentials = Credentials()
        return self._credentials

    def read(self) -> Credentials:
        return self._credentials


class TokenLifecycleManager:
    """
    Decides when a stored token must be refreshed and runs the refresh.

    A failed refresh is tolerated while the current token has not actually
    expired, so a single flaky refresh does not block a still-valid request.
    """

    def __init__(self, store: TokenStore, refresh: Callable[[], object],
                 service_name: str = "service"):
        """
        Args:
            store: Token store owned by the same service
            refresh: Callable performing the refresh-token exchange
            service_name: Name used in log messages
        """
        self.store = store
        self._refresh = refresh
        self.service_name = service_name

    def needs_refresh(self, credentials: Optional[Credentials] = None) -> bool:
        """True when the token expires in less than TOKEN_REFRESH_SKEW seconds."""
        credentials = credentials or self.store.read()
        if credentials.expires_at is None:
            return False
        return credentials.expires_at - time.time() < TOKEN_REFRESH_SKEW

    def ensure_valid(self) -> None:
        """
        Make sure a usable access token is stored before a request.

        Raises:
            NotAuthenticatedError: If no access token is stored
            AuthenticationExpiredError: If the token expired and refresh failed
        """
        credentials = self.store.read()
        if not credentials.is_authenticated:
            raise NotAuthenticatedError()

        if not self.needs_refresh(credentials):
            return

        try:
            self._refresh()
        except TrackerError as e:
            logger.warning(f"{self.service_name} token refresh failed: {e}")
            if time.time() > credentials.expires_at:
                raise AuthenticationExpiredError() from e

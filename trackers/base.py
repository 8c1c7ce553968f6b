"""
Base class for viewing-history trackers.

A tracker bundles the four service-specific capabilities (authorization-code
exchange, token refresh, history fetch and normalization) around one shared
token store and lifecycle manager. SIMKL and Trakt subclass it.
"""

import logging
import secrets
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

from utils.api_client import BaseAPIClient
from utils.errors import (
    MalformedTokenResponseError,
    NoRefreshTokenError,
    TokenExchangeError,
)
from utils.helpers import DateLike, resolve_date_range
from utils.tokens import Credentials, TokenLifecycleManager, TokenStore

from .models import HistoryItem, RawHistory

logger = logging.getLogger('media_tracker')

# Fixed custom-scheme callback registered with both services
DEFAULT_REDIRECT_URI = "obsidian://jots-media-tracker-auth-callback"

GRANT_AUTHORIZATION_CODE = "authorization_code"
GRANT_REFRESH_TOKEN = "refresh_token"


class BaseTracker(BaseAPIClient, ABC):
    """
    Abstract base class for tracking service clients.

    Subclasses must define:
    - `service_name`, `api_name`, `api_url`, `auth_url`, `token_url`
    - `_get_headers()` with the service's client-id header
    - `_build_token_request()` for the service's token payload encoding
    - `_fetch_history()` and `normalize()`
    """

    service_name: str = None  # 'simkl' or 'trakt'
    api_url: str = None
    auth_url: str = None
    token_url: str = None

    def __init__(self, client_id: str, client_secret: str,
                 credentials: Optional[Credentials] = None,
                 token_callback: Optional[Callable[[Credentials], None]] = None,
                 redirect_uri: str = DEFAULT_REDIRECT_URI):
        """
        Initialize tracker.

        Args:
            client_id: API application client ID
            client_secret: API application client secret
            credentials: Previously stored tokens (optional)
            token_callback: Function called with new credentials after an
                exchange or refresh (for saving)
            redirect_uri: Callback URI registered with the service
        """
        super().__init__()
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.token_callback = token_callback
        self.store = TokenStore()
        if credentials is not None:
            self.store.restore(credentials)
        self.lifecycle = TokenLifecycleManager(self.store, self.refresh, self.api_name)

    @property
    def access_token(self) -> Optional[str]:
        return self.store.read().access_token

    @property
    def is_authenticated(self) -> bool:
        """Check if client has an access token."""
        return self.store.read().is_authenticated

    def set_tokens(self, access_token: str, refresh_token: Optional[str] = None,
                   expires_in: Optional[float] = None) -> Credentials:
        return self.store.set(access_token, refresh_token, expires_in)

    def get_tokens(self) -> Credentials:
        return self.store.read()

    def clear_tokens(self) -> Credentials:
        """Forget stored tokens so the user can authenticate again."""
        return self.store.clear()

    # =========================================================================
    # OAuth Authorization Code Flow
    # =========================================================================

    def _auth_params(self, state: str) -> Dict[str, str]:
        return {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "state": state,
        }

    def get_auth_url(self, state: Optional[str] = None) -> str:
        """
        Build the URL the user opens to authorize this client.

        Args:
            state: Opaque anti-forgery value (random if omitted)

        Returns:
            Authorization URL
        """
        state = state or secrets.token_urlsafe(8)
        return f"{self.auth_url}?{urlencode(self._auth_params(state))}"

    def _token_payload(self, grant_type: str, **grant_fields: str) -> Dict[str, str]:
        payload = dict(grant_fields)
        payload.update({
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
            "grant_type": grant_type,
        })
        return payload

    @abstractmethod
    def _build_token_request(self, payload: Dict[str, str], grant_type: str) -> Dict[str, Any]:
        """
        Return keyword arguments for `_send()` (headers plus json_body or
        form_body) encoding a token request the way the service expects.
        """

    def _post_token_request(self, payload: Dict[str, str], grant_type: str) -> Dict[str, Any]:
        """
        POST a token request and return the parsed JSON response.

        Raises:
            TokenExchangeError: On transport failure or non-200 status
            MalformedTokenResponseError: If the body is not a JSON object
        """
        redacted = {**payload, "client_secret": "[REDACTED]"}
        for key in ("code", "refresh_token"):
            if key in redacted:
                redacted[key] = "[REDACTED]"
        logger.debug(f"{self.api_name} token request ({grant_type}): {redacted}")

        request_kwargs = self._build_token_request(payload, grant_type)
        response = self._send("POST", self.token_url,
                              error_class=TokenExchangeError, **request_kwargs)

        if response.status_code != 200:
            raise TokenExchangeError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError:
            raise MalformedTokenResponseError(f"{self.api_name} token response is not JSON")

        if not isinstance(data, dict):
            raise MalformedTokenResponseError(f"{self.api_name} token response is not an object")
        return data

    def _apply_token_response(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Write a token response through to the token store.

        The refresh token is only replaced when the response carries one.
        When `created_at` is present the expiry is `created_at + expires_in`,
        otherwise now + `expires_in`.
        """
        access_token = data.get("access_token")
        if not access_token:
            raise MalformedTokenResponseError()

        expires_in = data.get("expires_in")
        created_at = data.get("created_at")
        expires_at = None
        if isinstance(expires_in, (int, float)) and isinstance(created_at, (int, float)) and expires_in:
            expires_at = float(created_at + expires_in)

        credentials = self.store.set(
            access_token,
            data.get("refresh_token"),
            expires_in if isinstance(expires_in, (int, float)) else None,
            expires_at=expires_at,
        )
        if self.token_callback:
            try:
                self.token_callback(credentials)
            except OSError as e:
                # New token stays usable in memory for this run
                logger.warning(f"Could not save {self.api_name} tokens: {e}")
        return data

    def exchange_code(self, code: str) -> Dict[str, Any]:
        """
        Exchange an authorization code for tokens.

        Args:
            code: Code returned to the redirect URI

        Returns:
            Token response dict (access_token, refresh_token, expires_in, ...)
        """
        logger.debug(f"Starting {self.api_name} token exchange...")
        payload = self._token_payload(GRANT_AUTHORIZATION_CODE, code=code)
        data = self._post_token_request(payload, GRANT_AUTHORIZATION_CODE)
        self._apply_token_response(data)
        logger.info(f"{self.api_name} authorization code exchanged successfully")
        return data

    def refresh(self) -> Dict[str, Any]:
        """
        Refresh the access token using the stored refresh token.

        Returns:
            Token response dict

        Raises:
            NoRefreshTokenError: If no refresh token is stored
        """
        refresh_token = self.store.read().refresh_token
        if not refresh_token:
            raise NoRefreshTokenError()

        payload = self._token_payload(GRANT_REFRESH_TOKEN, refresh_token=refresh_token)
        data = self._post_token_request(payload, GRANT_REFRESH_TOKEN)
        self._apply_token_response(data)
        logger.info(f"{self.api_name} token refreshed successfully")
        return data

    def ensure_valid(self) -> None:
        """Make sure a usable token is stored, refreshing it if close to expiry."""
        self.lifecycle.ensure_valid()

    # =========================================================================
    # Watch History
    # =========================================================================

    @abstractmethod
    def _fetch_history(self, start: datetime, end: datetime) -> Any:
        """Issue the authenticated history request(s) and return the JSON payload."""

    @abstractmethod
    def normalize(self, raw: RawHistory) -> List[HistoryItem]:
        """Map a raw payload to unified history items."""

    def fetch(self, start: DateLike, end: DateLike) -> RawHistory:
        """
        Fetch raw viewing history for an inclusive date range.

        Args:
            start: First day (or instant) of the range
            end: Last day (or instant) of the range

        Returns:
            RawHistory with the upstream payload and resolved bounds
        """
        start_dt, end_dt = resolve_date_range(start, end)
        self.ensure_valid()
        logger.debug(f"Fetching {self.api_name} history from {start_dt} to {end_dt}")
        data = self._fetch_history(start_dt, end_dt)
        return RawHistory(self.service_name, data, start_dt, end_dt)

    def get_history(self, start: DateLike, end: DateLike) -> List[HistoryItem]:
        """Fetch and normalize viewing history for an inclusive date range."""
        raw = self.fetch(start, end)
        items = self.normalize(raw)
        logger.info(f"Found {len(items)} {self.api_name} history items")
        return items

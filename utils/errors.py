"""
Exception hierarchy for Media Tracker.
Auth errors cover the token lifecycle, API errors cover history requests.
"""

from typing import Optional


class TrackerError(Exception):
    """Base for all Media Tracker exceptions."""
    pass


class TrackerAuthError(TrackerError):
    """Raised when authentication with a tracking service fails."""
    pass


class NotAuthenticatedError(TrackerAuthError):
    """Raised when no access token is stored for the service."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class AuthenticationExpiredError(TrackerAuthError):
    """Raised when the access token has expired and could not be refreshed."""

    def __init__(self, message: str = "Authentication token expired"):
        super().__init__(message)


class NoRefreshTokenError(TrackerAuthError):
    """Raised when a refresh is needed but no refresh token is stored."""

    def __init__(self, message: str = "No refresh token available"):
        super().__init__(message)


class InvalidCredentialsError(TrackerAuthError):
    """Raised when an empty access token is stored."""

    def __init__(self, message: str = "Access token is required"):
        super().__init__(message)


class TokenExchangeError(TrackerAuthError):
    """Raised when the token endpoint rejects an exchange or refresh."""

    def __init__(self, status: Optional[int], body: str):
        self.status = status
        self.body = body
        super().__init__(f"Token request failed: {status}, details: {body}")


class MalformedTokenResponseError(TrackerAuthError):
    """Raised when a token response carries no access token."""

    def __init__(self, message: str = "No access token received"):
        super().__init__(message)


class TrackerAPIError(TrackerError):
    """Raised when a history request fails."""
    pass


class UpstreamError(TrackerAPIError):
    """Raised when the history endpoint answers with a non-200 status."""

    def __init__(self, status: Optional[int], body: str):
        self.status = status
        self.body = body
        super().__init__(f"HTTP error! status: {status}, details: {body}")


class MalformedPayloadError(TrackerAPIError):
    """Raised when the top-level history payload shape is unrecognized."""
    pass

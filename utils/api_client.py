"""
Base API client for Media Tracker service integrations.
Provides common functionality for rate limiting, request handling, and error parsing.
"""

import logging
import time
import requests
from typing import Any, Dict, Optional

from .errors import MalformedPayloadError, UpstreamError

logger = logging.getLogger('media_tracker')


class BaseAPIClient:
    """
    Base class for API clients with common rate limiting and request handling.

    Subclasses should:
    - Set `api_name` class attribute for error messages
    - Override `_get_headers()` to return auth headers
    """

    api_name: str = "API"
    rate_limit_delay: float = 0.2
    request_timeout: int = 30
    user_agent: str = "Media Tracker/1.0.0"

    def __init__(self):
        """Initialize base client state."""
        self._last_request_time = 0

    def _rate_limit(self) -> None:
        """Enforce rate limiting between requests."""
        elapsed = time.time() - self._last_request_time
        if elapsed < self.rate_limit_delay:
            time.sleep(self.rate_limit_delay - elapsed)
        self._last_request_time = time.time()

    def _get_headers(self, authenticated: bool = True) -> Dict[str, str]:
        """Get headers for API requests. Override in subclass."""
        return {
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
        }

    def _send(self, method: str, url: str,
              headers: Optional[Dict] = None,
              json_body: Optional[Dict] = None,
              form_body: Optional[Dict] = None,
              params: Optional[Dict] = None,
              error_class: type = UpstreamError) -> requests.Response:
        """
        Send an HTTP request with rate limiting.

        Network failures are wrapped in `error_class(None, message)`; HTTP
        status codes are left for the caller to inspect.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Full URL to request
            headers: Request headers (uses _get_headers() if not provided)
            json_body: Body sent JSON encoded
            form_body: Body sent form encoded
            params: Query parameters
            error_class: Exception raised on transport errors

        Returns:
            The raw response
        """
        self._rate_limit()

        if headers is None:
            headers = self._get_headers()

        try:
            return requests.request(
                method=method,
                url=url,
                headers=headers,
                json=json_body,
                data=form_body,
                params=params,
                timeout=self.request_timeout
            )
        except requests.exceptions.Timeout:
            raise error_class(None, f"Request timeout after {self.request_timeout}s")
        except requests.exceptions.ConnectionError:
            raise error_class(None, f"Could not connect to {self.api_name}")
        except requests.exceptions.RequestException as e:
            raise error_class(None, f"{self.api_name} request failed: {e}")

    def _handle_response(self, response: requests.Response) -> Any:
        """
        Handle a history response, raising for anything but 200.

        Args:
            response: HTTP response object

        Returns:
            Parsed JSON body

        Raises:
            UpstreamError: For non-200 responses
            MalformedPayloadError: If the body is not JSON
        """
        if response.status_code != 200:
            logger.error(f"{self.api_name} API error {response.status_code}: {response.text}")
            raise UpstreamError(response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            raise MalformedPayloadError(f"{self.api_name} returned a non-JSON body: {e}")

    def _make_request_to_url(self, method: str, url: str,
                             params: Optional[Dict] = None,
                             headers: Optional[Dict] = None) -> Any:
        """
        Make an HTTP request with rate limiting and error handling.

        Args:
            method: HTTP method (GET, POST, DELETE, etc.)
            url: Full URL to request
            params: Query parameters
            headers: Optional headers (uses _get_headers() if not provided)

        Returns:
            Response JSON data

        Raises:
            UpstreamError: If the request fails
        """
        response = self._send(method, url, headers=headers, params=params)
        return self._handle_response(response)

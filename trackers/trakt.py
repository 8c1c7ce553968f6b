"""
Trakt tracker for Media Tracker.
Handles OAuth code exchange, token refresh and event-style watch history.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from utils.errors import MalformedPayloadError
from utils.helpers import format_timestamp, parse_timestamp

from .base import BaseTracker
from .models import (
    KIND_EPISODE,
    KIND_MOVIE,
    HistoryItem,
    RawHistory,
    derive_started_at,
    parse_episode,
    parse_movie,
    parse_show,
)

logger = logging.getLogger('media_tracker')

# Trakt API endpoints
TRAKT_API_URL = "https://api.trakt.tv"
TRAKT_AUTH_URL = "https://trakt.tv/oauth/authorize"
TRAKT_TOKEN_URL = "https://api.trakt.tv/oauth/token"

# Items requested per history page
TRAKT_HISTORY_PAGE_LIMIT = 100

# Safety stop for runaway pagination headers
TRAKT_MAX_HISTORY_PAGES = 50


class TraktTracker(BaseTracker):
    """
    Trakt client with authorization-code OAuth.

    History comes back as a flat list of watch events, each tagged with
    `type` and already carrying its movie or show/episode objects.
    """

    service_name = "trakt"
    api_name = "Trakt"
    api_url = TRAKT_API_URL
    auth_url = TRAKT_AUTH_URL
    token_url = TRAKT_TOKEN_URL

    def _get_headers(self, authenticated: bool = True) -> Dict[str, str]:
        """Get headers for API requests."""
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
            "trakt-api-version": "2",
            "trakt-api-key": self.client_id
        }
        if authenticated and self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def _build_token_request(self, payload: Dict[str, str], grant_type: str) -> Dict[str, Any]:
        # Trakt takes JSON for both grants
        return {
            "headers": {
                "Content-Type": "application/json",
                "User-Agent": self.user_agent,
                "trakt-api-version": "2",
            },
            "json_body": payload,
        }

    def _fetch_history(self, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        """
        Walk /sync/history page by page and concatenate the events.

        Args:
            start: Inclusive lower bound
            end: Inclusive upper bound

        Returns:
            List of raw history events in upstream order
        """
        url = f"{self.api_url}/sync/history"
        events = []
        page = 1

        while True:
            params = {
                "start_at": format_timestamp(start),
                "end_at": format_timestamp(end),
                "extended": "full",
                "page": page,
                "limit": TRAKT_HISTORY_PAGE_LIMIT,
            }
            response = self._send("GET", url, headers=self._get_headers(), params=params)
            data = self._handle_response(response)

            if not isinstance(data, list):
                raise MalformedPayloadError(
                    f"Trakt history page {page} is {type(data).__name__}, expected list"
                )
            events.extend(data)

            page_count = _page_count(response)
            if page_count is None or page >= page_count:
                break
            if page >= TRAKT_MAX_HISTORY_PAGES:
                logger.warning(f"Trakt history has {page_count} pages, stopping at {page}")
                break
            page += 1

        logger.debug(f"Fetched {len(events)} Trakt history events over {page} page(s)")
        return events

    def normalize(self, raw: RawHistory) -> List[HistoryItem]:
        return normalize_trakt_history(raw)


def _page_count(response) -> Optional[int]:
    headers = getattr(response, 'headers', None) or {}
    try:
        return int(headers.get('X-Pagination-Page-Count'))
    except (TypeError, ValueError):
        return None


def _normalize_trakt_event(event: Any) -> Optional[HistoryItem]:
    """Convert one Trakt history event, or return None if it is unusable."""
    if not isinstance(event, dict):
        return None

    watched_at = parse_timestamp(event.get('watched_at'))
    if watched_at is None:
        return None

    event_type = event.get('type')
    if event_type == 'movie':
        movie = parse_movie(event.get('movie'), 'trakt')
        if movie is None:
            return None
        return HistoryItem(
            watched_at=watched_at,
            started_at=derive_started_at(watched_at, movie.runtime),
            kind=KIND_MOVIE,
            movie=movie,
        )

    if event_type == 'episode':
        show = parse_show(event.get('show'), 'trakt')
        episode = parse_episode(event.get('episode'))
        if show is None or episode is None:
            return None
        return HistoryItem(
            watched_at=watched_at,
            started_at=derive_started_at(watched_at, episode.runtime, show.runtime),
            kind=KIND_EPISODE,
            show=show,
            episode=episode,
        )

    return None


def normalize_trakt_history(raw: RawHistory) -> List[HistoryItem]:
    """
    Normalize a Trakt /sync/history payload.

    Unusable events are dropped; the rest keep upstream order.

    Args:
        raw: RawHistory whose data is the list of events

    Returns:
        List of HistoryItem

    Raises:
        MalformedPayloadError: If the payload is not a list
    """
    data = raw.data
    if not isinstance(data, list):
        raise MalformedPayloadError(
            f"Trakt history payload is {type(data).__name__}, expected list"
        )

    items = []
    for event in data:
        try:
            item = _normalize_trakt_event(event)
        except ValueError as e:
            logger.debug(f"Dropping Trakt history event: {e}")
            continue
        if item is None:
            logger.debug(f"Dropping unusable Trakt history event: {event!r}")
            continue
        items.append(item)

    logger.debug(f"Normalized {len(items)} of {len(data)} Trakt history events")
    return items

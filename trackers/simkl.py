"""
Simkl tracker for Media Tracker.
Handles OAuth code exchange, token refresh and bucketed watch history.
"""

import re
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from utils.errors import MalformedPayloadError
from utils.helpers import format_timestamp, parse_timestamp

from .base import GRANT_REFRESH_TOKEN, BaseTracker
from .models import (
    KIND_EPISODE,
    KIND_MOVIE,
    Episode,
    HistoryItem,
    RawHistory,
    derive_started_at,
    parse_episode,
    parse_movie,
    parse_show,
)

logger = logging.getLogger('media_tracker')

# Simkl API endpoints
SIMKL_API_URL = "https://api.simkl.com"
SIMKL_AUTH_URL = "https://simkl.com/oauth/authorize"
SIMKL_TOKEN_URL = "https://api.simkl.com/oauth/token"

# Buckets of /sync/all-items in output order, anime entries are shows
SIMKL_HISTORY_BUCKETS = (
    ('movies', KIND_MOVIE),
    ('shows', KIND_EPISODE),
    ('anime', KIND_EPISODE),
)

# Compact episode code such as "S01E05" in `last_watched`
EPISODE_CODE_PATTERN = re.compile(r'S(\d+)\s*E(\d+)', re.IGNORECASE)


class SimklTracker(BaseTracker):
    """
    Simkl client with authorization-code OAuth.

    History comes back bucketed by media type; every entry carries its own
    watched timestamp and is re-filtered to the requested range.
    """

    service_name = "simkl"
    api_name = "Simkl"
    api_url = SIMKL_API_URL
    auth_url = SIMKL_AUTH_URL
    token_url = SIMKL_TOKEN_URL

    def _get_headers(self, authenticated: bool = True) -> Dict[str, str]:
        """Get headers for API requests."""
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
            "simkl-api-key": self.client_id
        }
        if authenticated and self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def _build_token_request(self, payload: Dict[str, str], grant_type: str) -> Dict[str, Any]:
        # Code exchange is JSON, refresh is form encoded
        if grant_type == GRANT_REFRESH_TOKEN:
            return {
                "headers": {
                    "Content-Type": "application/x-www-form-urlencoded",
                    "User-Agent": self.user_agent,
                },
                "form_body": payload,
            }
        return {
            "headers": self._get_headers(authenticated=False),
            "json_body": payload,
        }

    def _fetch_history(self, start: datetime, end: datetime) -> Any:
        params = {
            "date_from": format_timestamp(start),
            "date_to": format_timestamp(end),
            "extended": "full",
        }
        return self._make_request_to_url("GET", f"{self.api_url}/sync/all-items", params=params)

    def normalize(self, raw: RawHistory) -> List[HistoryItem]:
        return normalize_simkl_history(raw)


def parse_episode_code(value: Any) -> Optional[Episode]:
    """
    Parse a compact "S<season>E<episode>" code into an Episode.

    The code carries no title, so the episode title is an empty string.
    """
    if not isinstance(value, str):
        return None
    match = EPISODE_CODE_PATTERN.search(value)
    if not match:
        return None
    return Episode(season=int(match.group(1)), number=int(match.group(2)), title='')


def _watched_at(entry: Dict[str, Any]) -> Optional[datetime]:
    return parse_timestamp(entry.get('watched_at') or entry.get('last_watched_at'))


def _normalize_simkl_entry(entry: Any, kind: str) -> Optional[HistoryItem]:
    """Convert one bucket entry, or return None if it is unusable."""
    if not isinstance(entry, dict):
        return None

    watched_at = _watched_at(entry)
    if watched_at is None:
        return None

    if kind == KIND_MOVIE:
        movie = parse_movie(entry.get('movie'), 'simkl')
        if movie is None:
            return None
        return HistoryItem(
            watched_at=watched_at,
            started_at=derive_started_at(watched_at, movie.runtime),
            kind=KIND_MOVIE,
            movie=movie,
        )

    show = parse_show(entry.get('show'), 'simkl')
    if show is None:
        return None
    episode = parse_episode(entry.get('episode')) or parse_episode_code(entry.get('last_watched'))
    if episode is None:
        return None
    return HistoryItem(
        watched_at=watched_at,
        started_at=derive_started_at(watched_at, episode.runtime, show.runtime),
        kind=KIND_EPISODE,
        show=show,
        episode=episode,
    )


def _in_range(value: datetime, start: Optional[datetime], end: Optional[datetime]) -> bool:
    # Compare at millisecond precision
    value = value.replace(microsecond=value.microsecond // 1000 * 1000)
    if start is not None and value < start:
        return False
    if end is not None and value > end:
        return False
    return True


def normalize_simkl_history(raw: RawHistory) -> List[HistoryItem]:
    """
    Normalize a Simkl /sync/all-items payload.

    Buckets are read in the order movies, shows, anime. Entries that are
    unusable or outside [raw.start, raw.end] are dropped.

    Args:
        raw: RawHistory whose data is the bucket dict

    Returns:
        List of HistoryItem

    Raises:
        MalformedPayloadError: If the payload or a bucket has the wrong shape
    """
    data = raw.data
    # Simkl answers an empty history with null or []
    if data is None or data == []:
        return []
    if not isinstance(data, dict):
        raise MalformedPayloadError(
            f"Simkl history payload is {type(data).__name__}, expected object"
        )

    items = []
    total = 0
    for bucket, kind in SIMKL_HISTORY_BUCKETS:
        entries = data.get(bucket)
        if entries is None:
            continue
        if not isinstance(entries, list):
            raise MalformedPayloadError(
                f"Simkl '{bucket}' bucket is {type(entries).__name__}, expected list"
            )

        for entry in entries:
            total += 1
            try:
                item = _normalize_simkl_entry(entry, kind)
            except ValueError as e:
                logger.debug(f"Dropping Simkl {bucket} entry: {e}")
                continue
            if item is None:
                logger.debug(f"Dropping unusable Simkl {bucket} entry: {entry!r}")
                continue
            if not _in_range(item.watched_at, raw.start, raw.end):
                continue
            items.append(item)

    logger.debug(f"Normalized {len(items)} of {total} Simkl history entries")
    return items

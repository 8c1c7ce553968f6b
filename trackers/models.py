"""
Unified history item model shared by all tracking services.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from utils.helpers import format_timestamp

KIND_MOVIE = 'movie'
KIND_EPISODE = 'episode'


@dataclass(frozen=True)
class MediaIds:
    """Identifiers attached to a movie, show or episode."""

    primary_id: int = 0  # the service's own id (simkl / trakt), 0 if absent
    slug: Optional[str] = None
    imdb: Optional[str] = None
    tmdb: Optional[int] = None
    tvdb: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True)
class Movie:
    title: str
    year: Optional[int] = None
    runtime: Optional[int] = None
    ids: MediaIds = field(default_factory=MediaIds)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'year': self.year,
            'runtime_minutes': self.runtime,
            'ids': self.ids.to_dict(),
        }


@dataclass(frozen=True)
class Show:
    title: str
    year: Optional[int] = None
    runtime: Optional[int] = None
    ids: MediaIds = field(default_factory=MediaIds)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'year': self.year,
            'runtime_minutes': self.runtime,
            'ids': self.ids.to_dict(),
        }


@dataclass(frozen=True)
class Episode:
    season: int
    number: int
    title: Optional[str] = None
    runtime: Optional[int] = None
    ids: MediaIds = field(default_factory=MediaIds)

    @property
    def code(self) -> str:
        """Compact form such as S01E05."""
        return f"S{self.season:02d}E{self.number:02d}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'season': self.season,
            'number': self.number,
            'runtime_minutes': self.runtime,
            'ids': self.ids.to_dict(),
        }


@dataclass(frozen=True)
class HistoryItem:
    """
    One watched movie or episode, independent of the service it came from.

    A movie item carries `movie`; an episode item carries both `show` and
    `episode`. Anything else is rejected at construction time.
    """

    watched_at: datetime
    kind: str
    started_at: Optional[datetime] = None
    movie: Optional[Movie] = None
    show: Optional[Show] = None
    episode: Optional[Episode] = None

    def __post_init__(self):
        if self.watched_at is None:
            raise ValueError("History item requires watched_at")
        if self.kind == KIND_MOVIE:
            if self.movie is None or self.show is not None or self.episode is not None:
                raise ValueError("Movie item requires movie data only")
        elif self.kind == KIND_EPISODE:
            if self.show is None or self.episode is None or self.movie is not None:
                raise ValueError("Episode item requires both show and episode")
        else:
            raise ValueError(f"Unknown history item kind: {self.kind}")

    @property
    def title(self) -> str:
        return self.movie.title if self.kind == KIND_MOVIE else self.show.title

    def to_dict(self) -> Dict[str, Any]:
        """Render the item with ISO-8601 timestamps for reporting."""
        result = {
            'watched_at': format_timestamp(self.watched_at),
            'started_at': format_timestamp(self.started_at),
            'kind': self.kind,
        }
        if self.kind == KIND_MOVIE:
            result['movie'] = self.movie.to_dict()
        else:
            result['show'] = self.show.to_dict()
            result['episode'] = self.episode.to_dict()
        return result


@dataclass(frozen=True)
class RawHistory:
    """Raw history payload as returned by a service, plus the requested bounds."""

    service: str
    data: Any
    start: Optional[datetime] = None
    end: Optional[datetime] = None


def derive_started_at(watched_at: datetime, *runtimes: Optional[int]) -> datetime:
    """
    Derive the start of viewing from the first known runtime.

    Runtimes are tried in priority order; with none known the start equals
    the watched timestamp.
    """
    runtime = 0
    for candidate in runtimes:
        if candidate:
            runtime = candidate
            break
    return watched_at - timedelta(minutes=runtime)


def to_int(value) -> Optional[int]:
    """Coerce an upstream number (int or numeric string) to int."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def parse_ids(data, primary_key: Optional[str] = None) -> MediaIds:
    """Build MediaIds from an upstream `ids` object."""
    if not isinstance(data, dict):
        return MediaIds()
    return MediaIds(
        primary_id=(to_int(data.get(primary_key)) or 0) if primary_key else 0,
        slug=data.get('slug') or None,
        imdb=data.get('imdb') or None,
        tmdb=to_int(data.get('tmdb')),
        tvdb=to_int(data.get('tvdb')),
    )


def parse_movie(data, primary_key: str) -> Optional[Movie]:
    """Build a Movie, or None when the movie object has no title."""
    if not isinstance(data, dict) or not data.get('title'):
        return None
    return Movie(
        title=data['title'],
        year=to_int(data.get('year')),
        runtime=to_int(data.get('runtime')),
        ids=parse_ids(data.get('ids'), primary_key),
    )


def parse_show(data, primary_key: str) -> Optional[Show]:
    """Build a Show, or None when the show object has no title."""
    if not isinstance(data, dict) or not data.get('title'):
        return None
    return Show(
        title=data['title'],
        year=to_int(data.get('year')),
        runtime=to_int(data.get('runtime')),
        ids=parse_ids(data.get('ids'), primary_key),
    )


def parse_episode(data) -> Optional[Episode]:
    """
    Build an Episode from a structured episode object.

    The episode number is read from `number`, falling back to `episode`.
    Returns None when season or number is missing.
    """
    if not isinstance(data, dict):
        return None
    season = to_int(data.get('season'))
    number = to_int(data.get('number'))
    if number is None:
        number = to_int(data.get('episode'))
    if season is None or number is None:
        return None
    return Episode(
        season=season,
        number=number,
        title=data.get('title'),
        runtime=to_int(data.get('runtime')),
        ids=parse_ids(data.get('ids')),
    )

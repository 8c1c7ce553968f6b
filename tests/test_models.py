"""Tests for trackers/models.py - unified history item model."""

import pytest
from datetime import datetime, timezone

from trackers.models import (
    KIND_EPISODE,
    KIND_MOVIE,
    Episode,
    HistoryItem,
    MediaIds,
    Movie,
    Show,
    derive_started_at,
    parse_episode,
    parse_ids,
    parse_movie,
    to_int,
)

WATCHED = datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)


class TestHistoryItemInvariants:
    """Tests for HistoryItem shape validation."""

    def test_movie_item(self):
        item = HistoryItem(watched_at=WATCHED, kind=KIND_MOVIE, movie=Movie("Heat"))
        assert item.title == "Heat"

    def test_episode_item(self):
        item = HistoryItem(watched_at=WATCHED, kind=KIND_EPISODE,
                           show=Show("Severance"), episode=Episode(1, 2))
        assert item.title == "Severance"

    def test_movie_item_rejects_show(self):
        with pytest.raises(ValueError):
            HistoryItem(watched_at=WATCHED, kind=KIND_MOVIE,
                        movie=Movie("Heat"), show=Show("Severance"))

    def test_movie_item_requires_movie(self):
        with pytest.raises(ValueError):
            HistoryItem(watched_at=WATCHED, kind=KIND_MOVIE)

    def test_episode_item_requires_show_and_episode(self):
        with pytest.raises(ValueError):
            HistoryItem(watched_at=WATCHED, kind=KIND_EPISODE, episode=Episode(1, 2))
        with pytest.raises(ValueError):
            HistoryItem(watched_at=WATCHED, kind=KIND_EPISODE, show=Show("Severance"))

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            HistoryItem(watched_at=WATCHED, kind="season", movie=Movie("Heat"))

    def test_requires_watched_at(self):
        with pytest.raises(ValueError):
            HistoryItem(watched_at=None, kind=KIND_MOVIE, movie=Movie("Heat"))


class TestHistoryItemToDict:
    """Tests for HistoryItem.to_dict."""

    def test_movie_dict(self):
        item = HistoryItem(
            watched_at=WATCHED,
            started_at=derive_started_at(WATCHED, 120),
            kind=KIND_MOVIE,
            movie=Movie("Heat", 1995, 120, MediaIds(primary_id=1, imdb="tt0113277")),
        )
        assert item.to_dict() == {
            'watched_at': '2024-01-02T10:00:00Z',
            'started_at': '2024-01-02T08:00:00Z',
            'kind': 'movie',
            'movie': {
                'title': 'Heat',
                'year': 1995,
                'runtime_minutes': 120,
                'ids': {'primary_id': 1, 'imdb': 'tt0113277'},
            },
        }

    def test_episode_dict(self):
        item = HistoryItem(watched_at=WATCHED, kind=KIND_EPISODE,
                           show=Show("Severance"), episode=Episode(1, 2, "Half Loop"))
        result = item.to_dict()

        assert result['started_at'] is None
        assert result['show']['title'] == 'Severance'
        assert result['episode'] == {
            'title': 'Half Loop',
            'season': 1,
            'number': 2,
            'runtime_minutes': None,
            'ids': {'primary_id': 0},
        }
        assert 'movie' not in result


class TestDeriveStartedAt:
    """Tests for derive_started_at."""

    def test_subtracts_first_runtime(self):
        assert derive_started_at(WATCHED, 45, 50) == datetime(2024, 1, 2, 9, 15, tzinfo=timezone.utc)

    def test_skips_missing_runtimes(self):
        assert derive_started_at(WATCHED, None, 0, 30) == datetime(2024, 1, 2, 9, 30, tzinfo=timezone.utc)

    def test_no_runtime(self):
        assert derive_started_at(WATCHED) == WATCHED


class TestParsers:
    """Tests for the upstream object parsers."""

    def test_to_int(self):
        assert to_int(5) == 5
        assert to_int("12") == 12
        assert to_int(3.0) == 3
        assert to_int(True) is None
        assert to_int("abc") is None
        assert to_int(None) is None

    def test_parse_ids_primary_key(self):
        ids = parse_ids({"trakt": 7, "simkl": 9, "slug": "x"}, "simkl")
        assert ids.primary_id == 9
        assert ids.slug == "x"

    def test_parse_ids_missing(self):
        assert parse_ids(None, "trakt") == MediaIds()
        assert parse_ids({"slug": "x"}, "trakt").primary_id == 0

    def test_parse_movie_requires_title(self):
        assert parse_movie({"year": 1995}, "trakt") is None
        assert parse_movie(None, "trakt") is None
        assert parse_movie({"title": "Heat", "year": "1995"}, "trakt").year == 1995

    def test_parse_episode_number_fallback(self):
        assert parse_episode({"season": 2, "episode": 4}).number == 4
        assert parse_episode({"season": 2, "number": 3, "episode": 4}).number == 3

    def test_parse_episode_requires_numbers(self):
        assert parse_episode({"season": 2}) is None
        assert parse_episode({"number": 2}) is None

    def test_episode_code(self):
        assert Episode(1, 5).code == "S01E05"
        assert Episode(12, 105).code == "S12E105"

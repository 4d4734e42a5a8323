"""Tests for the TMDB client."""

from datetime import date
from unittest.mock import MagicMock, patch

import httpx
import pytest

from plexdigest.statistics import RunStatistics
from plexdigest.tmdb import (
    TMDBAuthError,
    TMDBClient,
    TMDBError,
    TMDBMovieDetails,
    TMDBNotFoundError,
    TMDBRateLimitError,
    TMDBTVDetails,
)
from plexdigest.tmdb.models import poster_url

# Sample API responses
FIND_MOVIE_RESPONSE = {
    "movie_results": [
        {"id": 348, "title": "Alien", "release_date": "1979-05-25"},
        {"title": "Missing id"},
    ],
    "tv_results": [],
}

FIND_TV_RESPONSE = {
    "movie_results": [],
    "tv_results": [{"id": 63639, "name": "The Expanse", "first_air_date": "2015-12-14"}],
}

MOVIE_RESPONSE = {
    "id": 348,
    "title": "Alien",
    "release_date": "1979-05-25",
    "imdb_id": "tt0078748",
    "overview": "During its return to the earth...",
    "runtime": 117,
    "vote_average": 8.148,
    "poster_path": "/vfrQk5IPloGg1v9Rzbh2Eg3VGyM.jpg",
    "genres": [{"id": 27, "name": "Horror"}, {"id": 878, "name": "Science Fiction"}],
}

TV_RESPONSE = {
    "id": 63639,
    "name": "The Expanse",
    "first_air_date": "2015-12-14",
    "last_air_date": "",
    "overview": "A police detective in the asteroid belt...",
    "vote_average": 7.9,
    "poster_path": None,
    "genres": [{"id": 10765, "name": "Sci-Fi & Fantasy"}],
}


def json_response(data: dict, status_code: int = 200, **kwargs: object) -> MagicMock:
    """Create a fake httpx response."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = data
    response.headers = kwargs.get("headers", {})
    response.text = ""
    return response


class TestTMDBModels:
    """Tests for TMDB data models."""

    def test_movie_year(self) -> None:
        """Test movie year property."""
        movie = TMDBMovieDetails(id=1, title="Test", release_date=date(2020, 5, 15))
        assert movie.year == 2020

    def test_movie_year_none(self) -> None:
        """Test movie year when no release date."""
        assert TMDBMovieDetails(id=1, title="Test").year is None

    def test_poster_url(self) -> None:
        """Test the fixed-width poster URL."""
        assert poster_url("/abc.jpg") == "https://image.tmdb.org/t/p/w185/abc.jpg"
        assert poster_url(None) is None
        assert TMDBTVDetails(id=1, poster_path="/x.jpg").poster_url.endswith("/w185/x.jpg")


class TestTMDBClient:
    """Tests for TMDB API client."""

    def test_init_no_api_key(self) -> None:
        """Test initialization without API key raises error."""
        with pytest.raises(TMDBAuthError, match="API key not provided"):
            TMDBClient()

    def test_init_with_api_key(self) -> None:
        """Test initialization with API key."""
        with TMDBClient(api_key="test_key") as client:
            assert client.api_key == "test_key"

    @patch("httpx.Client.get")
    def test_find_by_imdb(self, mock_get: MagicMock) -> None:
        """Test finding a movie by IMDB id."""
        mock_get.return_value = json_response(FIND_MOVIE_RESPONSE)

        with TMDBClient(api_key="test_key") as client:
            results = client.find("tt0078748", "imdb_id")

        mock_get.assert_called_once_with(
            "/find/tt0078748", params={"external_source": "imdb_id"}
        )
        # The malformed candidate is skipped
        assert [r.id for r in results.movie_results] == [348]
        assert results.movie_results[0].release_date == date(1979, 5, 25)
        assert results.tv_results == []

    @patch("httpx.Client.get")
    def test_find_by_tvdb(self, mock_get: MagicMock) -> None:
        """Test finding a series by TVDB id."""
        mock_get.return_value = json_response(FIND_TV_RESPONSE)

        with TMDBClient(api_key="test_key") as client:
            results = client.find("280619", "tvdb_id")

        assert results.tv_results[0].id == 63639
        assert results.tv_results[0].name == "The Expanse"

    def test_find_unsupported_source(self) -> None:
        """Test that only IMDB and TVDB ids can be looked up."""
        with TMDBClient(api_key="test_key") as client:
            with pytest.raises(ValueError, match="Unsupported external source"):
                client.find("123", "freebase_id")

    @patch("httpx.Client.get")
    def test_search_movie(self, mock_get: MagicMock) -> None:
        """Test a title search with a year."""
        mock_get.return_value = json_response({"results": [{"id": 348, "title": "Alien"}]})

        with TMDBClient(api_key="test_key") as client:
            results = client.search_movie("Alien", year=1979)

        mock_get.assert_called_once_with("/search/movie", params={"query": "Alien", "year": 1979})
        assert results[0].id == 348

    @patch("httpx.Client.get")
    def test_search_movie_without_year(self, mock_get: MagicMock) -> None:
        """Test that no year parameter is sent without a year."""
        mock_get.return_value = json_response({"results": []})

        with TMDBClient(api_key="test_key") as client:
            assert client.search_movie("Alien") == []

        assert mock_get.call_args.kwargs["params"] == {"query": "Alien"}

    @patch("httpx.Client.get")
    def test_get_movie(self, mock_get: MagicMock) -> None:
        """Test getting movie details."""
        mock_get.return_value = json_response(MOVIE_RESPONSE)

        with TMDBClient(api_key="test_key") as client:
            movie = client.get_movie(348)

        mock_get.assert_called_once_with("/movie/348", params=None)
        assert movie.title == "Alien"
        assert movie.year == 1979
        assert movie.imdb_id == "tt0078748"
        assert movie.runtime == 117
        assert movie.genre_names == ["Horror", "Science Fiction"]
        assert movie.poster_url == (
            "https://image.tmdb.org/t/p/w185/vfrQk5IPloGg1v9Rzbh2Eg3VGyM.jpg"
        )

    @patch("httpx.Client.get")
    def test_get_tv(self, mock_get: MagicMock) -> None:
        """Test getting series details with a blank last air date."""
        mock_get.return_value = json_response(TV_RESPONSE)

        with TMDBClient(api_key="test_key") as client:
            show = client.get_tv(63639)

        assert show.name == "The Expanse"
        assert show.first_air_date == date(2015, 12, 14)
        assert show.last_air_date is None
        assert show.poster_url is None

    @patch("httpx.Client.get")
    def test_get_tv_content_ratings(self, mock_get: MagicMock) -> None:
        """Test per-region content ratings."""
        mock_get.return_value = json_response(
            {
                "results": [
                    {"iso_3166_1": "US", "rating": "TV-14"},
                    {"iso_3166_1": "DE", "rating": ""},
                ]
            }
        )

        with TMDBClient(api_key="test_key") as client:
            ratings = client.get_tv_content_ratings(63639)

        mock_get.assert_called_once_with("/tv/63639/content_ratings", params=None)
        assert [(r.region, r.rating) for r in ratings] == [("US", "TV-14")]

    @patch("httpx.Client.get")
    def test_get_tv_external_ids(self, mock_get: MagicMock) -> None:
        """Test series cross-reference ids."""
        mock_get.return_value = json_response({"imdb_id": "tt3230854", "tvdb_id": 280619})

        with TMDBClient(api_key="test_key") as client:
            ids = client.get_tv_external_ids(63639)

        assert ids["imdb_id"] == "tt3230854"

    @patch("httpx.Client.get")
    def test_not_found(self, mock_get: MagicMock) -> None:
        """Test 404 handling."""
        mock_get.return_value = json_response({}, status_code=404)

        with TMDBClient(api_key="test_key") as client:
            with pytest.raises(TMDBNotFoundError):
                client.get_movie(999999999)

    @patch("httpx.Client.get")
    def test_auth_error(self, mock_get: MagicMock) -> None:
        """Test 401 handling."""
        mock_get.return_value = json_response({}, status_code=401)

        with TMDBClient(api_key="invalid_key") as client:
            with pytest.raises(TMDBAuthError):
                client.get_movie(348)

    @patch("httpx.Client.get")
    def test_rate_limit_error(self, mock_get: MagicMock) -> None:
        """Test 429 handling."""
        mock_get.return_value = json_response({}, status_code=429, headers={"Retry-After": "10"})

        with TMDBClient(api_key="test_key") as client:
            with pytest.raises(TMDBRateLimitError) as exc_info:
                client.get_movie(348)

        assert exc_info.value.retry_after == 10

    @patch("httpx.Client.get")
    def test_server_error(self, mock_get: MagicMock) -> None:
        """Test that other statuses carry the TMDB status message."""
        mock_get.return_value = json_response(
            {"status_message": "Internal error"}, status_code=500
        )

        with TMDBClient(api_key="test_key") as client:
            with pytest.raises(TMDBError, match=r"TMDB API error \(500\): Internal error"):
                client.get_movie(348)

    @patch("httpx.Client.get")
    def test_non_json_body(self, mock_get: MagicMock) -> None:
        """Test that a 200 page that is not JSON raises a TMDB error."""
        response = json_response({})
        response.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
        response.text = "<html>proxy</html>"
        mock_get.return_value = response

        with TMDBClient(api_key="test_key") as client:
            with pytest.raises(TMDBError, match="non-JSON response"):
                client.get_movie(348)

    @patch("httpx.Client.get")
    def test_connection_error(self, mock_get: MagicMock) -> None:
        """Test that test_connection wraps transport errors."""
        mock_get.side_effect = httpx.ConnectError("refused")

        with TMDBClient(api_key="test_key") as client:
            with pytest.raises(TMDBError, match="Connection error"):
                client.test_connection()

    @patch("httpx.Client.get")
    def test_records_calls(self, mock_get: MagicMock) -> None:
        """Test that calls are counted by type."""
        stats = RunStatistics()
        stats.start()
        mock_get.return_value = json_response(FIND_MOVIE_RESPONSE)

        with TMDBClient(api_key="test_key") as client:
            client.find("tt0078748", "imdb_id")
            client.search_movie("Alien")

        assert stats.api_calls["tmdb_find"] == 1
        assert stats.api_calls["tmdb_search"] == 1
        assert stats.tmdb_calls == 2

"""TMDB API client."""

from __future__ import annotations

from datetime import date
from typing import Any

import httpx
from pydantic import ValidationError

from plexdigest.api import (
    APIAuthError,
    APIError,
    APINotFoundError,
    APIRateLimitError,
    BaseAPIClient,
)
from plexdigest.tmdb.models import (
    TMDBContentRating,
    TMDBFindResults,
    TMDBGenre,
    TMDBMovieDetails,
    TMDBSearchResult,
    TMDBTVDetails,
)


class TMDBError(APIError):
    """Base exception for TMDB API errors."""

    pass


class TMDBAuthError(TMDBError, APIAuthError):
    """Authentication error (invalid API key)."""

    pass


class TMDBNotFoundError(TMDBError, APINotFoundError):
    """Resource not found."""

    pass


class TMDBRateLimitError(TMDBError, APIRateLimitError):
    """Rate limit exceeded."""

    def __init__(self, retry_after: int | None = None) -> None:
        super().__init__(retry_after=retry_after)


# External id sources accepted by /find
EXTERNAL_SOURCES = frozenset({"imdb_id", "tvdb_id"})


def _parse_date(value: str | None) -> date | None:
    """Parse a TMDB date; unknown dates arrive as "" or null."""
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


class TMDBClient(BaseAPIClient):
    """Client for the TMDB v3 API."""

    BASE_URL = "https://api.themoviedb.org/3"
    DEFAULT_TIMEOUT = 30.0

    _error_cls = TMDBError
    _auth_error_cls = TMDBAuthError
    _not_found_cls = TMDBNotFoundError
    _rate_limit_cls = TMDBRateLimitError
    _api_name = "TMDB"

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the TMDB client.

        Args:
            api_key: TMDB API key. If not provided, reads from config.
            timeout: Request timeout in seconds.
        """
        super().__init__()

        if api_key is None:
            from plexdigest.config import get_config

            cfg = get_config()
            api_key = cfg.tmdb.api_key

        self.api_key = api_key
        if not self.api_key:
            raise TMDBAuthError("TMDB API key not provided. Configure api_key in plexdigest.ini.")

        self._open(timeout, params={"api_key": self.api_key})

    def _error_message(self, response: httpx.Response) -> str:
        try:
            return str(response.json().get("status_message") or "Unknown error")
        except (ValueError, AttributeError):
            return response.text or "Unknown error"

    @staticmethod
    def _parse_candidate(data: dict[str, Any]) -> TMDBSearchResult:
        return TMDBSearchResult(
            id=data["id"],
            title=data.get("title"),
            name=data.get("name"),
            release_date=_parse_date(data.get("release_date")),
            first_air_date=_parse_date(data.get("first_air_date")),
        )

    def _parse_candidates(self, items: list[dict[str, Any]]) -> list[TMDBSearchResult]:
        candidates = []
        for item in items:
            try:
                candidates.append(self._parse_candidate(item))
            except (ValidationError, KeyError):
                # Skip malformed candidates but keep the rest
                continue
        return candidates

    @staticmethod
    def _parse_genres(data: dict[str, Any]) -> list[TMDBGenre]:
        return [TMDBGenre(id=g["id"], name=g["name"]) for g in data.get("genres") or []]

    def find(self, external_id: str, source: str) -> TMDBFindResults:
        """Find TMDB records by an external identifier.

        Args:
            external_id: The identifier, e.g. "tt0078748" or "81189".
            source: The identifier type, "imdb_id" or "tvdb_id".

        Returns:
            Movie and TV candidates (either list may be empty).
        """
        if source not in EXTERNAL_SOURCES:
            raise ValueError(f"Unsupported external source: {source}")

        data = self._get(f"/find/{external_id}", "tmdb_find", external_source=source)
        return TMDBFindResults(
            movie_results=self._parse_candidates(data.get("movie_results", [])),
            tv_results=self._parse_candidates(data.get("tv_results", [])),
        )

    def search_movie(self, query: str, year: int | None = None) -> list[TMDBSearchResult]:
        """Search movies by title.

        Args:
            query: Movie title.
            year: Optional release year to narrow the search.

        Returns:
            Matching candidates in TMDB relevance order.
        """
        params: dict[str, Any] = {"query": query}
        if year:
            params["year"] = year
        data = self._get("/search/movie", "tmdb_search", **params)
        return self._parse_candidates(data.get("results", []))

    def get_movie(self, movie_id: int) -> TMDBMovieDetails:
        """Get full movie details.

        Args:
            movie_id: The TMDB movie ID.
        """
        data = self._get(f"/movie/{movie_id}", "tmdb_movie")

        try:
            return TMDBMovieDetails(
                id=data["id"],
                title=data.get("title") or "",
                release_date=_parse_date(data.get("release_date")),
                imdb_id=data.get("imdb_id") or None,
                overview=data.get("overview") or "",
                runtime=data.get("runtime") or None,
                vote_average=data.get("vote_average"),
                poster_path=data.get("poster_path"),
                genres=self._parse_genres(data),
            )
        except (ValidationError, KeyError) as e:
            raise TMDBError(f"Failed to parse movie response: {e}") from e

    def get_tv(self, tv_id: int) -> TMDBTVDetails:
        """Get full TV series details.

        Args:
            tv_id: The TMDB series ID.
        """
        data = self._get(f"/tv/{tv_id}", "tmdb_tv")

        try:
            return TMDBTVDetails(
                id=data.get("id"),
                name=data.get("name") or "",
                first_air_date=_parse_date(data.get("first_air_date")),
                last_air_date=_parse_date(data.get("last_air_date")),
                overview=data.get("overview") or "",
                vote_average=data.get("vote_average"),
                poster_path=data.get("poster_path"),
                genres=self._parse_genres(data),
            )
        except (ValidationError, KeyError) as e:
            raise TMDBError(f"Failed to parse TV response: {e}") from e

    def get_tv_content_ratings(self, tv_id: int) -> list[TMDBContentRating]:
        """Get the per-region content ratings of a TV series."""
        data = self._get(f"/tv/{tv_id}/content_ratings", "tmdb_tv")
        return [
            TMDBContentRating(region=r["iso_3166_1"], rating=r["rating"])
            for r in data.get("results", [])
            if r.get("iso_3166_1") and r.get("rating")
        ]

    def get_tv_external_ids(self, tv_id: int) -> dict[str, Any]:
        """Get the cross-reference ids (imdb_id, tvdb_id, ...) of a TV series."""
        return self._get(f"/tv/{tv_id}/external_ids", "tmdb_tv")

    def test_connection(self) -> bool:
        """Test the API connection and key validity.

        Raises:
            TMDBAuthError: If the API key is invalid.
            TMDBError: If there's a connection error.
        """
        try:
            self._get("/configuration", "tmdb_configuration")
            return True
        except httpx.RequestError as e:
            raise TMDBError(f"Connection error: {e}") from e

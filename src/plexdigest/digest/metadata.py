"""Movie and show lookups against TMDB.

Lookups never raise: a miss, an API error or a network failure all end in
a MovieNotFound / ShowNotFound so a single bad item cannot stop a digest.
"""

from __future__ import annotations

import httpx

from plexdigest.api import APIError
from plexdigest.digest.ids import extract_imdb_id, extract_tmdb_id
from plexdigest.digest.models import (
    EnrichedMovie,
    EnrichedShow,
    MovieNotFound,
    ShowCluster,
    ShowNotFound,
    format_vote,
    format_year_range,
)
from plexdigest.errors import log_error
from plexdigest.plex import PlexRecentItem
from plexdigest.tmdb import TMDBClient, TMDBMovieDetails

CONTENT_RATING_REGION = "US"

# Failures that are converted into a not-found result
LOOKUP_ERRORS = (APIError, httpx.HTTPError)


class ExternalMetadataClient:
    """Resolve Plex items to TMDB records."""

    def __init__(self, tmdb_client: TMDBClient, title_fallback: bool = True) -> None:
        """Initialize the metadata client.

        Args:
            tmdb_client: Configured TMDB client.
            title_fallback: Search by title and year when a movie has no IMDB
                id or the IMDB id is unknown to TMDB.
        """
        self.tmdb = tmdb_client
        self.title_fallback = title_fallback

    # ------------------------------------------------------------------
    # Movies
    # ------------------------------------------------------------------

    def lookup_movie(self, item: PlexRecentItem) -> EnrichedMovie | MovieNotFound:
        """Enrich a movie.

        Resolution order: IMDB id via /find, the TMDB id Plex already knows,
        then (if enabled) a title search with the Plex year and the year
        before it.
        """
        not_found = MovieNotFound(
            title=item.title,
            year=item.year,
            added_at=item.added_at,
            library_section_title=item.library_section_title,
        )

        try:
            tmdb_id = self._resolve_movie_id(item)
            if tmdb_id is None:
                return not_found
            details = self.tmdb.get_movie(tmdb_id)
        except LOOKUP_ERRORS as e:
            log_error(e, f"TMDB lookup failed for movie: {item.display_title}")
            return not_found

        if not details.title:
            return not_found

        return self._build_movie(item, details)

    def _resolve_movie_id(self, item: PlexRecentItem) -> int | None:
        imdb_id = extract_imdb_id(item.guid_hints)
        if imdb_id:
            results = self.tmdb.find(imdb_id, "imdb_id")
            if results.movie_results:
                return results.movie_results[0].id

        tmdb_id = extract_tmdb_id(item.guid_hints)
        if tmdb_id is not None:
            return tmdb_id

        if not self.title_fallback or not item.title:
            return None

        # TMDB release years are often a year ahead of Plex's
        years = [item.year, item.year - 1] if item.year else [None]
        for year in years:
            candidates = self.tmdb.search_movie(item.title, year=year)
            if candidates:
                return candidates[0].id
        return None

    @staticmethod
    def _build_movie(item: PlexRecentItem, details: TMDBMovieDetails) -> EnrichedMovie:
        return EnrichedMovie(
            title=details.title,
            display_year=details.year or item.year,
            tmdb_id=details.id,
            imdb_id=details.imdb_id or extract_imdb_id(item.guid_hints),
            poster_url=details.poster_url,
            genres=details.genre_names,
            content_rating=item.content_rating,
            runtime_minutes=details.runtime or item.duration_minutes,
            overview=item.summary or details.overview,
            cast=list(item.cast),
            vote_average=format_vote(details.vote_average),
            added_at=item.added_at,
            library_section_title=item.library_section_title,
            source_thumb=item.thumb,
        )

    # ------------------------------------------------------------------
    # Shows
    # ------------------------------------------------------------------

    def lookup_show(self, cluster: ShowCluster) -> EnrichedShow | ShowNotFound:
        """Enrich a show once for all of its added seasons.

        Content rating and IMDB cross-reference are supplementary; if either
        call fails the show is still enriched without that field.
        """
        not_found = ShowNotFound(title=cluster.title, seasons=cluster.season_rows)

        tvdb_id = cluster.tvdb_id
        if tvdb_id is None:
            return not_found

        try:
            results = self.tmdb.find(str(tvdb_id), "tvdb_id")
            if not results.tv_results:
                return not_found
            details = self.tmdb.get_tv(results.tv_results[0].id)
        except LOOKUP_ERRORS as e:
            log_error(e, f"TMDB lookup failed for show: {cluster.title}")
            return not_found

        if details.id is None:
            return not_found

        first_aired = details.first_air_date
        last_aired = details.last_air_date
        plex_summary = cluster.sorted_seasons[0].summary if cluster.seasons else ""

        return EnrichedShow(
            title=details.name or cluster.title,
            year_range=format_year_range(
                first_aired.year if first_aired else None,
                last_aired.year if last_aired else None,
            ),
            tmdb_id=details.id,
            imdb_id=self._show_imdb_id(details.id, cluster.title),
            poster_url=details.poster_url,
            genres=details.genre_names,
            content_rating=self._show_content_rating(details.id, cluster.title),
            overview=details.overview or plex_summary,
            vote_average=format_vote(details.vote_average),
            seasons=cluster.season_rows,
            source_thumb=cluster.thumb,
        )

    def _show_content_rating(self, tv_id: int, title: str) -> str | None:
        try:
            ratings = self.tmdb.get_tv_content_ratings(tv_id)
        except LOOKUP_ERRORS as e:
            log_error(e, f"TMDB content rating lookup failed for show: {title}")
            return None
        for rating in ratings:
            if rating.region == CONTENT_RATING_REGION:
                return rating.rating
        return None

    def _show_imdb_id(self, tv_id: int, title: str) -> str | None:
        try:
            external_ids = self.tmdb.get_tv_external_ids(tv_id)
        except LOOKUP_ERRORS as e:
            log_error(e, f"TMDB external id lookup failed for show: {title}")
            return None
        return external_ids.get("imdb_id") or None

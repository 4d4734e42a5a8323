"""Enrichment of a "recently added" batch."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from plexdigest.digest.metadata import ExternalMetadataClient
from plexdigest.digest.mirror import MirrorError, PosterMirror
from plexdigest.digest.models import (
    DigestReport,
    EnrichedMovie,
    EnrichedShow,
    MovieNotFound,
    ShowCluster,
    ShowNotFound,
)
from plexdigest.digest.pacing import RateLimiter
from plexdigest.errors import log_error
from plexdigest.plex import PlexError, PlexRecentItem

ThumbnailFetcher = Callable[[str], bytes]


def filter_excluded(
    items: Iterable[PlexRecentItem], excluded_libraries: Iterable[str] | None
) -> list[PlexRecentItem]:
    """Drop items whose library section id or title is excluded.

    Titles are compared case-insensitively.
    """
    excluded = {str(lib).strip().lower() for lib in (excluded_libraries or []) if str(lib).strip()}
    if not excluded:
        return list(items)
    return [
        item
        for item in items
        if item.library_section_id.lower() not in excluded
        and item.library_section_title.lower() not in excluded
    ]


def cluster_seasons(
    seasons: Iterable[PlexRecentItem], by_library: bool = False
) -> list[ShowCluster]:
    """Group seasons by show name, in order of first encounter.

    Args:
        seasons: Season items.
        by_library: Key clusters by (show name, library section) so that
            same-named shows in different libraries stay apart.
    """
    clusters: dict[tuple[str, str], ShowCluster] = {}
    for season in seasons:
        section = season.library_section_id if by_library else ""
        key = (season.parent_title, section)
        if key not in clusters:
            clusters[key] = ShowCluster(
                title=season.parent_title,
                library_section_id=season.library_section_id,
            )
        clusters[key].seasons.append(season)
    return list(clusters.values())


class EnrichmentPipeline:
    """Turn raw Plex items into enriched digest records."""

    def __init__(
        self,
        metadata: ExternalMetadataClient,
        rate_limiter: RateLimiter | None = None,
        mirror: PosterMirror | None = None,
        thumbnail_fetcher: ThumbnailFetcher | None = None,
        cluster_by_library: bool = False,
        progress_callback: Callable[[str, int, int], None] | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            metadata: TMDB lookup client.
            rate_limiter: Pacer applied to the movie batch and the show batch.
            mirror: Poster mirror. None disables mirroring and keeps TMDB posters.
            thumbnail_fetcher: Downloads a Plex thumbnail; required with a mirror.
            cluster_by_library: Keep same-named shows from different libraries apart.
            progress_callback: Optional callback for progress updates.
                Signature: (stage: str, current: int, total: int)
        """
        self.metadata = metadata
        self.rate_limiter = rate_limiter or RateLimiter()
        self.mirror = mirror
        self.thumbnail_fetcher = thumbnail_fetcher
        self.cluster_by_library = cluster_by_library
        self._progress = progress_callback or (lambda *args: None)

    @property
    def mirroring_enabled(self) -> bool:
        """Check if posters are re-hosted."""
        return self.mirror is not None and self.thumbnail_fetcher is not None

    def enrich(
        self,
        items: Iterable[PlexRecentItem],
        excluded_libraries: Iterable[str] | None = None,
    ) -> DigestReport:
        """Enrich a batch of recently added items.

        Every movie yields one movie record and every show one show record,
        found or not; per-item failures never abort the batch.

        Args:
            items: Raw items from the Plex feed.
            excluded_libraries: Library section ids or titles to skip.

        Returns:
            Report with enriched and not-found records plus counts.
        """
        from plexdigest.statistics import RunStatistics

        stats = RunStatistics.get_current()

        kept = filter_excluded(items, excluded_libraries)
        movies = sorted((i for i in kept if i.is_movie), key=lambda i: i.added_at)
        clusters = cluster_seasons((i for i in kept if i.is_season), self.cluster_by_library)

        if stats:
            stats.start_phase("Enriching movies")
        movie_records = self._enrich_movies(movies)
        if stats:
            stats.end_phase(item_count=len(movie_records))
            stats.start_phase("Enriching shows")
        show_records = self._enrich_shows(clusters)
        if stats:
            stats.end_phase(item_count=len(show_records))

        return DigestReport(
            movies=movie_records,
            shows=show_records,
            movie_count=len(movie_records),
            show_count=len(show_records),
        )

    def _enrich_movies(self, movies: list[PlexRecentItem]) -> list[EnrichedMovie | MovieNotFound]:
        records: list[EnrichedMovie | MovieNotFound] = []
        total = len(movies)

        for i, item in enumerate(movies):
            self._progress(f"Looking up {item.title}", i + 1, total)
            self.rate_limiter.pace(i)

            record = self.metadata.lookup_movie(item)
            self._record_lookup(isinstance(record, EnrichedMovie))

            if isinstance(record, EnrichedMovie) and self.mirroring_enabled:
                record = record.model_copy(
                    update={"poster_url": self._mirrored_poster(record)}
                )
            records.append(record)

        return records

    def _enrich_shows(self, clusters: list[ShowCluster]) -> list[EnrichedShow | ShowNotFound]:
        records: list[EnrichedShow | ShowNotFound] = []
        total = len(clusters)

        for i, cluster in enumerate(clusters):
            self._progress(f"Looking up {cluster.title}", i + 1, total)
            self.rate_limiter.pace(i)

            record = self.metadata.lookup_show(cluster)
            self._record_lookup(isinstance(record, EnrichedShow))

            if isinstance(record, EnrichedShow) and self.mirroring_enabled:
                record = record.model_copy(
                    update={"poster_url": self._mirrored_poster(record)}
                )
            records.append(record)

        return records

    def _mirrored_poster(self, record: EnrichedMovie | EnrichedShow) -> str | None:
        """Get the poster URL to render for a matched record.

        Records without a Plex thumbnail keep their TMDB poster. A failed
        mirror gives None so the renderer uses a placeholder.
        """
        source_key = record.source_thumb
        if self.mirror is None or self.thumbnail_fetcher is None or not source_key:
            return record.poster_url

        try:
            # Ledger hits must not download the thumbnail again
            cached = self.mirror.cached(source_key)
            if cached is not None:
                return cached.url
            image = self.thumbnail_fetcher(source_key)
            return self.mirror.mirror(source_key, image).url
        except (MirrorError, PlexError) as e:
            log_error(e, f"Poster mirroring failed for: {record.title}")
            self._record_poster_failure()
            return None

    @staticmethod
    def _record_lookup(found: bool) -> None:
        from plexdigest.statistics import RunStatistics

        stats = RunStatistics.get_current()
        if stats:
            stats.record_lookup(found)

    @staticmethod
    def _record_poster_failure() -> None:
        from plexdigest.statistics import RunStatistics

        stats = RunStatistics.get_current()
        if stats:
            stats.record_poster_failure()

"""Metadata enrichment of recently added media."""

from plexdigest.digest.ids import (
    extract_imdb_id,
    extract_legacy_show_tvdb_id,
    extract_tmdb_id,
    extract_tvdb_id,
)
from plexdigest.digest.metadata import ExternalMetadataClient
from plexdigest.digest.mirror import (
    MirrorError,
    MirrorLedgerError,
    MirrorNotConfiguredError,
    MirrorUploadError,
    PosterLedger,
    PosterMirror,
)
from plexdigest.digest.models import (
    DigestReport,
    EnrichedMovie,
    EnrichedShow,
    MirrorResult,
    MovieNotFound,
    PosterCacheEntry,
    SeasonRow,
    ShowCluster,
    ShowNotFound,
)
from plexdigest.digest.pacing import RateLimiter
from plexdigest.digest.pipeline import EnrichmentPipeline, cluster_seasons, filter_excluded

__all__ = [
    # Identifiers
    "extract_imdb_id",
    "extract_legacy_show_tvdb_id",
    "extract_tmdb_id",
    "extract_tvdb_id",
    # Lookups
    "ExternalMetadataClient",
    "RateLimiter",
    "EnrichmentPipeline",
    "cluster_seasons",
    "filter_excluded",
    # Posters
    "PosterLedger",
    "PosterMirror",
    "MirrorError",
    "MirrorLedgerError",
    "MirrorNotConfiguredError",
    "MirrorUploadError",
    # Records
    "DigestReport",
    "EnrichedMovie",
    "MovieNotFound",
    "EnrichedShow",
    "ShowNotFound",
    "SeasonRow",
    "ShowCluster",
    "PosterCacheEntry",
    "MirrorResult",
]

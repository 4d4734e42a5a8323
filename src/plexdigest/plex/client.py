"""Plex Media Server client."""

import os
from datetime import datetime
from urllib.parse import urlparse

import httpx
from plexapi.exceptions import BadRequest, NotFound, Unauthorized
from plexapi.server import PlexServer

from plexdigest.plex.models import PlexLibrary, PlexRecentItem


class PlexError(Exception):
    """Raised when the Plex server cannot be used."""

    pass


class PlexAuthError(PlexError):
    """Missing credentials or a token the server refused."""

    pass


class PlexConnectionError(PlexError):
    """The server is unreachable or failed a query."""

    pass


class PlexNotFoundError(PlexError):
    """The server has nothing at the requested path."""

    pass


class PlexClient:
    """Reads recently added items and thumbnails from a Plex Media Server.

    Credentials come from the arguments, then [plex] in the config file,
    then the PLEX_URL and PLEX_TOKEN environment variables.
    """

    def __init__(
        self,
        url: str | None = None,
        token: str | None = None,
        timeout: int = 30,
    ) -> None:
        if url is None or token is None:
            from plexdigest.config import get_config

            cfg = get_config().plex
            url = url or cfg.url or os.environ.get("PLEX_URL")
            token = token or cfg.token or os.environ.get("PLEX_TOKEN")

        for value, option, env_var in ((url, "url", "PLEX_URL"), (token, "token", "PLEX_TOKEN")):
            if not value:
                raise PlexAuthError(
                    f"Plex {option} not provided. Set [plex] {option} in plexdigest.ini "
                    f"or the {env_var} environment variable."
                )

        self.url = self._normalize_url(url)  # type: ignore[arg-type]
        self.token: str = token  # type: ignore[assignment]
        self._timeout = timeout
        self._server: PlexServer | None = None
        self._show_guids: dict[str, str] = {}  # Show rating key -> guid hints

    @staticmethod
    def _normalize_url(url: str) -> str:
        # urlparse treats "localhost:32400" as scheme="localhost", path="32400"
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            url = f"http://{url}"
        return url.rstrip("/")

    def connect(self) -> None:
        """Connect to the Plex server.

        Raises:
            PlexAuthError: If authentication fails.
            PlexConnectionError: If connection fails.
        """
        try:
            self._server = PlexServer(self.url, self.token, timeout=self._timeout)
        except Unauthorized as e:
            raise PlexAuthError(f"Invalid Plex token: {e}") from e
        except Exception as e:
            raise PlexConnectionError(f"Failed to connect to Plex server: {e}") from e
        self._record_request()

    @property
    def server(self) -> PlexServer:
        """Get the connected server, connecting if necessary."""
        if self._server is None:
            self.connect()
        return self._server  # type: ignore[return-value]

    @property
    def server_name(self) -> str:
        """Get the server's friendly name."""
        return self.server.friendlyName

    @property
    def server_version(self) -> str:
        """Get the Plex Media Server version string."""
        return str(self.server.version)

    def __enter__(self) -> "PlexClient":
        self.connect()
        return self

    def __exit__(self, *args: object) -> None:
        self._server = None

    def _record_request(self) -> None:
        from plexdigest.statistics import RunStatistics

        stats = RunStatistics.get_current()
        if stats:
            stats.record_api_call("plex")

    def get_libraries(self) -> list[PlexLibrary]:
        """Get all library sections."""
        sections = self.server.library.sections()
        self._record_request()
        return [
            PlexLibrary(
                key=str(section.key),
                title=section.title,
                type=section.type,
            )
            for section in sections
        ]

    def get_recently_added(self, since_epoch: int) -> list[PlexRecentItem]:
        """Get movies and TV seasons added at or after a point in time.

        Movie libraries are searched for movies and TV libraries for seasons,
        so a batch of new episodes shows up once per season.

        Args:
            since_epoch: Cutoff as epoch seconds.

        Returns:
            Recently added items in the order Plex returns them.

        Raises:
            PlexConnectionError: If the server cannot be queried.
        """
        since = datetime.fromtimestamp(since_epoch)
        items: list[PlexRecentItem] = []

        try:
            for section in self.server.library.sections():
                if section.type == "movie":
                    libtype = "movie"
                elif section.type == "show":
                    libtype = "season"
                else:
                    continue

                results = section.search(libtype=libtype, filters={"addedAt>>": since})
                self._record_request()

                for item in results:
                    added_at = self._epoch(getattr(item, "addedAt", None))
                    if added_at < since_epoch:
                        continue
                    if libtype == "movie":
                        items.append(self._to_movie_item(item, section, added_at))
                    else:
                        items.append(self._to_season_item(item, section, added_at))
        except (BadRequest, NotFound) as e:
            raise PlexConnectionError(f"Failed to query recently added items: {e}") from e

        return items

    def get_thumbnail(self, path: str) -> bytes:
        """Download a thumbnail image from the server.

        Args:
            path: Server-relative thumbnail path (e.g. /library/metadata/1/thumb/2).

        Returns:
            Raw image bytes.

        Raises:
            PlexNotFoundError: If the server has no image at that path.
            PlexConnectionError: On any other HTTP or network failure.
        """
        url = self.server.url(path, includeToken=True)
        try:
            response = httpx.get(url, timeout=self._timeout)
        except httpx.HTTPError as e:
            raise PlexConnectionError(f"Failed to download thumbnail {path}: {e}") from e
        self._record_request()

        if response.status_code == 404:
            raise PlexNotFoundError(f"Thumbnail not found: {path}")
        if response.status_code != 200:
            raise PlexConnectionError(
                f"Failed to download thumbnail {path}: HTTP {response.status_code}"
            )
        return response.content

    @staticmethod
    def _epoch(value: object) -> int:
        """Convert a plexapi timestamp (datetime or epoch) to epoch seconds."""
        if isinstance(value, datetime):
            return int(value.timestamp())
        if isinstance(value, (int, float)):
            return int(value)
        return 0

    @staticmethod
    def _guid_strings(item: object) -> list[str]:
        """Collect the primary guid plus any external guids of a Plex item."""
        guids = []
        primary = getattr(item, "guid", None)
        if primary:
            guids.append(str(primary))
        for guid in getattr(item, "guids", []) or []:
            guids.append(str(guid.id) if hasattr(guid, "id") else str(guid))
        return guids

    def _to_movie_item(self, item: object, section: object, added_at: int) -> PlexRecentItem:
        duration = getattr(item, "duration", None)
        return PlexRecentItem(
            rating_key=str(getattr(item, "ratingKey", "")),
            kind="movie",
            title=getattr(item, "title", "") or "",
            year=getattr(item, "year", None),
            guid_hints=" ".join(self._guid_strings(item)),
            added_at=added_at,
            library_section_id=str(getattr(section, "key", "")),
            library_section_title=getattr(section, "title", "") or "",
            thumb=getattr(item, "thumb", None),
            content_rating=getattr(item, "contentRating", None),
            summary=getattr(item, "summary", "") or "",
            cast=[role.tag for role in (getattr(item, "roles", None) or [])[:3]],
            duration_minutes=duration // 60000 if isinstance(duration, int) else None,
        )

    def _to_season_item(self, item: object, section: object, added_at: int) -> PlexRecentItem:
        # Current agents give a season its own tvdb:// id, so the show is
        # identified from parentGuid and the show's guids only
        show_hints = [str(getattr(item, "parentGuid", None) or ""), self._get_show_guids(item)]

        return PlexRecentItem(
            rating_key=str(getattr(item, "ratingKey", "")),
            kind="season",
            title=getattr(item, "title", "") or "",
            year=getattr(item, "parentYear", None) or getattr(item, "year", None),
            guid_hints=" ".join(self._guid_strings(item)),
            show_guid_hints=" ".join(h for h in show_hints if h),
            added_at=added_at,
            library_section_id=str(getattr(section, "key", "")),
            library_section_title=getattr(section, "title", "") or "",
            thumb=getattr(item, "parentThumb", None) or getattr(item, "thumb", None),
            parent_title=getattr(item, "parentTitle", "") or "",
            season_index=getattr(item, "index", None) or 0,
            episode_count=getattr(item, "leafCount", None) or 0,
            summary=getattr(item, "parentSummary", "") or getattr(item, "summary", "") or "",
        )

    def _get_show_guids(self, season: object) -> str:
        """Get the external guids of a season's show, fetched once per show."""
        parent_key = str(getattr(season, "parentRatingKey", "") or "")
        if not parent_key:
            return ""
        if parent_key not in self._show_guids:
            try:
                show = season.show()  # type: ignore[attr-defined]
                self._record_request()
                self._show_guids[parent_key] = " ".join(self._guid_strings(show))
            except (NotFound, BadRequest):
                self._show_guids[parent_key] = ""
        return self._show_guids[parent_key]

"""Idempotent poster mirroring.

Plex thumbnails are only reachable with a server token, so posters are
re-hosted on Imgur for the emailed digest. Every upload is recorded in a CSV
ledger keyed by the Plex thumbnail path; a path that is already in the
ledger is never uploaded again.

Ledger layout (one row per source key, append-only):

    PlexPath,ImgurLink,DeleteHash,DateAdded,Height,Width
    /library/metadata/123/thumb/1700000000,https://i.imgur.com/abc.jpg,xyz,2024-11-14,278,185
"""

from __future__ import annotations

import base64
import csv
import threading
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from plexdigest.api import APIError
from plexdigest.digest.models import MirrorResult, PosterCacheEntry
from plexdigest.errors import log_error

if TYPE_CHECKING:
    from plexdigest.imgur import ImgurClient

LEDGER_COLUMNS = ["PlexPath", "ImgurLink", "DeleteHash", "DateAdded", "Height", "Width"]


class MirrorError(Exception):
    """Base exception for poster mirroring."""

    pass


class MirrorNotConfiguredError(MirrorError):
    """Mirroring was requested but no image host is configured."""

    pass


class MirrorUploadError(MirrorError):
    """The image host rejected the upload or could not be reached."""

    pass


class MirrorLedgerError(MirrorError):
    """The poster ledger could not be read or written."""

    pass


def _to_int(value: str | None) -> int:
    try:
        return int(value or 0)
    except ValueError:
        return 0


class PosterLedger:
    """Append-only CSV record of mirrored posters."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> list[PosterCacheEntry]:
        """Read every ledger row. A missing file is an empty ledger.

        Raises:
            MirrorLedgerError: If the file cannot be read or parsed.
        """
        if not self.path.exists():
            return []

        try:
            with open(self.path, newline="", encoding="utf-8") as f:
                rows = list(csv.DictReader(f))
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise MirrorLedgerError(f"Cannot read poster ledger {self.path}: {e}") from e

        entries = []
        for row in rows:
            key = row.get("PlexPath")
            link = row.get("ImgurLink")
            if not key or not link:
                continue
            entries.append(
                PosterCacheEntry(
                    source_key=key,
                    mirrored_url=link,
                    delete_token=row.get("DeleteHash") or "",
                    date_added=row.get("DateAdded") or "",
                    height=_to_int(row.get("Height")),
                    width=_to_int(row.get("Width")),
                )
            )
        return entries

    def find(self, source_key: str) -> PosterCacheEntry | None:
        """Get the entry for a source key (the first row if duplicated by hand)."""
        for entry in self.load():
            if entry.source_key == source_key:
                return entry
        return None

    def append(self, entry: PosterCacheEntry) -> None:
        """Persist a new entry, writing the header when creating the file.

        Raises:
            MirrorLedgerError: If the file cannot be written.
        """
        row = [
            entry.source_key,
            entry.mirrored_url,
            entry.delete_token,
            entry.date_added,
            entry.height,
            entry.width,
        ]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            is_new = not self.path.exists() or self.path.stat().st_size == 0
            with open(self.path, "a", newline="", encoding="utf-8") as f:
                writer = csv.writer(f)
                if is_new:
                    writer.writerow(LEDGER_COLUMNS)
                writer.writerow(row)
        except OSError as e:
            raise MirrorLedgerError(f"Cannot write poster ledger {self.path}: {e}") from e

    def __len__(self) -> int:
        return len(self.load())


class PosterMirror:
    """Upload-once, reuse-by-key poster mirror."""

    def __init__(self, ledger: PosterLedger, uploader: ImgurClient | None = None) -> None:
        """Initialize the mirror.

        Args:
            ledger: Where mirrored posters are recorded.
            uploader: Image host client. Without one, cached posters are still
                served but new ones raise MirrorNotConfiguredError.
        """
        self.ledger = ledger
        self.uploader = uploader
        self._lock = threading.Lock()

    def cached(self, source_key: str) -> MirrorResult | None:
        """Get the hosted copy of a poster without uploading anything."""
        with self._lock:
            existing = self.ledger.find(source_key)
        if existing is None:
            return None

        from plexdigest.statistics import RunStatistics

        stats = RunStatistics.get_current()
        if stats:
            stats.record_poster(hit=True)
        return MirrorResult(
            url=existing.mirrored_url,
            width=existing.width,
            height=existing.height,
            cached=True,
        )

    def mirror(self, source_key: str, image_bytes: bytes) -> MirrorResult:
        """Return the hosted copy of a poster, uploading it on first sight.

        Args:
            source_key: Stable key of the source image (the Plex thumbnail path).
            image_bytes: The image to upload on a ledger miss.

        Raises:
            MirrorNotConfiguredError: On a miss with no uploader configured.
            MirrorUploadError: If the upload fails.
            MirrorLedgerError: If the ledger cannot be read.
        """
        from plexdigest.statistics import RunStatistics

        stats = RunStatistics.get_current()

        # Read, check and append as one step so a key is uploaded at most once
        with self._lock:
            existing = self.ledger.find(source_key)
            if existing is not None:
                if stats:
                    stats.record_poster(hit=True)
                return MirrorResult(
                    url=existing.mirrored_url,
                    width=existing.width,
                    height=existing.height,
                    cached=True,
                )

            if self.uploader is None:
                raise MirrorNotConfiguredError("Poster mirroring needs an Imgur client_id")

            if stats:
                stats.record_poster(hit=False)

            encoded = base64.b64encode(image_bytes).decode("ascii")
            try:
                image = self.uploader.upload(encoded)
            except (APIError, httpx.HTTPError) as e:
                raise MirrorUploadError(f"Failed to upload poster {source_key}: {e}") from e

            entry = PosterCacheEntry(
                source_key=source_key,
                mirrored_url=image.link,
                delete_token=image.deletehash,
                date_added=datetime.now().strftime("%Y-%m-%d"),
                height=image.height,
                width=image.width,
            )
            try:
                self.ledger.append(entry)
            except MirrorLedgerError as e:
                # The image is hosted; keep it for this digest and leave the
                # delete hash in the error log so it can be removed by hand
                log_error(e, f"Unrecorded upload {entry.mirrored_url} ({entry.delete_token})")

        return MirrorResult(url=entry.mirrored_url, width=entry.width, height=entry.height)

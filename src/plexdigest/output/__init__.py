"""Output formatting for digest reports.

Renders a DigestReport as an emailable HTML document, as JSON, or as a
text summary on the console.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from functools import cache
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import Environment, PackageLoader, select_autoescape
from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from plexdigest.digest.models import DigestReport


console = Console()

PLACEHOLDER_POSTER_URL = "https://via.placeholder.com/185x278?text=No+Poster"
NO_INFO_TEXT = "No additional information available."

TEMPLATE_NAME = "digest.html"


@cache
def get_template_environment() -> Environment:
    """Get the Jinja2 environment for the packaged digest templates."""
    return Environment(
        loader=PackageLoader("plexdigest.output", "templates"),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


class DigestFormatter:
    """Formatter for digest reports."""

    def __init__(self, report: DigestReport, subject: str | None = None) -> None:
        self.report = report
        self._subject = subject

    # ------------------------------------------------------------------
    # HTML
    # ------------------------------------------------------------------

    def to_html(self) -> str:
        """Render the full digest as a standalone HTML document.

        Items without metadata get the placeholder poster and a notice in
        place of the overview. All text is escaped by the template.
        """
        template = get_template_environment().get_template(TEMPLATE_NAME)
        return template.render(
            report=self.report,
            subject=self.subject,
            summary=self._summary_line(),
            placeholder_poster=PLACEHOLDER_POSTER_URL,
            no_info=NO_INFO_TEXT,
        )

    @property
    def subject(self) -> str:
        """Headline for the digest (also used as the email subject)."""
        if self._subject:
            return self._subject
        if self.report.server_name:
            return f"Recently added to {self.report.server_name}"
        return "Recently added to Plex"

    def _summary_line(self) -> str:
        return (
            f"{self.report.movie_count} movies and {self.report.show_count} shows "
            f"added in the last {self.report.days} days"
        )

    def save_html(self, path: Path | None = None) -> Path:
        """Save the HTML digest and return its path."""
        if path is None:
            path = Path.cwd() / f"plexdigest_{date.today().isoformat()}.html"

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.to_html())

        return path

    # ------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------

    def to_json(self) -> str:
        """Convert the digest to a JSON string."""
        output: dict[str, Any] = {
            "generated_at": datetime.now().isoformat(timespec="seconds"),
            "days": self.report.days,
            "movie_count": self.report.movie_count,
            "show_count": self.report.show_count,
            "not_found": self.report.not_found_counts,
            "movies": [
                {"found": hasattr(m, "tmdb_id"), **m.model_dump(mode="json")}
                for m in self.report.movies
            ],
            "shows": [
                {"found": hasattr(s, "tmdb_id"), **s.model_dump(mode="json")}
                for s in self.report.shows
            ],
        }
        return json.dumps(output, indent=2)

    # ------------------------------------------------------------------
    # Console
    # ------------------------------------------------------------------

    def to_text(self, verbose: bool = False) -> None:
        """Output the digest as formatted text."""
        from plexdigest.digest.models import EnrichedMovie, EnrichedShow

        console.print()
        console.print(f"[bold blue]{self.subject}[/bold blue]")
        console.print(f"[dim]{self._summary_line()}[/dim]")
        console.print()

        if self.report.is_empty:
            console.print("[green]Nothing new this time.[/green]")
            return

        if self.report.movies:
            table = Table(show_header=True, header_style="dim", box=None, padding=(0, 2))
            table.add_column("Movie", style="white")
            table.add_column("Genres", style="dim")
            table.add_column("Rating", style="dim", justify="right")
            for movie in self.report.movies:
                if isinstance(movie, EnrichedMovie):
                    table.add_row(movie.display_title, movie.genre_text, movie.rating_text)
                else:
                    table.add_row(movie.display_title, "[yellow]not found[/yellow]", "")
            console.print(table)
            console.print()

        for show in self.report.shows:
            if isinstance(show, EnrichedShow):
                console.print(f"[bold]{show.title}[/bold] [dim]{show.year_range}[/dim]")
            else:
                console.print(f"[bold]{show.title}[/bold] [yellow](not found)[/yellow]")
            if verbose or len(show.seasons) <= 3:
                for season in show.seasons:
                    console.print(f"  {season.title} - {season.episode_text}")
            else:
                console.print(f"  [dim]{len(show.seasons)} seasons[/dim]")

"""Tests for digest rendering."""

import json
from pathlib import Path

import pytest

from plexdigest.digest import (
    DigestReport,
    EnrichedMovie,
    EnrichedShow,
    MovieNotFound,
    SeasonRow,
    ShowNotFound,
)
from plexdigest.output import (
    NO_INFO_TEXT,
    PLACEHOLDER_POSTER_URL,
    TEMPLATE_NAME,
    DigestFormatter,
    get_template_environment,
)


@pytest.fixture
def report() -> DigestReport:
    """A digest with one found and one missing item of each kind."""
    movies = [
        EnrichedMovie(
            title="Alien",
            display_year=1979,
            tmdb_id=348,
            imdb_id="tt0078748",
            poster_url="https://i.imgur.com/alien.jpg",
            genres=["Horror", "Science Fiction"],
            content_rating="R",
            runtime_minutes=117,
            overview="In space no one can hear you scream.",
            cast=["Sigourney Weaver", "Tom Skerritt"],
            vote_average=8.1,
        ),
        MovieNotFound(title="Home Video", year=2003),
    ]
    shows = [
        EnrichedShow(
            title="The Expanse",
            year_range="2015-2022",
            tmdb_id=63639,
            poster_url="https://image.tmdb.org/t/p/w185/exp.jpg",
            genres=["Sci-Fi & Fantasy"],
            seasons=[
                SeasonRow(title="Season 1", index=1, episode_count=10),
                SeasonRow(title="Season 2", index=2, episode_count=1),
            ],
        ),
        ShowNotFound(title="Local Show", seasons=[SeasonRow(title="Season 1", index=1)]),
    ]
    return DigestReport(
        days=7,
        movies=movies,
        shows=shows,
        movie_count=2,
        show_count=2,
        server_name="Media Server",
    )


class TestSubject:
    """Tests for the digest headline."""

    def test_explicit_subject(self, report: DigestReport) -> None:
        """Test that a configured subject wins."""
        assert DigestFormatter(report, subject="New this week").subject == "New this week"

    def test_server_name(self, report: DigestReport) -> None:
        """Test the default subject naming the server."""
        assert DigestFormatter(report).subject == "Recently added to Media Server"

    def test_fallback(self) -> None:
        """Test the default subject without a server name."""
        assert DigestFormatter(DigestReport()).subject == "Recently added to Plex"


class TestHtml:
    """Tests for the HTML digest."""

    def test_sections_and_counts(self, report: DigestReport) -> None:
        """Test section headings carry the counts."""
        html = DigestFormatter(report).to_html()

        assert "<h2>Movies (2)</h2>" in html
        assert "<h2>TV Shows (2)</h2>" in html
        assert "2 movies and 2 shows added in the last 7 days" in html

    def test_enriched_movie(self, report: DigestReport) -> None:
        """Test the fields rendered for a found movie."""
        html = DigestFormatter(report).to_html()

        assert "Alien (1979)" in html
        assert "https://i.imgur.com/alien.jpg" in html
        assert "R | 117 min | Horror, Science Fiction | Rating 8.1" in html
        assert "Starring Sigourney Weaver, Tom Skerritt" in html
        assert "https://www.imdb.com/title/tt0078748/" in html

    def test_not_found_movie(self, report: DigestReport) -> None:
        """Test that a missing movie gets a placeholder and a notice."""
        html = DigestFormatter(report).to_html()

        assert "Home Video (2003)" in html
        assert PLACEHOLDER_POSTER_URL in html
        assert NO_INFO_TEXT in html

    def test_seasons(self, report: DigestReport) -> None:
        """Test that seasons are listed under their show."""
        html = DigestFormatter(report).to_html()

        assert "The Expanse (2015-2022)" in html
        assert "<li>Season 1 (10 episodes)</li><li>Season 2 (1 episode)</li>" in html
        assert "Local Show" in html

    def test_escapes_text(self) -> None:
        """Test that titles are HTML escaped."""
        report = DigestReport(
            movies=[MovieNotFound(title="Tom & Jerry <Uncut>")], movie_count=1
        )

        html = DigestFormatter(report).to_html()

        assert "Tom &amp; Jerry &lt;Uncut&gt;" in html
        assert "<Uncut>" not in html

    def test_escapes_attributes(self) -> None:
        """Test that poster URLs and alt text cannot break out of their attributes."""
        movie = EnrichedMovie(
            title='"Quoted" <b>',
            tmdb_id=1,
            poster_url='https://i.imgur.com/a.jpg" onerror="x',
        )

        html = DigestFormatter(DigestReport(movies=[movie], movie_count=1)).to_html()

        assert 'src="https://i.imgur.com/a.jpg&#34; onerror=&#34;x"' in html
        assert 'alt="&#34;Quoted&#34; &lt;b&gt;"' in html
        assert "<b>" not in html

    def test_template_is_packaged(self) -> None:
        """Test that the digest template loads from the installed package."""
        env = get_template_environment()

        assert TEMPLATE_NAME in env.list_templates()
        assert env.autoescape(TEMPLATE_NAME) is True

    def test_empty_digest(self) -> None:
        """Test the notice shown when nothing was added."""
        html = DigestFormatter(DigestReport(days=3)).to_html()

        assert "Nothing was added in the last 3 days." in html
        assert "<h2>" not in html

    def test_save_html(self, report: DigestReport, tmp_path: Path) -> None:
        """Test saving the digest to a file."""
        path = DigestFormatter(report).save_html(tmp_path / "out" / "digest.html")

        assert path.exists()
        assert "Alien (1979)" in path.read_text(encoding="utf-8")

    def test_save_html_default_name(self, report: DigestReport, tmp_path: Path) -> None:
        """Test the dated default file name in the working directory."""
        path = DigestFormatter(report).save_html()

        assert path.parent == tmp_path
        assert path.name.startswith("plexdigest_")
        assert path.suffix == ".html"


class TestJson:
    """Tests for the JSON digest."""

    def test_structure(self, report: DigestReport) -> None:
        """Test counts and found flags."""
        data = json.loads(DigestFormatter(report).to_json())

        assert data["days"] == 7
        assert data["movie_count"] == 2
        assert data["show_count"] == 2
        assert data["not_found"] == {"movies": 1, "shows": 1}
        assert [m["found"] for m in data["movies"]] == [True, False]
        assert [s["found"] for s in data["shows"]] == [True, False]
        assert data["shows"][0]["seasons"][1]["episode_count"] == 1


class TestText:
    """Tests for console output."""

    def test_to_text(self, report: DigestReport, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that the console summary lists items."""
        DigestFormatter(report).to_text()

        out = capsys.readouterr().out
        assert "Alien (1979)" in out
        assert "not found" in out
        assert "The Expanse" in out

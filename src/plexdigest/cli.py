"""Command-line interface for PlexDigest."""

from __future__ import annotations

import sys
import time
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)
from rich.table import Table

from plexdigest import __version__
from plexdigest.config import get_config

if TYPE_CHECKING:
    from plexdigest.config import AppConfig
    from plexdigest.digest import DigestReport, EnrichmentPipeline
    from plexdigest.plex import PlexClient

# Load environment variables from .env file
load_dotenv()

console = Console()

SECONDS_PER_DAY = 86400


def _fail(label: str, error: Exception | str) -> NoReturn:
    """Report a fatal error and exit before anything is sent."""
    from plexdigest.errors import get_friendly_message, log_error

    log_error(error, label)
    message = error if isinstance(error, str) else get_friendly_message(error)
    console.print(f"[red]{label}:[/red] {escape(message)}")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="plexdigest")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output (no progress, only results)")
@click.pass_context
def main(ctx: click.Context, verbose: bool, quiet: bool) -> None:
    """PlexDigest - Email a digest of media recently added to Plex."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet


def _load_config() -> AppConfig:
    """Load the configuration, exiting on a malformed file."""
    from plexdigest.config import ConfigError

    try:
        return get_config()
    except ConfigError as e:
        _fail("Configuration error", e)


def _check_configuration(cfg: AppConfig, mirror: bool, email: bool) -> None:
    """Abort if a required collaborator has no credentials."""
    missing = cfg.missing_settings(mirror=mirror, email=email)
    if missing:
        _fail("Configuration error", f"missing {', '.join(missing)} (see 'plexdigest config path')")


def _build_pipeline(
    cfg: AppConfig,
    plex: PlexClient,
    mirror: bool,
    progress_callback: Callable[[str, int, int], None] | None = None,
) -> EnrichmentPipeline:
    """Wire TMDB, pacing and (optionally) poster mirroring into a pipeline."""
    from plexdigest.config import get_ledger_path
    from plexdigest.digest import (
        EnrichmentPipeline,
        ExternalMetadataClient,
        PosterLedger,
        PosterMirror,
        RateLimiter,
    )
    from plexdigest.imgur import ImgurClient
    from plexdigest.tmdb import TMDBClient, TMDBError

    try:
        tmdb = TMDBClient(api_key=cfg.tmdb.api_key)
        tmdb.test_connection()
    except TMDBError as e:
        _fail("TMDB error", e)

    poster_mirror = None
    if mirror:
        poster_mirror = PosterMirror(
            ledger=PosterLedger(get_ledger_path()),
            uploader=ImgurClient(client_id=cfg.imgur.client_id),
        )

    return EnrichmentPipeline(
        metadata=ExternalMetadataClient(tmdb, title_fallback=cfg.options.title_fallback),
        rate_limiter=RateLimiter(
            batch_size=cfg.options.pause_every,
            pause_seconds=cfg.options.pause_seconds,
        ),
        mirror=poster_mirror,
        thumbnail_fetcher=plex.get_thumbnail if mirror else None,
        cluster_by_library=cfg.options.cluster_by_library,
        progress_callback=progress_callback,
    )


def _collect(
    cfg: AppConfig, days: int, mirror: bool, progress: Progress | None
) -> DigestReport:
    """Fetch the recently added items and enrich them."""
    from plexdigest.plex import PlexClient, PlexError

    task = progress.add_task("Connecting to Plex...", total=None) if progress else None

    def progress_callback(stage: str, current: int, total: int) -> None:
        if progress is not None and task is not None:
            progress.update(task, description=stage, completed=current, total=total)

    try:
        plex = PlexClient(url=cfg.plex.url, token=cfg.plex.token)
        plex.connect()
        if progress is not None and task is not None:
            progress.update(task, description=f"Connected to {plex.server_name}")
        since = int(time.time()) - days * SECONDS_PER_DAY
        items = plex.get_recently_added(since)
    except PlexError as e:
        _fail("Plex error", e)

    pipeline = _build_pipeline(cfg, plex, mirror, progress_callback)
    report = pipeline.enrich(items, cfg.exclusions.libraries)
    return report.model_copy(update={"days": days, "server_name": plex.server_name})


@main.command()
@click.option(
    "--days", "-d", type=int, default=None, help="Window in days (default: from config or 7)"
)
@click.option(
    "--mirror/--no-mirror",
    default=None,
    help="Re-host posters on Imgur (default: from config)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also save the HTML digest to this file",
)
@click.option("--no-email", is_flag=True, help="Build the digest without sending it")
@click.option(
    "--format",
    "-f",
    type=click.Choice(["text", "json", "html"]),
    default="text",
    help="Console output format",
)
@click.pass_context
def run(
    ctx: click.Context,
    days: int | None,
    mirror: bool | None,
    output: Path | None,
    no_email: bool,
    format: str,
) -> None:
    """Build the digest of recently added media and email it."""
    from plexdigest.mailer import Mailer, MailError
    from plexdigest.output import DigestFormatter
    from plexdigest.statistics import RunStatistics

    verbose = ctx.obj.get("verbose", False)
    quiet = ctx.obj.get("quiet", False)
    cfg = _load_config()

    if days is None:
        days = cfg.options.days
    if mirror is None:
        mirror = cfg.options.mirror_posters
    send_email = not no_email

    _check_configuration(cfg, mirror=mirror, email=send_email)

    mailer = None
    if send_email:
        try:
            mailer = Mailer(cfg.email)
        except MailError as e:
            _fail("Email error", e)

    stats = RunStatistics()
    stats.start()

    try:
        if quiet:
            report = _collect(cfg, days, mirror, progress=None)
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console,
                transient=True,
            ) as progress:
                report = _collect(cfg, days, mirror, progress=progress)
    except KeyboardInterrupt:
        console.print("\n[yellow]Run cancelled.[/yellow]")
        sys.exit(130)
    finally:
        stats.stop()
        RunStatistics.reset_current()

    formatter = DigestFormatter(report, subject=cfg.options.subject)
    html = formatter.to_html()

    if format == "json":
        console.print_json(formatter.to_json())
    elif format == "html":
        click.echo(html)
    else:
        formatter.to_text(verbose)

    if output is not None:
        saved = formatter.save_html(output)
        console.print(f"[green]Digest saved:[/green] {saved}")

    if mailer is not None:
        try:
            mailer.send(formatter.subject, html)
        except MailError as e:
            _fail("Email error", e)
        console.print(f"[green]Digest sent to {len(cfg.email.recipients)} recipient(s).[/green]")

    if not quiet:
        stats.print_summary(console)


@main.command()
def libraries() -> None:
    """List the Plex library sections (ids can be used in [exclusions])."""
    from plexdigest.plex import PlexClient, PlexError

    cfg = _load_config()
    try:
        plex = PlexClient(url=cfg.plex.url, token=cfg.plex.token)
        sections = plex.get_libraries()
    except PlexError as e:
        _fail("Plex error", e)

    excluded = {lib.lower() for lib in cfg.exclusions.libraries}
    table = Table(show_header=True, header_style="dim", box=None, padding=(0, 2))
    table.add_column("ID", justify="right")
    table.add_column("Title", style="white")
    table.add_column("Type", style="dim")
    table.add_column("Excluded", style="yellow")
    for section in sections:
        is_excluded = section.key.lower() in excluded or section.title.lower() in excluded
        table.add_row(section.key, section.title, section.type, "yes" if is_excluded else "")

    console.print(f"[bold]{plex.server_name}[/bold] [dim](Plex {plex.server_version})[/dim]")
    console.print(table)


@main.group()
def config() -> None:
    """Manage PlexDigest configuration."""
    pass


@config.command(name="show")
def config_show() -> None:
    """Show current configuration."""
    from plexdigest.config import find_config_file, get_ledger_path

    cfg = _load_config()
    config_file = find_config_file()

    console.print("[bold]Current Configuration[/bold]")
    console.print()

    if config_file:
        console.print(f"[dim]Config file:[/dim] {config_file}")
    else:
        console.print("[dim]Config file:[/dim] (none - using defaults)")
    console.print()

    console.print("[bold]Plex:[/bold]")
    console.print(f"  URL: {cfg.plex.url or '(from PLEX_URL env)'}")
    console.print(f"  Token: {'(set)' if cfg.plex.token else '(from PLEX_TOKEN env)'}")
    console.print(f"[bold]TMDB:[/bold] API key {'(set)' if cfg.tmdb.api_key else '(not set)'}")
    imgur_state = "(set)" if cfg.imgur.client_id else "(not set)"
    console.print(f"[bold]Imgur:[/bold] client id {imgur_state}")
    console.print()

    console.print("[bold]Email:[/bold]")
    console.print(f"  Server: {cfg.email.host or '(not set)'}:{cfg.email.port}")
    console.print(f"  From: {cfg.email.sender or '(not set)'}")
    console.print(f"  To: {', '.join(cfg.email.recipients) or '(none)'}")
    console.print()

    console.print("[bold]Options:[/bold]")
    console.print(f"  Window: {cfg.options.days} days")
    console.print(
        f"  Pacing: {cfg.options.pause_seconds:g}s pause every {cfg.options.pause_every} lookups"
    )
    console.print(f"  Mirror posters: {cfg.options.mirror_posters}")
    console.print(f"  Title fallback: {cfg.options.title_fallback}")
    console.print(f"  Cluster by library: {cfg.options.cluster_by_library}")
    console.print(f"  Poster ledger: {get_ledger_path()}")
    console.print()

    console.print("[bold]Exclusions:[/bold]")
    if cfg.exclusions.libraries:
        console.print(f"  Libraries: {', '.join(cfg.exclusions.libraries)}")
    else:
        console.print("  Libraries: (none)")


@config.command(name="path")
def config_path() -> None:
    """Show configuration file paths."""
    from plexdigest.config import find_config_file, get_config_paths
    from plexdigest.errors import get_log_file_path

    console.print("[bold]Configuration paths (in priority order):[/bold]")
    config_file = find_config_file()

    for path in get_config_paths():
        if path.exists():
            if path == config_file:
                console.print(f"  [green]{path}[/green] (active)", soft_wrap=True)
            else:
                console.print(f"  {path} (exists)", soft_wrap=True)
        else:
            console.print(f"  [dim]{path}[/dim]", soft_wrap=True)

    console.print()
    console.print("[bold]Other paths:[/bold]")
    console.print(f"  Error log: {get_log_file_path()}")
    console.print(f"  .env file: {Path.cwd() / '.env'}")


@config.command(name="init")
@click.option("--force", is_flag=True, help="Overwrite existing config file")
def config_init(force: bool) -> None:
    """Create a default configuration file in the current directory."""
    from plexdigest.config import CONFIG_FILE_NAME, save_default_config

    config_path = Path.cwd() / CONFIG_FILE_NAME

    if config_path.exists() and not force:
        console.print(f"[yellow]Config file already exists:[/yellow] {config_path}")
        console.print("Use --force to overwrite.")
        sys.exit(1)

    save_default_config(config_path)
    console.print(f"[green]Created config file:[/green] {config_path}")
    console.print("Edit this file to customize your settings.")


@main.group()
def ledger() -> None:
    """Inspect the poster ledger."""
    pass


@ledger.command(name="stats")
def ledger_stats() -> None:
    """Show how many posters have been mirrored."""
    from plexdigest.config import get_ledger_path
    from plexdigest.digest import MirrorLedgerError, PosterLedger

    _load_config()
    path = get_ledger_path()
    try:
        entries = PosterLedger(path).load()
    except MirrorLedgerError as e:
        _fail("Ledger error", e)

    console.print("[bold]Poster Ledger[/bold]")
    console.print()

    if not entries:
        console.print("[dim]Ledger is empty.[/dim]")
    else:
        console.print(f"[bold]Mirrored posters:[/bold] {len(entries)}")
        dates = sorted(e.date_added for e in entries if e.date_added)
        if dates:
            console.print(f"[bold]Oldest entry:[/bold] {dates[0]}")
            console.print(f"[bold]Newest entry:[/bold] {dates[-1]}")

    console.print()
    console.print(f"Ledger location: {path}")


if __name__ == "__main__":
    main()

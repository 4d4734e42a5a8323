"""Run statistics for digest runs.

Counts web requests by call type, poster ledger reuse, pacing pauses and
lookup outcomes, and times each phase of the run for the closing summary.
"""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from rich.console import Console


def format_seconds(seconds: float) -> str:
    """Format elapsed seconds as "4.2s" or "3m 12.0s"."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, rest = divmod(seconds, 60)
    return f"{int(minutes)}m {rest:.1f}s"


@dataclass
class Phase:
    """One timed stage of a run, e.g. "Enriching movies"."""

    name: str
    started: float
    finished: float | None = None
    items: int = 0

    @property
    def elapsed(self) -> float:
        end = self.finished if self.finished is not None else time.monotonic()
        return end - self.started


@dataclass
class RunStatistics:
    """Counters for one digest run.

    The instance passed to start() becomes current, and the API clients,
    the poster mirror and the pacer record into whatever get_current()
    returns. Nothing is recorded when no run is active.

        stats = RunStatistics()
        stats.start()
        stats.start_phase("Enriching movies")
        ...
        stats.end_phase(item_count=12)
        stats.stop()
        stats.print_summary(console)
    """

    api_calls: Counter[str] = field(default_factory=Counter)

    poster_hits: int = 0
    poster_misses: int = 0
    poster_failures: int = 0

    rate_limit_pauses: int = 0
    seconds_paused: float = 0.0

    lookups_found: int = 0
    lookups_not_found: int = 0

    phases: list[Phase] = field(default_factory=list)

    _started: float | None = field(default=None, repr=False)
    _finished: float | None = field(default=None, repr=False)

    _instance: ClassVar[RunStatistics | None] = None

    @classmethod
    def get_current(cls) -> RunStatistics | None:
        """Get the statistics of the active run, if any."""
        return cls._instance

    @classmethod
    def reset_current(cls) -> None:
        cls._instance = None

    def start(self) -> None:
        """Start timing and make this the current run."""
        self._started = time.monotonic()
        RunStatistics._instance = self

    def stop(self) -> None:
        """Stop timing, closing any open phase."""
        self._finished = time.monotonic()
        self.end_phase()

    @property
    def elapsed(self) -> float:
        """Seconds since start(), up to stop() once stopped."""
        if self._started is None:
            return 0.0
        end = self._finished if self._finished is not None else time.monotonic()
        return end - self._started

    @property
    def tmdb_calls(self) -> int:
        return sum(n for kind, n in self.api_calls.items() if kind.startswith("tmdb_"))

    def start_phase(self, name: str) -> None:
        """Open a new phase; an open phase is closed first."""
        self.end_phase()
        self.phases.append(Phase(name=name, started=time.monotonic()))

    def end_phase(self, item_count: int = 0) -> None:
        """Close the open phase, if there is one."""
        if self.phases and self.phases[-1].finished is None:
            self.phases[-1].finished = time.monotonic()
            self.phases[-1].items = item_count

    def record_api_call(self, call_type: str) -> None:
        """Count one request.

        Args:
            call_type: "plex", "tmdb_find", "tmdb_search", "tmdb_movie",
                "tmdb_tv" or "imgur_upload".
        """
        self.api_calls[call_type] += 1

    def record_poster(self, hit: bool) -> None:
        """Count a poster served from the ledger (hit) or uploaded (miss)."""
        if hit:
            self.poster_hits += 1
        else:
            self.poster_misses += 1

    def record_poster_failure(self) -> None:
        self.poster_failures += 1

    def record_pause(self, seconds: float) -> None:
        self.rate_limit_pauses += 1
        self.seconds_paused += seconds

    def record_lookup(self, found: bool) -> None:
        if found:
            self.lookups_found += 1
        else:
            self.lookups_not_found += 1

    def print_summary(self, console: Console) -> None:
        """Print the run summary."""
        console.print()
        console.print("[bold]Run Summary[/bold]")

        for phase in self.phases:
            items = f"{phase.items} items, " if phase.items else ""
            console.print(f"  [dim]{phase.name}:[/dim] {items}{format_seconds(phase.elapsed)}")

        console.print(f"[bold]Total time:[/bold] {format_seconds(self.elapsed)}")
        if self.tmdb_calls:
            console.print(f"[bold]TMDB calls:[/bold] {self.tmdb_calls}")
        console.print(
            f"[bold]Lookups:[/bold] {self.lookups_found} found, "
            f"{self.lookups_not_found} not found"
        )

        if self.rate_limit_pauses:
            console.print(
                f"[bold]Pacing:[/bold] {self.rate_limit_pauses} pauses "
                f"({self.seconds_paused:.0f}s)"
            )
        if self.poster_hits or self.poster_misses:
            console.print(
                f"[bold]Posters:[/bold] {self.poster_hits} reused from the ledger, "
                f"{self.api_calls['imgur_upload']} uploaded"
            )
        if self.poster_failures:
            console.print(f"[yellow]Placeholder posters:[/yellow] {self.poster_failures}")

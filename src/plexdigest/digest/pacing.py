"""Fixed-quota pacing for outbound TMDB lookups.

TMDB publishes a quota of roughly 40 requests per 10 seconds. A lookup costs
up to four requests, so pausing 10 seconds after every 15 lookups keeps a
run under the quota without inspecting response headers.
"""

from __future__ import annotations

import time
from collections.abc import Callable

DEFAULT_BATCH_SIZE = 15
DEFAULT_PAUSE_SECONDS = 10.0


class RateLimiter:
    """Blocking, non-adaptive pacer: pause a fixed time after every N items."""

    def __init__(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
        pause_seconds: float = DEFAULT_PAUSE_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the pacer.

        Args:
            batch_size: Items between pauses. Values below 1 disable pacing.
            pause_seconds: Length of each pause.
            sleep: Blocking sleep function (injectable for tests).
        """
        self.batch_size = batch_size
        self.pause_seconds = pause_seconds
        self._sleep = sleep

    def should_pause(self, items_processed: int) -> bool:
        """Check if a pause is due after this many items.

        True for every positive multiple of the batch size (15, 30, ...).
        """
        if self.batch_size < 1 or items_processed <= 0:
            return False
        return items_processed % self.batch_size == 0

    def pace(self, items_processed: int) -> bool:
        """Pause if one is due.

        Args:
            items_processed: Items already processed in the current batch.

        Returns:
            True if the call slept.
        """
        if not self.should_pause(items_processed):
            return False

        self._sleep(self.pause_seconds)

        from plexdigest.statistics import RunStatistics

        stats = RunStatistics.get_current()
        if stats:
            stats.record_pause(self.pause_seconds)
        return True

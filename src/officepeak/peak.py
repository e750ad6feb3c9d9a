"""Running daily maximum of office occupancy."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .history import MonthlyHistory
    from .store import KeyValueStore

logger = logging.getLogger(__name__)

PEAK_PREFIX = "peak/"

#: Lifetime of a daily peak entry. Long enough to survive until the day's
#: report, short enough that an unattended deployment does not accumulate
#: stale days.
PEAK_TTL_SECONDS = 2 * 24 * 3600


def peak_key(date: str) -> str:
    return f"{PEAK_PREFIX}{date}"


class DailyPeakTracker:
    """Tracks the highest occupancy observed per calendar day.

    The stored value only ever increases within a day. Concurrent pollers
    race on the read-modify-write; a lost update is corrected by the next
    poll.

    Args:
        store: Backing key-value store.
        ttl_seconds: Lifetime of each day's entry.
    """

    __slots__ = ("_store", "_ttl_seconds")

    def __init__(self, store: KeyValueStore, ttl_seconds: float = PEAK_TTL_SECONDS) -> None:
        self._store = store
        self._ttl_seconds = ttl_seconds

    def current(self, date: str) -> int:
        """Return the stored peak for *date*, or 0 if none is recorded.

        A stored value that is not a finite number is treated as 0.
        """
        key = peak_key(date)
        value = self._store.get(key)
        if value is None:
            return 0
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            logger.warning("Ignoring non-numeric peak entry %s: %r", key, value)
            return 0
        return int(value)

    def observe(self, date: str, count: int) -> int:
        """Record a fresh occupancy count for *date*.

        Args:
            date: Day as ``YYYY-MM-DD``.
            count: Occupancy just measured.

        Returns:
            The day's peak after this observation.
        """
        stored = self.current(date)
        logger.info("occupancy current=%d stored=%d", count, stored)
        if count > stored:
            self._store.put(peak_key(date), count, expire_after_seconds=self._ttl_seconds)
            return count
        return stored

    def finalize(self, date: str, history: MonthlyHistory) -> int:
        """Read the day's peak and archive it into *history*.

        The archive write is an overwrite, so finalizing the same day twice
        does not double count. The daily entry itself is left to expire.

        Returns:
            The finalized peak (0 if nothing was recorded).
        """
        peak = self.current(date)
        history.record(date, peak)
        return peak

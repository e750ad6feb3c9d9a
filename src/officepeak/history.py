"""Monthly history of finalized daily peaks.

Each weekday's finalized peak is stored under ``history/YYYY-MM/YYYY-MM-DD``
with a retention of roughly thirteen months, so the current month can be
compared with the same month a year earlier without unbounded growth.
Entries are never deleted explicitly; retention relies on expiration.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .store import KeyValueStore

logger = logging.getLogger(__name__)

HISTORY_PREFIX = "history/"

#: Retention of history entries (400 days, a little over 13 months).
HISTORY_TTL_SECONDS = 400 * 24 * 3600

_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
_DATE_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$")


@dataclass(frozen=True, slots=True)
class DailyValue:
    """A finalized daily peak.

    Attributes:
        date: Day as ``YYYY-MM-DD``.
        value: Peak occupancy of that day.
    """

    date: str
    value: float


def is_valid_month(month: str) -> bool:
    """Return True for a well-formed ``YYYY-MM`` string with month 01-12."""
    return bool(_MONTH_RE.match(month))


def history_key(date: str) -> str:
    """Return the store key of the history entry for *date* (``YYYY-MM-DD``)."""
    if not _DATE_RE.match(date):
        msg = f"Invalid date: {date!r}"
        raise ValueError(msg)
    return f"{HISTORY_PREFIX}{date[:7]}/{date}"


def _as_finite(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return value


class MonthlyHistory:
    """Reads and writes the month-by-month archive of daily peaks.

    Args:
        store: Backing key-value store.
        ttl_seconds: Lifetime of each entry.
    """

    __slots__ = ("_store", "_ttl_seconds")

    def __init__(self, store: KeyValueStore, ttl_seconds: float = HISTORY_TTL_SECONDS) -> None:
        self._store = store
        self._ttl_seconds = ttl_seconds

    def record(self, date: str, value: int) -> None:
        """Store the finalized peak for *date*, replacing any earlier value."""
        self._store.put(history_key(date), value, expire_after_seconds=self._ttl_seconds)
        logger.info("Archived peak %d for %s", value, date)

    def entries(self, month: str) -> list[DailyValue]:
        """Load all recorded days of *month*, sorted ascending by date.

        Values that are not finite numbers are discarded, so a corrupt or
        partial write cannot break the month's report.

        Args:
            month: Month as ``YYYY-MM``.

        Returns:
            The recorded days; empty if nothing was recorded.

        Raises:
            ValueError: If *month* is not a valid ``YYYY-MM`` string.
        """
        if not is_valid_month(month):
            msg = f"Invalid month: {month!r}"
            raise ValueError(msg)

        result: list[DailyValue] = []
        for key in self._store.list(f"{HISTORY_PREFIX}{month}/"):
            value = _as_finite(self._store.get(key))
            if value is None:
                logger.warning("Discarding non-numeric history entry %s", key)
                continue
            result.append(DailyValue(date=key.rsplit("/", 1)[-1], value=value))
        result.sort(key=lambda entry: entry.date)
        return result


def to_series(entries: list[DailyValue]) -> Any:  # pd.Series, typed as Any for the optional dependency
    """Convert history entries to a pandas Series with a DatetimeIndex.

    Args:
        entries: Entries as returned by :meth:`MonthlyHistory.entries`.

    Returns:
        pandas Series named ``"peak"``.

    Raises:
        ImportError: If pandas is not installed.
    """
    try:
        import pandas
    except ImportError:
        msg = "pandas is required for to_series(). Install with: pip install officepeak[dataframes]"
        raise ImportError(msg) from None

    pd: Any = pandas
    index = pd.DatetimeIndex([entry.date for entry in entries], name="date")
    return pd.Series([entry.value for entry in entries], index=index, name="peak", dtype=float)

"""Invocation-level operations.

Each function here is one complete invocation (a poll, the daily report,
the month-end check, an on-demand query) that runs to completion on its
own. Nothing is shared in process between invocations; all state lives in
the key-value store. Failures propagate to the caller and abort the
invocation; the next scheduled run is the retry.

Example::

    from officepeak import OfficePeakConfig, open_store
    from officepeak.service import poll

    config = OfficePeakConfig.from_env()
    poll(config, open_store(config))
"""

from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import TYPE_CHECKING, Any, Protocol

from .exceptions import ConfigurationError
from .history import MonthlyHistory, is_valid_month
from .inventory import InventoryClient
from .notify import WebhookNotifier
from .occupancy import OccupancyCounter
from .peak import DailyPeakTracker
from .report import daily_peak_message, monthly_blocks
from .stats import is_month_end, summarize

if TYPE_CHECKING:
    from .config import OfficePeakConfig
    from .stats import MonthlySummary
    from .store import KeyValueStore

logger = logging.getLogger(__name__)

#: Weekday report at 18:30 Asia/Tokyo (09:30 UTC).
REPORT_CRON = "30 9 * * MON-FRI"

#: Daily month-end check, shortly after the report.
MONTH_END_CRON = "45 9 * * *"

QUERY_FORMATS = ("json", "csv")


class Notifier(Protocol):
    def send(self, payload: dict[str, Any]) -> None: ...


class Counter(Protocol):
    def count(self, target_date: str) -> int: ...


def today(tz: tzinfo, now: datetime | None = None) -> date:
    """Return the current calendar date in *tz*.

    Args:
        tz: Office timezone.
        now: Timezone-aware instant to use instead of the current time.
    """
    if now is None:
        return datetime.now(tz).date()
    return now.astimezone(tz).date()


def make_notifier(config: OfficePeakConfig) -> WebhookNotifier:
    config.require("webhook_url")
    return WebhookNotifier(config.webhook_url or "", timeout=config.timeout)


def poll(
    config: OfficePeakConfig,
    store: KeyValueStore,
    *,
    now: datetime | None = None,
    counter: Counter | None = None,
) -> int:
    """Count current occupancy and raise today's stored peak if exceeded.

    The peak is only written after the full inventory walk has succeeded.

    Args:
        config: Configuration.
        store: Key-value store.
        now: Instant to treat as the current time.
        counter: Occupancy counter; defaults to a live inventory walk.

    Returns:
        Today's peak after this poll.
    """
    day = today(config.tz, now).isoformat()
    if counter is None:
        config.require("base_url")
        counter = OccupancyCounter(InventoryClient(config), config.cidrs, config.tz)
    current = counter.count(day)
    return DailyPeakTracker(store).observe(day, current)


def report_daily(
    config: OfficePeakConfig,
    store: KeyValueStore,
    notifier: Notifier,
    *,
    now: datetime | None = None,
) -> int:
    """Archive today's peak into the monthly history and announce it.

    Returns:
        The announced peak.
    """
    day = today(config.tz, now).isoformat()
    peak = DailyPeakTracker(store).finalize(day, MonthlyHistory(store))
    notifier.send(daily_peak_message(peak, day))
    logger.info("Reported peak %d for %s", peak, day)
    return peak


def post_monthly_summary(store: KeyValueStore, notifier: Notifier, month: str) -> MonthlySummary | None:
    """Build the report for *month* and post it.

    Nothing is posted when the month has no recorded days.

    Returns:
        The posted summary, or ``None`` if there was nothing to report.
    """
    summary = summarize(month, MonthlyHistory(store).entries(month))
    if summary is None:
        logger.info("No history recorded for %s, skipping monthly report", month)
        return None
    notifier.send(monthly_blocks(summary))
    logger.info("Posted monthly report for %s (%d days)", month, summary.days)
    return summary


def run_month_end(
    config: OfficePeakConfig,
    store: KeyValueStore,
    notifier: Notifier,
    *,
    now: datetime | None = None,
) -> MonthlySummary | None:
    """Post the monthly report if today is the last day of the month."""
    day = today(config.tz, now)
    if not is_month_end(day):
        logger.debug("%s is not the last day of the month", day)
        return None
    return post_monthly_summary(store, notifier, day.strftime("%Y-%m"))


def run_scheduled(
    config: OfficePeakConfig,
    store: KeyValueStore,
    notifier: Notifier | None,
    cron: str,
    *,
    now: datetime | None = None,
    counter: Counter | None = None,
) -> None:
    """Dispatch a timer event by its cron expression.

    :data:`REPORT_CRON` runs the daily report, :data:`MONTH_END_CRON` the
    month-end check, and any other schedule polls occupancy. The notifier
    is built from *config* when a reporting event needs one.
    """
    if cron == REPORT_CRON:
        report_daily(config, store, notifier or make_notifier(config), now=now)
    elif cron == MONTH_END_CRON:
        run_month_end(config, store, notifier or make_notifier(config), now=now)
    else:
        poll(config, store, now=now, counter=counter)


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Response of the on-demand history query.

    Attributes:
        status: HTTP-style status code.
        content_type: MIME type of *body*.
        body: Response body.
    """

    status: int
    content_type: str
    body: str


def validate_query(month: str | None, fmt: str | None) -> tuple[str, str]:
    """Check the on-demand query parameters.

    Returns:
        The month and the format, defaulting the format to ``"json"``.

    Raises:
        ConfigurationError: If the month is not ``YYYY-MM`` or the format
            is unknown.
    """
    fmt = fmt or "json"
    if not month or not is_valid_month(month):
        msg = f"Invalid month {month!r}, expected YYYY-MM"
        raise ConfigurationError(msg)
    if fmt not in QUERY_FORMATS:
        msg = f"Invalid format {fmt!r}, expected one of {', '.join(QUERY_FORMATS)}"
        raise ConfigurationError(msg)
    return month, fmt


def query_history(store: KeyValueStore, month: str | None, fmt: str | None = "json") -> QueryResult:
    """Return a month's recorded daily peaks, ascending by date.

    Parameters are validated before the store is touched; a malformed
    month or unknown format yields a ``400`` result.

    Args:
        store: Key-value store.
        month: Month as ``YYYY-MM``.
        fmt: ``"json"`` (default) or ``"csv"``.
    """
    try:
        month, fmt = validate_query(month, fmt)
    except ConfigurationError as exc:
        return QueryResult(400, "application/json", json.dumps({"error": str(exc)}))

    entries = MonthlyHistory(store).entries(month)
    if fmt == "csv":
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(["date", "value"])
        for entry in entries:
            writer.writerow([entry.date, _plain(entry.value)])
        return QueryResult(200, "text/csv; charset=utf-8", buf.getvalue())

    body = {"month": month, "days": [{"date": e.date, "value": _plain(e.value)} for e in entries]}
    return QueryResult(200, "application/json", json.dumps(body))


def _plain(value: float) -> int | float:
    return int(value) if float(value).is_integer() else value

"""Calendar arithmetic and monthly statistics.

Weekdays in this module are numbered from Sunday: 0=Sunday .. 6=Saturday.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta

from .history import DailyValue

#: Number of days listed in the ranking.
TOP_N = 5

WEEKDAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


def tomorrow(d: date) -> date:
    return d + timedelta(days=1)


def is_month_end(d: date) -> bool:
    """Return True if *d* is the last day of its month.

    Example:
        >>> is_month_end(date(2025, 2, 28))
        True
        >>> is_month_end(date(2024, 2, 28))
        False
    """
    return tomorrow(d).month != d.month


def sunday_weekday(d: date) -> int:
    """Day of week of *d* with 0=Sunday .. 6=Saturday."""
    return (d.weekday() + 1) % 7


def week_of_month(d: date) -> int:
    """1-indexed week of the month, where week 1 ends on the first Saturday.

    The first week may be partial: for a month starting on a Saturday,
    week 1 is that single day.
    """
    first = sunday_weekday(d.replace(day=1))
    return (d.day + first - 1) // 7 + 1


@dataclass(frozen=True, slots=True)
class MonthlySummary:
    """Statistics of one month of daily peaks.

    Attributes:
        month: Month as ``YYYY-MM``.
        days: Number of recorded days.
        mean: Arithmetic mean of the daily peaks.
        max_value: Highest peak.
        max_date: Date of the first day reaching ``max_value``.
        min_value: Lowest peak.
        min_date: Date of the first day reaching ``min_value``.
        weekday_averages: Mean per weekday (0=Sunday); weekdays without
            observations are omitted.
        week_averages: Mean per week of month, keyed by 1-indexed week in
            ascending order.
        top: The highest days, descending; ties keep date order.
        entries: All recorded days, ascending by date.
    """

    month: str
    days: int
    mean: float
    max_value: float
    max_date: str
    min_value: float
    min_date: str
    weekday_averages: dict[int, float] = field(default_factory=dict)
    week_averages: dict[int, float] = field(default_factory=dict)
    top: list[DailyValue] = field(default_factory=list)
    entries: list[DailyValue] = field(default_factory=list)


def _bucket_averages(pairs: list[tuple[int, float]]) -> dict[int, float]:
    sums: defaultdict[int, float] = defaultdict(float)
    counts: defaultdict[int, int] = defaultdict(int)
    for bucket, value in pairs:
        sums[bucket] += value
        counts[bucket] += 1
    return {bucket: sums[bucket] / counts[bucket] for bucket in sorted(sums)}


def summarize(month: str, entries: Sequence[DailyValue], top_n: int = TOP_N) -> MonthlySummary | None:
    """Compute the month's statistics.

    Args:
        month: Month as ``YYYY-MM``.
        entries: Recorded days; sorted ascending by date internally.
        top_n: Length of the ranking.

    Returns:
        The summary, or ``None`` if *entries* is empty.
    """
    if not entries:
        return None

    ordered = sorted(entries, key=lambda entry: entry.date)

    max_entry = ordered[0]
    min_entry = ordered[0]
    for entry in ordered[1:]:
        if entry.value > max_entry.value:
            max_entry = entry
        if entry.value < min_entry.value:
            min_entry = entry

    days = [date.fromisoformat(entry.date) for entry in ordered]
    weekday_averages = _bucket_averages([(sunday_weekday(d), e.value) for d, e in zip(days, ordered)])
    week_averages = _bucket_averages([(week_of_month(d), e.value) for d, e in zip(days, ordered)])

    top = sorted(ordered, key=lambda entry: entry.value, reverse=True)[:top_n]

    return MonthlySummary(
        month=month,
        days=len(ordered),
        mean=sum(entry.value for entry in ordered) / len(ordered),
        max_value=max_entry.value,
        max_date=max_entry.date,
        min_value=min_entry.value,
        min_date=min_entry.date,
        weekday_averages=weekday_averages,
        week_averages=week_averages,
        top=top,
        entries=ordered,
    )

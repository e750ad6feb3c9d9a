"""Rendering of the daily and monthly chat messages.

The monthly report is rendered twice from the same :class:`MonthlySummary`:
as Slack Block Kit sections for the webhook and as plain text for the
command line.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from .stats import TOP_N, WEEKDAY_NAMES, MonthlySummary, sunday_weekday

#: Number of full cells in a day's bar.
BAR_WIDTH = 10

FULL_BLOCK = "█"

#: Partial cells by eighths; index 0 is an empty cell.
PARTIAL_BLOCKS = " ▏▎▍▌▋▊▉"

#: Daily announcement, worded for the Japanese office.
DAILY_PEAK_TEMPLATE = "本日の在席ピークは *{peak} 人* でした。（{date}）"


def bar(value: float, max_value: float, width: int = BAR_WIDTH) -> str:
    """Render *value* as a horizontal bar relative to *max_value*.

    The bar has *width* cells. The value is quantised to eighths of a cell,
    giving whole blocks followed by at most one partial block; the result
    is right-padded with spaces to *width* characters.

    Example:
        >>> bar(5, 10, width=4)
        '██  '
        >>> bar(1, 8, width=1)
        '▏'
    """
    if max_value <= 0 or value <= 0:
        return " " * width
    eighths = round(min(value / max_value, 1.0) * width * 8)
    full, remainder = divmod(eighths, 8)
    cells = FULL_BLOCK * full
    if remainder:
        cells += PARTIAL_BLOCKS[remainder]
    return cells.ljust(width)


def _num(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.1f}"


def _weekday(day: str) -> str:
    return WEEKDAY_NAMES[sunday_weekday(date.fromisoformat(day))]


def daily_peak_message(peak: int, day: str, template: str = DAILY_PEAK_TEMPLATE) -> dict[str, Any]:
    """Webhook payload announcing the day's peak.

    Args:
        peak: The day's peak occupancy.
        day: Day as ``YYYY-MM-DD``.
        template: Format string with ``{peak}`` and ``{date}`` fields.
    """
    return {"text": template.format(peak=peak, date=day)}


def summary_lines(summary: MonthlySummary) -> list[str]:
    return [
        f"Days recorded: {summary.days}   Average: {summary.mean:.1f}",
        f"Max: {_num(summary.max_value)} ({summary.max_date})   Min: {_num(summary.min_value)} ({summary.min_date})",
    ]


def weekday_lines(summary: MonthlySummary) -> list[str]:
    return [f"{WEEKDAY_NAMES[wd]}: {avg:.1f}" for wd, avg in sorted(summary.weekday_averages.items())]


def week_lines(summary: MonthlySummary) -> list[str]:
    return [f"Week {week}: {avg:.1f}" for week, avg in sorted(summary.week_averages.items())]


def top_lines(summary: MonthlySummary) -> list[str]:
    return [
        f"{rank}. {entry.date} ({_weekday(entry.date)}) {_num(entry.value)}"
        for rank, entry in enumerate(summary.top, 1)
    ]


def table_lines(summary: MonthlySummary) -> list[str]:
    width = max(len(_num(entry.value)) for entry in summary.entries)
    return [
        f"{entry.date} {_weekday(entry.date)} {_num(entry.value).rjust(width)} {bar(entry.value, summary.max_value)}".rstrip()
        for entry in summary.entries
    ]


def _section(text: str) -> dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def monthly_blocks(summary: MonthlySummary) -> dict[str, Any]:
    """Webhook payload with the month's report as Block Kit sections."""
    table = "\n".join(table_lines(summary))
    blocks: list[dict[str, Any]] = [
        {"type": "header", "text": {"type": "plain_text", "text": f"Office occupancy {summary.month}"}},
        _section("\n".join(summary_lines(summary))),
        _section("*Weekday averages*\n" + "   ".join(weekday_lines(summary))),
        _section("*Weekly averages*\n" + "   ".join(week_lines(summary))),
        _section(f"*Top {TOP_N} days*\n" + "\n".join(top_lines(summary))),
        _section(f"```\n{table}\n```"),
    ]
    return {"blocks": blocks}


def monthly_text(summary: MonthlySummary) -> str:
    """Plain-text rendering of the month's report."""
    parts = [
        f"Office occupancy {summary.month}",
        *summary_lines(summary),
        "",
        "Weekday averages",
        *weekday_lines(summary),
        "",
        "Weekly averages",
        *week_lines(summary),
        "",
        f"Top {TOP_N} days",
        *top_lines(summary),
        "",
        *table_lines(summary),
    ]
    return "\n".join(parts)

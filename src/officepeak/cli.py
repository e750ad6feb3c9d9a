"""Command-line entry points, one subcommand per invocation type.

Intended to be driven by cron, for example (times in UTC for an
Asia/Tokyo office)::

    */15 0-10 * * MON-FRI  officepeak poll
    30 9 * * MON-FRI       officepeak report
    45 9 * * *             officepeak month-end
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from . import service
from .config import OfficePeakConfig
from .exceptions import OfficePeakError
from .history import MonthlyHistory, is_valid_month
from .report import monthly_text
from .stats import summarize
from .store import open_store

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _month(value: str) -> str:
    if not is_valid_month(value):
        msg = f"invalid month {value!r}, expected YYYY-MM"
        raise argparse.ArgumentTypeError(msg)
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="officepeak", description="Office occupancy peaks from device inventory.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("poll", help="Count current occupancy and update today's peak.")
    sub.add_parser("report", help="Archive and post today's peak.")
    sub.add_parser("month-end", help="Post the monthly report if today is the last day of the month.")

    summary = sub.add_parser("summary", help="Build the monthly report now.")
    summary.add_argument("--month", type=_month, help="Month as YYYY-MM (default: current month).")
    summary.add_argument("--dry-run", action="store_true", help="Print the report instead of posting it.")

    history = sub.add_parser("history", help="Print a month's recorded daily peaks.")
    history.add_argument("--month", required=True, help="Month as YYYY-MM.")
    history.add_argument("--format", dest="fmt", default="json", help="json (default) or csv.")

    scheduled = sub.add_parser("scheduled", help="Dispatch a timer event by its cron expression.")
    scheduled.add_argument("cron", help="Cron expression of the firing trigger.")

    serve = sub.add_parser("serve", help="Run the HTTP server (requires officepeak[server]).")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def _summary(config: OfficePeakConfig, month: str | None, dry_run: bool) -> int:
    store = open_store(config)
    target = month or service.today(config.tz).strftime("%Y-%m")
    if dry_run:
        result = summarize(target, MonthlyHistory(store).entries(target))
        print(monthly_text(result) if result else f"No history recorded for {target}")
        return 0
    service.post_monthly_summary(store, service.make_notifier(config), target)
    return 0


def _serve(config: OfficePeakConfig, host: str, port: int) -> int:
    try:
        import uvicorn
    except ImportError:
        msg = "uvicorn is required for serve. Install with: pip install officepeak[server]"
        raise ImportError(msg) from None

    from .server import create_app

    uvicorn.run(create_app(config), host=host, port=port)
    return 0


def run(args: argparse.Namespace, config: OfficePeakConfig) -> int:
    """Execute the parsed subcommand."""
    if args.command == "poll":
        service.poll(config, open_store(config))
    elif args.command == "report":
        service.report_daily(config, open_store(config), service.make_notifier(config))
    elif args.command == "month-end":
        service.run_month_end(config, open_store(config), service.make_notifier(config))
    elif args.command == "summary":
        return _summary(config, args.month, args.dry_run)
    elif args.command == "history":
        result = service.query_history(open_store(config), args.month, args.fmt)
        print(result.body, file=sys.stdout if result.status == 200 else sys.stderr)
        return 0 if result.status == 200 else 2
    elif args.command == "scheduled":
        service.run_scheduled(config, open_store(config), None, args.cron)
    elif args.command == "serve":
        return _serve(config, args.host, args.port)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)
    try:
        return run(args, OfficePeakConfig.from_env())
    except OfficePeakError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())

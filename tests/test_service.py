"""Tests for officepeak.service."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from conftest import TOKYO, FixedCounter, InMemoryKeyValueStore, RecordingNotifier, tokyo

from officepeak.config import OfficePeakConfig
from officepeak.exceptions import ConfigurationError
from officepeak.history import MonthlyHistory
from officepeak.peak import DailyPeakTracker
from officepeak.service import (
    MONTH_END_CRON,
    REPORT_CRON,
    QueryResult,
    make_notifier,
    poll,
    post_monthly_summary,
    query_history,
    report_daily,
    run_month_end,
    run_scheduled,
    today,
    validate_query,
)


def _fill_month(store: InMemoryKeyValueStore, month: str, values: dict[int, float]) -> None:
    history = MonthlyHistory(store)
    for day, value in values.items():
        history.record(f"{month}-{day:02d}", value)


# ---------------------------------------------------------------------------
# today
# ---------------------------------------------------------------------------


class TestToday:
    def test_converts_to_office_timezone(self) -> None:
        # 16:00 UTC is already the next day in Tokyo
        now = datetime(2025, 8, 1, 16, 0, tzinfo=timezone.utc)
        assert today(TOKYO, now) == date(2025, 8, 2)

    def test_same_day(self) -> None:
        assert today(TOKYO, tokyo(2025, 8, 1, 9)) == date(2025, 8, 1)


# ---------------------------------------------------------------------------
# poll
# ---------------------------------------------------------------------------


class TestPoll:
    def test_peak_is_running_max(self, config: OfficePeakConfig, store: InMemoryKeyValueStore) -> None:
        counter = FixedCounter(3, 7, 5)
        now = tokyo(2025, 8, 1, 10)
        for _ in range(3):
            poll(config, store, now=now, counter=counter)

        assert DailyPeakTracker(store).current("2025-08-01") == 7
        assert counter.dates == ["2025-08-01"] * 3

    def test_returns_peak(self, config: OfficePeakConfig, store: InMemoryKeyValueStore) -> None:
        assert poll(config, store, now=tokyo(2025, 8, 1), counter=FixedCounter(4)) == 4

    def test_failed_count_leaves_peak(self, config: OfficePeakConfig, store: InMemoryKeyValueStore) -> None:
        DailyPeakTracker(store).observe("2025-08-01", 6)
        counter = MagicMock()
        counter.count.side_effect = RuntimeError("inventory unavailable")

        with pytest.raises(RuntimeError):
            poll(config, store, now=tokyo(2025, 8, 1), counter=counter)
        assert DailyPeakTracker(store).current("2025-08-01") == 6

    def test_live_counter_requires_base_url(self, store: InMemoryKeyValueStore) -> None:
        with pytest.raises(ConfigurationError, match="JAMF_URL"):
            poll(OfficePeakConfig(), store, now=tokyo(2025, 8, 1))

    @patch("officepeak.inventory.urlopen")
    def test_malformed_office_range_fails_before_inventory(
        self, mock_urlopen: MagicMock, store: InMemoryKeyValueStore
    ) -> None:
        config = OfficePeakConfig(
            base_url="https://jamf.example.com", client_id="c", client_secret="s", office_networks="10.0.1.0/2x"
        )

        with pytest.raises(ConfigurationError, match="OFFICE_NETS"):
            poll(config, store, now=tokyo(2025, 8, 1))
        mock_urlopen.assert_not_called()
        assert store.data == {}

    @patch("officepeak.service.OccupancyCounter")
    def test_live_counter_uses_config(
        self, mock_counter: MagicMock, config: OfficePeakConfig, store: InMemoryKeyValueStore
    ) -> None:
        mock_counter.return_value.count.return_value = 2

        assert poll(config, store, now=tokyo(2025, 8, 1)) == 2
        _, cidrs, tz = mock_counter.call_args[0]
        assert cidrs == config.cidrs
        assert tz == TOKYO


# ---------------------------------------------------------------------------
# Daily report
# ---------------------------------------------------------------------------


class TestReportDaily:
    def test_archives_and_announces(
        self, config: OfficePeakConfig, store: InMemoryKeyValueStore, notifier: RecordingNotifier
    ) -> None:
        DailyPeakTracker(store).observe("2025-08-01", 7)

        assert report_daily(config, store, notifier, now=tokyo(2025, 8, 1, 18)) == 7

        assert store.data["history/2025-08/2025-08-01"] == 7
        assert len(notifier.sent) == 1
        text = notifier.sent[0]["text"]
        assert "7" in text
        assert "2025-08-01" in text

    def test_zero_peak_announced(
        self, config: OfficePeakConfig, store: InMemoryKeyValueStore, notifier: RecordingNotifier
    ) -> None:
        assert report_daily(config, store, notifier, now=tokyo(2025, 8, 1, 18)) == 0
        assert store.data["history/2025-08/2025-08-01"] == 0
        assert len(notifier.sent) == 1

    def test_rerun_overwrites_same_day(
        self, config: OfficePeakConfig, store: InMemoryKeyValueStore, notifier: RecordingNotifier
    ) -> None:
        now = tokyo(2025, 8, 1, 18)
        report_daily(config, store, notifier, now=now)
        DailyPeakTracker(store).observe("2025-08-01", 3)
        report_daily(config, store, notifier, now=now)

        assert [e.value for e in MonthlyHistory(store).entries("2025-08")] == [3]


# ---------------------------------------------------------------------------
# Monthly report
# ---------------------------------------------------------------------------


class TestMonthlySummary:
    def test_posts_blocks(self, store: InMemoryKeyValueStore, notifier: RecordingNotifier) -> None:
        _fill_month(store, "2025-08", {1: 5, 2: 9, 3: 3})

        summary = post_monthly_summary(store, notifier, "2025-08")

        assert summary is not None
        assert summary.days == 3
        assert len(notifier.sent) == 1
        assert "blocks" in notifier.sent[0]

    def test_empty_month_sends_nothing(self, store: InMemoryKeyValueStore, notifier: RecordingNotifier) -> None:
        assert post_monthly_summary(store, notifier, "2025-08") is None
        assert notifier.sent == []


class TestRunMonthEnd:
    def test_fires_on_last_day(
        self, config: OfficePeakConfig, store: InMemoryKeyValueStore, notifier: RecordingNotifier
    ) -> None:
        _fill_month(store, "2025-02", {3: 4, 28: 6})

        summary = run_month_end(config, store, notifier, now=tokyo(2025, 2, 28, 18))

        assert summary is not None
        assert summary.month == "2025-02"
        assert len(notifier.sent) == 1

    def test_leap_year_february_28(
        self, config: OfficePeakConfig, store: InMemoryKeyValueStore, notifier: RecordingNotifier
    ) -> None:
        _fill_month(store, "2024-02", {3: 4})

        assert run_month_end(config, store, notifier, now=tokyo(2024, 2, 28, 18)) is None
        assert notifier.sent == []

    def test_mid_month_does_not_read_history(
        self, config: OfficePeakConfig, store: InMemoryKeyValueStore, notifier: RecordingNotifier
    ) -> None:
        run_month_end(config, store, notifier, now=tokyo(2025, 8, 15, 18))
        assert store.calls == []

    def test_last_day_without_history(
        self, config: OfficePeakConfig, store: InMemoryKeyValueStore, notifier: RecordingNotifier
    ) -> None:
        assert run_month_end(config, store, notifier, now=tokyo(2025, 8, 31, 18)) is None
        assert notifier.sent == []


# ---------------------------------------------------------------------------
# Scheduled dispatch
# ---------------------------------------------------------------------------


class TestRunScheduled:
    def test_report_cron(
        self, config: OfficePeakConfig, store: InMemoryKeyValueStore, notifier: RecordingNotifier
    ) -> None:
        run_scheduled(config, store, notifier, REPORT_CRON, now=tokyo(2025, 8, 1, 18))
        assert len(notifier.sent) == 1
        assert "text" in notifier.sent[0]

    def test_month_end_cron(
        self, config: OfficePeakConfig, store: InMemoryKeyValueStore, notifier: RecordingNotifier
    ) -> None:
        _fill_month(store, "2025-08", {29: 8})
        run_scheduled(config, store, notifier, MONTH_END_CRON, now=tokyo(2025, 8, 31, 18))
        assert len(notifier.sent) == 1
        assert "blocks" in notifier.sent[0]

    def test_other_cron_polls(
        self, config: OfficePeakConfig, store: InMemoryKeyValueStore, notifier: RecordingNotifier
    ) -> None:
        run_scheduled(config, store, notifier, "*/5 * * * *", now=tokyo(2025, 8, 1), counter=FixedCounter(4))
        assert DailyPeakTracker(store).current("2025-08-01") == 4
        assert notifier.sent == []

    def test_poll_does_not_need_webhook(self, store: InMemoryKeyValueStore) -> None:
        config = OfficePeakConfig(base_url="https://jamf.example.com")
        run_scheduled(config, store, None, "*/5 * * * *", now=tokyo(2025, 8, 1), counter=FixedCounter(1))
        assert DailyPeakTracker(store).current("2025-08-01") == 1

    def test_report_without_webhook(self, store: InMemoryKeyValueStore) -> None:
        with pytest.raises(ConfigurationError, match="SLACK_WEBHOOK_URL"):
            run_scheduled(OfficePeakConfig(), store, None, REPORT_CRON, now=tokyo(2025, 8, 1))


class TestMakeNotifier:
    def test_from_config(self, config: OfficePeakConfig) -> None:
        assert make_notifier(config).url == "https://hooks.example.com/T000/B000"

    def test_missing_url(self) -> None:
        with pytest.raises(ConfigurationError):
            make_notifier(OfficePeakConfig())


# ---------------------------------------------------------------------------
# On-demand query
# ---------------------------------------------------------------------------


class TestValidateQuery:
    def test_defaults_to_json(self) -> None:
        assert validate_query("2025-08", None) == ("2025-08", "json")

    @pytest.mark.parametrize("month", [None, "", "13-99", "2025-13", "2025-8"])
    def test_bad_month(self, month: str | None) -> None:
        with pytest.raises(ConfigurationError, match="Invalid month"):
            validate_query(month, "json")

    def test_bad_format(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid format"):
            validate_query("2025-08", "xml")


class TestQueryHistory:
    def test_malformed_month_rejected_before_store(self, store: InMemoryKeyValueStore) -> None:
        result = query_history(store, "13-99")
        assert result.status == 400
        assert "error" in json.loads(result.body)
        assert store.calls == []

    def test_unknown_format_rejected(self, store: InMemoryKeyValueStore) -> None:
        result = query_history(store, "2025-08", "xml")
        assert result.status == 400
        assert store.calls == []

    def test_json(self, store: InMemoryKeyValueStore) -> None:
        _fill_month(store, "2025-08", {2: 9, 1: 5})

        result = query_history(store, "2025-08")

        assert result == QueryResult(
            200,
            "application/json",
            json.dumps({
                "month": "2025-08",
                "days": [{"date": "2025-08-01", "value": 5}, {"date": "2025-08-02", "value": 9}],
            }),
        )

    def test_json_empty_month(self, store: InMemoryKeyValueStore) -> None:
        result = query_history(store, "2025-08", None)
        assert result.status == 200
        assert json.loads(result.body) == {"month": "2025-08", "days": []}

    def test_csv(self, store: InMemoryKeyValueStore) -> None:
        _fill_month(store, "2025-08", {1: 5, 2: 2.5})

        result = query_history(store, "2025-08", "csv")

        assert result.status == 200
        assert result.content_type == "text/csv; charset=utf-8"
        assert result.body == "date,value\n2025-08-01,5\n2025-08-02,2.5\n"

    def test_csv_empty_month_has_header(self, store: InMemoryKeyValueStore) -> None:
        assert query_history(store, "2025-08", "csv").body == "date,value\n"

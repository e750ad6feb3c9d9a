"""
officepeak: office occupancy peaks from device-management inventory.

Devices whose last check-in today came from an office network range are
counted once per user; the running daily maximum is kept in a key-value
store, announced on a chat webhook every weekday, and rolled up into a
statistical report at the end of each month.

Basic usage:
    from officepeak import OfficePeakConfig, open_store
    from officepeak.service import poll, report_daily, make_notifier

    config = OfficePeakConfig.from_env()
    store = open_store(config)

    # Every few minutes during office hours
    poll(config, store)

    # Once in the evening
    report_daily(config, store, make_notifier(config))
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import OfficePeakConfig

# Exceptions
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    EndpointDiscoveryError,
    InventoryFetchError,
    NotificationError,
    OfficePeakError,
)
from .history import DailyValue, MonthlyHistory
from .inventory import DeviceRecord, InventoryClient, InventoryPage

# CIDR matching
from .network import ip_in_any, ip_in_cidr, ip_to_int, normalize_cidrs
from .notify import WebhookNotifier
from .occupancy import OccupancyCounter, count_occupancy
from .peak import DailyPeakTracker
from .stats import MonthlySummary, is_month_end, summarize
from .store import KeyValueStore, LocalKeyValueStore, S3KeyValueStore, open_store

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "DailyPeakTracker",
    "DailyValue",
    "DeviceRecord",
    "EndpointDiscoveryError",
    "InventoryClient",
    "InventoryFetchError",
    "InventoryPage",
    "KeyValueStore",
    "LocalKeyValueStore",
    "MonthlyHistory",
    "MonthlySummary",
    "NotificationError",
    "OccupancyCounter",
    "OfficePeakConfig",
    "OfficePeakError",
    "S3KeyValueStore",
    "WebhookNotifier",
    "__version__",
    "count_occupancy",
    "ip_in_any",
    "ip_in_cidr",
    "ip_to_int",
    "is_month_end",
    "normalize_cidrs",
    "open_store",
    "summarize",
]

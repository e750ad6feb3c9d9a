"""Distinct-user occupancy counting.

A device counts towards a day's occupancy when its last contact falls on
that day and its last IP address is inside one of the office ranges. Each
device contributes one identity (reporting username, device name, or id),
so a person checking in repeatedly, or appearing on several pages, is
counted once.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, tzinfo
from typing import TYPE_CHECKING

from .network import ip_in_any

if TYPE_CHECKING:
    from .inventory import DeviceRecord, InventoryClient

logger = logging.getLogger(__name__)


def contact_date(timestamp: str | None, tz: tzinfo | None = None) -> str | None:
    """Derive the ``YYYY-MM-DD`` contact date of a timestamp.

    Timestamps carrying a UTC offset (``...Z`` or ``...+00:00``) are
    converted to *tz* first when one is given. Anything else is taken at
    face value: the first ten characters are the date.

    Args:
        timestamp: Inventory timestamp, or ``None``.
        tz: Office timezone.

    Returns:
        The date string, or ``None`` when there is no timestamp.
    """
    if not timestamp:
        return None
    if tz is not None and len(timestamp) > 10:
        try:
            parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
        except ValueError:
            parsed = None
        if parsed is not None and parsed.tzinfo is not None:
            return parsed.astimezone(tz).date().isoformat()
    return timestamp[:10]


def count_occupancy(
    records: Iterable[DeviceRecord],
    target_date: str,
    cidrs: Sequence[str],
    tz: tzinfo | None = None,
) -> int:
    """Count distinct identities seen inside the office on *target_date*.

    Args:
        records: Device records, in any order and possibly with duplicates.
        target_date: Day to count, as ``YYYY-MM-DD`` in the office timezone.
        cidrs: Normalised office ranges.
        tz: Office timezone used to localise offset-aware timestamps.

    Returns:
        Number of distinct identities.
    """
    users: set[str] = set()
    seen = 0
    for record in records:
        seen += 1
        if contact_date(record.contact_timestamp, tz) != target_date:
            continue
        ip = record.last_ip_address
        if not ip:
            continue
        try:
            inside = ip_in_any(ip, cidrs)
        except ValueError:
            logger.debug("Skipping device %s with malformed IP %r", record.id, ip)
            continue
        if inside:
            users.add(record.identity)
    logger.debug("Scanned %d records, %d distinct users in office on %s", seen, len(users), target_date)
    return len(users)


class OccupancyCounter:
    """Counts office occupancy from a live inventory walk.

    Args:
        client: Inventory client to drain.
        cidrs: Normalised office ranges.
        tz: Office timezone.
    """

    __slots__ = ("_cidrs", "_client", "_tz")

    def __init__(self, client: InventoryClient, cidrs: Sequence[str], tz: tzinfo | None = None) -> None:
        self._client = client
        self._cidrs = list(cidrs)
        self._tz = tz

    def count(self, target_date: str) -> int:
        """Walk the whole inventory and count occupancy for *target_date*."""
        return count_occupancy(self._client.iter_records(), target_date, self._cidrs, self._tz)

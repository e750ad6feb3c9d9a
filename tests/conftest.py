"""Shared fixtures for officepeak tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime
from typing import Any
from unittest.mock import MagicMock
from urllib.error import HTTPError
from urllib.request import Request
from zoneinfo import ZoneInfo

import pytest

from officepeak.config import OfficePeakConfig
from officepeak.inventory import DeviceRecord

TOKYO = ZoneInfo("Asia/Tokyo")


class InMemoryKeyValueStore:
    """Dict-backed key-value store with a controllable clock."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.expiry: dict[str, float | None] = {}
        self.now = 0.0
        self.calls: list[str] = []

    def _live(self, key: str) -> bool:
        if key not in self.data:
            return False
        expires_at = self.expiry.get(key)
        return expires_at is None or expires_at > self.now

    def get(self, key: str) -> Any | None:
        self.calls.append(f"get {key}")
        return self.data[key] if self._live(key) else None

    def put(self, key: str, value: Any, *, expire_after_seconds: float | None = None) -> None:
        self.calls.append(f"put {key}")
        self.data[key] = json.loads(json.dumps(value))
        self.expiry[key] = None if expire_after_seconds is None else self.now + expire_after_seconds

    def delete(self, key: str) -> None:
        self.calls.append(f"delete {key}")
        self.data.pop(key, None)
        self.expiry.pop(key, None)

    def list(self, prefix: str = "") -> list[str]:
        self.calls.append(f"list {prefix}")
        return sorted(k for k in self.data if k.startswith(prefix) and self._live(k))


class RecordingNotifier:
    """Notifier that keeps every payload it is asked to send."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    def send(self, payload: dict[str, Any]) -> None:
        self.sent.append(payload)


class FixedCounter:
    """Occupancy counter returning a scripted sequence of counts."""

    def __init__(self, *counts: int) -> None:
        self._counts = list(counts)
        self.dates: list[str] = []

    def count(self, target_date: str) -> int:
        self.dates.append(target_date)
        return self._counts.pop(0)


def mock_response(data: Any = None) -> MagicMock:
    """A urlopen() result usable as a context manager."""
    body = data if isinstance(data, bytes) else json.dumps(data).encode()
    resp = MagicMock()
    resp.read.return_value = body
    resp.__enter__ = MagicMock(return_value=resp)
    resp.__exit__ = MagicMock(return_value=False)
    return resp


def http_error(req: Request, code: int) -> HTTPError:
    return HTTPError(req.full_url, code, "error", hdrs=None, fp=None)  # type: ignore[arg-type]


def fake_server(routes: dict[tuple[str, str], Any]) -> Callable[..., MagicMock]:
    """Build a urlopen() side effect answering from *routes*.

    Keys are ``(method, url)``; values are JSON-able bodies, or an ``int``
    status code to raise as :class:`HTTPError`.
    """

    def _urlopen(req: Request, timeout: float | None = None) -> MagicMock:
        key = (req.get_method(), req.full_url)
        if key not in routes:
            raise http_error(req, 404)
        answer = routes[key]
        if isinstance(answer, int):
            raise http_error(req, answer)
        return mock_response(answer)

    return _urlopen


def device(
    id: int | str = 1,
    *,
    ip: str | None = "10.0.1.20",
    contact: str | None = "2025-08-01T03:00:00Z",
    inventory: str | None = None,
    user: str | None = None,
    name: str | None = None,
) -> dict[str, Any]:
    """One ``results`` entry in the inventory API shape."""
    general: dict[str, Any] = {"lastIpAddress": ip, "lastContactTime": contact}
    if inventory is not None:
        general["lastInventoryUpdate"] = inventory
    if user is not None:
        general["reportingUsername"] = user
    if name is not None:
        general["name"] = name
    return {"id": id, "general": general}


def record(id: int | str = 1, **kwargs: Any) -> DeviceRecord:
    return DeviceRecord.from_json(device(id, **kwargs))


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def config() -> OfficePeakConfig:
    return OfficePeakConfig(
        base_url="https://jamf.example.com/",
        client_id="client",
        client_secret="secret",
        office_networks="10.0.1.0/24, 192.168.5.7",
        webhook_url="https://hooks.example.com/T000/B000",
    )


def tokyo(year: int, month: int, day: int, hour: int = 12) -> datetime:
    """Aware datetime in the office timezone."""
    return datetime(year, month, day, hour, tzinfo=TOKYO)

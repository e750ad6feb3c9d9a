"""Chat webhook notifications."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .exceptions import NotificationError

logger = logging.getLogger(__name__)

_USER_AGENT = "officepeak"


class WebhookNotifier:
    """Posts JSON payloads to an incoming-webhook URL (Slack style).

    Args:
        url: Webhook URL.
        timeout: Request timeout in seconds.
    """

    __slots__ = ("_timeout", "_url")

    def __init__(self, url: str, timeout: float = 30.0) -> None:
        self._url = url
        self._timeout = timeout

    @property
    def url(self) -> str:
        return self._url

    def send(self, payload: dict[str, Any]) -> None:
        """Post *payload* as JSON.

        Raises:
            NotificationError: If the webhook rejects the message or cannot
                be reached.
        """
        req = Request(  # noqa: S310
            self._url,
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={"Content-Type": "application/json", "User-Agent": _USER_AGENT},
        )
        try:
            with urlopen(req, timeout=self._timeout) as resp:  # noqa: S310
                resp.read()
        except HTTPError as exc:
            raise NotificationError(self._url, status=exc.code) from exc
        except (URLError, TimeoutError, OSError) as exc:
            raise NotificationError(self._url, reason=str(exc)) from exc
        logger.debug("Posted notification with keys %s", sorted(payload))

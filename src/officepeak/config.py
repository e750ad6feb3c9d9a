"""Process configuration.

Configuration is read once from the environment into an immutable
:class:`OfficePeakConfig` and passed explicitly to every component, so tests
can inject fake credentials and office ranges without touching globals.

Recognised environment variables:

======================== =====================================================
``JAMF_URL``             Device-management base URL (required for polling)
``JAMF_CLIENT_ID``       API client id (client-credentials exchange)
``JAMF_CLIENT_SECRET``   API client secret
``JAMF_USER``            Username (basic-auth token exchange)
``JAMF_PASS``            Password
``OFFICE_NETS``          Comma-separated office ranges (bare IPs or CIDR)
``SLACK_WEBHOOK_URL``    Chat webhook receiving the reports
``OFFICEPEAK_TZ``        Office timezone (default ``Asia/Tokyo``)
``OFFICEPEAK_STORE_DIR`` Directory for the local key-value store
``OFFICEPEAK_S3_BUCKET`` Use an S3 bucket as the key-value store
``OFFICEPEAK_S3_PREFIX`` Key prefix inside the bucket
``OFFICEPEAK_TIMEOUT``   HTTP timeout in seconds (default 30)
======================== =====================================================
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .exceptions import ConfigurationError
from .network import normalize_cidrs

DEFAULT_TIMEZONE = "Asia/Tokyo"
DEFAULT_TIMEOUT = 30.0

# Attribute name -> environment variable, used for error messages.
_ENV_NAMES = {
    "base_url": "JAMF_URL",
    "client_id": "JAMF_CLIENT_ID",
    "client_secret": "JAMF_CLIENT_SECRET",
    "username": "JAMF_USER",
    "password": "JAMF_PASS",
    "office_networks": "OFFICE_NETS",
    "webhook_url": "SLACK_WEBHOOK_URL",
}


@dataclass(frozen=True, slots=True)
class OfficePeakConfig:
    """Immutable configuration shared by one invocation.

    Attributes:
        base_url: Device-management server URL, trailing slashes removed.
        client_id: API client id for the client-credentials exchange.
        client_secret: API client secret.
        username: Username for the basic-auth token exchange.
        password: Password for the basic-auth token exchange.
        office_networks: Raw comma-separated office ranges.
        webhook_url: Chat webhook URL.
        timezone: IANA name of the office timezone.
        store_dir: Directory for :class:`~officepeak.store.LocalKeyValueStore`.
        s3_bucket: Bucket for :class:`~officepeak.store.S3KeyValueStore`.
        s3_prefix: Key prefix inside *s3_bucket*.
        timeout: HTTP timeout in seconds.
    """

    base_url: str = ""
    client_id: str | None = None
    client_secret: str | None = None
    username: str | None = None
    password: str | None = None
    office_networks: str = ""
    webhook_url: str | None = None
    timezone: str = DEFAULT_TIMEZONE
    store_dir: Path | None = None
    s3_bucket: str | None = None
    s3_prefix: str = ""
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @property
    def cidrs(self) -> list[str]:
        """Office ranges normalised to ``address/prefix`` strings.

        Raises:
            ConfigurationError: If any office range is malformed.
        """
        try:
            return normalize_cidrs(self.office_networks)
        except ValueError as exc:
            msg = f"OFFICE_NETS contains an invalid range: {exc}"
            raise ConfigurationError(msg) from None

    @property
    def tz(self) -> ZoneInfo:
        """The office timezone.

        Raises:
            ConfigurationError: If ``timezone`` is not a known IANA zone.
        """
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            msg = f"OFFICEPEAK_TZ is not a known timezone: {self.timezone!r}"
            raise ConfigurationError(msg) from None

    @property
    def has_client_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @property
    def has_basic_credentials(self) -> bool:
        return bool(self.username and self.password)

    def require(self, *names: str) -> None:
        """Raise :class:`ConfigurationError` if any of *names* is unset.

        Args:
            names: Attribute names of this config.

        Raises:
            ConfigurationError: Listing the environment variables to set.
        """
        missing = [name for name in names if not getattr(self, name)]
        if missing:
            env = ", ".join(_ENV_NAMES.get(name, name) for name in missing)
            msg = f"Missing required configuration: {env}"
            raise ConfigurationError(msg)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> OfficePeakConfig:
        """Build a config from environment variables.

        Args:
            environ: Mapping to read instead of :data:`os.environ`.

        Returns:
            A new :class:`OfficePeakConfig`.

        Raises:
            ConfigurationError: If ``OFFICEPEAK_TIMEOUT`` is not a number.
        """
        env = os.environ if environ is None else environ

        raw_timeout = env.get("OFFICEPEAK_TIMEOUT")
        try:
            timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT
        except ValueError:
            msg = f"OFFICEPEAK_TIMEOUT must be a number, got {raw_timeout!r}"
            raise ConfigurationError(msg) from None

        store_dir = env.get("OFFICEPEAK_STORE_DIR")
        return cls(
            base_url=env.get("JAMF_URL", ""),
            client_id=env.get("JAMF_CLIENT_ID") or None,
            client_secret=env.get("JAMF_CLIENT_SECRET") or None,
            username=env.get("JAMF_USER") or None,
            password=env.get("JAMF_PASS") or None,
            office_networks=env.get("OFFICE_NETS", ""),
            webhook_url=env.get("SLACK_WEBHOOK_URL") or None,
            timezone=env.get("OFFICEPEAK_TZ") or DEFAULT_TIMEZONE,
            store_dir=Path(store_dir) if store_dir else None,
            s3_bucket=env.get("OFFICEPEAK_S3_BUCKET") or None,
            s3_prefix=env.get("OFFICEPEAK_S3_PREFIX", ""),
            timeout=timeout,
        )

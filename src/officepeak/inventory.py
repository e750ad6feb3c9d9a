"""Device inventory client for the Jamf Pro style device-management API.

The client exchanges configured credentials for a bearer token, probes the
inventory endpoint variants the server accepts, and walks the paginated
``computers-inventory`` results as a lazy sequence of pages.

Example::

    from officepeak import InventoryClient, OfficePeakConfig

    client = InventoryClient(OfficePeakConfig.from_env())
    for record in client.iter_records():
        print(record.identity, record.last_ip_address)
"""

from __future__ import annotations

import base64
import json
import logging
import urllib.parse
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .exceptions import AuthenticationError, EndpointDiscoveryError, InventoryFetchError

if TYPE_CHECKING:
    from .config import OfficePeakConfig

logger = logging.getLogger(__name__)

_USER_AGENT = "officepeak"

PAGE_SIZE = 500

#: Inventory endpoint variants in probe order. Older deployments reject the
#: unqualified form and need the GENERAL section spelled out.
INVENTORY_PATHS = (
    f"/api/v1/computers-inventory?page-size={PAGE_SIZE}",
    f"/api/v1/computers-inventory?section=GENERAL&page-size={PAGE_SIZE}",
)


@dataclass(frozen=True, slots=True)
class DeviceRecord:
    """Snapshot of one computer from the inventory.

    All fields except ``id`` are best effort; any may be missing.

    Attributes:
        id: Inventory id of the computer.
        name: Device name.
        reporting_username: User reported by the device.
        last_contact_time: Timestamp of the last check-in.
        last_inventory_update: Timestamp of the last inventory submission.
        last_ip_address: Last IP address the device reported from.
    """

    id: str
    name: str | None = None
    reporting_username: str | None = None
    last_contact_time: str | None = None
    last_inventory_update: str | None = None
    last_ip_address: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> DeviceRecord:
        """Build a record from one entry of the ``results`` array."""
        general = data.get("general") or {}
        return cls(
            id=str(data.get("id", "")),
            name=general.get("name") or None,
            reporting_username=general.get("reportingUsername") or None,
            last_contact_time=general.get("lastContactTime") or None,
            last_inventory_update=general.get("lastInventoryUpdate") or None,
            last_ip_address=general.get("lastIpAddress") or None,
        )

    @property
    def identity(self) -> str:
        """Reporting username, else device name, else the inventory id."""
        return self.reporting_username or self.name or self.id

    @property
    def contact_timestamp(self) -> str | None:
        """Last contact time, falling back to the last inventory update."""
        return self.last_contact_time or self.last_inventory_update


@dataclass(frozen=True, slots=True)
class InventoryPage:
    """One page of inventory results.

    Attributes:
        records: Devices on this page.
        next_url: Absolute URL of the next page, or ``None`` on the last page.
    """

    records: list[DeviceRecord]
    next_url: str | None


class InventoryClient:
    """Authenticated, paginating reader of the computer inventory.

    Every call to :meth:`iter_pages` starts a fresh walk: it obtains a new
    token, selects an endpoint variant, and follows ``pagination.next``
    until the server stops returning one.

    Args:
        config: Configuration providing the base URL, credentials and
            timeout.
    """

    __slots__ = ("_config",)

    def __init__(self, config: OfficePeakConfig) -> None:
        self._config = config

    @property
    def base_url(self) -> str:
        return self._config.base_url

    def _open_json(self, req: Request) -> Any:
        with urlopen(req, timeout=self._config.timeout) as resp:  # noqa: S310
            return json.loads(resp.read())

    def acquire_token(self) -> str:
        """Exchange the configured credentials for a bearer token.

        Client credentials are preferred when both a client id and secret
        are configured; otherwise a username and password are used.

        Returns:
            The bearer token.

        Raises:
            AuthenticationError: If no credential pair is configured or the
                exchange fails.
        """
        cfg = self._config
        if cfg.has_client_credentials:
            body = urllib.parse.urlencode({
                "grant_type": "client_credentials",
                "client_id": cfg.client_id,
                "client_secret": cfg.client_secret,
            }).encode()
            req = Request(  # noqa: S310
                f"{self.base_url}/api/oauth/token",
                data=body,
                method="POST",
                headers={"Content-Type": "application/x-www-form-urlencoded", "User-Agent": _USER_AGENT},
            )
            return self._exchange(req, "access_token", "OAuth")

        if cfg.has_basic_credentials:
            pair = base64.b64encode(f"{cfg.username}:{cfg.password}".encode()).decode("ascii")
            req = Request(  # noqa: S310
                f"{self.base_url}/api/v1/auth/token",
                data=b"",
                method="POST",
                headers={"Authorization": f"Basic {pair}", "User-Agent": _USER_AGENT},
            )
            return self._exchange(req, "token", "Basic")

        msg = "Device-management credentials missing: set JAMF_CLIENT_ID/JAMF_CLIENT_SECRET or JAMF_USER/JAMF_PASS"
        raise AuthenticationError(msg)

    def _exchange(self, req: Request, field: str, kind: str) -> str:
        try:
            data = self._open_json(req)
        except HTTPError as exc:
            msg = f"{kind} token exchange rejected"
            raise AuthenticationError(msg, status=exc.code) from exc
        except (URLError, TimeoutError, OSError, json.JSONDecodeError) as exc:
            msg = f"{kind} token exchange failed: {exc}"
            raise AuthenticationError(msg) from exc

        token = data.get(field) if isinstance(data, dict) else None
        if not token:
            msg = f"{kind} token exchange returned no {field!r}"
            raise AuthenticationError(msg)
        logger.debug("Obtained %s token from %s", kind, self.base_url)
        return str(token)

    def auth_headers(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", "Accept": "application/json", "User-Agent": _USER_AGENT}

    def select_inventory_url(self, headers: dict[str, str]) -> str:
        """Return the first inventory endpoint variant that accepts a HEAD probe.

        Args:
            headers: Authenticated request headers.

        Raises:
            EndpointDiscoveryError: If every variant is rejected.
        """
        tried: list[str] = []
        for path in INVENTORY_PATHS:
            url = f"{self.base_url}{path}"
            tried.append(url)
            req = Request(url, method="HEAD", headers=headers)  # noqa: S310
            try:
                with urlopen(req, timeout=self._config.timeout):  # noqa: S310
                    pass
            except HTTPError as exc:
                logger.debug("Inventory endpoint %s rejected with HTTP %d", url, exc.code)
                continue
            except (URLError, TimeoutError, OSError) as exc:
                logger.debug("Inventory endpoint %s unreachable: %s", url, exc)
                continue
            logger.debug("Using inventory endpoint %s", url)
            return url
        raise EndpointDiscoveryError(tried)

    def fetch_page(self, url: str, headers: dict[str, str]) -> InventoryPage:
        """Fetch one page of inventory results.

        Args:
            url: Page URL.
            headers: Authenticated request headers.

        Returns:
            The page's records and the next page URL, if any.

        Raises:
            InventoryFetchError: On a non-success status, a transport error,
                or a body that is not the expected JSON document.
        """
        req = Request(url, headers=headers)  # noqa: S310
        try:
            data = self._open_json(req)
        except HTTPError as exc:
            raise InventoryFetchError(url, status=exc.code) from exc
        except (URLError, TimeoutError, OSError, json.JSONDecodeError) as exc:
            raise InventoryFetchError(url, reason=str(exc)) from exc

        if not isinstance(data, dict):
            raise InventoryFetchError(url, reason="unexpected response body")

        records = [DeviceRecord.from_json(item) for item in data.get("results") or [] if isinstance(item, dict)]
        pagination = data.get("pagination") or {}
        next_url = pagination.get("next") or None
        if next_url is not None:
            next_url = urllib.parse.urljoin(f"{self.base_url}/", next_url)
        return InventoryPage(records=records, next_url=next_url)

    def iter_pages(self) -> Iterator[InventoryPage]:
        """Walk the inventory, yielding one page at a time.

        The walk continues until a page carries no next-page cursor; the
        total number of pages is not known in advance.
        """
        token = self.acquire_token()
        headers = self.auth_headers(token)
        url: str | None = self.select_inventory_url(headers)
        page_count = 0
        while url:
            page = self.fetch_page(url, headers)
            page_count += 1
            logger.debug("Fetched inventory page %d (%d records)", page_count, len(page.records))
            yield page
            url = page.next_url

    def iter_records(self) -> Iterator[DeviceRecord]:
        """Walk the inventory, yielding every device record."""
        for page in self.iter_pages():
            yield from page.records

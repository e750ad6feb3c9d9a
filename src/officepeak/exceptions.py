"""Custom exceptions for officepeak."""

from __future__ import annotations


class OfficePeakError(Exception):
    """Base exception for all officepeak errors."""

    pass


class AuthenticationError(OfficePeakError):
    """Raised when no usable credential pair exists or the token exchange is rejected."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        self.status = status
        msg = message
        if status is not None:
            msg += f" (HTTP {status})"
        super().__init__(msg)


class EndpointDiscoveryError(OfficePeakError):
    """Raised when none of the inventory endpoint variants respond successfully."""

    def __init__(self, tried_urls: list[str]) -> None:
        self.tried_urls = tried_urls
        msg = "No inventory endpoint available."
        if tried_urls:
            msg += "\nTried:\n"
            for url in tried_urls:
                msg += f"  - {url}\n"
        super().__init__(msg.rstrip("\n"))


class InventoryFetchError(OfficePeakError):
    """Raised when an inventory page fetch fails."""

    def __init__(self, url: str, status: int | None = None, reason: str | None = None) -> None:
        self.url = url
        self.status = status
        self.reason = reason
        msg = f"Failed to fetch inventory page {url}"
        if status is not None:
            msg += f" (HTTP {status})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ConfigurationError(OfficePeakError):
    """Raised for missing settings or malformed request parameters."""

    pass


class NotificationError(OfficePeakError):
    """Raised when the chat webhook rejects or cannot receive a message."""

    def __init__(self, url: str, status: int | None = None, reason: str | None = None) -> None:
        self.url = url
        self.status = status
        self.reason = reason
        msg = "Failed to post notification"
        if status is not None:
            msg += f" (HTTP {status})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)

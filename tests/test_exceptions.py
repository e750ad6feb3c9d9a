"""Tests for custom exceptions."""

from __future__ import annotations

from officepeak.exceptions import (
    AuthenticationError,
    ConfigurationError,
    EndpointDiscoveryError,
    InventoryFetchError,
    NotificationError,
    OfficePeakError,
)


class TestOfficePeakError:
    def test_base_exception(self) -> None:
        err = OfficePeakError("test error")
        assert str(err) == "test error"
        assert isinstance(err, Exception)


class TestAuthenticationError:
    def test_basic(self) -> None:
        err = AuthenticationError("No credentials configured")
        assert str(err) == "No credentials configured"
        assert err.status is None

    def test_with_status(self) -> None:
        err = AuthenticationError("Token exchange rejected", status=401)
        assert err.status == 401
        assert str(err) == "Token exchange rejected (HTTP 401)"

    def test_is_officepeak_error(self) -> None:
        assert isinstance(AuthenticationError("x"), OfficePeakError)


class TestEndpointDiscoveryError:
    def test_lists_tried_urls(self) -> None:
        err = EndpointDiscoveryError(["https://a/1", "https://a/2"])
        assert err.tried_urls == ["https://a/1", "https://a/2"]
        assert "https://a/1" in str(err)
        assert "https://a/2" in str(err)
        assert not str(err).endswith("\n")

    def test_empty(self) -> None:
        assert str(EndpointDiscoveryError([])) == "No inventory endpoint available."


class TestInventoryFetchError:
    def test_status(self) -> None:
        err = InventoryFetchError("https://a/page", status=500)
        assert err.url == "https://a/page"
        assert err.status == 500
        assert "HTTP 500" in str(err)

    def test_reason(self) -> None:
        err = InventoryFetchError("https://a/page", reason="timed out")
        assert err.reason == "timed out"
        assert str(err).endswith(": timed out")


class TestConfigurationError:
    def test_is_officepeak_error(self) -> None:
        assert isinstance(ConfigurationError("x"), OfficePeakError)


class TestNotificationError:
    def test_does_not_leak_url(self) -> None:
        err = NotificationError("https://hooks.example.com/T000/secret", status=403)
        assert err.url.endswith("secret")
        assert "secret" not in str(err)
        assert "HTTP 403" in str(err)

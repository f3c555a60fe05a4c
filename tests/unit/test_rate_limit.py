"""Unit tests for rate limit keying."""
import pytest
from starlette.requests import Request

from tracker.config import reset_settings_cache
from tracker.rate_limit import station_key


def _request(headers: dict[str, str], client: str = "10.0.0.9") -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/equipment",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": (client, 51234),
    }
    return Request(scope)


@pytest.fixture()
def trusted_proxy(monkeypatch):
    monkeypatch.setenv("TRUSTED_PROXIES", '["10.0.0.1"]')
    reset_settings_cache()
    yield "10.0.0.1"
    monkeypatch.delenv("TRUSTED_PROXIES")
    reset_settings_cache()


class TestStationKey:
    def test_uses_client_address(self):
        assert station_key(_request({})) == "10.0.0.9"

    def test_ignores_forwarded_header_from_untrusted_peer(self):
        """A client sending its own header still lands in one bucket."""
        first = station_key(_request({"X-Forwarded-For": "1.1.1.1"}))
        second = station_key(_request({"X-Forwarded-For": "2.2.2.2"}))

        assert first == second == "10.0.0.9"

    def test_trusted_proxy_forwards_station(self, trusted_proxy):
        request = _request({"X-Forwarded-For": "192.168.4.21"}, client=trusted_proxy)

        assert station_key(request) == "192.168.4.21"

    def test_trusted_proxy_uses_nearest_untrusted_hop(self, trusted_proxy):
        request = _request(
            {"X-Forwarded-For": "6.6.6.6, 192.168.4.21, 10.0.0.1"}, client=trusted_proxy
        )

        assert station_key(request) == "192.168.4.21"

    def test_trusted_proxy_without_header(self, trusted_proxy):
        assert station_key(_request({}, client=trusted_proxy)) == trusted_proxy

"""
Pytest configuration and shared fixtures.
"""

import pytest
import requests
from typing import Any, Dict

from visitorprint.logger import get_logger, reset_logger
from visitorprint.providers import IP_API, IPWHO, DBIP, CLOUDFLARE_TRACE


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, json_data: Any = None, text: str = "", status_code: int = 200):
        self._json = json_data
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)

    def json(self):
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json


class FakeSession:
    """Maps URL -> FakeResponse or exception instance; records every call."""

    def __init__(self, routes: Dict[str, Any]):
        self.routes = routes
        self.calls = []
        self.closed = False

    def get(self, url, headers=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "timeout": timeout})
        outcome = self.routes.get(url)
        if outcome is None:
            raise requests.exceptions.ConnectionError(f"no route to {url}")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        self.closed = True

    @property
    def urls(self):
        return [c["url"] for c in self.calls]


@pytest.fixture(autouse=True)
def quiet_logger():
    """Fresh, console-less logger per test so metrics start at zero."""
    reset_logger()
    logger = get_logger(enable_console=False)
    yield logger
    reset_logger()


@pytest.fixture
def ip_api_payload() -> Dict[str, Any]:
    return {
        "status": "success",
        "country": "Germany",
        "regionName": "Berlin",
        "city": "Berlin",
        "isp": "Deutsche Telekom AG",
        "query": "198.51.100.7",
    }


@pytest.fixture
def ipwho_payload() -> Dict[str, Any]:
    return {
        "ip": "203.0.113.5",
        "success": True,
        "city": "Lisbon",
        "region": "Lisbon",
        "country": "Portugal",
        "connection": {"isp": "MEO"},
    }


@pytest.fixture
def dbip_payload() -> Dict[str, Any]:
    return {
        "ipAddress": "192.0.2.44",
        "city": "Osaka",
        "regionName": "Osaka",
        "countryName": "Japan",
    }


@pytest.fixture
def trace_body() -> str:
    return "fl=29f\nh=www.cloudflare.com\nip=203.0.113.5\nts=1700000000.1\nloc=US\ntls=TLSv1.3\n"


@pytest.fixture
def all_down_session() -> FakeSession:
    return FakeSession({
        IP_API.url: requests.exceptions.Timeout("timed out"),
        IPWHO.url: requests.exceptions.ConnectionError("refused"),
        DBIP.url: FakeResponse(status_code=503),
        CLOUDFLARE_TRACE.url: requests.exceptions.ConnectionError("blocked"),
    })

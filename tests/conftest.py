"""
Pytest configuration and shared fixtures.
"""

import asyncio
import json
from typing import Any, Dict, List, Tuple, Union

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from weather_proxy.access_guard import AccessGuard
from weather_proxy.credential_pool import CredentialPool

# Start of an epoch-aligned hour: 2023-11-14 22:00:00 UTC
WINDOW_START = 1699999200.0


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, now: float = WINDOW_START + 60):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeOpenWeatherMap:
    """In-process stand-in for the OpenWeatherMap weather endpoint."""

    def __init__(self):
        self.url = ""
        self.delay = 0.0
        self.requests: List[Dict[str, str]] = []
        self._responses: List[Tuple[int, Union[str, Dict[str, Any]]]] = []

    def queue(self, status: int, body: Union[str, Dict[str, Any]]) -> None:
        """Script the next response. Unscripted requests get a 500."""
        self._responses.append((status, body))

    async def handle(self, request: web.Request) -> web.Response:
        self.requests.append(dict(request.query))
        if self.delay:
            await asyncio.sleep(self.delay)

        status, body = self._responses.pop(0) if self._responses else (500, "")
        if not isinstance(body, str):
            body = json.dumps(body)
        return web.Response(status=status, text=body, content_type="application/json")

    @property
    def appids(self) -> List[str]:
        return [query.get("appid", "") for query in self.requests]


@pytest.fixture
async def fake_upstream():
    """Fake weather provider served on a local port."""
    fake = FakeOpenWeatherMap()
    app = web.Application()
    app.router.add_get("/data/2.5/weather", fake.handle)

    server = TestServer(app)
    await server.start_server()
    fake.url = str(server.make_url("/data/2.5/weather"))
    yield fake
    await server.close()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def allowed_keys() -> List[str]:
    """Caller keys accepted by the proxy."""
    return ["APIKEY-12345", "APIKEY-67890", "APIKEY-77177"]


@pytest.fixture
def access_guard(allowed_keys) -> AccessGuard:
    return AccessGuard(allowed_keys)


@pytest.fixture
def upstream_keys() -> List[str]:
    """Upstream OpenWeatherMap credentials in rotation order."""
    return ["owm_key_primary_0001", "owm_key_secondary_0002"]


@pytest.fixture
def credential_pool(upstream_keys) -> CredentialPool:
    return CredentialPool(upstream_keys)


@pytest.fixture
def mock_openweather_response() -> dict:
    """Mock OpenWeatherMap API response (metric units)."""
    return {
        "coord": {"lon": 2.3488, "lat": 48.8534},
        "weather": [{"id": 800, "main": "Clear", "description": "clear sky", "icon": "01d"}],
        "main": {"temp": 18.5, "feels_like": 17.9, "pressure": 1016, "humidity": 60},
        "name": "Paris",
        "sys": {"country": "FR"},
        "dt": 1699999260,
        "cod": 200,
    }

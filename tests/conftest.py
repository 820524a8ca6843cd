"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from py_market_intelligence.config import AppSettings
from py_market_intelligence.wits_client import WitsClient


@pytest.fixture
def app_settings() -> AppSettings:
    """
    Settings pointing at a placeholder WITS host, with a single attempt per
    request so that transport failures surface immediately.
    """
    return AppSettings(
        _env_file=None,
        wits={"base_url": "http://wits.test/api", "max_retries": 1, "retry_backoff": 0},
        trade_flow={"default_reporter": "WLD", "cache_ttl_seconds": 60},
    )


@pytest.fixture
def wits_trade_flow_response() -> dict:
    """A WITS trade flow body; note the partner is the ISO code, not 'UAE'."""
    return {
        "reporter": "WLD",
        "partner": "ARE",
        "productCode": "210690",
        "year": 2022,
        "tradeValue": 5000000000,
        "netWeight": 250000,
        "tradeFlow": "Import",
    }


@pytest.fixture
def wits_tariff_response() -> dict:
    return {
        "reporter": "ARE",
        "partner": "ZAF",
        "productCode": "210690",
        "year": 2022,
        "simpleAverage": 5.2,
        "weightedAverage": 4.8,
        "quotas": {"isApplied": False},
        "tradeAgreements": [{"name": "GAFTA", "rate": 0}],
    }


@pytest.fixture
def make_wits_client(app_settings):
    """
    Factory for WitsClient instances backed by an httpx.MockTransport.

    The handler receives each outgoing httpx.Request and returns the
    httpx.Response to serve (or raises a transport error).
    """
    clients = []

    def _make(handler, settings=None):
        client = WitsClient(settings or app_settings.wits, transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()


class FakeClock:
    """A controllable clock returning aware UTC datetimes."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from pumpfun_mcp.api import feed as feed_api
from pumpfun_mcp.api import health as health_api
from pumpfun_mcp.api import tools as tools_api
from pumpfun_mcp.main import app
from pumpfun_mcp.recovery import RateLimitError, UpstreamError, ValidationError
from pumpfun_mcp.types import OHLCCandle, PumpFunToken

MINT = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"


@pytest.fixture
def service(monkeypatch):
    fake = MagicMock()
    for method in (
        "get_top_tokens",
        "get_king_of_hill_tokens",
        "get_new_tokens",
        "get_token_metrics",
        "get_top_holders",
        "get_trade_analytics",
        "search_tokens",
        "get_ohlc",
    ):
        setattr(fake, method, AsyncMock())
    monkeypatch.setattr(tools_api, "get_pumpfun_service", lambda: fake)
    return fake


@pytest.fixture
def client():
    return TestClient(app)


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["health"] == "/healthz"


def test_top_tokens(client, service):
    service.get_top_tokens.return_value = [PumpFunToken(mint=MINT, name="Pump", symbol="PMP", market_cap=40_000)]

    response = client.get("/tools/top-tokens", params={"limit": 5})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["tokens"][0]["mint"] == MINT
    service.get_top_tokens.assert_awaited_once_with(5)


def test_limit_out_of_range_rejected(client, service):
    response = client.get("/tools/top-tokens", params={"limit": 51})

    assert response.status_code == 422
    service.get_top_tokens.assert_not_awaited()


def test_invalid_address_is_bad_request(client, service):
    service.get_token_metrics.side_effect = ValidationError("Invalid Solana token address: abc")

    response = client.get("/tools/tokens/abc/metrics")

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid Solana token address: abc"


def test_upstream_failure_is_bad_gateway(client, service):
    service.get_king_of_hill_tokens.side_effect = UpstreamError("Bitquery API error: 502 Bad Gateway")

    response = client.get("/tools/king-of-hill")

    assert response.status_code == 502


def test_rate_limit_passed_through(client, service):
    service.get_new_tokens.side_effect = RateLimitError("Bitquery API error: 429 Too Many Requests")

    response = client.get("/tools/new-tokens")

    assert response.status_code == 429


def test_unknown_period_rejected(client, service):
    response = client.get(f"/tools/tokens/{MINT}/analytics", params={"period": "7d"})

    assert response.status_code == 422


def test_ohlc(client, service):
    service.get_ohlc.return_value = [OHLCCandle(timestamp=1, open=1, high=2, low=1, close=2, volume=10, trades=1)]

    response = client.get(f"/tools/tokens/{MINT}/ohlc", params={"interval": 5, "limit": 10})

    assert response.status_code == 200
    assert response.json()["candles"][0]["high"] == 2
    service.get_ohlc.assert_awaited_once_with(MINT, 5, 10)


def test_search(client, service):
    service.search_tokens.return_value = []

    response = client.get("/tools/search", params={"q": "pepe"})

    assert response.json() == {"success": True, "query": "pepe", "tokens": []}
    service.search_tokens.assert_awaited_once_with("pepe", 10)


def test_feed_endpoints(client, monkeypatch):
    feed = MagicMock()
    feed.running = True
    feed.status.return_value = {"running": True, "state": "open"}
    feed.recent_tokens.return_value = [{"mint": MINT}]
    feed.recent_migrations.return_value = []
    monkeypatch.setattr(feed_api, "get_live_feed_service", lambda: feed)

    assert client.get("/feed/status").json() == {"running": True, "state": "open"}
    body = client.get("/feed/recent-tokens", params={"limit": 5}).json()
    assert body["tokens"] == [{"mint": MINT}]
    feed.recent_tokens.assert_called_once_with(5)


def test_healthz_reports_provider_status(client, monkeypatch):
    provider = MagicMock()
    provider.health_check = AsyncMock(return_value={"status": "healthy", "latency_ms": 12})
    monkeypatch.setattr(health_api, "get_bitquery_provider", lambda: provider)
    monkeypatch.setattr(health_api.settings, "enable_live_feed", False)

    body = client.get("/healthz").json()

    assert body["status"] == "healthy"
    assert body["providers"]["bitquery"]["latency_ms"] == 12
    assert body["feed"] == {"enabled": False}

import httpx
import pytest

from pumpfun_mcp.providers import bitquery as bq
from pumpfun_mcp.recovery import NetworkError, UpstreamError, UpstreamRequestError

URL = "https://graphql.bitquery.test"


def _response(status, payload=None):
    return httpx.Response(status, json=payload, request=httpx.Request("POST", URL))


class _DummyClient:
    instances = []
    responses = []

    def __init__(self, *_, headers=None, **__):
        self.headers = headers or {}
        self.requests = []
        self.is_closed = False
        _DummyClient.instances.append(self)

    async def post(self, url, json):
        self.requests.append({"url": url, "json": json})
        outcome = _DummyClient.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def aclose(self):
        self.is_closed = True


@pytest.fixture
def dummy_client(monkeypatch):
    _DummyClient.instances = []
    _DummyClient.responses = []
    monkeypatch.setattr(bq.httpx, "AsyncClient", _DummyClient)
    return _DummyClient


def make_provider(api_key="test-key", max_retries=2):
    return bq.BitqueryProvider(api_key=api_key, base_url=URL, max_retries=max_retries, backoff_base=0)


@pytest.mark.asyncio
async def test_sends_api_key_and_variables(dummy_client):
    trades = [{"Trade": {"Buy": {"Currency": {"MintAddress": "Mint1"}}}}]
    dummy_client.responses = [_response(200, {"data": {"Solana": {"DEXTrades": trades}}})]
    provider = make_provider()

    result = await provider.get_top_tokens(10, "2025-01-01T00:00:00Z")

    client = dummy_client.instances[0]
    assert client.headers["X-API-KEY"] == "test-key"
    request = client.requests[0]
    assert request["url"] == URL
    assert request["json"]["query"] == bq.TOP_TOKENS_QUERY
    assert request["json"]["variables"] == {"limit": 10, "since": "2025-01-01T00:00:00Z"}
    assert result == trades


@pytest.mark.asyncio
async def test_missing_payload_yields_empty_results(dummy_client):
    dummy_client.responses = [_response(200, {"data": None}), _response(200, {"data": {"Solana": {}}})]
    provider = make_provider()

    assert await provider.get_new_tokens(5) == []
    assert await provider.get_top_holders("Mint1", 5) == {}


@pytest.mark.asyncio
async def test_without_api_key_omits_header(dummy_client):
    provider = make_provider(api_key="")

    assert "X-API-KEY" not in provider._build_headers()
    assert await provider.ready() is False
    health = await provider.health_check()
    assert health["status"] == "unavailable"


@pytest.mark.asyncio
async def test_graphql_errors_raise_without_retry(dummy_client):
    dummy_client.responses = [_response(200, {"errors": [{"message": "Cannot query field"}]})]
    provider = make_provider()

    with pytest.raises(UpstreamRequestError, match="Cannot query field"):
        await provider.get_king_of_hill_trades()

    assert len(dummy_client.instances[0].requests) == 1


@pytest.mark.asyncio
async def test_server_error_is_retried(dummy_client):
    dummy_client.responses = [
        _response(502),
        _response(200, {"data": {"Solana": {"DEXTradeByTokens": [{"count": "3"}]}}}),
    ]
    provider = make_provider()

    candles = await provider.get_ohlc("Mint1", 5, 10)

    assert candles == [{"count": "3"}]
    assert len(dummy_client.instances[0].requests) == 2


@pytest.mark.asyncio
async def test_server_error_raised_once_retries_exhausted(dummy_client):
    dummy_client.responses = [_response(500), _response(500), _response(500)]
    provider = make_provider(max_retries=2)

    with pytest.raises(UpstreamError):
        await provider.get_token_metrics("Mint1", "2025-01-01T00:00:00Z")

    assert len(dummy_client.instances[0].requests) == 3


@pytest.mark.asyncio
async def test_client_error_is_not_retried(dummy_client):
    dummy_client.responses = [_response(401)]
    provider = make_provider()

    with pytest.raises(UpstreamRequestError) as exc_info:
        await provider.get_latest_trades("Mint1", "2025-01-01T00:00:00Z", 100)

    assert exc_info.value.status_code == 401
    assert len(dummy_client.instances[0].requests) == 1


@pytest.mark.asyncio
async def test_transport_error_becomes_network_error(dummy_client):
    dummy_client.responses = [httpx.ConnectError("refused")]
    provider = make_provider(max_retries=0)

    with pytest.raises(NetworkError):
        await provider.get_new_tokens(5)


@pytest.mark.asyncio
async def test_close_releases_client(dummy_client):
    dummy_client.responses = [_response(200, {"data": {"Solana": {}}})]
    provider = make_provider()
    await provider.get_new_tokens(1)

    await provider.close()

    assert dummy_client.instances[0].is_closed


@pytest.mark.asyncio
async def test_non_json_body_is_retried_as_upstream_error(dummy_client):
    html = httpx.Response(200, text="<html>gateway</html>", request=httpx.Request("POST", URL))
    dummy_client.responses = [html, _response(200, {"data": {"Solana": {"DEXTrades": []}}})]
    provider = make_provider()

    assert await provider.get_new_tokens(5) == []
    assert len(dummy_client.instances[0].requests) == 2


@pytest.mark.asyncio
async def test_non_object_body_raises_upstream_error(dummy_client):
    dummy_client.responses = [_response(200, ["not", "an", "object"])]
    provider = make_provider(max_retries=0)

    with pytest.raises(UpstreamError, match="non-JSON-object"):
        await provider.get_new_tokens(5)

from unittest.mock import AsyncMock

import pytest

from pumpfun_mcp.cache import TTLCache
from pumpfun_mcp.providers.bitquery import BitqueryProvider
from pumpfun_mcp.recovery import UpstreamError, ValidationError
from pumpfun_mcp.services.pumpfun import PumpFunService, aggregate_trades
from pumpfun_mcp.types import PumpFunTrade

NOW = 1_735_689_600.0  # 2025-01-01T00:00:00Z
MINT = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"
OTHER_MINT = "So11111111111111111111111111111111111111112"


def buy_trade(mint, name, symbol, price_usd, price=0.0000002, **extra):
    trade = {
        "Trade": {
            "Buy": {
                "Price": price,
                "PriceInUSD": price_usd,
                "Currency": {"Name": name, "Symbol": symbol, "MintAddress": mint, "Decimals": 6, "Uri": None},
            }
        }
    }
    trade["Trade"].update(extra)
    return trade


def dex_trade(side, owner, amount_sol, price, time, amount_usd=None, signature="sig"):
    return {
        "Block": {"Time": time},
        "Trade": {
            "Account": {"Address": f"{owner}-ata", "Owner": owner},
            "Side": {"Type": side, "Amount": str(amount_sol), "AmountInUSD": amount_usd},
            "Price": price,
            "Amount": "1000",
        },
        "Transaction": {"Signature": signature},
    }


@pytest.fixture
def provider():
    return AsyncMock(spec=BitqueryProvider)


@pytest.fixture
def service(provider):
    return PumpFunService(provider=provider, cache=TTLCache(ttl=30), sol_price_usd=150.0, clock=lambda: NOW)


class TestTokenLists:
    @pytest.mark.asyncio
    async def test_top_tokens_sorted_deduped_and_truncated(self, service, provider):
        provider.get_top_tokens.return_value = [
            buy_trade(MINT, "Small", "SML", 0.00001),
            buy_trade(OTHER_MINT, "Big", "BIG", 0.00005),
            buy_trade(MINT, "Small again", "SML", 0.00009),
            buy_trade("3xNewMint1111111111111111111111111111111111", "Mid", "MID", 0.00003),
        ]

        tokens = await service.get_top_tokens(2)

        assert [token.symbol for token in tokens] == ["BIG", "MID"]
        assert tokens[0].market_cap == pytest.approx(50_000)
        assert tokens[0].complete is False
        provider.get_top_tokens.assert_awaited_once_with(2, "2024-12-31T00:00:00Z")

    @pytest.mark.asyncio
    async def test_top_tokens_cached_under_namespaced_key(self, service, provider):
        provider.get_top_tokens.return_value = [buy_trade(MINT, "A", "A", 0.00001)]

        first = await service.get_top_tokens(10)
        second = await service.get_top_tokens(10)

        assert first == second
        assert provider.get_top_tokens.await_count == 1
        assert await service._cache.get("top-tokens-10") == first

    @pytest.mark.asyncio
    async def test_usd_price_falls_back_to_sol_rate(self, service, provider):
        provider.get_top_tokens.return_value = [buy_trade(MINT, "A", "A", None, price=0.0000002)]

        tokens = await service.get_top_tokens(1)

        assert tokens[0].price_usd == pytest.approx(0.00003)
        assert tokens[0].market_cap == pytest.approx(30_000)

    @pytest.mark.asyncio
    async def test_failed_fetch_is_not_cached(self, service, provider):
        provider.get_top_tokens.side_effect = [
            UpstreamError("Bitquery API error: 502 Bad Gateway", status_code=502),
            [buy_trade(MINT, "A", "A", 0.00001)],
        ]

        with pytest.raises(UpstreamError):
            await service.get_top_tokens(5)

        tokens = await service.get_top_tokens(5)
        assert len(tokens) == 1
        assert provider.get_top_tokens.await_count == 2

    @pytest.mark.asyncio
    async def test_king_of_hill(self, service, provider):
        provider.get_king_of_hill_trades.return_value = [
            {**buy_trade(MINT, "King", "KING", 0.000032, Market={"MarketAddress": "Pool1"}), "Block": {"Time": "2025-01-01T00:00:00Z"}},
            {**buy_trade(MINT, "King", "KING", 0.000031, Market={"MarketAddress": "Pool1"}), "Block": {"Time": "2024-12-31T23:59:00Z"}},
        ]

        tokens = await service.get_king_of_hill_tokens()

        assert len(tokens) == 1
        assert tokens[0].market_address == "Pool1"
        assert tokens[0].king_of_the_hill_timestamp == 1_735_689_600
        assert tokens[0].market_cap == pytest.approx(32_000)
        assert tokens[0].complete is True

    @pytest.mark.asyncio
    async def test_new_tokens(self, service, provider):
        provider.get_new_tokens.return_value = [
            {
                "Block": {"Time": "2024-12-31T23:55:00Z"},
                "Transaction": {"Signer": "Creator1", "Signature": "Sig1"},
                "TokenSupplyUpdate": {
                    "Amount": "1000000000",
                    "PostBalance": "1000000000",
                    "Currency": {"Name": "Fresh", "Symbol": "FRSH", "MintAddress": MINT, "Uri": "ipfs://x", "Decimals": 6},
                },
            },
            {"TokenSupplyUpdate": {"Currency": {}}},
        ]

        tokens = await service.get_new_tokens(20)

        assert len(tokens) == 1
        token = tokens[0]
        assert token.creator == "Creator1"
        assert token.signature == "Sig1"
        assert token.uri == "ipfs://x"
        assert token.created_timestamp == 1_735_689_300
        assert token.total_supply == 1_000_000_000

    @pytest.mark.asyncio
    async def test_search_matches_name_or_symbol_case_insensitively(self, service, provider):
        provider.get_top_tokens.return_value = [
            buy_trade(MINT, "Doge Killer", "DK", 0.00002),
            buy_trade(OTHER_MINT, "Cat", "PEPEDOGE", 0.00001),
            buy_trade("3xNewMint1111111111111111111111111111111111", "Frog", "FRG", 0.00003),
        ]

        results = await service.search_tokens("doge")

        assert {token.mint for token in results} == {MINT, OTHER_MINT}
        provider.get_top_tokens.assert_awaited_once_with(50, "2024-12-31T00:00:00Z")

    @pytest.mark.asyncio
    async def test_search_requires_query(self, service):
        with pytest.raises(ValidationError):
            await service.search_tokens("   ")


class TestTokenMetrics:
    @pytest.mark.asyncio
    async def test_builds_metrics(self, service, provider):
        provider.get_token_metrics.return_value = {
            "volume": [{"VolumeInUSD": "12500.5", "trades": "250", "buys": "150", "sells": "100"}],
            "liquidity_and_BondingCurve": [
                {
                    "Pool": {
                        "Market": {"BaseCurrency": {"Name": "Pool Name", "Symbol": "PN"}},
                        "Base": {"Balance": str(206_900_000 + 793_100_000 / 2), "PostAmountInUSD": "4000"},
                        "Quote": {"PostAmount": "30", "PostAmountInUSD": "4500"},
                    }
                }
            ],
            "marketcap_and_supply": [
                {"TokenSupplyUpdate": {"MarketCap": "45000", "Supply": "1000000000", "Currency": {"Name": "Token", "Symbol": "TKN"}}}
            ],
            "Price": [{"Trade": {"Price": 0.0000003, "PriceInUSD": 0.000045}}],
            "PriceAgo": [{"Trade": {"Price": 0.0000002, "PriceInUSD": 0.00003}}],
        }

        metrics = await service.get_token_metrics(MINT)

        assert metrics.token == MINT
        assert metrics.name == "Token"
        assert metrics.price_usd == pytest.approx(0.000045)
        assert metrics.market_cap == pytest.approx(45_000)
        assert metrics.volume_24h == pytest.approx(12500.5)
        assert metrics.price_change_percent_24h == pytest.approx(50.0)
        assert metrics.liquidity == pytest.approx(8500)
        assert metrics.bonding_curve_progress == pytest.approx(50.0)
        assert (metrics.transactions_24h, metrics.buys_24h, metrics.sells_24h) == (250, 150, 100)
        assert metrics.last_updated == int(NOW * 1000)
        provider.get_token_metrics.assert_awaited_once_with(MINT, "2024-12-31T00:00:00Z")

    @pytest.mark.asyncio
    async def test_sparse_metrics_default_to_zero(self, service, provider):
        provider.get_token_metrics.return_value = {}

        metrics = await service.get_token_metrics(MINT)

        assert metrics.market_cap == 0
        assert metrics.bonding_curve_progress == 0
        assert metrics.price_change_24h == 0

    @pytest.mark.asyncio
    async def test_invalid_address_rejected_before_upstream(self, service, provider):
        with pytest.raises(ValidationError):
            await service.get_token_metrics("not-an-address")

        provider.get_token_metrics.assert_not_awaited()


class TestHolders:
    @pytest.mark.asyncio
    async def test_percentage_and_value(self, service, provider):
        provider.get_top_holders.return_value = {
            "BalanceUpdates": [
                {"BalanceUpdate": {"Account": {"Address": "Holder1"}, "Holding": "100000000"}},
                {"BalanceUpdate": {"Account": {"Address": "Holder2"}, "Holding": "50000000"}},
                {"BalanceUpdate": {"Account": {}}},
            ],
            "Price": [{"Trade": {"Price": 0.0000002, "PriceInUSD": 0.00003}}],
        }

        holders = await service.get_top_holders(MINT, 10)

        assert [holder.address for holder in holders] == ["Holder1", "Holder2"]
        assert holders[0].percentage == pytest.approx(10.0)
        assert holders[0].value_usd == pytest.approx(3000)
        provider.get_top_holders.assert_awaited_once_with(MINT, 10)

    @pytest.mark.asyncio
    async def test_value_unknown_without_price(self, service, provider):
        provider.get_top_holders.return_value = {
            "BalanceUpdates": [{"BalanceUpdate": {"Account": {"Address": "Holder1"}, "Holding": "1"}}],
        }

        holders = await service.get_top_holders(MINT)

        assert holders[0].value_usd is None


class TestTradeAnalytics:
    @pytest.mark.asyncio
    async def test_aggregates_trades(self, service, provider):
        # Newest first, as returned upstream
        provider.get_latest_trades.return_value = [
            dex_trade("sell", "alice", 0.5, 0.0000004, "2024-12-31T23:59:00Z", amount_usd="75"),
            dex_trade("buy", "bob", 2.0, 0.0000005, "2024-12-31T23:40:00Z", amount_usd="300"),
            dex_trade("buy", "alice", 1.5, 0.0000002, "2024-12-31T23:20:00Z"),
            {"Trade": {"Side": {"Type": "unknown"}}},
        ]

        analytics = await service.get_trade_analytics(MINT, "1h")

        assert analytics.period == "1h"
        assert (analytics.trades, analytics.buys, analytics.sells) == (3, 2, 1)
        assert (analytics.buyers, analytics.sellers, analytics.makers) == (2, 1, 2)
        assert analytics.volume == pytest.approx(4.0)
        assert analytics.volume_usd == pytest.approx(75 + 300 + 1.5 * 150)
        assert analytics.avg_trade_size == pytest.approx(4.0 / 3)
        assert analytics.largest_trade == pytest.approx(2.0)
        assert analytics.price_high == pytest.approx(0.0000005)
        assert analytics.price_low == pytest.approx(0.0000002)
        assert analytics.price_open == pytest.approx(0.0000002)
        assert analytics.price_close == pytest.approx(0.0000004)
        provider.get_latest_trades.assert_awaited_once_with(MINT, "2024-12-31T23:00:00Z", 1000)

    @pytest.mark.asyncio
    async def test_no_trades_yields_zeroed_analytics(self, service, provider):
        provider.get_latest_trades.return_value = []

        analytics = await service.get_trade_analytics(MINT, "5m")

        assert analytics.trades == 0
        assert analytics.avg_trade_size == 0
        assert analytics.price_open == 0

    @pytest.mark.asyncio
    async def test_rejects_unknown_period(self, service, provider):
        with pytest.raises(ValidationError):
            await service.get_trade_analytics(MINT, "7d")
        provider.get_latest_trades.assert_not_awaited()

    def test_aggregate_keeps_chain_order_for_equal_timestamps(self):
        trades = [
            PumpFunTrade(signature="b", mint=MINT, sol_amount=1, token_amount=1, is_buy=True, user="u", timestamp=100, price=2.0),
            PumpFunTrade(signature="a", mint=MINT, sol_amount=1, token_amount=1, is_buy=True, user="u", timestamp=100, price=1.0),
        ]

        analytics = aggregate_trades(MINT, "1h", trades)

        assert analytics.price_open == 1.0
        assert analytics.price_close == 2.0


class TestOHLC:
    @pytest.mark.asyncio
    async def test_candles_sorted_oldest_first(self, service, provider):
        provider.get_ohlc.return_value = [
            {"Block": {"Timefield": "2025-01-01T00:05:00Z"}, "volume": "500", "count": "4",
             "Trade": {"open": 2, "high": 3, "low": 1, "close": 2.5}},
            {"Block": {"Timefield": "2025-01-01T00:00:00Z"}, "volume": "100", "count": "1",
             "Trade": {"open": 1, "high": 1, "low": 1, "close": 1}},
            {"Block": {}},
        ]

        candles = await service.get_ohlc(MINT, interval=5, limit=2)

        assert [candle.timestamp for candle in candles] == [1_735_689_600, 1_735_689_900]
        assert candles[1].high == 3
        assert candles[1].trades == 4
        provider.get_ohlc.assert_awaited_once_with(MINT, 5, 2)

    @pytest.mark.asyncio
    async def test_rejects_non_positive_interval(self, service):
        with pytest.raises(ValidationError):
            await service.get_ohlc(MINT, interval=0)

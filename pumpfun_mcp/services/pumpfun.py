"""Cached Pump.fun analytics built on the Bitquery provider."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..cache import TTLCache, cache as default_cache, cache_key
from ..config import settings
from ..providers.base import AnalyticsProvider
from ..providers.bitquery import get_bitquery_provider
from ..recovery import ValidationError
from ..types import OHLCCandle, Period, PumpFunToken, PumpFunTrade, TokenHolder, TokenMetrics, TradeAnalytics
from ..utils.helpers import (
    PERIOD_SECONDS,
    PUMP_FUN_TOTAL_SUPPLY,
    calculate_bonding_curve_progress,
    calculate_market_cap,
    calculate_price_change,
    get_time_range_timestamp,
    is_valid_solana_address,
    parse_block_time,
    to_float,
)

ANALYTICS_PERIODS = ("5m", "1h", "24h")
KING_OF_HILL_SAMPLE = 20
SEARCH_POOL_SIZE = 50


def _first(rows: Optional[List[Dict[str, Any]]]) -> Dict[str, Any]:
    return rows[0] if rows else {}


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _dedupe(tokens: Iterable[Optional[PumpFunToken]]) -> List[PumpFunToken]:
    seen: Dict[str, PumpFunToken] = {}
    for token in tokens:
        if token is not None and token.mint not in seen:
            seen[token.mint] = token
    return list(seen.values())


def validate_token_address(address: str) -> str:
    address = (address or "").strip()
    if not address:
        raise ValidationError("Token address is required")
    if not is_valid_solana_address(address):
        raise ValidationError(f"Invalid Solana token address: {address}")
    return address


class PumpFunService:
    """Pump.fun token analytics with a short-lived cache in front of Bitquery.

    Every read goes through ``TTLCache.get_or_fetch`` under a key made from the
    operation name and its arguments, so concurrent identical requests share
    one upstream call and failures are never cached.
    """

    def __init__(
        self,
        *,
        provider: Optional[AnalyticsProvider] = None,
        cache: Optional[TTLCache] = None,
        sol_price_usd: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._provider = provider or get_bitquery_provider()
        self._cache = cache if cache is not None else default_cache
        self._sol_price_usd = settings.sol_price_usd if sol_price_usd is None else sol_price_usd
        self._max_trades = settings.trade_analytics_max_trades
        self._now = clock

    # =========================================================================
    # Token lists
    # =========================================================================

    async def get_top_tokens(self, limit: int = 10) -> List[PumpFunToken]:
        """Top pump.fun tokens by market cap among mints traded in the last 24h."""
        if limit <= 0:
            return []

        async def fetch() -> List[PumpFunToken]:
            since = _iso(self._now() - PERIOD_SECONDS["24h"])
            trades = await self._provider.get_top_tokens(limit, since)
            tokens = _dedupe(self._parse_buy_token(trade) for trade in trades)
            tokens.sort(key=lambda token: token.market_cap or 0.0, reverse=True)
            return tokens[:limit]

        return await self._cache.get_or_fetch(cache_key("top-tokens", limit), fetch)

    async def get_king_of_hill_tokens(self) -> List[PumpFunToken]:
        """Tokens trading in the 30-35k market cap band."""

        async def fetch() -> List[PumpFunToken]:
            trades = await self._provider.get_king_of_hill_trades(limit=KING_OF_HILL_SAMPLE)
            return _dedupe(
                self._parse_buy_token(
                    trade,
                    complete=True,
                    market_address=((trade.get("Trade") or {}).get("Market") or {}).get("MarketAddress"),
                    king_of_the_hill_timestamp=parse_block_time((trade.get("Block") or {}).get("Time")),
                )
                for trade in trades
            )

        return await self._cache.get_or_fetch(cache_key("king-of-hill"), fetch)

    async def get_new_tokens(self, limit: int = 20) -> List[PumpFunToken]:
        """Most recently created pump.fun tokens, newest first."""
        if limit <= 0:
            return []

        async def fetch() -> List[PumpFunToken]:
            updates = await self._provider.get_new_tokens(limit)
            return _dedupe(self._parse_created_token(update) for update in updates)[:limit]

        return await self._cache.get_or_fetch(cache_key("new-tokens", limit), fetch)

    async def search_tokens(self, query: str, limit: int = 10) -> List[PumpFunToken]:
        """Case-insensitive name/symbol match among the top tokens."""
        needle = (query or "").strip().lower()
        if not needle:
            raise ValidationError("Search query is required")

        tokens = await self.get_top_tokens(SEARCH_POOL_SIZE)
        matches = [
            token for token in tokens
            if needle in token.name.lower() or needle in token.symbol.lower()
        ]
        return matches[:limit]

    # =========================================================================
    # Per-token analytics
    # =========================================================================

    async def get_token_metrics(self, token_address: str) -> TokenMetrics:
        address = validate_token_address(token_address)

        async def fetch() -> TokenMetrics:
            since = _iso(self._now() - PERIOD_SECONDS["24h"])
            data = await self._provider.get_token_metrics(address, since)
            return self._build_metrics(address, data)

        return await self._cache.get_or_fetch(cache_key("metrics", address), fetch)

    async def get_top_holders(self, token_address: str, limit: int = 10) -> List[TokenHolder]:
        address = validate_token_address(token_address)
        if limit <= 0:
            return []

        async def fetch() -> List[TokenHolder]:
            data = await self._provider.get_top_holders(address, limit)
            return self._build_holders(data)[:limit]

        return await self._cache.get_or_fetch(cache_key("holders", address, limit), fetch)

    async def get_trade_analytics(self, token_address: str, period: Period = "1h") -> TradeAnalytics:
        address = validate_token_address(token_address)
        if period not in ANALYTICS_PERIODS:
            raise ValidationError(f"Unsupported period '{period}'. Use one of: {', '.join(ANALYTICS_PERIODS)}")

        async def fetch() -> TradeAnalytics:
            since = _iso(get_time_range_timestamp(period, now=self._now()))
            rows = await self._provider.get_latest_trades(address, since, self._max_trades)
            trades = [trade for trade in (self._parse_trade(address, row) for row in rows) if trade]
            return aggregate_trades(address, period, trades)

        return await self._cache.get_or_fetch(cache_key("analytics", address, period), fetch)

    async def get_ohlc(self, token_address: str, interval: int = 1, limit: int = 50) -> List[OHLCCandle]:
        """Price candles of ``interval`` minutes, oldest first."""
        address = validate_token_address(token_address)
        if interval < 1 or limit < 1:
            raise ValidationError("Interval and limit must be positive")

        async def fetch() -> List[OHLCCandle]:
            rows = await self._provider.get_ohlc(address, interval, limit)
            candles = [candle for candle in (self._parse_candle(row) for row in rows) if candle]
            candles.sort(key=lambda candle: candle.timestamp)
            return candles

        return await self._cache.get_or_fetch(cache_key("ohlc", address, interval, limit), fetch)

    # =========================================================================
    # Parsing
    # =========================================================================

    def _usd(self, price_usd: Any, price_sol: float) -> float:
        return to_float(price_usd, default=price_sol * self._sol_price_usd)

    def _parse_buy_token(self, trade: Dict[str, Any], **extra: Any) -> Optional[PumpFunToken]:
        buy = (trade.get("Trade") or {}).get("Buy") or {}
        currency = buy.get("Currency") or {}
        mint = currency.get("MintAddress")
        if not mint:
            return None

        price = to_float(buy.get("Price"))
        price_usd = self._usd(buy.get("PriceInUSD"), price)
        return PumpFunToken(
            mint=mint,
            name=currency.get("Name") or "",
            symbol=currency.get("Symbol") or "",
            uri=currency.get("Uri"),
            decimals=int(currency.get("Decimals") or 6),
            price=price,
            price_usd=price_usd,
            market_cap=calculate_market_cap(price_usd),
            total_supply=PUMP_FUN_TOTAL_SUPPLY,
            **extra,
        )

    def _parse_created_token(self, update: Dict[str, Any]) -> Optional[PumpFunToken]:
        supply = update.get("TokenSupplyUpdate") or {}
        currency = supply.get("Currency") or {}
        mint = currency.get("MintAddress")
        if not mint:
            return None

        transaction = update.get("Transaction") or {}
        return PumpFunToken(
            mint=mint,
            name=currency.get("Name") or "",
            symbol=currency.get("Symbol") or "",
            uri=currency.get("Uri"),
            decimals=int(currency.get("Decimals") or 6),
            creator=transaction.get("Signer"),
            signature=transaction.get("Signature"),
            created_timestamp=parse_block_time((update.get("Block") or {}).get("Time")),
            total_supply=to_float(supply.get("PostBalance")) or None,
        )

    def _build_metrics(self, address: str, data: Dict[str, Any]) -> TokenMetrics:
        volume = _first(data.get("volume"))
        pool = _first(data.get("liquidity_and_BondingCurve")).get("Pool") or {}
        supply_update = _first(data.get("marketcap_and_supply")).get("TokenSupplyUpdate") or {}
        latest = _first(data.get("Price")).get("Trade") or {}
        previous = _first(data.get("PriceAgo")).get("Trade") or {}

        price = to_float(latest.get("Price"))
        price_usd = self._usd(latest.get("PriceInUSD"), price)
        supply = to_float(supply_update.get("Supply")) or None
        market_cap = to_float(supply_update.get("MarketCap")) or calculate_market_cap(
            price_usd, supply or PUMP_FUN_TOTAL_SUPPLY
        )

        change = {"absolute": 0.0, "percentage": 0.0}
        if previous:
            previous_price = to_float(previous.get("Price"))
            change = calculate_price_change(self._usd(previous.get("PriceInUSD"), previous_price), price_usd)

        base = pool.get("Base") or {}
        quote = pool.get("Quote") or {}
        progress = 0.0
        if base.get("Balance") is not None:
            progress = calculate_bonding_curve_progress(to_float(base.get("Balance")))

        currency = supply_update.get("Currency") or (pool.get("Market") or {}).get("BaseCurrency") or {}
        return TokenMetrics(
            token=address,
            name=currency.get("Name"),
            symbol=currency.get("Symbol"),
            price=price,
            price_usd=price_usd,
            market_cap=market_cap,
            supply=supply,
            volume_24h=to_float(volume.get("VolumeInUSD")),
            price_change_24h=change["absolute"],
            price_change_percent_24h=change["percentage"],
            liquidity=to_float(base.get("PostAmountInUSD")) + to_float(quote.get("PostAmountInUSD")),
            bonding_curve_progress=progress,
            transactions_24h=int(to_float(volume.get("trades"))),
            buys_24h=int(to_float(volume.get("buys"))),
            sells_24h=int(to_float(volume.get("sells"))),
            last_updated=int(self._now() * 1000),
        )

    def _build_holders(self, data: Dict[str, Any]) -> List[TokenHolder]:
        latest = _first(data.get("Price")).get("Trade")
        price_usd = self._usd(latest.get("PriceInUSD"), to_float(latest.get("Price"))) if latest else None

        holders = []
        for row in data.get("BalanceUpdates") or []:
            update = row.get("BalanceUpdate") or {}
            account = (update.get("Account") or {}).get("Address")
            if not account:
                continue
            balance = to_float(update.get("Holding"))
            holders.append(TokenHolder(
                address=account,
                balance=balance,
                percentage=balance / PUMP_FUN_TOTAL_SUPPLY * 100,
                value_usd=balance * price_usd if price_usd is not None else None,
            ))
        return holders

    def _parse_trade(self, mint: str, row: Dict[str, Any]) -> Optional[PumpFunTrade]:
        trade = row.get("Trade") or {}
        side = trade.get("Side") or {}
        side_type = (side.get("Type") or "").lower()
        if side_type not in ("buy", "sell"):
            return None

        account = trade.get("Account") or {}
        sol_amount = to_float(side.get("Amount"))
        return PumpFunTrade(
            signature=(row.get("Transaction") or {}).get("Signature") or "",
            mint=mint,
            sol_amount=sol_amount,
            token_amount=to_float(trade.get("Amount")),
            is_buy=side_type == "buy",
            user=account.get("Owner") or account.get("Address") or "",
            timestamp=parse_block_time((row.get("Block") or {}).get("Time")) or 0,
            price=to_float(trade.get("Price")),
            amount_usd=self._usd(side.get("AmountInUSD"), sol_amount),
        )

    @staticmethod
    def _parse_candle(row: Dict[str, Any]) -> Optional[OHLCCandle]:
        timestamp = parse_block_time((row.get("Block") or {}).get("Timefield"))
        if timestamp is None:
            return None
        trade = row.get("Trade") or {}
        return OHLCCandle(
            timestamp=timestamp,
            open=to_float(trade.get("open")),
            high=to_float(trade.get("high")),
            low=to_float(trade.get("low")),
            close=to_float(trade.get("close")),
            volume=to_float(row.get("volume")),
            trades=int(to_float(row.get("count"))),
        )


def aggregate_trades(mint: str, period: Period, trades: List[PumpFunTrade]) -> TradeAnalytics:
    """Roll a list of trades up into window analytics."""
    if not trades:
        return TradeAnalytics(token=mint, period=period)

    # Upstream lists newest first; reverse before the stable sort so ties keep chain order
    ordered = sorted(reversed(trades), key=lambda trade: trade.timestamp)
    buys = [trade for trade in ordered if trade.is_buy]
    sells = [trade for trade in ordered if not trade.is_buy]
    volume = sum(trade.sol_amount for trade in ordered)
    prices = [trade.price for trade in ordered if trade.price]

    return TradeAnalytics(
        token=mint,
        period=period,
        volume=volume,
        volume_usd=sum(trade.amount_usd or 0.0 for trade in ordered),
        trades=len(ordered),
        buys=len(buys),
        sells=len(sells),
        buyers=len({trade.user for trade in buys}),
        sellers=len({trade.user for trade in sells}),
        makers=len({trade.user for trade in ordered}),
        avg_trade_size=volume / len(ordered),
        largest_trade=max(trade.sol_amount for trade in ordered),
        price_high=max(prices, default=0.0),
        price_low=min(prices, default=0.0),
        price_open=prices[0] if prices else 0.0,
        price_close=prices[-1] if prices else 0.0,
    )


# Singleton instance
_service_instance: Optional[PumpFunService] = None


def get_pumpfun_service() -> PumpFunService:
    """Get the singleton Pump.fun service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = PumpFunService()
    return _service_instance

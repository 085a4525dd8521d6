from typing import Literal, Optional

from pydantic import BaseModel, Field


Period = Literal["5m", "1h", "24h"]


class PumpFunToken(BaseModel):
    mint: str = Field(description="Token mint address")
    name: str = Field(default="", description="Token name")
    symbol: str = Field(default="", description="Token symbol")
    uri: Optional[str] = Field(default=None, description="Metadata URI")
    decimals: int = Field(default=6, description="Token decimal places")
    creator: Optional[str] = Field(default=None, description="Creator (signer of the create instruction)")
    created_timestamp: Optional[int] = Field(default=None, description="Creation time (unix seconds)")
    signature: Optional[str] = Field(default=None, description="Creation transaction signature")
    price: Optional[float] = Field(default=None, description="Latest price in SOL")
    price_usd: Optional[float] = Field(default=None, description="Latest price in USD")
    market_cap: Optional[float] = Field(default=None, description="Market cap in USD")
    total_supply: Optional[float] = Field(default=None, description="Total supply")
    complete: bool = Field(default=False, description="Bonding curve completed (graduated)")
    market_address: Optional[str] = Field(default=None, description="AMM market address")
    king_of_the_hill_timestamp: Optional[int] = Field(
        default=None, description="When the token was seen in the King of the Hill range"
    )


class PumpFunTrade(BaseModel):
    signature: str = Field(description="Transaction signature")
    mint: str = Field(description="Token mint address")
    sol_amount: float = Field(description="Trade size in SOL")
    token_amount: float = Field(description="Trade size in tokens")
    is_buy: bool = Field(description="True for buys")
    user: str = Field(description="Trader account")
    timestamp: int = Field(description="Trade time (unix seconds)")
    price: Optional[float] = Field(default=None, description="Price in SOL")
    amount_usd: Optional[float] = Field(default=None, description="Trade size in USD")


class TokenMetrics(BaseModel):
    token: str = Field(description="Token mint address")
    name: Optional[str] = Field(default=None, description="Token name")
    symbol: Optional[str] = Field(default=None, description="Token symbol")
    price: float = Field(default=0.0, description="Price in SOL")
    price_usd: float = Field(default=0.0, description="Price in USD")
    market_cap: float = Field(default=0.0, description="Market cap in USD")
    supply: Optional[float] = Field(default=None, description="Circulating supply")
    volume_24h: float = Field(default=0.0, description="24h volume in USD")
    price_change_24h: float = Field(default=0.0, description="Absolute 24h USD price change")
    price_change_percent_24h: float = Field(default=0.0, description="24h price change in percent")
    liquidity: float = Field(default=0.0, description="Pool liquidity in USD")
    bonding_curve_progress: float = Field(default=0.0, description="Bonding curve progress (0-100)")
    holders: Optional[int] = Field(default=None, description="Holder count when available")
    transactions_24h: int = Field(default=0, description="Trades in the last 24h")
    buys_24h: int = Field(default=0, description="Buys in the last 24h")
    sells_24h: int = Field(default=0, description="Sells in the last 24h")
    last_updated: int = Field(description="When the metrics were assembled (unix ms)")


class TokenHolder(BaseModel):
    address: str = Field(description="Holder account")
    balance: float = Field(description="Token balance")
    percentage: float = Field(description="Share of total supply in percent")
    value_usd: Optional[float] = Field(default=None, description="Balance value in USD")


class TradeAnalytics(BaseModel):
    token: str = Field(description="Token mint address")
    period: Period = Field(description="Aggregation window")
    volume: float = Field(default=0.0, description="Volume in SOL")
    volume_usd: float = Field(default=0.0, description="Volume in USD")
    trades: int = Field(default=0, description="Trade count")
    buys: int = Field(default=0, description="Buy count")
    sells: int = Field(default=0, description="Sell count")
    buyers: int = Field(default=0, description="Unique buying accounts")
    sellers: int = Field(default=0, description="Unique selling accounts")
    makers: int = Field(default=0, description="Unique trading accounts")
    avg_trade_size: float = Field(default=0.0, description="Average trade size in SOL")
    largest_trade: float = Field(default=0.0, description="Largest trade in SOL")
    price_high: float = Field(default=0.0, description="Highest price in SOL")
    price_low: float = Field(default=0.0, description="Lowest price in SOL")
    price_open: float = Field(default=0.0, description="First price in the window")
    price_close: float = Field(default=0.0, description="Last price in the window")


class OHLCCandle(BaseModel):
    timestamp: int = Field(description="Candle start (unix seconds)")
    open: float
    high: float
    low: float
    close: float
    volume: float = Field(description="Traded token amount")
    trades: int = Field(default=0, description="Trades in the candle")

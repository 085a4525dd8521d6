"""
Bitquery GraphQL Provider

Static queries against Bitquery's Solana dataset for Pump.fun analytics:
- Top tokens and King of the Hill candidates
- Newly created tokens
- Token metrics, holders, latest trades and OHLC candles

Docs: https://docs.bitquery.io/docs/examples/Solana/Pump-Fun-API/
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .base import AnalyticsProvider
from ..config import settings
from ..recovery import (
    NetworkError,
    UpstreamError,
    UpstreamRequestError,
    error_from_response,
    retry_with_backoff,
)

logger = logging.getLogger(__name__)


TOP_TOKENS_QUERY = """
query TopTokens($limit: Int!, $since: DateTime!) {
  Solana {
    DEXTrades(
      limitBy: { by: Trade_Buy_Currency_MintAddress, count: 1 }
      limit: { count: $limit }
      orderBy: { descending: Trade_Buy_Price }
      where: {
        Trade: {
          Dex: { ProtocolName: { is: "pump" } }
          Buy: { Currency: { MintAddress: { notIn: ["11111111111111111111111111111111"] } } }
          PriceAsymmetry: { le: 0.1 }
          Sell: { AmountInUSD: { gt: "10" } }
        }
        Transaction: { Result: { Success: true } }
        Block: { Time: { since: $since } }
      }
    ) {
      Trade {
        Buy {
          Price(maximum: Block_Time)
          PriceInUSD(maximum: Block_Time)
          Currency { Name Symbol MintAddress Decimals Fungible Uri }
        }
      }
    }
  }
}
"""

KING_OF_HILL_QUERY = """
query KingOfTheHill($limit: Int!) {
  Solana {
    DEXTrades(
      where: {
        Trade: {
          Dex: { ProtocolName: { is: "pump_amm" } }
          Buy: { PriceInUSD: { ge: 0.000030, le: 0.000035 } }
          Sell: { AmountInUSD: { gt: "10" } }
        }
        Transaction: { Result: { Success: true } }
      }
      limit: { count: $limit }
      orderBy: { descending: Block_Time }
    ) {
      Trade {
        Buy {
          Price
          PriceInUSD
          Currency { Name Symbol MintAddress Decimals Fungible Uri }
        }
        Market { MarketAddress }
      }
      Block { Time }
    }
  }
}
"""

TOKEN_METRICS_QUERY = """
query TokenMetrics($token: String!, $since: DateTime!) {
  Solana {
    volume: DEXTradeByTokens(
      where: {
        Trade: {
          Currency: { MintAddress: { is: $token } }
          Side: { Currency: { MintAddress: { is: "11111111111111111111111111111111" } } }
        }
        Block: { Time: { since: $since } }
        Transaction: { Result: { Success: true } }
      }
    ) {
      VolumeInUSD: sum(of: Trade_Side_AmountInUSD)
      trades: count
      buys: count(if: { Trade: { Side: { Type: { is: buy } } } })
      sells: count(if: { Trade: { Side: { Type: { is: sell } } } })
    }
    liquidity_and_BondingCurve: DEXPools(
      where: {
        Pool: {
          Market: {
            BaseCurrency: { MintAddress: { is: $token } }
            QuoteCurrency: { MintAddress: { is: "11111111111111111111111111111111" } }
          }
        }
        Transaction: { Result: { Success: true } }
      }
      limit: { count: 1 }
      orderBy: { descending: Block_Time }
    ) {
      Pool {
        Market {
          BaseCurrency { Name Symbol }
          QuoteCurrency { Name Symbol }
        }
        Base { Balance: PostAmount PostAmountInUSD }
        Quote { PostAmount PostAmountInUSD }
      }
    }
    marketcap_and_supply: TokenSupplyUpdates(
      where: {
        TokenSupplyUpdate: { Currency: { MintAddress: { is: $token } } }
        Transaction: { Result: { Success: true } }
      }
      limitBy: { by: TokenSupplyUpdate_Currency_MintAddress, count: 1 }
      orderBy: { descending: Block_Time }
    ) {
      TokenSupplyUpdate {
        MarketCap: PostBalanceInUSD
        Supply: PostBalance
        Currency { Name MintAddress Symbol }
      }
    }
    Price: DEXTradeByTokens(
      limit: { count: 1 }
      orderBy: { descending: Block_Time }
      where: {
        Transaction: { Result: { Success: true } }
        Trade: { Currency: { MintAddress: { is: $token } } }
      }
    ) {
      Trade { Price PriceInUSD }
    }
    PriceAgo: DEXTradeByTokens(
      limit: { count: 1 }
      orderBy: { descending: Block_Time }
      where: {
        Transaction: { Result: { Success: true } }
        Trade: { Currency: { MintAddress: { is: $token } } }
        Block: { Time: { till: $since } }
      }
    ) {
      Trade { Price PriceInUSD }
    }
  }
}
"""

LATEST_TRADES_QUERY = """
query LatestTrades($token: String!, $since: DateTime!, $limit: Int!) {
  Solana {
    DEXTradeByTokens(
      orderBy: { descending: Block_Time }
      limit: { count: $limit }
      where: {
        Trade: {
          Currency: { MintAddress: { is: $token } }
          Price: { gt: 0 }
          Dex: { ProtocolName: { is: "pump" } }
        }
        Block: { Time: { since: $since } }
        Transaction: { Result: { Success: true } }
      }
    ) {
      Block { Time }
      Trade {
        Account { Address Owner }
        Side { Type Amount AmountInUSD }
        Price
        Amount
      }
      Transaction { Signature }
    }
  }
}
"""

NEW_TOKENS_QUERY = """
query NewTokens($limit: Int!) {
  Solana {
    TokenSupplyUpdates(
      where: {
        Instruction: {
          Program: {
            Address: { is: "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P" }
            Method: { is: "create" }
          }
        }
      }
      limit: { count: $limit }
      orderBy: { descending: Block_Time }
    ) {
      Block { Time }
      Transaction { Signer Signature }
      TokenSupplyUpdate {
        Amount
        Currency { Symbol Name MintAddress Uri Decimals UpdateAuthority }
        PostBalance
      }
    }
  }
}
"""

TOP_HOLDERS_QUERY = """
query TopHolders($token: String!, $limit: Int!) {
  Solana {
    BalanceUpdates(
      limit: { count: $limit }
      orderBy: { descendingByField: "BalanceUpdate_Holding_maximum" }
      where: {
        BalanceUpdate: { Currency: { MintAddress: { is: $token } } }
        Transaction: { Result: { Success: true } }
      }
    ) {
      BalanceUpdate {
        Currency { Name MintAddress Symbol }
        Account { Address }
        Holding: PostBalance(maximum: Block_Slot, selectWhere: { gt: "0" })
      }
    }
    Price: DEXTradeByTokens(
      limit: { count: 1 }
      orderBy: { descending: Block_Time }
      where: {
        Transaction: { Result: { Success: true } }
        Trade: { Currency: { MintAddress: { is: $token } } }
      }
    ) {
      Trade { Price PriceInUSD }
    }
  }
}
"""

OHLC_QUERY = """
query TokenOHLC($token: String!, $interval: Int!, $limit: Int!) {
  Solana {
    DEXTradeByTokens(
      limit: { count: $limit }
      orderBy: { descendingByField: "Block_Timefield" }
      where: {
        Trade: {
          Currency: { MintAddress: { is: $token } }
          Dex: { ProgramAddress: { is: "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P" } }
          PriceAsymmetry: { lt: 0.1 }
        }
      }
    ) {
      Block { Timefield: Time(interval: { in: minutes, count: $interval }) }
      volume: sum(of: Trade_Amount)
      Trade {
        high: Price(maximum: Trade_Price)
        low: Price(minimum: Trade_Price)
        open: Price(minimum: Block_Slot)
        close: Price(maximum: Block_Slot)
      }
      count
    }
  }
}
"""

HEALTH_QUERY = """
{
  Solana {
    Blocks(limit: { count: 1 }, orderBy: { descending: Block_Time }) {
      Block { Time }
    }
  }
}
"""


class BitqueryProvider(AnalyticsProvider):
    """Bitquery GraphQL provider for Pump.fun analytics."""

    name = "bitquery"
    timeout_s = 30

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        max_retries: Optional[int] = None,
        backoff_base: Optional[float] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.bitquery_api_key
        self.base_url = base_url or settings.bitquery_base_url
        self.timeout_s = settings.bitquery_timeout_seconds
        self.max_retries = settings.request_max_retries if max_retries is None else max_retries
        self.backoff_base = (
            settings.request_backoff_base_seconds if backoff_base is None else backoff_base
        )
        self._client: Optional[httpx.AsyncClient] = None
        if not self.api_key:
            logger.warning("No Bitquery API key provided. Some features may be limited.")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout_s,
                headers=self._build_headers(),
            )
        return self._client

    def _build_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.api_key:
            headers["X-API-KEY"] = self.api_key
        return headers

    async def ready(self) -> bool:
        return bool(self.api_key)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "No Bitquery API key configured"}

        try:
            client = await self._get_client()
            response = await client.post(self.base_url, json={"query": HEALTH_QUERY})
            response.raise_for_status()
            return {"status": "healthy", "latency_ms": int(response.elapsed.total_seconds() * 1000)}
        except Exception as e:
            return {"status": "error", "reason": str(e)}

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _make_request(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """POST a query, retrying recoverable failures when configured."""

        async def _send() -> Dict[str, Any]:
            client = await self._get_client()
            try:
                response = await client.post(
                    self.base_url,
                    json={"query": query, "variables": variables or {}},
                )
            except httpx.TransportError as e:
                raise NetworkError(f"Bitquery request failed: {e}", provider=self.name) from e

            if not response.is_success:
                raise error_from_response(response, provider="Bitquery")

            try:
                body = response.json()
            except ValueError:
                body = None
            if not isinstance(body, dict):
                raise UpstreamError(
                    "Bitquery returned a non-JSON-object body",
                    status_code=response.status_code,
                    provider=self.name,
                )

            errors = body.get("errors")
            if errors:
                messages = "; ".join(str(err.get("message", err)) for err in errors)
                raise UpstreamRequestError(f"Bitquery query error: {messages}", provider=self.name)

            return (body.get("data") or {}).get("Solana") or {}

        if self.max_retries <= 0:
            return await _send()
        return await retry_with_backoff(_send, max_retries=self.max_retries, base_delay=self.backoff_base)

    # =========================================================================
    # Token lists
    # =========================================================================

    async def get_top_tokens(self, limit: int, since: str) -> List[Dict[str, Any]]:
        """Latest pump.fun buys per mint since ``since`` (ISO-8601)."""
        data = await self._make_request(TOP_TOKENS_QUERY, {"limit": limit, "since": since})
        return data.get("DEXTrades") or []

    async def get_king_of_hill_trades(self, limit: int = 20) -> List[Dict[str, Any]]:
        data = await self._make_request(KING_OF_HILL_QUERY, {"limit": limit})
        return data.get("DEXTrades") or []

    async def get_new_tokens(self, limit: int) -> List[Dict[str, Any]]:
        data = await self._make_request(NEW_TOKENS_QUERY, {"limit": limit})
        return data.get("TokenSupplyUpdates") or []

    # =========================================================================
    # Per-token analytics
    # =========================================================================

    async def get_token_metrics(self, token_address: str, since: str) -> Dict[str, Any]:
        """Volume, pool, supply and price snapshots; ``since`` bounds the volume window."""
        return await self._make_request(TOKEN_METRICS_QUERY, {"token": token_address, "since": since})

    async def get_latest_trades(self, token_address: str, since: str, limit: int) -> List[Dict[str, Any]]:
        data = await self._make_request(
            LATEST_TRADES_QUERY,
            {"token": token_address, "since": since, "limit": limit},
        )
        return data.get("DEXTradeByTokens") or []

    async def get_top_holders(self, token_address: str, limit: int) -> Dict[str, Any]:
        return await self._make_request(TOP_HOLDERS_QUERY, {"token": token_address, "limit": limit})

    async def get_ohlc(self, token_address: str, interval: int, limit: int) -> List[Dict[str, Any]]:
        data = await self._make_request(
            OHLC_QUERY,
            {"token": token_address, "interval": interval, "limit": limit},
        )
        return data.get("DEXTradeByTokens") or []


# Singleton instance
_provider_instance: Optional[BitqueryProvider] = None


def get_bitquery_provider() -> BitqueryProvider:
    """Get the singleton Bitquery provider instance."""
    global _provider_instance
    if _provider_instance is None:
        _provider_instance = BitqueryProvider()
    return _provider_instance

"""
Pump.fun analytics MCP server (stdio).

Tools:
- get-top-tokens
- get-king-of-hill
- get-token-metrics
- get-new-tokens
- get-token-holders
- get-trade-analytics
- search-tokens
- get-token-ohlc

Each tool renders markdown; failures come back as tool errors prefixed with
"❌ Error:".
"""

import logging
from typing import Annotated, Awaitable, Callable, Literal

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.types import ToolAnnotations
from pydantic import Field

from .logging_config import setup_logging
from .recovery import PumpFunError
from .services.formatting import (
    render_holders,
    render_king_of_hill,
    render_metrics,
    render_new_tokens,
    render_ohlc,
    render_search_results,
    render_top_tokens,
    render_trade_analytics,
)
from .services.pumpfun import get_pumpfun_service

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "pump-fun-mcp",
    instructions=(
        "Read-only Pump.fun analytics on Solana: trending and new tokens, "
        "King of the Hill candidates, per-token metrics, holders, trade analytics and candles."
    ),
)

READ_ONLY = ToolAnnotations(readOnlyHint=True, idempotentHint=True, openWorldHint=True)

TokenAddress = Annotated[
    str,
    Field(description="Solana token mint address", min_length=32, max_length=44),
]


async def _run_tool(tool_name: str, call: Callable[[], Awaitable[str]]) -> str:
    try:
        return await call()
    except PumpFunError as e:
        logger.warning(f"Tool {tool_name} failed: {e.message}")
        raise ToolError(f"❌ Error: {e.message}") from e
    except Exception as e:
        logger.error(f"Tool {tool_name} failed unexpectedly: {e}", exc_info=True)
        raise ToolError(f"❌ Error: {e}") from e


@mcp.tool(
    name="get-top-tokens",
    description="Get the top Pump.fun tokens by market cap",
    annotations=READ_ONLY,
)
async def get_top_tokens(
    limit: Annotated[int, Field(description="Number of tokens to return (1-50)", ge=1, le=50)] = 10,
) -> str:
    async def call() -> str:
        tokens = await get_pumpfun_service().get_top_tokens(limit)
        return render_top_tokens(tokens, limit)

    return await _run_tool("get-top-tokens", call)


@mcp.tool(
    name="get-king-of-hill",
    description="Get tokens currently in the King of the Hill market cap range (30-35k)",
    annotations=READ_ONLY,
)
async def get_king_of_hill() -> str:
    async def call() -> str:
        tokens = await get_pumpfun_service().get_king_of_hill_tokens()
        return render_king_of_hill(tokens)

    return await _run_tool("get-king-of-hill", call)


@mcp.tool(
    name="get-token-metrics",
    description="Get price, market cap, volume, liquidity and bonding curve progress for a token",
    annotations=READ_ONLY,
)
async def get_token_metrics(token_address: TokenAddress) -> str:
    async def call() -> str:
        metrics = await get_pumpfun_service().get_token_metrics(token_address)
        return render_metrics(token_address, metrics)

    return await _run_tool("get-token-metrics", call)


@mcp.tool(
    name="get-new-tokens",
    description="Get recently created Pump.fun tokens",
    annotations=READ_ONLY,
)
async def get_new_tokens(
    limit: Annotated[int, Field(description="Number of tokens to return (1-100)", ge=1, le=100)] = 20,
) -> str:
    async def call() -> str:
        tokens = await get_pumpfun_service().get_new_tokens(limit)
        return render_new_tokens(tokens, limit)

    return await _run_tool("get-new-tokens", call)


@mcp.tool(
    name="get-token-holders",
    description="Get the largest holders of a token",
    annotations=READ_ONLY,
)
async def get_token_holders(
    token_address: TokenAddress,
    limit: Annotated[int, Field(description="Number of holders to return (1-50)", ge=1, le=50)] = 10,
) -> str:
    async def call() -> str:
        holders = await get_pumpfun_service().get_top_holders(token_address, limit)
        return render_holders(token_address, holders, limit)

    return await _run_tool("get-token-holders", call)


@mcp.tool(
    name="get-trade-analytics",
    description="Get buy/sell activity, volume and price action for a token over a time window",
    annotations=READ_ONLY,
)
async def get_trade_analytics(
    token_address: TokenAddress,
    period: Annotated[Literal["5m", "1h", "24h"], Field(description="Aggregation window")] = "1h",
) -> str:
    async def call() -> str:
        analytics = await get_pumpfun_service().get_trade_analytics(token_address, period)
        return render_trade_analytics(token_address, analytics)

    return await _run_tool("get-trade-analytics", call)


@mcp.tool(
    name="search-tokens",
    description="Search the top Pump.fun tokens by name or symbol",
    annotations=READ_ONLY,
)
async def search_tokens(
    query: Annotated[str, Field(description="Name or symbol to search for", min_length=1)],
    limit: Annotated[int, Field(description="Number of results to return (1-50)", ge=1, le=50)] = 10,
) -> str:
    async def call() -> str:
        tokens = await get_pumpfun_service().search_tokens(query, limit)
        return render_search_results(query, tokens)

    return await _run_tool("search-tokens", call)


@mcp.tool(
    name="get-token-ohlc",
    description="Get OHLC price candles for a token",
    annotations=READ_ONLY,
)
async def get_token_ohlc(
    token_address: TokenAddress,
    interval: Annotated[int, Field(description="Candle size in minutes (1-60)", ge=1, le=60)] = 1,
    limit: Annotated[int, Field(description="Number of candles (1-100)", ge=1, le=100)] = 50,
) -> str:
    async def call() -> str:
        candles = await get_pumpfun_service().get_ohlc(token_address, interval, limit)
        return render_ohlc(token_address, interval, candles)

    return await _run_tool("get-token-ohlc", call)


def run() -> None:
    """Serve the tools over stdio."""
    setup_logging()
    logger.info("Pump.fun MCP server running on stdio")
    mcp.run()


if __name__ == "__main__":
    run()

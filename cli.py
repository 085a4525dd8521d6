#!/usr/bin/env python3
"""CLI for running the Pump.fun MCP server and querying analytics locally"""

import argparse
import asyncio
import json
import sys
from typing import Any, List, Optional

from pumpfun_mcp.config import settings
from pumpfun_mcp.logging_config import setup_logging
from pumpfun_mcp.providers.bitquery import get_bitquery_provider
from pumpfun_mcp.recovery import PumpFunError
from pumpfun_mcp.services.feed import LiveFeedService
from pumpfun_mcp.services.formatting import (
    render_holders,
    render_king_of_hill,
    render_metrics,
    render_new_tokens,
    render_ohlc,
    render_search_results,
    render_top_tokens,
    render_trade_analytics,
)
from pumpfun_mcp.services.pumpfun import get_pumpfun_service
from pumpfun_mcp.types import ConnectionState, FeedMessage


async def render_query(args: argparse.Namespace) -> str:
    """Run one analytics command and return its markdown"""
    service = get_pumpfun_service()
    command = args.command

    if command == "top":
        return render_top_tokens(await service.get_top_tokens(args.limit), args.limit)
    if command == "koth":
        return render_king_of_hill(await service.get_king_of_hill_tokens())
    if command == "new":
        return render_new_tokens(await service.get_new_tokens(args.limit), args.limit)
    if command == "metrics":
        return render_metrics(args.address, await service.get_token_metrics(args.address))
    if command == "holders":
        holders = await service.get_top_holders(args.address, args.limit)
        return render_holders(args.address, holders, args.limit)
    if command == "analytics":
        analytics = await service.get_trade_analytics(args.address, args.period)
        return render_trade_analytics(args.address, analytics)
    if command == "search":
        return render_search_results(args.query, await service.search_tokens(args.query, args.limit))
    if command == "ohlc":
        candles = await service.get_ohlc(args.address, args.interval, args.limit)
        return render_ohlc(args.address, args.interval, candles)
    raise ValueError(f"Unknown command: {command}")


async def cli_query(args: argparse.Namespace) -> str:
    try:
        return await render_query(args)
    finally:
        await get_bitquery_provider().close()


def print_feed_message(message: FeedMessage) -> None:
    data: Any = message.data
    if isinstance(data, dict):
        label = message.method or data.get("txType") or "event"
        summary = data.get("symbol") or data.get("mint") or ""
        print(f"📡 {label} {summary}")
        print(f"   {json.dumps(data)[:200]}")
    else:
        print(f"📡 {message.method or 'event'}")


async def cli_watch(trades: Optional[List[str]] = None, duration: Optional[float] = None) -> None:
    """Print live feed events until interrupted"""
    feed = LiveFeedService()
    feed.client.on_any_message(print_feed_message)
    if trades:
        await feed.track_token_trades(trades)

    print(f"🔌 Connecting to {feed.client.url}...")
    await feed.start()
    try:
        if duration:
            await asyncio.sleep(duration)
        else:
            while feed.client.state != ConnectionState.FAILED:
                await asyncio.sleep(1)
            print("❌ Feed gave up reconnecting")
    finally:
        await feed.stop()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pump.fun analytics CLI")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("mcp", help="Run the MCP server over stdio")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=settings.host)
    serve_parser.add_argument("--port", type=int, default=settings.port)

    top_parser = subparsers.add_parser("top", help="Top tokens by market cap")
    top_parser.add_argument("--limit", type=int, default=10)

    subparsers.add_parser("koth", help="King of the Hill tokens")

    new_parser = subparsers.add_parser("new", help="Recently created tokens")
    new_parser.add_argument("--limit", type=int, default=20)

    metrics_parser = subparsers.add_parser("metrics", help="Token metrics")
    metrics_parser.add_argument("address", help="Token mint address")

    holders_parser = subparsers.add_parser("holders", help="Top token holders")
    holders_parser.add_argument("address", help="Token mint address")
    holders_parser.add_argument("--limit", type=int, default=10)

    analytics_parser = subparsers.add_parser("analytics", help="Trade analytics")
    analytics_parser.add_argument("address", help="Token mint address")
    analytics_parser.add_argument("--period", choices=["5m", "1h", "24h"], default="1h")

    search_parser = subparsers.add_parser("search", help="Search top tokens by name or symbol")
    search_parser.add_argument("query")
    search_parser.add_argument("--limit", type=int, default=10)

    ohlc_parser = subparsers.add_parser("ohlc", help="OHLC candles")
    ohlc_parser.add_argument("address", help="Token mint address")
    ohlc_parser.add_argument("--interval", type=int, default=1, help="Candle size in minutes")
    ohlc_parser.add_argument("--limit", type=int, default=50)

    watch_parser = subparsers.add_parser("watch", help="Print live PumpPortal events")
    watch_parser.add_argument("--trades", nargs="+", metavar="MINT", help="Also follow trades for these mints")
    watch_parser.add_argument("--duration", type=float, help="Stop after N seconds")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    if args.command == "mcp":
        from pumpfun_mcp.server import run
        run()
        return 0

    if args.command == "serve":
        import uvicorn
        setup_logging()
        uvicorn.run(
            "pumpfun_mcp.main:app",
            host=args.host,
            port=args.port,
            log_level=settings.log_level.lower(),
        )
        return 0

    setup_logging()
    if args.command == "watch":
        try:
            asyncio.run(cli_watch(args.trades, args.duration))
        except KeyboardInterrupt:
            print("\nGoodbye! 👋")
        return 0

    try:
        print(asyncio.run(cli_query(args)))
    except PumpFunError as e:
        print(f"❌ Error: {e.message}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

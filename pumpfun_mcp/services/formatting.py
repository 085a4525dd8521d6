"""Markdown renderers for tool responses."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from ..types import OHLCCandle, PumpFunToken, TokenHolder, TokenMetrics, TradeAnalytics
from ..utils.helpers import (
    format_large_number,
    format_percentage,
    format_time_ago,
    format_usd,
)


def format_token_summary(token: PumpFunToken, now: Optional[float] = None) -> str:
    status = "✅ Graduated" if token.complete else "🔄 Active"
    return (
        f"**{token.name} ({token.symbol})**\n"
        f"💰 Market Cap: {format_usd(token.market_cap or 0)}\n"
        f"📅 Created: {format_time_ago(token.created_timestamp, now=now)}\n"
        f"🎯 Status: {status}\n"
        f"🔗 Address: `{token.mint}`"
    )


def format_metrics_summary(metrics: TokenMetrics) -> str:
    holders = format_large_number(metrics.holders) if metrics.holders is not None else "n/a"
    return (
        f"💲 Price: {format_usd(metrics.price_usd)}\n"
        f"📊 Market Cap: {format_usd(metrics.market_cap)}\n"
        f"📈 24h Volume: {format_usd(metrics.volume_24h)}\n"
        f"📉 24h Change: {format_percentage(metrics.price_change_percent_24h)}\n"
        f"💧 Liquidity: {format_usd(metrics.liquidity)}\n"
        f"🌊 Bonding Curve: {metrics.bonding_curve_progress:.1f}%\n"
        f"👥 Holders: {holders}\n"
        f"🔄 24h Transactions: {format_large_number(metrics.transactions_24h)}"
    )


def _render_token_list(
    title: str,
    tokens: List[PumpFunToken],
    subtitle: Optional[str] = None,
    now: Optional[float] = None,
) -> str:
    header = f"# {title}\n\n"
    if subtitle:
        header += f"*{subtitle}*\n\n"
    body = "\n".join(
        f"## {index}. {format_token_summary(token, now=now)}\n"
        for index, token in enumerate(tokens, start=1)
    )
    return header + body


def render_top_tokens(tokens: List[PumpFunToken], limit: int, now: Optional[float] = None) -> str:
    return _render_token_list(f"🏆 Top {limit} Pump.fun Tokens by Market Cap", tokens, now=now)


def render_king_of_hill(tokens: List[PumpFunToken], now: Optional[float] = None) -> str:
    return _render_token_list(
        "👑 King of the Hill Tokens",
        tokens,
        subtitle="Tokens currently in the 30-35k market cap range competing for the crown",
        now=now,
    )


def render_new_tokens(tokens: List[PumpFunToken], limit: int, now: Optional[float] = None) -> str:
    return _render_token_list(
        "🆕 Recently Created Pump.fun Tokens",
        tokens,
        subtitle=f"Showing the latest {limit} tokens",
        now=now,
    )


def render_metrics(token_address: str, metrics: TokenMetrics) -> str:
    title = "# 📊 Token Metrics"
    if metrics.name or metrics.symbol:
        title += f": {metrics.name or ''} ({metrics.symbol or ''})"
    return (
        f"{title}\n\n"
        f"**Token Address:** `{token_address}`\n\n"
        f"## Current Metrics\n\n"
        f"{format_metrics_summary(metrics)}"
    )


def _short_address(address: str) -> str:
    if len(address) <= 16:
        return address
    return f"{address[:8]}...{address[-8:]}"


def render_holders(token_address: str, holders: List[TokenHolder], limit: int) -> str:
    lines = [f"# 👥 Top {limit} Holders", "", f"**Token Address:** `{token_address}`", ""]
    if not holders:
        lines.append("No holders found")
        return "\n".join(lines)

    for index, holder in enumerate(holders, start=1):
        lines.append(f"## {index}. Holder `{_short_address(holder.address)}`")
        lines.append(f"💰 Balance: {holder.balance:,.2f} tokens ({holder.percentage:.2f}%)")
        if holder.value_usd is not None:
            lines.append(f"💵 Value: ${holder.value_usd:,.2f}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def render_trade_analytics(token_address: str, analytics: TradeAnalytics) -> str:
    trades = analytics.trades
    buy_share = analytics.buys / trades * 100 if trades else 0.0
    sell_share = analytics.sells / trades * 100 if trades else 0.0
    return (
        f"# 📈 Trading Analytics ({analytics.period})\n\n"
        f"**Token Address:** `{token_address}`\n\n"
        f"## Trading Activity\n"
        f"🔄 Total Trades: {trades:,}\n"
        f"📈 Buys: {analytics.buys:,} ({buy_share:.1f}%)\n"
        f"📉 Sells: {analytics.sells:,} ({sell_share:.1f}%)\n"
        f"💰 Volume: {analytics.volume:.4f} SOL (${analytics.volume_usd:,.2f})\n"
        f"📊 Avg Trade Size: {analytics.avg_trade_size:.6f} SOL\n"
        f"🎯 Largest Trade: {analytics.largest_trade:.4f} SOL\n\n"
        f"## Participants\n"
        f"👥 Unique Buyers: {analytics.buyers:,}\n"
        f"👥 Unique Sellers: {analytics.sellers:,}\n"
        f"🏭 Market Makers: {analytics.makers:,}\n\n"
        f"## Price Action\n"
        f"🔼 High: {analytics.price_high:.10f} SOL\n"
        f"🔽 Low: {analytics.price_low:.10f} SOL\n"
        f"🚀 Open: {analytics.price_open:.10f} SOL\n"
        f"🎯 Close: {analytics.price_close:.10f} SOL"
    )


def render_search_results(query: str, tokens: List[PumpFunToken], now: Optional[float] = None) -> str:
    if not tokens:
        return f'# 🔍 Search Results\n\nNo tokens found matching "{query}"'
    return _render_token_list(
        f'🔍 Search Results for "{query}"',
        tokens,
        subtitle=f"Found {len(tokens)} token(s)",
        now=now,
    )


def render_ohlc(token_address: str, interval: int, candles: List[OHLCCandle]) -> str:
    lines = [f"# 🕯️ OHLC ({interval}m candles)", "", f"**Token Address:** `{token_address}`", ""]
    if not candles:
        lines.append("No trades found")
        return "\n".join(lines)

    lines.append("| Time (UTC) | Open | High | Low | Close | Volume | Trades |")
    lines.append("|---|---|---|---|---|---|---|")
    for candle in candles:
        stamp = datetime.fromtimestamp(candle.timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")
        lines.append(
            f"| {stamp} | {candle.open:.10f} | {candle.high:.10f} | {candle.low:.10f} "
            f"| {candle.close:.10f} | {format_large_number(candle.volume)} | {candle.trades} |"
        )
    return "\n".join(lines)

"""Formatting and calculation helpers shared by services and renderers."""

from __future__ import annotations

import re
import time
from datetime import datetime
from typing import Dict, Optional

PUMP_FUN_TOTAL_SUPPLY = 1_000_000_000

# Tokens left on the bonding curve at launch and the amount sold before completion
BONDING_CURVE_INITIAL_BALANCE = 206_900_000
BONDING_CURVE_SALE_AMOUNT = 793_100_000

PERIOD_SECONDS: Dict[str, int] = {
    "5m": 5 * 60,
    "15m": 15 * 60,
    "30m": 30 * 60,
    "1h": 60 * 60,
    "4h": 4 * 60 * 60,
    "24h": 24 * 60 * 60,
    "7d": 7 * 24 * 60 * 60,
}

_SOLANA_ADDRESS = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def format_number(num: float, decimals: int = 2) -> str:
    if num >= 1e9:
        return f"{num / 1e9:.{decimals}f}B"
    if num >= 1e6:
        return f"{num / 1e6:.{decimals}f}M"
    if num >= 1e3:
        return f"{num / 1e3:.{decimals}f}K"
    return f"{num:.{decimals}f}"


def format_usd(amount: float) -> str:
    return f"${format_number(amount)}"


def format_percentage(value: float) -> str:
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.2f}%"


def format_large_number(num: float) -> str:
    for threshold, suffix in ((1e12, "T"), (1e9, "B"), (1e6, "M"), (1e3, "K")):
        if num >= threshold:
            return f"{num / threshold:.2f}{suffix}"
    return str(num)


def format_time_ago(timestamp: Optional[int], now: Optional[float] = None) -> str:
    """Human readable age of a unix-seconds timestamp."""
    if timestamp is None:
        return "unknown"

    now = time.time() if now is None else now
    seconds = max(0, int(now - timestamp))
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    for count, unit in ((days, "day"), (hours, "hour"), (minutes, "minute")):
        if count > 0:
            return f"{count} {unit}{'s' if count > 1 else ''} ago"
    return f"{seconds} second{'s' if seconds > 1 else ''} ago"


def calculate_bonding_curve_progress(balance: float) -> float:
    """Progress in percent from the tokens still held by the bonding curve."""
    progress = 100 - ((balance - BONDING_CURVE_INITIAL_BALANCE) * 100) / BONDING_CURVE_SALE_AMOUNT
    return max(0.0, min(100.0, progress))


def calculate_market_cap(price: float, supply: float = PUMP_FUN_TOTAL_SUPPLY) -> float:
    return price * supply


def calculate_price_change(old_price: float, new_price: float) -> Dict[str, float]:
    absolute = new_price - old_price
    percentage = (absolute / old_price) * 100 if old_price > 0 else 0.0
    return {"absolute": absolute, "percentage": percentage}


def is_valid_solana_address(address: str) -> bool:
    return bool(address) and bool(_SOLANA_ADDRESS.match(address))


def get_time_range_timestamp(range_: str, now: Optional[float] = None) -> int:
    """Unix timestamp at the start of ``range_``; unknown ranges default to 1h."""
    now = time.time() if now is None else now
    return int(now) - PERIOD_SECONDS.get(range_, PERIOD_SECONDS["1h"])


def parse_block_time(value: Optional[str]) -> Optional[int]:
    """Parse an ISO-8601 block time into unix seconds."""
    if not value:
        return None
    try:
        return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp())
    except ValueError:
        return None


def to_float(value: object, default: float = 0.0) -> float:
    """Coerce GraphQL numerics (often strings) to float."""
    if value is None or value == "":
        return default
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default

from .feed import ConnectionState, FeedMessage, SubscriptionTopic, TopicSubscription, WILDCARD
from .tokens import (
    OHLCCandle,
    Period,
    PumpFunToken,
    PumpFunTrade,
    TokenHolder,
    TokenMetrics,
    TradeAnalytics,
)

__all__ = [
    "ConnectionState",
    "FeedMessage",
    "SubscriptionTopic",
    "TopicSubscription",
    "WILDCARD",
    "OHLCCandle",
    "Period",
    "PumpFunToken",
    "PumpFunTrade",
    "TokenHolder",
    "TokenMetrics",
    "TradeAnalytics",
]

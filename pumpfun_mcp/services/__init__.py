"""Service layer helpers"""

from .feed import LiveFeedService, get_live_feed_service
from .pumpfun import PumpFunService, get_pumpfun_service, validate_token_address

__all__ = [
    "LiveFeedService",
    "get_live_feed_service",
    "PumpFunService",
    "get_pumpfun_service",
    "validate_token_address",
]

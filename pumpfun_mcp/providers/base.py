from abc import ABC, abstractmethod
from typing import Any, Dict, List


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: int = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""

    async def close(self) -> None:
        """Release network resources"""


class AnalyticsProvider(Provider):
    """Provider for Pump.fun on-chain analytics.

    Methods return upstream rows as plain dicts; parsing into models is the
    service layer's job. Time bounds are ISO-8601 strings.
    """

    @abstractmethod
    async def get_top_tokens(self, limit: int, since: str) -> List[Dict[str, Any]]:
        """Latest buy per mint since ``since``"""

    @abstractmethod
    async def get_king_of_hill_trades(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Recent trades priced in the King of the Hill band"""

    @abstractmethod
    async def get_new_tokens(self, limit: int) -> List[Dict[str, Any]]:
        """Token creation events, newest first"""

    @abstractmethod
    async def get_token_metrics(self, token_address: str, since: str) -> Dict[str, Any]:
        """Volume, pool, supply and price snapshots for one token"""

    @abstractmethod
    async def get_latest_trades(self, token_address: str, since: str, limit: int) -> List[Dict[str, Any]]:
        """Trades for one token, newest first"""

    @abstractmethod
    async def get_top_holders(self, token_address: str, limit: int) -> Dict[str, Any]:
        """Largest balances plus the latest price"""

    @abstractmethod
    async def get_ohlc(self, token_address: str, interval: int, limit: int) -> List[Dict[str, Any]]:
        """Price candles of ``interval`` minutes"""

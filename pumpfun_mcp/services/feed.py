"""Live Pump.fun activity kept in memory from the PumpPortal feed."""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Sequence

from ..config import settings
from ..providers.pumpportal import PumpPortalClient
from ..types import FeedMessage

logger = logging.getLogger(__name__)


class LiveFeedService:
    """Owns one PumpPortal client and buffers the most recent launches and migrations.

    Subscriptions are registered as open hooks, so they are re-sent after every
    reconnect. ``stop()`` drops every listener; ``start()`` registers them again.
    """

    def __init__(self, client: Optional[PumpPortalClient] = None, *, recent_limit: Optional[int] = None):
        self.client = client or PumpPortalClient()
        limit = settings.feed_recent_tokens_limit if recent_limit is None else recent_limit
        self._recent_tokens: Deque[Dict[str, Any]] = deque(maxlen=limit)
        self._recent_migrations: Deque[Dict[str, Any]] = deque(maxlen=limit)
        self._recent_trades: Deque[Dict[str, Any]] = deque(maxlen=limit)
        self._tracked_mints: List[str] = []
        self._messages_received = 0
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return

        self.client.on_open(self.client.subscribe_to_new_tokens)
        self.client.on_open(self.client.subscribe_to_migrations)
        self.client.on_new_token(self._on_new_token)
        self.client.on_migration(self._on_migration)
        self.client.on_token_trade(self._on_token_trade)
        self.client.on_any_message(self._on_any_message)
        if self._tracked_mints:
            self.client.on_open(self._resubscribe_trades)

        await self.client.connect()
        self._running = True
        logger.info("Live feed started")

    async def stop(self) -> None:
        if not self._running:
            return
        await self.client.disconnect()
        self._running = False
        logger.info("Live feed stopped")

    async def track_token_trades(self, mints: Sequence[str]) -> bool:
        """Follow trades for ``mints``; sent now if connected and again on every reconnect."""
        new_mints = [mint for mint in mints if mint not in self._tracked_mints]
        if not new_mints:
            return True

        first_tracking = not self._tracked_mints
        self._tracked_mints.extend(new_mints)
        if self._running and first_tracking:
            self.client.on_open(self._resubscribe_trades)

        if self.client.is_connected():
            return await self.client.subscribe_to_token_trades(new_mints)
        return False

    async def _resubscribe_trades(self) -> None:
        if self._tracked_mints:
            await self.client.subscribe_to_token_trades(self._tracked_mints)

    def _on_new_token(self, data: Any) -> None:
        if not isinstance(data, dict):
            return
        self._recent_tokens.append(data)
        logger.debug(f"New token: {data.get('symbol')} ({data.get('mint')})")

    def _on_migration(self, data: Any) -> None:
        if isinstance(data, dict):
            self._recent_migrations.append(data)
            logger.info(f"Token migrated: {data.get('mint')}")

    def _on_token_trade(self, data: Any) -> None:
        if isinstance(data, dict):
            self._recent_trades.append(data)

    def _on_any_message(self, message: FeedMessage) -> None:
        self._messages_received += 1
        if message.method or not isinstance(message.data, dict):
            return

        # Untagged PumpPortal events are classified by their txType
        tx_type = message.data.get("txType")
        if tx_type == "create":
            self._on_new_token(message.data)
        elif tx_type == "migrate":
            self._on_migration(message.data)
        elif tx_type in ("buy", "sell"):
            self._on_token_trade(message.data)

    def recent_tokens(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Newest first."""
        tokens = list(reversed(self._recent_tokens))
        return tokens[:limit] if limit is not None else tokens

    def recent_migrations(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        migrations = list(reversed(self._recent_migrations))
        return migrations[:limit] if limit is not None else migrations

    def recent_trades(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        trades = list(reversed(self._recent_trades))
        return trades[:limit] if limit is not None else trades

    def status(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "state": self.client.state.value,
            "reconnect_attempts": self.client.reconnect_attempts,
            "listeners": self.client.registry.count(),
            "messages_received": self._messages_received,
            "recent_tokens": len(self._recent_tokens),
            "recent_migrations": len(self._recent_migrations),
            "tracked_mints": list(self._tracked_mints),
        }


# Singleton instance
_feed_instance: Optional[LiveFeedService] = None


def get_live_feed_service() -> LiveFeedService:
    """Get the singleton live feed service instance."""
    global _feed_instance
    if _feed_instance is None:
        _feed_instance = LiveFeedService()
    return _feed_instance

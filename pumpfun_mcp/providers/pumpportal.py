"""
PumpPortal WebSocket client for real-time Pump.fun data.

Keeps one logical connection to the feed, reconnects with a fixed delay up to
a bounded number of attempts, and fans inbound messages out to listeners
registered per message type (plus wildcard listeners).

Usage:
    client = PumpPortalClient()
    client.on_new_token(handle_token)
    client.on_open(client.subscribe_to_new_tokens)
    await client.connect()
"""

import asyncio
import inspect
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

import websockets
from websockets.exceptions import ConnectionClosed

from ..config import settings
from ..types import ConnectionState, FeedMessage, SubscriptionTopic, TopicSubscription, WILDCARD

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Union[None, Awaitable[None]]]
OpenHook = Callable[[], Union[Any, Awaitable[Any]]]


class ListenerRegistry:
    """Callbacks keyed by message type tag, kept in registration order."""

    def __init__(self) -> None:
        self._listeners: Dict[str, Dict[Listener, None]] = {}

    def add(self, tag: str, callback: Listener) -> None:
        self._listeners.setdefault(tag, {})[callback] = None

    def remove(self, tag: str, callback: Listener) -> None:
        listeners = self._listeners.get(tag)
        if listeners is None:
            return
        listeners.pop(callback, None)
        if not listeners:
            del self._listeners[tag]

    def listeners_for(self, tag: str) -> List[Listener]:
        return list(self._listeners.get(tag, ()))

    def count(self, tag: Optional[str] = None) -> int:
        if tag is not None:
            return len(self._listeners.get(tag, ()))
        return sum(len(listeners) for listeners in self._listeners.values())

    def clear(self) -> None:
        self._listeners.clear()


class PumpPortalClient:
    """Resilient subscription client for the PumpPortal data feed."""

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        max_reconnect_attempts: Optional[int] = None,
        reconnect_delay: Optional[float] = None,
        registry: Optional[ListenerRegistry] = None,
        connector: Optional[Callable[[str], Any]] = None,
    ):
        self.url = url or settings.pumpportal_ws_url
        self.max_reconnect_attempts = (
            settings.feed_max_reconnect_attempts
            if max_reconnect_attempts is None
            else max_reconnect_attempts
        )
        self.reconnect_delay = (
            settings.feed_reconnect_delay_seconds if reconnect_delay is None else reconnect_delay
        )
        self.registry = registry if registry is not None else ListenerRegistry()
        self._connector = connector or websockets.connect
        self._state = ConnectionState.DISCONNECTED
        self._reconnect_attempts = 0
        self._ws: Any = None
        self._task: Optional[asyncio.Task] = None
        self._closing = False
        self._opened = asyncio.Event()
        self._open_hooks: List[OpenHook] = []

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    def is_connected(self) -> bool:
        return self._state == ConnectionState.OPEN and self._ws is not None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(self) -> None:
        """Start the connection task. Returns without waiting for the socket."""
        if self._task is not None and not self._task.done():
            return

        self._closing = False
        self._reconnect_attempts = 0
        self._task = asyncio.create_task(self._run())

    async def wait_connected(self, timeout: Optional[float] = None) -> bool:
        """Wait until the connection is open; False on timeout."""
        try:
            await asyncio.wait_for(self._opened.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def disconnect(self) -> None:
        """Close the transport, cancel any pending reconnect and drop all listeners."""
        self._closing = True
        self.registry.clear()
        self._open_hooks.clear()

        ws = self._ws
        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                logger.warning(f"Error closing PumpPortal WebSocket: {e}")

        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._task = None
        self._ws = None
        self._opened.clear()
        self._state = ConnectionState.DISCONNECTED
        logger.info("PumpPortal WebSocket disconnected")

    async def _run(self) -> None:
        """Connection loop with a fixed-delay, bounded reconnect budget."""
        while not self._closing:
            self._state = ConnectionState.CONNECTING
            try:
                async with self._connector(self.url) as ws:
                    self._ws = ws
                    self._state = ConnectionState.OPEN
                    self._reconnect_attempts = 0
                    self._opened.set()
                    logger.info(f"Connected to PumpPortal WebSocket at {self.url}")

                    await self._run_open_hooks()
                    await self._listen(ws)

                logger.info("PumpPortal WebSocket closed")
            except ConnectionClosed as e:
                logger.warning(f"PumpPortal WebSocket closed: {e}")
            except Exception as e:
                logger.error(f"PumpPortal WebSocket error: {e}")
            finally:
                self._ws = None
                self._opened.clear()

            if self._closing:
                break

            self._state = ConnectionState.CLOSED
            if self._reconnect_attempts >= self.max_reconnect_attempts:
                self._state = ConnectionState.FAILED
                logger.error(
                    f"Max reconnection attempts ({self.max_reconnect_attempts}) reached. "
                    "Please restart the service."
                )
                return

            self._reconnect_attempts += 1
            self._state = ConnectionState.RECONNECTING
            logger.info(
                f"Attempting to reconnect ({self._reconnect_attempts}/{self.max_reconnect_attempts}) "
                f"in {self.reconnect_delay}s..."
            )
            await asyncio.sleep(self.reconnect_delay)

    async def _run_open_hooks(self) -> None:
        for hook in list(self._open_hooks):
            try:
                result = hook()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Open hook error: {e}")

    async def _listen(self, ws: Any) -> None:
        async for raw in ws:
            if self._closing:
                break
            await self.handle_message(raw)

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def handle_message(self, raw: Union[str, bytes]) -> None:
        """Decode one inbound frame and fan it out to listeners."""
        if self._closing:
            return

        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
            logger.warning(f"Error parsing WebSocket message: {e}")
            return

        method = payload.get("method") if isinstance(payload, dict) else None
        if isinstance(method, str):
            await self._dispatch(FeedMessage(method=method, data=payload.get("data")))
        else:
            # PumpPortal event frames carry no tag; only wildcard listeners see them
            await self._dispatch(FeedMessage(method="", data=payload), tagged=False)

    async def _dispatch(self, message: FeedMessage, tagged: bool = True) -> None:
        if tagged and message.method != WILDCARD:
            for callback in self.registry.listeners_for(message.method):
                await self._invoke(callback, message.data, message.method)

        for callback in self.registry.listeners_for(WILDCARD):
            if self._closing:
                return
            await self._invoke(callback, message, message.method)

    async def _invoke(self, callback: Listener, payload: Any, tag: str) -> None:
        try:
            result = callback(payload)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Listener error for {tag}: {e}")

    # =========================================================================
    # Subscriptions
    # =========================================================================

    async def subscribe(self, subscription: TopicSubscription) -> bool:
        """Send a topic registration. Dropped (not queued) unless the socket is open."""
        ws = self._ws
        if self._state != ConnectionState.OPEN or ws is None:
            logger.warning(f"WebSocket not connected. Cannot subscribe to {subscription.method.value}.")
            return False

        try:
            await ws.send(json.dumps(subscription.to_payload()))
        except ConnectionClosed as e:
            logger.warning(f"Subscription to {subscription.method.value} failed: {e}")
            return False

        logger.info(f"Subscribed to {subscription.method.value}")
        return True

    async def subscribe_to_new_tokens(self) -> bool:
        return await self.subscribe(TopicSubscription(method=SubscriptionTopic.NEW_TOKEN))

    async def subscribe_to_token_trades(self, token_addresses: Sequence[str]) -> bool:
        return await self.subscribe(
            TopicSubscription(method=SubscriptionTopic.TOKEN_TRADE, keys=list(token_addresses))
        )

    async def subscribe_to_account_trades(self, account_addresses: Sequence[str]) -> bool:
        return await self.subscribe(
            TopicSubscription(method=SubscriptionTopic.ACCOUNT_TRADE, keys=list(account_addresses))
        )

    async def subscribe_to_migrations(self) -> bool:
        return await self.subscribe(TopicSubscription(method=SubscriptionTopic.MIGRATION))

    # =========================================================================
    # Listeners
    # =========================================================================

    def on_open(self, hook: OpenHook) -> None:
        """Run ``hook`` after every successful (re)connect, e.g. to re-subscribe."""
        self._open_hooks.append(hook)

    def add_listener(self, tag: str, callback: Listener) -> None:
        self.registry.add(tag, callback)

    def remove_listener(self, tag: str, callback: Listener) -> None:
        self.registry.remove(tag, callback)

    def on_new_token(self, callback: Listener) -> None:
        self.add_listener(SubscriptionTopic.NEW_TOKEN.value, callback)

    def on_token_trade(self, callback: Listener) -> None:
        self.add_listener(SubscriptionTopic.TOKEN_TRADE.value, callback)

    def on_account_trade(self, callback: Listener) -> None:
        self.add_listener(SubscriptionTopic.ACCOUNT_TRADE.value, callback)

    def on_migration(self, callback: Listener) -> None:
        self.add_listener(SubscriptionTopic.MIGRATION.value, callback)

    def on_any_message(self, callback: Listener) -> None:
        self.add_listener(WILDCARD, callback)

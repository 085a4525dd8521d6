from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


WILDCARD = "*"


class SubscriptionTopic(str, Enum):
    """PumpPortal subscription methods."""

    NEW_TOKEN = "subscribeNewToken"
    TOKEN_TRADE = "subscribeTokenTrade"
    ACCOUNT_TRADE = "subscribeAccountTrade"
    MIGRATION = "subscribeMigration"


class ConnectionState(str, Enum):
    """Lifecycle of the feed connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


class TopicSubscription(BaseModel):
    method: SubscriptionTopic = Field(description="Topic to subscribe to")
    keys: Optional[List[str]] = Field(default=None, description="Mint or account addresses")

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"method": self.method.value}
        if self.keys is not None:
            payload["keys"] = list(self.keys)
        return payload


class FeedMessage(BaseModel):
    method: str = Field(description="Message type tag")
    data: Any = Field(default=None, description="Opaque payload")

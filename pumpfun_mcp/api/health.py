from typing import Any, Dict

from fastapi import APIRouter

from ..config import settings
from ..providers.bitquery import get_bitquery_provider
from ..services.feed import get_live_feed_service

router = APIRouter()


@router.get("/healthz")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint that verifies provider status"""

    provider_status = {"bitquery": await get_bitquery_provider().health_check()}

    feed_status: Dict[str, Any] = {"enabled": settings.enable_live_feed}
    if settings.enable_live_feed:
        feed_status.update(get_live_feed_service().status())

    healthy = provider_status["bitquery"]["status"] == "healthy"
    return {
        "status": "healthy" if healthy else "degraded",
        "providers": provider_status,
        "feed": feed_status,
    }

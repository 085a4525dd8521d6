from typing import Any, Dict

from fastapi import APIRouter, Query

from ..services.feed import get_live_feed_service

router = APIRouter(prefix="/feed")


@router.get("/status")
async def get_feed_status() -> Dict[str, Any]:
    """Connection state and buffer sizes of the PumpPortal live feed"""
    return get_live_feed_service().status()


@router.get("/recent-tokens")
async def get_recent_tokens(
    limit: int = Query(20, ge=1, le=100, description="Number of tokens to return"),
) -> Dict[str, Any]:
    service = get_live_feed_service()
    return {
        "running": service.running,
        "tokens": service.recent_tokens(limit),
        "migrations": service.recent_migrations(limit),
    }

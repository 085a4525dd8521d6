import logging
from typing import Literal

from fastapi import APIRouter, HTTPException, Query

from ..recovery import PumpFunError, RateLimitError, ValidationError
from ..services.pumpfun import get_pumpfun_service

router = APIRouter(prefix="/tools")
_logger = logging.getLogger(__name__)


def _to_http_error(action: str, error: Exception) -> HTTPException:
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=error.message)
    if isinstance(error, RateLimitError):
        return HTTPException(status_code=429, detail=error.message)
    if isinstance(error, PumpFunError):
        _logger.warning(f"Failed to fetch {action}: {error.message}")
        return HTTPException(status_code=502, detail=f"Failed to fetch {action}: {error.message}")
    _logger.error(f"Failed to fetch {action}: {error}", exc_info=True)
    return HTTPException(status_code=500, detail=f"Failed to fetch {action}: {str(error)}")


@router.get("/top-tokens")
async def get_top_tokens_endpoint(
    limit: int = Query(10, ge=1, le=50, description="Number of tokens to return"),
):
    try:
        tokens = await get_pumpfun_service().get_top_tokens(limit)
    except Exception as e:
        raise _to_http_error("top tokens", e)
    return {"success": True, "tokens": tokens}


@router.get("/king-of-hill")
async def get_king_of_hill_endpoint():
    try:
        tokens = await get_pumpfun_service().get_king_of_hill_tokens()
    except Exception as e:
        raise _to_http_error("King of the Hill tokens", e)
    return {"success": True, "tokens": tokens}


@router.get("/new-tokens")
async def get_new_tokens_endpoint(
    limit: int = Query(20, ge=1, le=100, description="Number of tokens to return"),
):
    try:
        tokens = await get_pumpfun_service().get_new_tokens(limit)
    except Exception as e:
        raise _to_http_error("new tokens", e)
    return {"success": True, "tokens": tokens}


@router.get("/search")
async def search_tokens_endpoint(
    q: str = Query(..., min_length=1, description="Name or symbol to search for"),
    limit: int = Query(10, ge=1, le=50, description="Number of results to return"),
):
    try:
        tokens = await get_pumpfun_service().search_tokens(q, limit)
    except Exception as e:
        raise _to_http_error("search results", e)
    return {"success": True, "query": q, "tokens": tokens}


@router.get("/tokens/{address}/metrics")
async def get_token_metrics_endpoint(address: str):
    try:
        metrics = await get_pumpfun_service().get_token_metrics(address)
    except Exception as e:
        raise _to_http_error("token metrics", e)
    return {"success": True, "metrics": metrics}


@router.get("/tokens/{address}/holders")
async def get_token_holders_endpoint(
    address: str,
    limit: int = Query(10, ge=1, le=50, description="Number of holders to return"),
):
    try:
        holders = await get_pumpfun_service().get_top_holders(address, limit)
    except Exception as e:
        raise _to_http_error("token holders", e)
    return {"success": True, "holders": holders}


@router.get("/tokens/{address}/analytics")
async def get_trade_analytics_endpoint(
    address: str,
    period: Literal["5m", "1h", "24h"] = Query("1h", description="Aggregation window"),
):
    try:
        analytics = await get_pumpfun_service().get_trade_analytics(address, period)
    except Exception as e:
        raise _to_http_error("trade analytics", e)
    return {"success": True, "analytics": analytics}


@router.get("/tokens/{address}/ohlc")
async def get_token_ohlc_endpoint(
    address: str,
    interval: int = Query(1, ge=1, le=60, description="Candle size in minutes"),
    limit: int = Query(50, ge=1, le=100, description="Number of candles"),
):
    try:
        candles = await get_pumpfun_service().get_ohlc(address, interval, limit)
    except Exception as e:
        raise _to_http_error("OHLC candles", e)
    return {"success": True, "interval": interval, "candles": candles}

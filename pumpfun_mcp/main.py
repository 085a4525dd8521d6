import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api import feed, health, tools
from .config import settings
from .logging_config import setup_logging
from .providers.bitquery import get_bitquery_provider
from .services.feed import get_live_feed_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the live feed when enabled; release upstream clients on shutdown."""
    setup_logging()
    if settings.enable_live_feed:
        await get_live_feed_service().start()
    logger.info("Pump.fun analytics API started")

    yield

    if settings.enable_live_feed:
        await get_live_feed_service().stop()
    await get_bitquery_provider().close()
    logger.info("Pump.fun analytics API stopped")


# Create FastAPI app
app = FastAPI(
    title="Pump.fun Analytics API",
    description="Pump.fun token analytics over Bitquery with a PumpPortal live feed",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(tools.router, tags=["Tools"])
app.include_router(feed.router, tags=["Feed"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "Pump.fun Analytics API",
        "version": __version__,
        "docs": "/docs",
        "health": "/healthz",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pumpfun_mcp.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )

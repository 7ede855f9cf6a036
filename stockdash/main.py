"""
FastAPI Main Application
Quote API, portfolio ledger, live quote push and the refresh scheduler
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from stockdash import __version__
from stockdash.config import settings
from stockdash.core.logging import setup_logging
from stockdash.domain.services.config_engine import ConfigEngine
from stockdash.infrastructure.db import database
from stockdash.infrastructure.db.database import close_db, init_db
from stockdash.infrastructure.market_data.provider_factory import get_quote_aggregator
from stockdash.realtime.broadcaster import QuoteBroadcaster
from stockdash.scheduler.main import QuoteRefreshScheduler

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Handles startup and shutdown of all services
    """
    logger.info("=" * 60)
    logger.info("🚀 Starting Stock Dashboard API")
    logger.info("=" * 60)

    # 1. Database
    await init_db()
    logger.info("✅ Database initialized")

    # 2. Configuration
    config_engine = ConfigEngine()
    config_engine.load_all()
    app.state.config_engine = config_engine
    logger.info(f"✅ Configuration loaded ({len(config_engine.universe.popular_symbols)} popular symbols)")

    # 3. Provider chain
    try:
        app.state.quote_aggregator = get_quote_aggregator(config_engine)
    except RuntimeError as e:
        app.state.quote_aggregator = None
        logger.error(f"❌ Quote providers unavailable: {e}")

    # 4. Realtime + scheduler
    app.state.broadcaster = QuoteBroadcaster()
    app.state.scheduler = None
    if settings.SCHEDULER_ENABLED and app.state.quote_aggregator is not None:
        try:
            scheduler = QuoteRefreshScheduler(
                session_factory=database.async_session_factory,
                aggregator=app.state.quote_aggregator,
                config_engine=config_engine,
                broadcaster=app.state.broadcaster,
            )
            scheduler.start()
            app.state.scheduler = scheduler
        except Exception as e:
            logger.error(f"❌ Failed to start scheduler: {e}")
    else:
        logger.info("⏰ Scheduler disabled")

    logger.info(f"🎯 API Server: http://{settings.API_HOST}:{settings.API_PORT}")

    yield

    logger.info("🛑 Shutting down Stock Dashboard API...")
    if app.state.scheduler:
        app.state.scheduler.stop()
    await close_db()
    logger.info("👋 Shutdown complete")


app = FastAPI(
    title="Stock Dashboard API",
    description="Multi-provider stock quotes with a per-user portfolio ledger",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Service, database and scheduler status"""
    db_status = "disconnected"
    db_error = None
    try:
        if database.engine is None:
            db_status = "not_initialized"
        else:
            async with database.engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            db_status = "connected"
    except Exception as exc:
        db_status = "error"
        db_error = str(exc)

    scheduler = getattr(app.state, "scheduler", None)
    scheduler_status = "disabled"
    if scheduler:
        scheduler_status = "running" if scheduler.scheduler.running else "stopped"

    aggregator = getattr(app.state, "quote_aggregator", None)
    broadcaster = getattr(app.state, "broadcaster", None)

    return {
        "status": "healthy",
        "service": "Stock Dashboard API",
        "version": __version__,
        "services": {
            "api": "running",
            "database": db_status,
            "scheduler": scheduler_status,
            "quote_providers": aggregator.primary.provider_id if aggregator else "unavailable",
            "websocket_listeners": broadcaster.count() if broadcaster else 0,
        },
        "database_error": db_error,
    }


@app.get("/")
async def root():
    return {"message": "Stock Dashboard API", "version": __version__, "docs": "/docs"}


from stockdash.api.routes import news, portfolio, realtime, stats, status, stocks  # noqa: E402

app.include_router(stocks.router, prefix="/api/stocks", tags=["Stocks"])
app.include_router(portfolio.router, prefix="/api/portfolio", tags=["Portfolio"])
app.include_router(status.router, prefix="/api/status", tags=["Providers"])
app.include_router(news.router, prefix="/api/news", tags=["News"])
app.include_router(stats.router, prefix="/api/stats", tags=["Stats"])
app.include_router(realtime.router, tags=["Realtime"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("stockdash.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)

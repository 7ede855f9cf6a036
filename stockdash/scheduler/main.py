"""
Quote refresh scheduler.

One randomly chosen stored symbol is refreshed every QUOTE_REFRESH_SECONDS
and the whole quote table is pushed to WebSocket listeners. Startup seeds an
empty table with the first few popular symbols.
"""

import logging
from datetime import timedelta
from typing import Callable, Optional

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession

from stockdash.api.routes.stocks import QuoteResponse
from stockdash.config import settings
from stockdash.domain.services.config_engine import ConfigEngine
from stockdash.domain.services.quote_cache import QuoteCache
from stockdash.infrastructure.db.repositories.quote_repository import QuoteRepository
from stockdash.infrastructure.market_data.provider_chain import QuoteAggregator
from stockdash.realtime.broadcaster import QuoteBroadcaster

logger = logging.getLogger(__name__)


class QuoteRefreshScheduler:
    """Periodic quote refresh + snapshot broadcast"""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        aggregator: QuoteAggregator,
        config_engine: ConfigEngine,
        broadcaster: Optional[QuoteBroadcaster] = None,
        interval_seconds: int = settings.QUOTE_REFRESH_SECONDS,
        seed_count: int = settings.SEED_SYMBOL_COUNT,
    ):
        self.scheduler = AsyncIOScheduler(timezone=pytz.utc)
        self.session_factory = session_factory
        self.aggregator = aggregator
        self.config_engine = config_engine
        self.broadcaster = broadcaster
        self.interval_seconds = interval_seconds
        self.seed_count = seed_count

    def _cache(self, session: AsyncSession) -> QuoteCache:
        return QuoteCache(
            store=QuoteRepository(session),
            source=self.aggregator,
            universe=self.config_engine.universe.popular_symbols,
            max_age=timedelta(seconds=settings.QUOTE_MAX_AGE_SECONDS),
        )

    async def seed_job(self) -> int:
        symbols = self.config_engine.universe.popular_symbols[: self.seed_count]
        try:
            async with self.session_factory() as session:
                stored = await self._cache(session).seed(symbols)
                await session.commit()
        except Exception as e:
            logger.error(f"❌ Initial quote seeding failed: {e}")
            return 0
        return stored

    async def refresh_tick(self) -> int:
        """
        Refresh one symbol and broadcast the full table.

        Returns the number of listeners that received the snapshot.
        """
        try:
            async with self.session_factory() as session:
                cache = self._cache(session)
                updated = await cache.refresh_random()
                await session.commit()
                quotes = await cache.store.list_all()
        except Exception as e:
            logger.error(f"❌ Quote refresh tick failed: {e}")
            return 0

        if updated is not None:
            logger.info(f"Updated {updated.symbol} at {updated.price}")
        if self.broadcaster is None or not quotes:
            return 0

        payload = {
            "type": "stock_update",
            "data": [QuoteResponse.from_quote(q).model_dump(mode="json") for q in quotes],
        }
        return await self.broadcaster.broadcast(payload)

    def start(self):
        """Start the scheduler"""
        logger.info("🚀 Starting quote refresh scheduler...")

        # Seed runs once, immediately
        self.scheduler.add_job(
            self.seed_job,
            id="seed_quotes",
            name="Initial Quote Seeding",
            replace_existing=True,
        )

        self.scheduler.add_job(
            self.refresh_tick,
            IntervalTrigger(seconds=self.interval_seconds),
            id="refresh_quotes",
            name="Random Quote Refresh",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        self.scheduler.start()
        logger.info(f"✅ Scheduler started (refresh every {self.interval_seconds}s)")

    def stop(self):
        """Stop the scheduler"""
        logger.info("🛑 Stopping scheduler...")
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("✅ Scheduler stopped")

"""
Shared route dependencies.

Long-lived objects (config, provider chain, broadcaster) live on app.state and
are created once in the lifespan; per-request services are assembled here
around the request's database session.
"""

from datetime import timedelta
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from stockdash.config import settings
from stockdash.core.security import decode_access_token, user_id_from_payload
from stockdash.domain.services.chart_service import ChartService, SyntheticChartGenerator
from stockdash.domain.services.config_engine import ConfigEngine
from stockdash.domain.services.ledger_engine import LedgerEngine
from stockdash.domain.services.portfolio_valuation import PortfolioValuation
from stockdash.domain.services.quote_cache import QuoteCache
from stockdash.infrastructure.db.database import get_db
from stockdash.infrastructure.db.repositories.holding_repository import HoldingRepository
from stockdash.infrastructure.db.repositories.quote_repository import QuoteRepository
from stockdash.infrastructure.db.repositories.trade_repository import TradeRepository
from stockdash.infrastructure.market_data.provider_chain import QuoteAggregator
from stockdash.infrastructure.market_data.provider_factory import get_alpha_vantage
from stockdash.realtime.broadcaster import QuoteBroadcaster

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Access token required")

    payload = decode_access_token(credentials.credentials)
    user_id = user_id_from_payload(payload) if payload else None
    if not user_id:
        raise HTTPException(status_code=403, detail="Invalid or expired token")
    return user_id


def get_config_engine(request: Request) -> ConfigEngine:
    config_engine = getattr(request.app.state, "config_engine", None)
    if config_engine is None:
        config_engine = ConfigEngine()
        config_engine.load_all()
        request.app.state.config_engine = config_engine
    return config_engine


def get_aggregator(request: Request) -> QuoteAggregator:
    aggregator = getattr(request.app.state, "quote_aggregator", None)
    if aggregator is None:
        raise HTTPException(status_code=503, detail="No quote providers configured")
    return aggregator


def get_broadcaster(request: Request) -> Optional[QuoteBroadcaster]:
    return getattr(request.app.state, "broadcaster", None)


def build_quote_cache(session: AsyncSession, aggregator: QuoteAggregator, config_engine: ConfigEngine) -> QuoteCache:
    return QuoteCache(
        store=QuoteRepository(session),
        source=aggregator,
        universe=config_engine.universe.popular_symbols,
        max_age=timedelta(seconds=settings.QUOTE_MAX_AGE_SECONDS),
    )


async def get_quote_cache(
    db: AsyncSession = Depends(get_db),
    aggregator: QuoteAggregator = Depends(get_aggregator),
    config_engine: ConfigEngine = Depends(get_config_engine),
) -> QuoteCache:
    return build_quote_cache(db, aggregator, config_engine)


async def get_ledger(
    db: AsyncSession = Depends(get_db),
    quote_cache: QuoteCache = Depends(get_quote_cache),
) -> LedgerEngine:
    return LedgerEngine(
        holding_repo=HoldingRepository(db),
        symbols=quote_cache,
        trade_log=TradeRepository(db),
    )


async def get_valuation(db: AsyncSession = Depends(get_db)) -> PortfolioValuation:
    return PortfolioValuation(holdings=HoldingRepository(db), prices=QuoteRepository(db))


async def get_chart_service(
    request: Request,
    config_engine: ConfigEngine = Depends(get_config_engine),
) -> ChartService:
    aggregator = getattr(request.app.state, "quote_aggregator", None)
    source = get_alpha_vantage(aggregator) if aggregator is not None else None
    return ChartService(source, SyntheticChartGenerator(config_engine.chart_base_price))

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import AsyncGenerator, Dict, List, Optional

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stockdash.api.routes import news, portfolio, stats, status, stocks
from stockdash.config import settings
from stockdash.domain.errors import InvalidSymbol, ProviderError
from stockdash.domain.models import Quote
from stockdash.domain.services.config_engine import ConfigEngine
from stockdash.infrastructure.db.database import Base, create_engine_for, get_db
from stockdash.infrastructure.market_data.provider_chain import QuoteAggregator
from stockdash.realtime.broadcaster import QuoteBroadcaster

CONFIG_DIR = Path(__file__).resolve().parents[1] / "stockdash" / "config"


def make_quote(symbol: str, price: str = "100", change: str = "1.5", **overrides) -> Quote:
    fields = dict(
        symbol=symbol,
        name=f"{symbol} Corporation",
        price=Decimal(price),
        change=Decimal(change),
        change_percent="1.50",
        volume=1000,
        previous_close=Decimal(price) - Decimal(change),
        open=Decimal(price),
        high=Decimal(price),
        low=Decimal(price),
        last_updated=datetime(2026, 1, 5, 15, 0, 0),
    )
    fields.update(overrides)
    return Quote(**fields)


class FakeProvider:
    """Scripted provider: returns a quote per symbol or raises a ProviderError"""

    def __init__(self, provider_id: str, prices: Optional[Dict[str, str]] = None, error: Optional[ProviderError] = None):
        self.provider_id = provider_id
        self.prices = prices or {}
        self.error = error
        self.calls: List[str] = []

    async def fetch_quote(self, symbol: str) -> Quote:
        self.calls.append(symbol)
        if self.error is not None:
            raise self.error
        if symbol not in self.prices:
            raise InvalidSymbol(self.provider_id, f"No data found for symbol: {symbol}")
        return make_quote(symbol, self.prices[symbol])

    def status(self) -> dict:
        return {"provider": self.provider_id, "request_count": len(self.calls), "last_request": None, "rate_limit": "5 requests/minute"}


def make_token(user_id: str = "user-1", secret: Optional[str] = None) -> str:
    return jwt.encode({"id": user_id}, secret or settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_headers(user_id: str = "user-1") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture()
def config_engine() -> ConfigEngine:
    engine = ConfigEngine(CONFIG_DIR)
    engine.load_all()
    return engine


@pytest.fixture()
async def db_engine(tmp_path):
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
def fake_providers() -> List[FakeProvider]:
    prices = {"AAPL": "175.50", "GOOGL": "2800", "MSFT": "340.25", "TSLA": "250", "AMZN": "3100"}
    return [FakeProvider("alpha_vantage", prices), FakeProvider("finnhub", prices)]


@pytest.fixture()
def aggregator(fake_providers) -> QuoteAggregator:
    return QuoteAggregator(fake_providers)


@pytest.fixture()
async def app(session_factory, aggregator, config_engine) -> FastAPI:
    app = FastAPI()
    app.include_router(stocks.router, prefix="/api/stocks", tags=["Stocks"])
    app.include_router(portfolio.router, prefix="/api/portfolio", tags=["Portfolio"])
    app.include_router(status.router, prefix="/api/status", tags=["Providers"])
    app.include_router(news.router, prefix="/api/news", tags=["News"])
    app.include_router(stats.router, prefix="/api/stats", tags=["Stats"])

    # One session per request, like the production dependency
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    app.state.config_engine = config_engine
    app.state.quote_aggregator = aggregator
    app.state.broadcaster = QuoteBroadcaster()
    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

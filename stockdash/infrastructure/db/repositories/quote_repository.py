"""
Stock Quote Repository
Latest-known quote per symbol, upsert semantics
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from stockdash.domain.models import Quote
from stockdash.infrastructure.db.models import StockQuoteModel


def _to_domain(model: StockQuoteModel) -> Quote:
    return Quote(
        symbol=model.symbol,
        name=model.name,
        price=Decimal(str(model.price)),
        change=Decimal(str(model.change)),
        change_percent=model.change_percent,
        volume=int(model.volume or 0),
        previous_close=Decimal(str(model.previous_close or 0)),
        open=Decimal(str(model.open or 0)),
        high=Decimal(str(model.high or 0)),
        low=Decimal(str(model.low or 0)),
        last_updated=model.last_updated,
    )


class QuoteRepository:
    """Repository for cached stock quotes"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_model(self, symbol: str) -> Optional[StockQuoteModel]:
        result = await self.session.execute(
            select(StockQuoteModel).where(StockQuoteModel.symbol == symbol)
        )
        return result.scalar_one_or_none()

    async def get(self, symbol: str) -> Optional[Quote]:
        model = await self._get_model(symbol)
        return _to_domain(model) if model else None

    async def get_price(self, symbol: str) -> Optional[Decimal]:
        result = await self.session.execute(
            select(StockQuoteModel.price).where(StockQuoteModel.symbol == symbol)
        )
        price = result.scalar_one_or_none()
        return Decimal(str(price)) if price is not None else None

    async def exists(self, symbol: str) -> bool:
        result = await self.session.execute(
            select(StockQuoteModel.id).where(StockQuoteModel.symbol == symbol).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(StockQuoteModel.id)))
        return int(result.scalar() or 0)

    async def list_all(self) -> List[Quote]:
        result = await self.session.execute(
            select(StockQuoteModel).order_by(StockQuoteModel.symbol)
        )
        return [_to_domain(m) for m in result.scalars().all()]

    async def list_symbols(self) -> List[str]:
        result = await self.session.execute(
            select(StockQuoteModel.symbol).order_by(StockQuoteModel.symbol)
        )
        return list(result.scalars().all())

    async def upsert(self, quote: Quote) -> Quote:
        """Insert or overwrite the row for quote.symbol"""
        model = await self._get_model(quote.symbol)
        if model is None:
            model = StockQuoteModel(symbol=quote.symbol)
            self.session.add(model)

        model.name = quote.name
        model.price = quote.price
        model.change = quote.change
        model.change_percent = quote.change_percent
        model.volume = quote.volume
        model.previous_close = quote.previous_close
        model.open = quote.open
        model.high = quote.high
        model.low = quote.low
        model.last_updated = quote.last_updated

        await self.session.flush()
        return quote

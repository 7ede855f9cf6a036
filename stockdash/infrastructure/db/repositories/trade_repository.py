"""
Executed Trade Repository
Append-only trade log (audit records)
"""

from decimal import Decimal
from typing import List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from stockdash.domain.models import ExecutedTrade, TradeSide
from stockdash.infrastructure.db.models import ExecutedTradeModel, TradeSideEnum


class TradeRepository:
    """Repository for executed trades"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(self, trade: ExecutedTrade) -> int:
        model = ExecutedTradeModel(
            user_id=trade.user_id,
            symbol=trade.symbol,
            side=TradeSideEnum(trade.side.value),
            quantity=trade.quantity,
            price=trade.price,
            total_amount=trade.total_amount,
            average_price_after=trade.average_price_after,
            realized_pnl=trade.realized_pnl,
            executed_at=trade.executed_at,
        )
        self.session.add(model)
        await self.session.flush()
        return model.id

    async def list_for_user(self, user_id: str, limit: int = 50) -> List[ExecutedTrade]:
        result = await self.session.execute(
            select(ExecutedTradeModel)
            .where(ExecutedTradeModel.user_id == user_id)
            .order_by(ExecutedTradeModel.executed_at.desc(), ExecutedTradeModel.id.desc())
            .limit(limit)
        )
        return [
            ExecutedTrade(
                id=m.id,
                user_id=m.user_id,
                symbol=m.symbol,
                side=TradeSide(m.side.value),
                quantity=int(m.quantity),
                price=Decimal(str(m.price)),
                total_amount=Decimal(str(m.total_amount)),
                average_price_after=Decimal(str(m.average_price_after)),
                realized_pnl=Decimal(str(m.realized_pnl)) if m.realized_pnl is not None else None,
                executed_at=m.executed_at,
            )
            for m in result.scalars().all()
        ]

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(ExecutedTradeModel.id)))
        return int(result.scalar() or 0)

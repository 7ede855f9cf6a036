"""
Holding Repository

Writes are conditional: an update or delete only applies when the row still
carries the version the caller read. A False return means someone else got
there first and the caller should re-read.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from stockdash.domain.models import Holding
from stockdash.infrastructure.db.models import HoldingModel

logger = logging.getLogger(__name__)


def _to_domain(model: HoldingModel) -> Holding:
    return Holding(
        user_id=model.user_id,
        symbol=model.symbol,
        quantity=int(model.quantity),
        average_price=Decimal(str(model.average_price)),
        total_invested=Decimal(str(model.total_invested)),
        created_at=model.created_at,
        updated_at=model.updated_at,
        version=int(model.version),
    )


class HoldingRepository:
    """Repository for portfolio holdings"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: str, symbol: str) -> Optional[Holding]:
        result = await self.session.execute(
            select(HoldingModel).where(
                HoldingModel.user_id == user_id,
                HoldingModel.symbol == symbol,
            )
        )
        model = result.scalar_one_or_none()
        return _to_domain(model) if model else None

    async def list_for_user(self, user_id: str) -> List[Holding]:
        result = await self.session.execute(
            select(HoldingModel)
            .where(HoldingModel.user_id == user_id)
            .order_by(HoldingModel.symbol)
        )
        return [_to_domain(m) for m in result.scalars().all()]

    async def create(self, holding: Holding) -> bool:
        """Insert a new holding; False if one already exists for (user, symbol)"""
        try:
            await self.session.execute(
                insert(HoldingModel).values(
                    user_id=holding.user_id,
                    symbol=holding.symbol,
                    quantity=holding.quantity,
                    average_price=holding.average_price,
                    total_invested=holding.total_invested,
                    version=holding.version,
                    created_at=holding.created_at,
                    updated_at=holding.updated_at,
                )
            )
        except IntegrityError:
            # Nothing else has been written in this transaction yet
            await self.session.rollback()
            logger.info(f"Holding {holding.user_id}/{holding.symbol} created concurrently")
            return False
        return True

    async def update_if_version(self, holding: Holding, expected_version: int) -> bool:
        result = await self.session.execute(
            update(HoldingModel)
            .where(
                HoldingModel.user_id == holding.user_id,
                HoldingModel.symbol == holding.symbol,
                HoldingModel.version == expected_version,
            )
            .values(
                quantity=holding.quantity,
                average_price=holding.average_price,
                total_invested=holding.total_invested,
                version=holding.version,
                updated_at=holding.updated_at,
            )
        )
        return result.rowcount == 1

    async def delete_if_version(self, user_id: str, symbol: str, expected_version: int) -> bool:
        result = await self.session.execute(
            delete(HoldingModel).where(
                HoldingModel.user_id == user_id,
                HoldingModel.symbol == symbol,
                HoldingModel.version == expected_version,
            )
        )
        return result.rowcount == 1

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(HoldingModel.id)))
        return int(result.scalar() or 0)

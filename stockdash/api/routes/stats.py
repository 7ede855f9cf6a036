"""
Database statistics.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stockdash.infrastructure.db.database import get_db
from stockdash.infrastructure.db.repositories.holding_repository import HoldingRepository
from stockdash.infrastructure.db.repositories.quote_repository import QuoteRepository
from stockdash.infrastructure.db.repositories.trade_repository import TradeRepository

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def database_stats(db: AsyncSession = Depends(get_db)):
    """Row counts per table"""
    try:
        tables = {
            "stock_quote": await QuoteRepository(db).count(),
            "holding": await HoldingRepository(db).count(),
            "executed_trade": await TradeRepository(db).count(),
        }
    except SQLAlchemyError as e:
        logger.error(f"Database stats failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to get database statistics")

    return {
        "database": {
            "dialect": db.bind.dialect.name,
            "tables": tables,
        }
    }

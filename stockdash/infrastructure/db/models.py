"""
Database Models (SQLAlchemy ORM)
"""

import enum

from sqlalchemy import (
    BigInteger, Column, DateTime, Enum as SQLEnum, Index, Integer, Numeric, String,
    UniqueConstraint,
)

from stockdash.infrastructure.db.database import Base
from stockdash.utils.time import now_utc_naive


class TradeSideEnum(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"


class StockQuoteModel(Base):
    """Latest known quote per symbol (upserted, never deleted)"""
    __tablename__ = "stock_quote"

    id = Column(Integer, primary_key=True, autoincrement=True)
    symbol = Column(String(16), nullable=False, unique=True, index=True)
    name = Column(String(120), nullable=False)

    price = Column(Numeric(14, 4), nullable=False)
    change = Column(Numeric(14, 4), nullable=False)
    change_percent = Column(String(16), nullable=False)
    volume = Column(BigInteger, nullable=False, default=0)
    previous_close = Column(Numeric(14, 4), nullable=False, default=0)
    open = Column(Numeric(14, 4), nullable=False, default=0)
    high = Column(Numeric(14, 4), nullable=False, default=0)
    low = Column(Numeric(14, 4), nullable=False, default=0)

    last_updated = Column(DateTime, nullable=False, default=now_utc_naive)


class HoldingModel(Base):
    """One row per (user, symbol); removed when fully sold"""
    __tablename__ = "holding"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    symbol = Column(String(16), nullable=False)

    quantity = Column(Integer, nullable=False)
    average_price = Column(Numeric(18, 6), nullable=False)
    total_invested = Column(Numeric(18, 6), nullable=False)
    # Bumped on every mutation; guards conditional updates
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, nullable=False, default=now_utc_naive)
    updated_at = Column(DateTime, nullable=False, default=now_utc_naive)

    __table_args__ = (
        UniqueConstraint("user_id", "symbol", name="uq_holding_user_symbol"),
    )


class ExecutedTradeModel(Base):
    """Executed buys and sells - AUDIT RECORD, insert-only"""
    __tablename__ = "executed_trade"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    symbol = Column(String(16), nullable=False)
    side = Column(SQLEnum(TradeSideEnum), nullable=False)

    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(14, 4), nullable=False)
    total_amount = Column(Numeric(18, 4), nullable=False)
    average_price_after = Column(Numeric(18, 6), nullable=False)
    realized_pnl = Column(Numeric(18, 4), nullable=True)

    executed_at = Column(DateTime, nullable=False, default=now_utc_naive)

    __table_args__ = (
        Index("ix_executed_trade_user", "user_id", "executed_at"),
    )

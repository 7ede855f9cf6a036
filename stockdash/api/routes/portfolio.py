"""
Portfolio API Routes
Buy/sell against the caller's own holdings and value them at cached prices
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from stockdash.api.deps import get_current_user_id, get_ledger, get_valuation
from stockdash.domain.errors import (
    ConcurrentModification,
    InsufficientShares,
    InvalidTrade,
    LedgerError,
    NoSuchHolding,
    SymbolNotFound,
)
from stockdash.domain.models import ExecutedTrade, Holding, HoldingValuation
from stockdash.domain.services.ledger_engine import LedgerEngine
from stockdash.domain.services.portfolio_valuation import PortfolioValuation, money

logger = logging.getLogger(__name__)
router = APIRouter()

LEDGER_STATUS = {
    InvalidTrade: 400,
    InsufficientShares: 400,
    SymbolNotFound: 404,
    NoSuchHolding: 404,
    ConcurrentModification: 409,
}


def _ledger_http_error(exc: LedgerError) -> HTTPException:
    status_code = LEDGER_STATUS.get(type(exc), 400)
    return HTTPException(status_code=status_code, detail=str(exc))


# Request / response models
class TradeRequest(BaseModel):
    symbol: str = Field(..., min_length=1, max_length=16)
    quantity: int = Field(..., gt=0)
    price: Decimal = Field(..., gt=0)


class HoldingResponse(BaseModel):
    symbol: str
    quantity: int
    average_price: str
    total_invested: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_holding(cls, holding: Holding) -> "HoldingResponse":
        return cls(
            symbol=holding.symbol,
            quantity=holding.quantity,
            average_price=money(holding.average_price),
            total_invested=money(holding.total_invested),
            created_at=holding.created_at,
            updated_at=holding.updated_at,
        )


class BuyResponse(BaseModel):
    message: str
    holding: HoldingResponse


class SellResponse(BaseModel):
    message: str
    sold_quantity: int
    sold_price: str
    total_value: str


class ValuedHoldingResponse(HoldingResponse):
    current_price: str
    current_value: str
    gain_loss: str
    gain_loss_percent: str

    @classmethod
    def from_valuation(cls, valuation: HoldingValuation) -> "ValuedHoldingResponse":
        base = HoldingResponse.from_holding(valuation.holding)
        return cls(
            **base.model_dump(),
            current_price=money(valuation.current_price),
            current_value=money(valuation.current_value),
            gain_loss=money(valuation.gain_loss),
            gain_loss_percent=money(valuation.gain_loss_percent),
        )


class PortfolioSummaryResponse(BaseModel):
    total_value: str
    total_invested: str
    total_gain_loss: str
    total_gain_loss_percent: str


class PortfolioResponse(BaseModel):
    holdings: List[ValuedHoldingResponse]
    summary: PortfolioSummaryResponse


class TradeResponse(BaseModel):
    id: Optional[int]
    symbol: str
    side: str
    quantity: int
    price: str
    total_amount: str
    average_price_after: str
    realized_pnl: Optional[str]
    executed_at: datetime

    @classmethod
    def from_trade(cls, trade: ExecutedTrade) -> "TradeResponse":
        return cls(
            id=trade.id,
            symbol=trade.symbol,
            side=trade.side.value,
            quantity=trade.quantity,
            price=money(trade.price),
            total_amount=money(trade.total_amount),
            average_price_after=money(trade.average_price_after),
            realized_pnl=money(trade.realized_pnl) if trade.realized_pnl is not None else None,
            executed_at=trade.executed_at,
        )


@router.post("/buy", response_model=BuyResponse)
async def buy_stock(
    payload: TradeRequest,
    user_id: str = Depends(get_current_user_id),
    ledger: LedgerEngine = Depends(get_ledger),
):
    try:
        holding = await ledger.buy(user_id, payload.symbol, payload.quantity, payload.price)
    except LedgerError as e:
        logger.info(f"Buy rejected for {user_id}: {e}")
        raise _ledger_http_error(e)

    return BuyResponse(
        message="Stock purchased successfully",
        holding=HoldingResponse.from_holding(holding),
    )


@router.post("/sell", response_model=SellResponse)
async def sell_stock(
    payload: TradeRequest,
    user_id: str = Depends(get_current_user_id),
    ledger: LedgerEngine = Depends(get_ledger),
):
    try:
        result = await ledger.sell(user_id, payload.symbol, payload.quantity, payload.price)
    except LedgerError as e:
        logger.info(f"Sell rejected for {user_id}: {e}")
        raise _ledger_http_error(e)

    return SellResponse(
        message="Stock sold successfully",
        sold_quantity=result.quantity,
        sold_price=money(result.price),
        total_value=money(result.total),
    )


@router.get("/trades", response_model=List[TradeResponse])
async def list_trades(
    limit: int = Query(50, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    ledger: LedgerEngine = Depends(get_ledger),
):
    """Caller's executed trades, newest first"""
    trades = await ledger.list_trades(user_id, limit=limit)
    return [TradeResponse.from_trade(t) for t in trades]


@router.get("/{user_id}", response_model=PortfolioResponse)
async def get_portfolio(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    valuation: PortfolioValuation = Depends(get_valuation),
):
    # Users can only read their own portfolio
    if user_id != current_user_id:
        raise HTTPException(status_code=403, detail="Access denied")

    view = await valuation.valuate(user_id)
    summary = view.summary
    return PortfolioResponse(
        holdings=[ValuedHoldingResponse.from_valuation(v) for v in view.holdings],
        summary=PortfolioSummaryResponse(
            total_value=money(summary.total_value),
            total_invested=money(summary.total_invested),
            total_gain_loss=money(summary.total_gain_loss),
            total_gain_loss_percent=money(summary.total_gain_loss_percent),
        ),
    )

"""
PORTFOLIO VALUATION
Join holdings with cached prices

No market data fetching: a symbol missing from the cache is valued at 0.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Protocol

from stockdash.domain.models import (
    Holding,
    HoldingValuation,
    PortfolioSummary,
    PortfolioView,
)

CENTS = Decimal("0.01")
ZERO = Decimal("0")


class HoldingSource(Protocol):
    async def list_for_user(self, user_id: str) -> List[Holding]:
        ...


class PriceLookup(Protocol):
    async def get_price(self, symbol: str) -> Optional[Decimal]:
        ...


def money(value: Decimal) -> str:
    """External representation: exactly two decimals"""
    return str(Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP))


def percent_of(gain: Decimal, base: Decimal) -> Decimal:
    if base <= ZERO:
        return ZERO.quantize(CENTS)
    return (gain / base * 100).quantize(CENTS, rounding=ROUND_HALF_UP)


class PortfolioValuation:
    def __init__(self, holdings: HoldingSource, prices: PriceLookup):
        self.holdings = holdings
        self.prices = prices

    async def valuate(self, user_id: str) -> PortfolioView:
        rows: List[HoldingValuation] = []
        total_value = ZERO
        total_invested = ZERO

        for holding in await self.holdings.list_for_user(user_id):
            price = await self.prices.get_price(holding.symbol)
            current_price = price if price is not None else ZERO
            current_value = current_price * holding.quantity
            gain_loss = current_value - holding.total_invested

            rows.append(HoldingValuation(
                holding=holding,
                current_price=current_price,
                current_value=current_value,
                gain_loss=gain_loss,
                gain_loss_percent=percent_of(gain_loss, holding.total_invested),
            ))
            total_value += current_value
            total_invested += holding.total_invested

        total_gain_loss = total_value - total_invested
        summary = PortfolioSummary(
            total_value=total_value,
            total_invested=total_invested,
            total_gain_loss=total_gain_loss,
            total_gain_loss_percent=percent_of(total_gain_loss, total_invested),
        )
        return PortfolioView(holdings=rows, summary=summary)

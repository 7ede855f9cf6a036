"""
LEDGER ENGINE
Buy/sell arithmetic and holding lifecycle for one user's positions

RESPONSIBILITIES:
- Validate trades
- Maintain average cost basis on buys
- Remove cost at average cost on sells
- Append every executed trade to the trade log

RULES:
- A holding with zero quantity never exists (full sell deletes the row)
- total_invested == quantity * average_price (within rounding)
- Every write is conditional on the version that was read
"""

import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, List, Optional, Protocol

from stockdash.domain.errors import (
    ConcurrentModification,
    InsufficientShares,
    InvalidTrade,
    NoSuchHolding,
    SymbolNotFound,
)
from stockdash.domain.models import (
    ExecutedTrade,
    Holding,
    SaleResult,
    TradeSide,
    normalize_symbol,
)
from stockdash.utils.time import now_utc_naive

logger = logging.getLogger(__name__)

AVERAGE_PRICE_PLACES = Decimal("0.000001")
MAX_ATTEMPTS = 3

# Bounds of the holding and executed_trade columns
PRICE_STEP = Decimal("0.0001")
MAX_PRICE = Decimal("1E10")
MAX_QUANTITY = 2_147_483_647
MAX_HOLDING_VALUE = Decimal("1E12")
MAX_TRADE_VALUE = Decimal("1E14")


class HoldingRepository(Protocol):
    """Protocol for holding data access - ASYNC"""

    async def get(self, user_id: str, symbol: str) -> Optional[Holding]:
        ...

    async def list_for_user(self, user_id: str) -> List[Holding]:
        ...

    async def create(self, holding: Holding) -> bool:
        ...

    async def update_if_version(self, holding: Holding, expected_version: int) -> bool:
        ...

    async def delete_if_version(self, user_id: str, symbol: str, expected_version: int) -> bool:
        ...


class SymbolDirectory(Protocol):
    """Stock-existence check"""

    async def symbol_exists(self, symbol: str) -> bool:
        ...


class TradeLog(Protocol):
    async def record(self, trade: ExecutedTrade) -> int:
        ...

    async def list_for_user(self, user_id: str, limit: int = 50) -> List[ExecutedTrade]:
        ...


def _average(total: Decimal, quantity: int) -> Decimal:
    return (total / Decimal(quantity)).quantize(AVERAGE_PRICE_PLACES)


class LedgerEngine:
    """
    Ledger Engine
    Owns holdings: absent -> held -> absent
    """

    def __init__(
        self,
        holding_repo: HoldingRepository,
        symbols: SymbolDirectory,
        trade_log: TradeLog,
        clock: Callable[[], datetime] = now_utc_naive,
    ):
        self.holding_repo = holding_repo
        self.symbols = symbols
        self.trade_log = trade_log
        self._clock = clock

    # ------------------------------------------------------------------
    # VALIDATION
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(symbol: str, quantity: int, price) -> tuple[str, int, Decimal]:
        try:
            symbol = normalize_symbol(symbol)
        except ValueError as exc:
            raise InvalidTrade("Invalid input data: symbol is required") from exc

        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidTrade("Invalid input data: quantity must be a positive whole number")
        if quantity > MAX_QUANTITY:
            raise InvalidTrade("Invalid input data: quantity is too large")

        try:
            price = Decimal(str(price))
        except (InvalidOperation, ValueError) as exc:
            raise InvalidTrade("Invalid input data: price must be a number") from exc
        if not price.is_finite() or price <= 0:
            raise InvalidTrade("Invalid input data: price must be positive")
        if price >= MAX_PRICE:
            raise InvalidTrade("Invalid input data: price is too large")
        if price.quantize(PRICE_STEP) != price:
            raise InvalidTrade("Invalid input data: price allows at most 4 decimal places")

        return symbol, quantity, price

    @staticmethod
    def _check_amount(amount: Decimal, limit: Decimal) -> None:
        if amount >= limit:
            raise InvalidTrade("Invalid input data: trade value is too large")

    # ------------------------------------------------------------------
    # BUY
    # ------------------------------------------------------------------

    async def buy(self, user_id: str, symbol: str, quantity: int, price) -> Holding:
        """
        Add shares at price, recomputing the volume-weighted average cost.

        Raises:
            InvalidTrade: quantity or price non-positive, out of range, or finer than 0.0001
            SymbolNotFound: symbol is not in the quote table
            ConcurrentModification: holding kept changing across retries
        """
        symbol, quantity, price = self._validate(symbol, quantity, price)

        if not await self.symbols.symbol_exists(symbol):
            raise SymbolNotFound(f"Stock not found: {symbol}")

        cost = Decimal(quantity) * price
        self._check_amount(cost, MAX_HOLDING_VALUE)
        holding: Optional[Holding] = None

        for attempt in range(1, MAX_ATTEMPTS + 1):
            current = await self.holding_repo.get(user_id, symbol)
            now = self._clock()

            if current is None:
                holding = Holding(
                    user_id=user_id,
                    symbol=symbol,
                    quantity=quantity,
                    average_price=price,
                    total_invested=cost,
                    created_at=now,
                    updated_at=now,
                    version=1,
                )
                applied = await self.holding_repo.create(holding)
            else:
                new_quantity = current.quantity + quantity
                new_total = current.total_invested + cost
                if new_quantity > MAX_QUANTITY:
                    raise InvalidTrade("Invalid input data: quantity is too large")
                self._check_amount(new_total, MAX_HOLDING_VALUE)
                holding = replace(
                    current,
                    quantity=new_quantity,
                    total_invested=new_total,
                    average_price=_average(new_total, new_quantity),
                    updated_at=now,
                    version=current.version + 1,
                )
                applied = await self.holding_repo.update_if_version(holding, current.version)

            if applied:
                break
            logger.warning(f"Buy {user_id}/{symbol} lost a race (attempt {attempt}/{MAX_ATTEMPTS})")
        else:
            raise ConcurrentModification(f"Holding {symbol} changed concurrently; please retry")

        await self.trade_log.record(ExecutedTrade(
            user_id=user_id,
            symbol=symbol,
            side=TradeSide.BUY,
            quantity=quantity,
            price=price,
            total_amount=cost,
            average_price_after=holding.average_price,
            executed_at=holding.updated_at,
        ))
        logger.info(f"BUY {user_id} {quantity} {symbol} @ {price} -> qty={holding.quantity} avg={holding.average_price}")
        return holding

    # ------------------------------------------------------------------
    # SELL
    # ------------------------------------------------------------------

    async def sell(self, user_id: str, symbol: str, quantity: int, price) -> SaleResult:
        """
        Remove shares. Cost leaves the holding at average cost, so the
        average price is unchanged by a partial sell.

        Raises:
            InvalidTrade: quantity or price non-positive, out of range, or finer than 0.0001
            NoSuchHolding: user holds no shares of symbol
            InsufficientShares: quantity exceeds the held quantity
            ConcurrentModification: holding kept changing across retries
        """
        symbol, quantity, price = self._validate(symbol, quantity, price)
        proceeds = Decimal(quantity) * price
        self._check_amount(proceeds, MAX_TRADE_VALUE)

        for attempt in range(1, MAX_ATTEMPTS + 1):
            current = await self.holding_repo.get(user_id, symbol)
            if current is None:
                raise NoSuchHolding(f"Stock not found in portfolio: {symbol}")
            if quantity > current.quantity:
                raise InsufficientShares(
                    f"Insufficient shares to sell: holding {current.quantity}, requested {quantity}"
                )

            now = self._clock()
            if quantity == current.quantity:
                applied = await self.holding_repo.delete_if_version(user_id, symbol, current.version)
            else:
                sold_cost = Decimal(quantity) * current.average_price
                remaining = replace(
                    current,
                    quantity=current.quantity - quantity,
                    total_invested=current.total_invested - sold_cost,
                    updated_at=now,
                    version=current.version + 1,
                )
                applied = await self.holding_repo.update_if_version(remaining, current.version)

            if applied:
                break
            logger.warning(f"Sell {user_id}/{symbol} lost a race (attempt {attempt}/{MAX_ATTEMPTS})")
        else:
            raise ConcurrentModification(f"Holding {symbol} changed concurrently; please retry")

        await self.trade_log.record(ExecutedTrade(
            user_id=user_id,
            symbol=symbol,
            side=TradeSide.SELL,
            quantity=quantity,
            price=price,
            total_amount=proceeds,
            average_price_after=current.average_price,
            realized_pnl=Decimal(quantity) * (price - current.average_price),
            executed_at=now,
        ))
        logger.info(f"SELL {user_id} {quantity} {symbol} @ {price} (avg cost {current.average_price})")
        return SaleResult(quantity=quantity, price=price, total=proceeds)

    # ------------------------------------------------------------------
    # READS
    # ------------------------------------------------------------------

    async def get_holding(self, user_id: str, symbol: str) -> Optional[Holding]:
        return await self.holding_repo.get(user_id, normalize_symbol(symbol))

    async def list_holdings(self, user_id: str) -> List[Holding]:
        return await self.holding_repo.list_for_user(user_id)

    async def list_trades(self, user_id: str, limit: int = 50) -> List[ExecutedTrade]:
        return await self.trade_log.list_for_user(user_id, limit=limit)

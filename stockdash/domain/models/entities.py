"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional


def normalize_symbol(symbol: str) -> str:
    """Canonical symbol form: trimmed, uppercase"""
    cleaned = (symbol or "").strip().upper()
    if not cleaned:
        raise ValueError("Symbol cannot be empty")
    return cleaned


class TradeSide(str, Enum):
    """Side of an executed trade"""
    BUY = "BUY"
    SELL = "SELL"


class ProviderErrorKind(str, Enum):
    """Why a quote provider failed"""
    INVALID_SYMBOL = "invalid_symbol"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class Quote:
    """Latest known quote for one symbol - Immutable"""
    symbol: str
    name: str
    price: Decimal
    change: Decimal
    change_percent: str
    volume: int
    previous_close: Decimal
    open: Decimal
    high: Decimal
    low: Decimal
    last_updated: datetime

    def __post_init__(self):
        if not self.symbol:
            raise ValueError("Quote symbol cannot be empty")
        if self.symbol != self.symbol.upper():
            raise ValueError(f"Quote symbol must be uppercase: {self.symbol}")
        for label in ("price", "high", "low"):
            if getattr(self, label) < Decimal("0"):
                raise ValueError(f"Quote {label} cannot be negative")
        if self.volume < 0:
            raise ValueError("Quote volume cannot be negative")

    @property
    def is_positive(self) -> bool:
        return self.change >= Decimal("0")


@dataclass(frozen=True)
class Holding:
    """One user's position in one symbol"""
    user_id: str
    symbol: str
    quantity: int
    average_price: Decimal
    total_invested: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int = 1

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValueError("Holding quantity must be positive")
        if self.average_price <= Decimal("0"):
            raise ValueError("Holding average price must be positive")


@dataclass(frozen=True)
class SaleResult:
    """What a sell executed, for display"""
    quantity: int
    price: Decimal
    total: Decimal


@dataclass(frozen=True)
class ExecutedTrade:
    """Executed buy/sell - Immutable audit record"""
    user_id: str
    symbol: str
    side: TradeSide
    quantity: int
    price: Decimal
    total_amount: Decimal
    average_price_after: Decimal
    executed_at: datetime
    realized_pnl: Optional[Decimal] = None
    id: Optional[int] = None


@dataclass(frozen=True)
class ChartPoint:
    """One intraday bar"""
    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int


@dataclass(frozen=True)
class ChartSeries:
    """Chart points plus whether they were generated locally"""
    symbol: str
    interval: str
    points: List[ChartPoint]
    synthetic: bool = False


@dataclass(frozen=True)
class SymbolMatch:
    """Symbol search hit"""
    symbol: str
    name: str
    type: str
    region: str
    currency: str


@dataclass(frozen=True)
class NewsArticle:
    """Market or company headline"""
    title: str
    description: str
    url: str
    source: str
    published_at: datetime
    image_url: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class ProviderFailure:
    """One provider's failure inside an aggregated quote request"""
    provider_id: str
    kind: ProviderErrorKind
    message: str


@dataclass(frozen=True)
class HoldingValuation:
    """Holding joined with its current market price"""
    holding: Holding
    current_price: Decimal
    current_value: Decimal
    gain_loss: Decimal
    gain_loss_percent: Decimal


@dataclass(frozen=True)
class PortfolioSummary:
    total_value: Decimal
    total_invested: Decimal
    total_gain_loss: Decimal
    total_gain_loss_percent: Decimal


@dataclass(frozen=True)
class PortfolioView:
    holdings: List[HoldingValuation] = field(default_factory=list)
    summary: Optional[PortfolioSummary] = None

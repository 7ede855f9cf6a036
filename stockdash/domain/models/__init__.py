"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    normalize_symbol,

    # Enums
    ProviderErrorKind,
    TradeSide,

    # Entities
    ChartPoint,
    ChartSeries,
    ExecutedTrade,
    Holding,
    HoldingValuation,
    NewsArticle,
    PortfolioSummary,
    PortfolioView,
    ProviderFailure,
    Quote,
    SaleResult,
    SymbolMatch,
)

__all__ = [
    "normalize_symbol",

    # Enums
    "ProviderErrorKind",
    "TradeSide",

    # Entities
    "ChartPoint",
    "ChartSeries",
    "ExecutedTrade",
    "Holding",
    "HoldingValuation",
    "NewsArticle",
    "PortfolioSummary",
    "PortfolioView",
    "ProviderFailure",
    "Quote",
    "SaleResult",
    "SymbolMatch",
]

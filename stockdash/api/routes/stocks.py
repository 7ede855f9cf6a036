"""
Stock API Routes
Quotes, symbol search and intraday charts
"""

import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from stockdash.api.deps import get_aggregator, get_chart_service, get_quote_cache
from stockdash.domain.errors import AllProvidersFailed, ProviderError, QuoteRefreshFailed
from stockdash.domain.models import ChartPoint, Quote, SymbolMatch
from stockdash.domain.services.chart_service import INTERVAL_MINUTES, ChartService
from stockdash.domain.services.quote_cache import QuoteCache
from stockdash.infrastructure.market_data.provider_chain import QuoteAggregator
from stockdash.infrastructure.market_data.provider_factory import get_alpha_vantage
from stockdash.utils.time import to_utc_iso

logger = logging.getLogger(__name__)
router = APIRouter()

MIN_SEARCH_LENGTH = 2


class QuoteResponse(BaseModel):
    symbol: str
    name: str
    price: float
    change: float
    change_percent: str
    is_positive: bool
    volume: int
    previous_close: float
    open: float
    high: float
    low: float
    last_updated: datetime

    @classmethod
    def from_quote(cls, quote: Quote) -> "QuoteResponse":
        return cls(
            symbol=quote.symbol,
            name=quote.name,
            price=float(quote.price),
            change=float(quote.change),
            change_percent=quote.change_percent,
            is_positive=quote.is_positive,
            volume=quote.volume,
            previous_close=float(quote.previous_close),
            open=float(quote.open),
            high=float(quote.high),
            low=float(quote.low),
            last_updated=quote.last_updated,
        )


class SymbolMatchResponse(BaseModel):
    symbol: str
    name: str
    type: str
    region: str
    currency: str

    @classmethod
    def from_match(cls, match: SymbolMatch) -> "SymbolMatchResponse":
        return cls(
            symbol=match.symbol,
            name=match.name,
            type=match.type,
            region=match.region,
            currency=match.currency,
        )


def chart_point_payload(point: ChartPoint) -> dict:
    return {
        "timestamp": to_utc_iso(point.timestamp),
        "open": float(point.open),
        "high": float(point.high),
        "low": float(point.low),
        "close": float(point.close),
        "volume": point.volume,
    }


@router.get("", response_model=List[QuoteResponse])
async def list_stocks(
    refresh: bool = Query(False, description="Re-fetch the popular symbols first"),
    quote_cache: QuoteCache = Depends(get_quote_cache),
):
    """All stored quotes; fetched from providers when nothing is stored yet"""
    try:
        quotes = await quote_cache.list_quotes(refresh=refresh)
    except QuoteRefreshFailed as e:
        logger.error(f"Quote refresh failed: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    return [QuoteResponse.from_quote(q) for q in quotes]


@router.get("/search", response_model=List[SymbolMatchResponse])
async def search_stocks(
    q: str = Query("", description="Symbol or company keywords"),
    aggregator: QuoteAggregator = Depends(get_aggregator),
):
    query = q.strip()
    if len(query) < MIN_SEARCH_LENGTH:
        raise HTTPException(status_code=400, detail="Query must be at least 2 characters long")

    provider = get_alpha_vantage(aggregator)
    if provider is None:
        raise HTTPException(status_code=503, detail="Symbol search is not configured")

    try:
        matches = await provider.search_symbols(query)
    except ProviderError as e:
        logger.error(f"Symbol search failed for '{query}': {e.message}")
        raise HTTPException(status_code=502, detail=f"Symbol search failed: {e.message}")
    return [SymbolMatchResponse.from_match(m) for m in matches]


@router.get("/{symbol}", response_model=QuoteResponse)
async def get_stock(symbol: str, quote_cache: QuoteCache = Depends(get_quote_cache)):
    try:
        quote = await quote_cache.get_fresh(symbol)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AllProvidersFailed as e:
        logger.warning(str(e))
        raise HTTPException(
            status_code=404,
            detail={
                "error": "Stock not found or API error",
                "failures": [
                    {"provider": f.provider_id, "kind": f.kind.value, "message": f.message}
                    for f in e.failures
                ],
            },
        )
    return QuoteResponse.from_quote(quote)


@router.get("/{symbol}/chart")
async def get_stock_chart(
    symbol: str,
    interval: str = Query("5min", description=f"One of {', '.join(INTERVAL_MINUTES)}"),
    chart_service: ChartService = Depends(get_chart_service),
):
    """
    Intraday bars, oldest first.

    When the upstream feed fails the series is generated locally and the
    X-Chart-Synthetic header is "true".
    """
    if interval not in INTERVAL_MINUTES:
        raise HTTPException(
            status_code=422,
            detail=f"Unsupported interval '{interval}'. Use one of: {', '.join(INTERVAL_MINUTES)}",
        )

    try:
        series = await chart_service.get_series(symbol, interval)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return JSONResponse(
        content=[chart_point_payload(p) for p in series.points],
        headers={"X-Chart-Synthetic": "true" if series.synthetic else "false"},
    )

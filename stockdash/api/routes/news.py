"""
News API Routes
Market and company headlines from the Finnhub account in the quote chain
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from stockdash.api.deps import get_aggregator
from stockdash.domain.errors import ProviderError
from stockdash.domain.models import NewsArticle, normalize_symbol
from stockdash.infrastructure.market_data.finnhub_provider import FinnhubProvider
from stockdash.infrastructure.market_data.provider_chain import QuoteAggregator
from stockdash.infrastructure.market_data.provider_factory import get_finnhub

logger = logging.getLogger(__name__)
router = APIRouter()


class NewsArticleResponse(BaseModel):
    title: str
    description: str
    url: str
    source: str
    published_at: datetime
    image_url: Optional[str] = None
    category: Optional[str] = None

    @classmethod
    def from_article(cls, article: NewsArticle) -> "NewsArticleResponse":
        return cls(
            title=article.title,
            description=article.description,
            url=article.url,
            source=article.source,
            published_at=article.published_at,
            image_url=article.image_url,
            category=article.category,
        )


class NewsResponse(BaseModel):
    count: int
    news: List[NewsArticleResponse]


class CompanyNewsResponse(NewsResponse):
    symbol: str


def get_news_provider(aggregator: QuoteAggregator = Depends(get_aggregator)) -> FinnhubProvider:
    provider = get_finnhub(aggregator)
    if provider is None:
        raise HTTPException(status_code=503, detail="News is not configured")
    return provider


@router.get("/market", response_model=NewsResponse)
async def market_news(
    limit: int = Query(10, ge=1, le=50),
    provider: FinnhubProvider = Depends(get_news_provider),
):
    try:
        articles = await provider.get_market_news(limit=limit)
    except ProviderError as e:
        logger.error(f"Market news failed: {e.message}")
        raise HTTPException(status_code=502, detail="Failed to fetch market news")
    return NewsResponse(count=len(articles), news=[NewsArticleResponse.from_article(a) for a in articles])


@router.get("/company/{symbol}", response_model=CompanyNewsResponse)
async def company_news(
    symbol: str,
    limit: int = Query(5, ge=1, le=50),
    provider: FinnhubProvider = Depends(get_news_provider),
):
    try:
        symbol = normalize_symbol(symbol)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        articles = await provider.get_company_news(symbol, limit=limit)
    except ProviderError as e:
        logger.error(f"Company news failed for {symbol}: {e.message}")
        raise HTTPException(status_code=502, detail="Failed to fetch company news")
    return CompanyNewsResponse(
        symbol=symbol,
        count=len(articles),
        news=[NewsArticleResponse.from_article(a) for a in articles],
    )

"""
Finnhub provider (fallback).

The basic quote carries no company name or volume. Market and company
headlines come from the same account and share its pacer.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, List, Optional

from stockdash.domain.errors import InvalidSymbol, Unavailable
from stockdash.domain.models import NewsArticle, Quote
from stockdash.infrastructure.market_data.base_provider import HttpQuoteProvider

COMPANY_NEWS_LOOKBACK_DAYS = 7


class FinnhubProvider(HttpQuoteProvider):
    provider_id = "finnhub"

    async def fetch_quote(self, symbol: str) -> Quote:
        data = await self._request_json(
            f"{self.base_url}/quote", params={"symbol": symbol, "token": self.api_key}
        )
        if not isinstance(data, dict):
            raise Unavailable(self.provider_id, "Unexpected response shape")

        # Unknown symbols come back as an all-zero quote
        price = self._decimal(data.get("c"), "price", default=Decimal("0"))
        previous_close = self._decimal(data.get("pc"), "previous close", default=Decimal("0"))
        if price == 0 and previous_close == 0:
            raise InvalidSymbol(self.provider_id, f"No data found for symbol: {symbol}")

        return self._build_quote(
            symbol=symbol.upper(),
            name=self.company_name(symbol),
            price=price,
            change=self._decimal(data.get("d"), "change", default=Decimal("0")),
            change_percent=self._percent(self._decimal(data.get("dp"), "change percent", default=Decimal("0"))),
            volume=0,
            previous_close=previous_close,
            open=self._decimal(data.get("o"), "open", default=Decimal("0")),
            high=self._decimal(data.get("h"), "high", default=Decimal("0")),
            low=self._decimal(data.get("l"), "low", default=Decimal("0")),
        )

    # ------------------------------------------------------------------
    # NEWS
    # ------------------------------------------------------------------

    async def get_market_news(self, limit: int = 10) -> List[NewsArticle]:
        data = await self._request_json(
            f"{self.base_url}/news", params={"category": "general", "token": self.api_key}
        )
        return self._articles(data, limit)

    async def get_company_news(self, symbol: str, limit: int = 5, today: Optional[date] = None) -> List[NewsArticle]:
        """Headlines for one symbol over the last week, newest first"""
        today = today or datetime.now(timezone.utc).date()
        data = await self._request_json(
            f"{self.base_url}/company-news",
            params={
                "symbol": symbol.upper(),
                "from": (today - timedelta(days=COMPANY_NEWS_LOOKBACK_DAYS)).isoformat(),
                "to": today.isoformat(),
                "token": self.api_key,
            },
        )
        return self._articles(data, limit)

    def _articles(self, data: Any, limit: int) -> List[NewsArticle]:
        if not isinstance(data, list):
            raise Unavailable(self.provider_id, "Unexpected news response shape")

        articles: List[NewsArticle] = []
        for item in data[:limit]:
            if not isinstance(item, dict):
                continue
            articles.append(NewsArticle(
                title=str(item.get("headline") or ""),
                description=str(item.get("summary") or ""),
                url=str(item.get("url") or ""),
                source=str(item.get("source") or ""),
                published_at=self._published_at(item.get("datetime")),
                image_url=item.get("image") or None,
                category=item.get("category") or None,
            ))
        return articles

    def _published_at(self, value: Any) -> datetime:
        # Unix seconds, stored as naive UTC like every other timestamp
        seconds = self._int(value, "datetime")
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError) as exc:
            raise Unavailable(self.provider_id, f"Unparseable datetime: {value!r}") from exc

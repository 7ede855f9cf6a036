"""
Polygon.io provider (fallback).

Uses the previous-day aggregate bar, so "change" is close minus open of
that bar rather than a live move.
"""

from __future__ import annotations

from decimal import Decimal
from urllib.parse import quote as url_quote

from stockdash.domain.errors import InvalidSymbol, Unavailable
from stockdash.domain.models import Quote
from stockdash.infrastructure.market_data.base_provider import HttpQuoteProvider


class PolygonProvider(HttpQuoteProvider):
    provider_id = "polygon"

    async def fetch_quote(self, symbol: str) -> Quote:
        url = f"{self.base_url}/v2/aggs/ticker/{url_quote(symbol, safe='')}/prev"
        data = await self._request_json(url, params={"adjusted": "true", "apikey": self.api_key})
        if not isinstance(data, dict):
            raise Unavailable(self.provider_id, "Unexpected response shape")

        results = data.get("results") or []
        if not results:
            raise InvalidSymbol(self.provider_id, f"No data found for symbol: {symbol}")
        bar = results[0]

        close = self._decimal(bar.get("c"), "close")
        open_ = self._decimal(bar.get("o"), "open")
        change = close - open_
        percent = (change / open_ * 100) if open_ != 0 else Decimal("0")
        return self._build_quote(
            symbol=symbol.upper(),
            name=self.company_name(symbol),
            price=close,
            change=change,
            change_percent=self._percent(percent),
            volume=self._int(bar.get("v"), "volume"),
            previous_close=open_,
            open=open_,
            high=self._decimal(bar.get("h"), "high", default=Decimal("0")),
            low=self._decimal(bar.get("l"), "low", default=Decimal("0")),
        )

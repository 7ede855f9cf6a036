"""
IEX Cloud provider (fallback).
"""

from __future__ import annotations

from decimal import Decimal
from urllib.parse import quote as url_quote

from stockdash.domain.errors import InvalidSymbol, Unavailable
from stockdash.domain.models import Quote
from stockdash.infrastructure.market_data.base_provider import HttpQuoteProvider


class IEXProvider(HttpQuoteProvider):
    provider_id = "iex"

    async def fetch_quote(self, symbol: str) -> Quote:
        url = f"{self.base_url}/stock/{url_quote(symbol, safe='')}/quote"
        data = await self._request_json(url, params={"token": self.api_key})
        if not data:
            raise InvalidSymbol(self.provider_id, f"No data found for symbol: {symbol}")
        if not isinstance(data, dict):
            raise Unavailable(self.provider_id, "Unexpected response shape")

        # changePercent is a ratio (0.0123 == 1.23%)
        ratio = self._decimal(data.get("changePercent"), "change percent", default=Decimal("0"))
        return self._build_quote(
            symbol=str(data.get("symbol") or symbol).upper(),
            name=data.get("companyName") or self.company_name(symbol),
            price=self._decimal(data.get("latestPrice"), "price"),
            change=self._decimal(data.get("change"), "change", default=Decimal("0")),
            change_percent=self._percent(ratio * 100),
            volume=self._int(data.get("latestVolume"), "volume"),
            previous_close=self._decimal(data.get("previousClose"), "previous close", default=Decimal("0")),
            open=self._decimal(data.get("open"), "open", default=Decimal("0")),
            high=self._decimal(data.get("high"), "high", default=Decimal("0")),
            low=self._decimal(data.get("low"), "low", default=Decimal("0")),
        )

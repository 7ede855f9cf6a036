"""
Alpha Vantage provider.

Primary quote source. Also serves symbol search and intraday series, all
through the same pacer (free tier: 5 requests/minute).
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List

from stockdash.domain.errors import InvalidSymbol, RateLimited, Unavailable
from stockdash.domain.models import ChartPoint, Quote, SymbolMatch
from stockdash.infrastructure.market_data.base_provider import HttpQuoteProvider

logger = logging.getLogger(__name__)

INTRADAY_INTERVALS = ("1min", "5min", "15min", "30min", "60min")
MAX_INTRADAY_POINTS = 100
MAX_SEARCH_RESULTS = 10


class AlphaVantageProvider(HttpQuoteProvider):
    provider_id = "alpha_vantage"

    def _query(self, **params: str) -> dict:
        return {**params, "apikey": self.api_key}

    def _check_payload(self, data: Any, symbol: str) -> dict:
        if not isinstance(data, dict):
            raise Unavailable(self.provider_id, "Unexpected response shape")
        if data.get("Error Message"):
            raise InvalidSymbol(self.provider_id, f"Invalid symbol: {symbol}")
        if data.get("Note") or data.get("Information"):
            raise RateLimited(self.provider_id, "API call frequency limit reached. Please try again later.")
        return data

    async def fetch_quote(self, symbol: str) -> Quote:
        data = await self._request_json(
            self.base_url, params=self._query(function="GLOBAL_QUOTE", symbol=symbol)
        )
        data = self._check_payload(data, symbol)

        quote = data.get("Global Quote")
        if not quote:
            raise InvalidSymbol(self.provider_id, f"No data found for symbol: {symbol}")

        change = self._decimal(quote.get("09. change"), "change")
        raw_percent = str(quote.get("10. change percent") or "0").replace("%", "").strip()
        return self._build_quote(
            symbol=str(quote.get("01. symbol") or symbol).upper(),
            name=self.company_name(symbol),
            price=self._decimal(quote.get("05. price"), "price"),
            change=change,
            change_percent=self._percent(self._decimal(raw_percent, "change percent")),
            volume=self._int(quote.get("06. volume"), "volume"),
            previous_close=self._decimal(quote.get("08. previous close"), "previous close"),
            open=self._decimal(quote.get("02. open"), "open"),
            high=self._decimal(quote.get("03. high"), "high"),
            low=self._decimal(quote.get("04. low"), "low"),
        )

    async def search_symbols(self, keywords: str) -> List[SymbolMatch]:
        data = await self._request_json(
            self.base_url, params=self._query(function="SYMBOL_SEARCH", keywords=keywords)
        )
        if not isinstance(data, dict) or data.get("Error Message"):
            raise Unavailable(self.provider_id, "Search failed")
        if data.get("Note") or data.get("Information"):
            raise RateLimited(self.provider_id, "API call frequency limit reached. Please try again later.")

        matches = data.get("bestMatches") or []
        return [
            SymbolMatch(
                symbol=match.get("1. symbol", ""),
                name=match.get("2. name", ""),
                type=match.get("3. type", ""),
                region=match.get("4. region", ""),
                currency=match.get("8. currency", ""),
            )
            for match in matches[:MAX_SEARCH_RESULTS]
        ]

    async def get_intraday(self, symbol: str, interval: str = "5min") -> List[ChartPoint]:
        """
        Intraday bars for charts, oldest first.

        Only the newest MAX_INTRADAY_POINTS bars are kept.
        """
        if interval not in INTRADAY_INTERVALS:
            raise ValueError(f"Unsupported interval: {interval}")

        data = await self._request_json(
            self.base_url,
            params=self._query(function="TIME_SERIES_INTRADAY", symbol=symbol, interval=interval),
        )
        data = self._check_payload(data, symbol)

        series = data.get(f"Time Series ({interval})")
        if not series:
            raise InvalidSymbol(self.provider_id, f"No intraday data found for {symbol}")

        newest_first = sorted(series.items(), key=lambda item: item[0], reverse=True)
        points: List[ChartPoint] = []
        for stamp, values in newest_first[:MAX_INTRADAY_POINTS]:
            try:
                ts = datetime.strptime(stamp, "%Y-%m-%d %H:%M:%S")
            except ValueError as exc:
                raise Unavailable(self.provider_id, f"Bad timestamp: {stamp!r}") from exc
            points.append(ChartPoint(
                timestamp=ts,
                open=self._decimal(values.get("1. open"), "open"),
                high=self._decimal(values.get("2. high"), "high"),
                low=self._decimal(values.get("3. low"), "low"),
                close=self._decimal(values.get("4. close"), "close"),
                volume=self._int(values.get("5. volume"), "volume"),
            ))
        points.reverse()
        return points

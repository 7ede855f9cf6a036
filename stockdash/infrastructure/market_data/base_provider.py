"""
Shared plumbing for HTTP quote providers.

Subclasses implement fetch_quote() and map the upstream payload into the
canonical Quote. Everything that can go wrong on the wire is raised as one of
the ProviderError subclasses so the chain can move on to the next provider.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import httpx

from stockdash.domain.errors import InvalidSymbol, RateLimited, Unavailable
from stockdash.domain.models import Quote
from stockdash.infrastructure.market_data.pacing import RequestPacer
from stockdash.utils.time import now_utc_naive

logger = logging.getLogger(__name__)


class HttpQuoteProvider:
    provider_id: str = "http"

    def __init__(
        self,
        api_key: str,
        base_url: str,
        rate_limit_per_minute: float,
        timeout_seconds: float = 10.0,
        company_names: Optional[Dict[str, str]] = None,
        pacer: Optional[RequestPacer] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.company_names = {k.upper(): v for k, v in (company_names or {}).items()}
        self.pacer = pacer or RequestPacer(self.provider_id, rate_limit_per_minute)

    async def fetch_quote(self, symbol: str) -> Quote:
        raise NotImplementedError

    def status(self) -> Dict[str, object]:
        return {"provider": self.provider_id, **self.pacer.status()}

    def company_name(self, symbol: str) -> str:
        return self.company_names.get(symbol.upper()) or f"{symbol.upper()} Corporation"

    # ------------------------------------------------------------------
    # WIRE
    # ------------------------------------------------------------------

    async def _request_json(self, url: str, params: Optional[dict] = None) -> Any:
        await self.pacer.wait()
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(url, params=params)
        except httpx.TimeoutException as exc:
            raise Unavailable(self.provider_id, f"Request timed out: {exc.__class__.__name__}") from exc
        except httpx.HTTPError as exc:
            raise Unavailable(self.provider_id, f"Request failed: {exc.__class__.__name__}") from exc

        if response.status_code == 429:
            raise RateLimited(self.provider_id, "API call frequency limit reached")
        if response.status_code == 404:
            raise InvalidSymbol(self.provider_id, "Symbol not found upstream")
        if response.status_code != 200:
            logger.debug(f"{self.provider_id} API {response.status_code}: {response.text[:200]}")
            raise Unavailable(self.provider_id, f"HTTP {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise Unavailable(self.provider_id, "Invalid JSON in response") from exc

    # ------------------------------------------------------------------
    # PARSING HELPERS
    # ------------------------------------------------------------------

    def _decimal(self, value: Any, field: str, default: Optional[Decimal] = None) -> Decimal:
        if value is None or value == "":
            if default is not None:
                return default
            raise Unavailable(self.provider_id, f"Missing field: {field}")
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as exc:
            raise Unavailable(self.provider_id, f"Unparseable {field}: {value!r}") from exc
        if not result.is_finite():
            raise Unavailable(self.provider_id, f"Unparseable {field}: {value!r}")
        return result

    def _int(self, value: Any, field: str) -> int:
        if value is None or value == "":
            return 0
        try:
            return int(Decimal(str(value)))
        except (InvalidOperation, ValueError) as exc:
            raise Unavailable(self.provider_id, f"Unparseable {field}: {value!r}") from exc

    @staticmethod
    def _percent(value: Decimal) -> str:
        return f"{value:.2f}"

    def _build_quote(self, **fields: Any) -> Quote:
        fields.setdefault("last_updated", now_utc_naive())
        try:
            return Quote(**fields)
        except ValueError as exc:
            raise Unavailable(self.provider_id, f"Rejected quote: {exc}") from exc

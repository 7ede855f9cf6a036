"""
Provider chain - try primary, then fallbacks.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, List, Sequence

from stockdash.domain.errors import AllProvidersFailed, ProviderError
from stockdash.domain.models import ProviderFailure, Quote
from stockdash.infrastructure.market_data.types import QuoteProvider

logger = logging.getLogger(__name__)


class QuoteAggregator:
    """
    Primary provider followed by ordered fallbacks.

    Each provider is asked once per request; the first quote wins. Retrying a
    failed request is the caller's business.
    """

    def __init__(self, providers: Sequence[QuoteProvider]):
        if not providers:
            raise ValueError("At least one quote provider is required")
        ids = [p.provider_id for p in providers]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate provider ids: {ids}")
        self.providers: List[QuoteProvider] = list(providers)
        self.last_sources: Dict[str, str] = {}

    @property
    def primary(self) -> QuoteProvider:
        return self.providers[0]

    @property
    def fallbacks(self) -> List[QuoteProvider]:
        return self.providers[1:]

    def get_provider(self, provider_id: str) -> QuoteProvider:
        for provider in self.providers:
            if provider.provider_id == provider_id:
                return provider
        raise ValueError(f"Unknown provider: {provider_id}")

    async def get_quote(self, symbol: str) -> Quote:
        failures: List[ProviderFailure] = []
        for index, provider in enumerate(self.providers):
            role = "primary" if index == 0 else "fallback"
            logger.info(f"Fetching {symbol} from {role} provider: {provider.provider_id}")
            try:
                quote = await provider.fetch_quote(symbol)
            except ProviderError as exc:
                failures.append(exc.to_failure())
                logger.warning(f"{provider.provider_id} failed for {symbol} ({exc.kind.value}): {exc.message}")
                continue
            self.last_sources[quote.symbol] = provider.provider_id
            return quote

        raise AllProvidersFailed(symbol, failures)

    async def get_multiple_quotes(self, symbols: Sequence[str]) -> List[Quote]:
        """
        Fetch symbols one after another, in input order.

        A symbol whose chain fails is skipped; the batch never raises for it.
        """
        quotes: List[Quote] = []
        usage: Counter = Counter()
        for symbol in symbols:
            try:
                quote = await self.get_quote(symbol)
            except AllProvidersFailed as exc:
                logger.error(f"Failed to fetch {symbol}: {exc}")
                continue
            quotes.append(quote)
            usage[self.last_sources.get(quote.symbol, "unknown")] += 1

        logger.info(f"Provider usage summary: {dict(usage)}; {len(quotes)}/{len(symbols)} symbols fetched")
        return quotes

    def set_primary(self, provider_id: str) -> None:
        provider = self.get_provider(provider_id)
        self.providers.remove(provider)
        self.providers.insert(0, provider)
        logger.info(f"Switched primary provider to: {provider_id}")

    def status(self) -> Dict[str, object]:
        return {
            "primary": self.primary.provider_id,
            "fallbacks": [p.provider_id for p in self.fallbacks],
            "providers": [p.status() for p in self.providers],
        }

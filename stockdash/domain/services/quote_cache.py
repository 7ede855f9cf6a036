"""
QUOTE CACHE
Latest known quote per symbol, refreshed through the provider chain

RULES:
- Single-symbol reads refresh when the stored quote is older than max_age
- Bulk listing refreshes wholesale (empty table or explicit refresh), not per row
- No single-flight: concurrent refreshes of one symbol each hit the chain,
  last writer wins
"""

import logging
import random
from dataclasses import replace
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Optional, Protocol, Sequence

from stockdash.domain.errors import AllProvidersFailed, QuoteRefreshFailed
from stockdash.domain.models import Quote, normalize_symbol
from stockdash.utils.time import now_utc_naive

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(minutes=5)


class QuoteStore(Protocol):
    """Protocol for quote persistence - ASYNC"""

    async def get(self, symbol: str) -> Optional[Quote]:
        ...

    async def get_price(self, symbol: str) -> Optional[Decimal]:
        ...

    async def exists(self, symbol: str) -> bool:
        ...

    async def count(self) -> int:
        ...

    async def list_all(self) -> List[Quote]:
        ...

    async def list_symbols(self) -> List[str]:
        ...

    async def upsert(self, quote: Quote) -> Quote:
        ...


class QuoteSource(Protocol):
    """Provider chain as seen by the cache"""

    async def get_quote(self, symbol: str) -> Quote:
        ...

    async def get_multiple_quotes(self, symbols: Sequence[str]) -> List[Quote]:
        ...


class QuoteCache:
    def __init__(
        self,
        store: QuoteStore,
        source: QuoteSource,
        universe: Sequence[str],
        max_age: timedelta = DEFAULT_MAX_AGE,
        clock: Callable[[], datetime] = now_utc_naive,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.source = source
        self.universe = list(universe)
        self.max_age = max_age
        self._clock = clock
        self._rng = rng or random.Random()

    async def _store_fresh(self, quote: Quote) -> Quote:
        stamped = replace(quote, last_updated=self._clock())
        return await self.store.upsert(stamped)

    async def get_fresh(self, symbol: str, max_age: Optional[timedelta] = None) -> Quote:
        """
        Stored quote if younger than max_age, otherwise fetch and store.

        Raises:
            AllProvidersFailed: quote was stale or missing and every provider failed
        """
        symbol = normalize_symbol(symbol)
        max_age = self.max_age if max_age is None else max_age

        cached = await self.store.get(symbol)
        if cached is not None and self._clock() - cached.last_updated < max_age:
            return cached

        logger.info(f"Fetching fresh data for {symbol}...")
        quote = await self.source.get_quote(symbol)
        return await self._store_fresh(quote)

    async def list_quotes(self, refresh: bool = False) -> List[Quote]:
        """
        All stored quotes, ordered by symbol.

        The popular universe is re-fetched when nothing is stored yet or the
        caller asks for it.
        """
        empty = await self.store.count() == 0
        if empty or refresh:
            logger.info(f"Refreshing {len(self.universe)} quotes (empty={empty}, refresh={refresh})")
            fetched = await self.source.get_multiple_quotes(self.universe)
            for quote in fetched:
                await self._store_fresh(quote)
            if not fetched and empty:
                raise QuoteRefreshFailed("No quotes could be fetched from any provider")

        return await self.store.list_all()

    async def get_price(self, symbol: str) -> Optional[Decimal]:
        return await self.store.get_price(normalize_symbol(symbol))

    async def symbol_exists(self, symbol: str) -> bool:
        return await self.store.exists(normalize_symbol(symbol))

    async def refresh_random(self) -> Optional[Quote]:
        """Refresh one randomly chosen stored symbol; None if nothing was refreshed"""
        symbols = await self.store.list_symbols()
        if not symbols:
            logger.info("No stocks in database to update")
            return None

        symbol = self._rng.choice(symbols)
        logger.info(f"Updating real-time data for {symbol}...")
        try:
            quote = await self.source.get_quote(symbol)
        except AllProvidersFailed as exc:
            logger.error(f"Failed to update {symbol}: {exc}")
            return None
        return await self._store_fresh(quote)

    async def seed(self, symbols: Sequence[str]) -> int:
        """Populate an empty table; returns how many quotes were stored"""
        if await self.store.count() > 0:
            return 0
        logger.info(f"Initializing stock data for {list(symbols)}...")
        fetched = await self.source.get_multiple_quotes(symbols)
        for quote in fetched:
            await self._store_fresh(quote)
        logger.info(f"Initialized {len(fetched)} stocks")
        return len(fetched)

import random
from dataclasses import replace
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

import pytest

from stockdash.domain.errors import AllProvidersFailed, QuoteRefreshFailed
from stockdash.domain.models import Quote
from stockdash.domain.services.quote_cache import QuoteCache
from stockdash.infrastructure.market_data.provider_chain import QuoteAggregator

from conftest import FakeProvider, make_quote

NOW = datetime(2026, 1, 5, 15, 0, 0)


class MockQuoteStore:
    def __init__(self, quotes: Optional[List[Quote]] = None):
        self.rows: Dict[str, Quote] = {q.symbol: q for q in quotes or []}
        self.upserts: List[str] = []

    async def get(self, symbol):
        return self.rows.get(symbol)

    async def get_price(self, symbol):
        quote = self.rows.get(symbol)
        return quote.price if quote else None

    async def exists(self, symbol):
        return symbol in self.rows

    async def count(self):
        return len(self.rows)

    async def list_all(self):
        return [self.rows[s] for s in sorted(self.rows)]

    async def list_symbols(self):
        return sorted(self.rows)

    async def upsert(self, quote):
        self.upserts.append(quote.symbol)
        self.rows[quote.symbol] = quote
        return quote


def _cache(store, provider, universe=("AAPL", "MSFT")):
    return QuoteCache(
        store=store,
        source=QuoteAggregator([provider]),
        universe=universe,
        clock=lambda: NOW,
        rng=random.Random(7),
    )


@pytest.mark.asyncio
async def test_fresh_quote_served_from_store():
    store = MockQuoteStore([make_quote("AAPL", "170", last_updated=NOW - timedelta(minutes=4))])
    provider = FakeProvider("alpha_vantage", {"AAPL": "175"})

    quote = await _cache(store, provider).get_fresh("aapl")

    assert quote.price == Decimal("170")
    assert provider.calls == []


@pytest.mark.asyncio
async def test_stale_quote_refetched_and_stamped():
    store = MockQuoteStore([make_quote("AAPL", "170", last_updated=NOW - timedelta(minutes=5))])
    provider = FakeProvider("alpha_vantage", {"AAPL": "175"})

    quote = await _cache(store, provider).get_fresh("AAPL")

    assert quote.price == Decimal("175")
    assert quote.last_updated == NOW
    assert store.rows["AAPL"].price == Decimal("175")


@pytest.mark.asyncio
async def test_missing_quote_fetched():
    store = MockQuoteStore()
    provider = FakeProvider("alpha_vantage", {"TSLA": "250"})

    quote = await _cache(store, provider).get_fresh("TSLA")

    assert quote.symbol == "TSLA"
    assert await store.exists("TSLA")


@pytest.mark.asyncio
async def test_failed_refresh_keeps_stale_row():
    stale = make_quote("AAPL", "170", last_updated=NOW - timedelta(hours=1))
    store = MockQuoteStore([stale])
    provider = FakeProvider("alpha_vantage")

    with pytest.raises(AllProvidersFailed):
        await _cache(store, provider).get_fresh("AAPL")
    assert store.rows["AAPL"] == stale


@pytest.mark.asyncio
async def test_list_quotes_populates_empty_table():
    store = MockQuoteStore()
    provider = FakeProvider("alpha_vantage", {"AAPL": "175", "MSFT": "340"})

    quotes = await _cache(store, provider).list_quotes()

    assert [q.symbol for q in quotes] == ["AAPL", "MSFT"]


@pytest.mark.asyncio
async def test_list_quotes_does_not_refresh_stale_rows_individually():
    store = MockQuoteStore([make_quote("AAPL", "170", last_updated=NOW - timedelta(days=1))])
    provider = FakeProvider("alpha_vantage", {"AAPL": "175"})

    quotes = await _cache(store, provider).list_quotes()

    assert quotes[0].price == Decimal("170")
    assert provider.calls == []


@pytest.mark.asyncio
async def test_list_quotes_refresh_refetches_universe():
    store = MockQuoteStore([make_quote("AAPL", "170")])
    provider = FakeProvider("alpha_vantage", {"AAPL": "175", "MSFT": "340"})

    quotes = await _cache(store, provider).list_quotes(refresh=True)

    assert provider.calls == ["AAPL", "MSFT"]
    assert {q.symbol: q.price for q in quotes} == {"AAPL": Decimal("175"), "MSFT": Decimal("340")}


@pytest.mark.asyncio
async def test_list_quotes_empty_and_nothing_fetched():
    with pytest.raises(QuoteRefreshFailed):
        await _cache(MockQuoteStore(), FakeProvider("alpha_vantage")).list_quotes()


@pytest.mark.asyncio
async def test_list_quotes_refresh_failure_returns_existing_rows():
    store = MockQuoteStore([make_quote("AAPL", "170")])

    quotes = await _cache(store, FakeProvider("alpha_vantage")).list_quotes(refresh=True)

    assert [q.symbol for q in quotes] == ["AAPL"]


@pytest.mark.asyncio
async def test_refresh_random_picks_stored_symbol():
    store = MockQuoteStore([make_quote("AAPL", "170"), make_quote("MSFT", "330")])
    provider = FakeProvider("alpha_vantage", {"AAPL": "175", "MSFT": "340"})

    quote = await _cache(store, provider).refresh_random()

    assert quote.symbol in ("AAPL", "MSFT")
    assert store.upserts == [quote.symbol]
    assert quote.last_updated == NOW


@pytest.mark.asyncio
async def test_refresh_random_on_empty_table():
    provider = FakeProvider("alpha_vantage", {"AAPL": "175"})
    assert await _cache(MockQuoteStore(), provider).refresh_random() is None
    assert provider.calls == []


@pytest.mark.asyncio
async def test_refresh_random_failure_is_swallowed():
    store = MockQuoteStore([make_quote("AAPL", "170")])
    assert await _cache(store, FakeProvider("alpha_vantage")).refresh_random() is None
    assert store.upserts == []


@pytest.mark.asyncio
async def test_seed_only_when_empty():
    provider = FakeProvider("alpha_vantage", {"AAPL": "175", "MSFT": "340"})
    store = MockQuoteStore()
    cache = _cache(store, provider)

    assert await cache.seed(["AAPL", "MSFT"]) == 2
    assert await cache.seed(["AAPL", "MSFT"]) == 0
    assert provider.calls == ["AAPL", "MSFT"]


@pytest.mark.asyncio
async def test_price_and_existence_lookups():
    store = MockQuoteStore([make_quote("AAPL", "170")])
    cache = _cache(store, FakeProvider("alpha_vantage"))

    assert await cache.get_price("aapl") == Decimal("170")
    assert await cache.get_price("MSFT") is None
    assert await cache.symbol_exists("AAPL") is True
    assert await cache.symbol_exists("MSFT") is False


def test_is_positive_follows_change():
    assert make_quote("AAPL", change="0").is_positive is True
    assert make_quote("AAPL", change="-0.01").is_positive is False
    assert replace(make_quote("AAPL"), change=Decimal("2")).is_positive is True

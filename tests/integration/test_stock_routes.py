from datetime import datetime
from decimal import Decimal

import pytest

from stockdash.domain.errors import RateLimited
from stockdash.domain.models import ChartPoint, SymbolMatch
from stockdash.infrastructure.market_data.alpha_vantage_provider import AlphaVantageProvider
from stockdash.infrastructure.market_data.provider_chain import QuoteAggregator

from conftest import FakeProvider


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_stocks_populates_from_universe(client):
    resp = await client.get("/api/stocks")
    assert resp.status_code == 200

    data = resp.json()
    # Universe entries without a scripted price are skipped
    assert [q["symbol"] for q in data] == ["AAPL", "AMZN", "GOOGL", "MSFT", "TSLA"]
    aapl = data[0]
    assert aapl["price"] == 175.5
    assert aapl["is_positive"] is True
    assert aapl["change_percent"] == "1.50"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_stocks_503_when_nothing_fetched(client, app):
    app.state.quote_aggregator = QuoteAggregator([FakeProvider("alpha_vantage")])

    resp = await client.get("/api/stocks?refresh=true")
    assert resp.status_code == 503


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_stock_is_cached(client, fake_providers):
    first = await client.get("/api/stocks/msft")
    second = await client.get("/api/stocks/MSFT")

    assert first.status_code == 200
    assert first.json()["symbol"] == "MSFT"
    assert second.json()["price"] == first.json()["price"]
    assert fake_providers[0].calls == ["MSFT"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_stock_unknown_symbol_lists_failures(client):
    resp = await client.get("/api/stocks/NOPE")
    assert resp.status_code == 404

    detail = resp.json()["detail"]
    assert detail["error"] == "Stock not found or API error"
    assert [f["provider"] for f in detail["failures"]] == ["alpha_vantage", "finnhub"]
    assert {f["kind"] for f in detail["failures"]} == {"invalid_symbol"}


def _alpha_vantage(app):
    provider = AlphaVantageProvider(api_key="key", base_url="https://example.test", rate_limit_per_minute=1000)
    app.state.quote_aggregator = QuoteAggregator([provider])
    return provider


@pytest.mark.asyncio
@pytest.mark.integration
async def test_search_requires_two_characters(client):
    resp = await client.get("/api/stocks/search?q=a")
    assert resp.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_search_returns_matches(client, app, monkeypatch):
    provider = _alpha_vantage(app)

    async def fake_search(keywords):
        return [SymbolMatch("AAPL", "Apple Inc", "Equity", "United States", "USD")]

    monkeypatch.setattr(provider, "search_symbols", fake_search)

    resp = await client.get("/api/stocks/search?q=apple")
    assert resp.status_code == 200
    assert resp.json() == [
        {"symbol": "AAPL", "name": "Apple Inc", "type": "Equity", "region": "United States", "currency": "USD"}
    ]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_search_upstream_failure_is_502(client, app, monkeypatch):
    provider = _alpha_vantage(app)

    async def fake_search(keywords):
        raise RateLimited("alpha_vantage", "API call frequency limit reached")

    monkeypatch.setattr(provider, "search_symbols", fake_search)

    resp = await client.get("/api/stocks/search?q=apple")
    assert resp.status_code == 502


@pytest.mark.asyncio
@pytest.mark.integration
async def test_chart_from_upstream(client, app, monkeypatch):
    provider = _alpha_vantage(app)

    async def fake_intraday(symbol, interval="5min"):
        return [ChartPoint(datetime(2026, 1, 5, 15, 55), Decimal("1"), Decimal("2"), Decimal("0.5"), Decimal("1.5"), 10)]

    monkeypatch.setattr(provider, "get_intraday", fake_intraday)

    resp = await client.get("/api/stocks/AAPL/chart?interval=1min")
    assert resp.status_code == 200
    assert resp.headers["X-Chart-Synthetic"] == "false"
    assert resp.json() == [{
        "timestamp": "2026-01-05T15:55:00+00:00",
        "open": 1.0,
        "high": 2.0,
        "low": 0.5,
        "close": 1.5,
        "volume": 10,
    }]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_chart_falls_back_to_synthetic(client):
    # The fake chain has no Alpha Vantage instance to ask
    resp = await client.get("/api/stocks/AAPL/chart")

    assert resp.status_code == 200
    assert resp.headers["X-Chart-Synthetic"] == "true"
    assert len(resp.json()) == 50


@pytest.mark.asyncio
@pytest.mark.integration
async def test_chart_rejects_unknown_interval(client):
    resp = await client.get("/api/stocks/AAPL/chart?interval=2min")
    assert resp.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_provider_status_and_switch(client):
    resp = await client.get("/api/status")
    assert resp.status_code == 200
    assert resp.json()["primary"] == "alpha_vantage"

    resp = await client.post("/api/status/primary", json={"provider": "finnhub"})
    assert resp.status_code == 200
    assert resp.json()["primary"] == "finnhub"
    assert resp.json()["fallbacks"] == ["alpha_vantage"]

    resp = await client.post("/api/status/primary", json={"provider": "bloomberg"})
    assert resp.status_code == 400

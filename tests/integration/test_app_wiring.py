import pytest
from httpx import AsyncClient, ASGITransport

from stockdash.infrastructure.db import database
from stockdash.main import app


def test_routes_are_mounted():
    paths = {route.path for route in app.routes}
    for expected in (
        "/health",
        "/api/stocks",
        "/api/stocks/search",
        "/api/stocks/{symbol}",
        "/api/stocks/{symbol}/chart",
        "/api/portfolio/buy",
        "/api/portfolio/sell",
        "/api/portfolio/trades",
        "/api/portfolio/{user_id}",
        "/api/status",
        "/api/status/primary",
        "/api/news/market",
        "/api/news/company/{symbol}",
        "/api/stats",
        "/ws/quotes",
    ):
        assert expected in paths


@pytest.mark.asyncio
async def test_root_and_health_respond_without_lifespan(monkeypatch):
    monkeypatch.setattr(database, "engine", None)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        root = await ac.get("/")
        health = await ac.get("/health")

    assert root.status_code == 200
    assert health.status_code == 200
    services = health.json()["services"]
    assert services["scheduler"] == "disabled"
    assert services["quote_providers"] == "unavailable"
    assert services["database"] == "not_initialized"

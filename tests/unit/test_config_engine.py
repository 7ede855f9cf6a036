from decimal import Decimal

import pytest

from stockdash.config import settings
from stockdash.domain.services.config_engine import DEFAULT_CONFIG_DIR, ConfigEngine


def test_shipped_config_loads(config_engine):
    market = config_engine.market_data

    assert market.primary == "alpha_vantage"
    assert market.chain == ["alpha_vantage", "finnhub", "iex", "polygon"]
    assert market.providers["alpha_vantage"].rate_limit == 5
    assert market.providers["finnhub"].rate_limit == 60
    assert market.providers["iex"].rate_limit == 100
    assert config_engine.universe.popular_symbols[:5] == ["AAPL", "GOOGL", "MSFT", "TSLA", "AMZN"]
    assert config_engine.universe.company_names["AAPL"] == "Apple Inc."


def test_chart_base_prices(config_engine):
    assert config_engine.chart_base_price("aapl") == Decimal("175")
    assert config_engine.chart_base_price("ZZZZ") == Decimal("150")


def test_default_config_dir_is_packaged(monkeypatch):
    monkeypatch.setattr(settings, "CONFIG_DIR", None)
    engine = ConfigEngine()
    engine.load_all()

    assert engine.config_dir == DEFAULT_CONFIG_DIR
    assert (DEFAULT_CONFIG_DIR / "app.yml").is_file()
    assert engine.market_data.primary == "alpha_vantage"


def test_config_dir_from_settings(monkeypatch, tmp_path):
    (tmp_path / "app.yml").write_text((DEFAULT_CONFIG_DIR / "app.yml").read_text())
    monkeypatch.setattr(settings, "CONFIG_DIR", str(tmp_path))

    assert ConfigEngine().config_dir == tmp_path


def test_missing_config_file(tmp_path):
    with pytest.raises(ValueError):
        ConfigEngine(tmp_path).load_all()


def test_unconfigured_fallback_rejected(tmp_path):
    (tmp_path / "app.yml").write_text(
        "market_data:\n"
        "  provider: alpha_vantage\n"
        "  fallback_providers: [finnhub]\n"
        "  providers:\n"
        "    alpha_vantage:\n"
        "      base_url: https://www.alphavantage.co/query\n"
        "      rate_limit: 5\n"
        "universe:\n"
        "  popular_symbols: [AAPL]\n"
    )
    with pytest.raises(ValueError, match="finnhub"):
        ConfigEngine(tmp_path).load_all()


def test_empty_universe_rejected(tmp_path):
    (tmp_path / "app.yml").write_text(
        "market_data:\n"
        "  provider: finnhub\n"
        "  providers:\n"
        "    finnhub:\n"
        "      base_url: https://finnhub.io/api/v1\n"
        "      rate_limit: 60\n"
        "universe:\n"
        "  popular_symbols: []\n"
    )
    with pytest.raises(ValueError, match="popular_symbols"):
        ConfigEngine(tmp_path).load_all()

"""
Quote provider factory (config-driven).
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Type

from stockdash.config import settings
from stockdash.domain.services.config_engine import ConfigEngine, ProviderSettings
from stockdash.infrastructure.market_data.alpha_vantage_provider import AlphaVantageProvider
from stockdash.infrastructure.market_data.base_provider import HttpQuoteProvider
from stockdash.infrastructure.market_data.finnhub_provider import FinnhubProvider
from stockdash.infrastructure.market_data.iex_provider import IEXProvider
from stockdash.infrastructure.market_data.polygon_provider import PolygonProvider
from stockdash.infrastructure.market_data.provider_chain import QuoteAggregator

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: Dict[str, Type[HttpQuoteProvider]] = {
    "alpha_vantage": AlphaVantageProvider,
    "finnhub": FinnhubProvider,
    "iex": IEXProvider,
    "polygon": PolygonProvider,
}


def _api_key_for(provider_id: str) -> str:
    keys = {
        "alpha_vantage": settings.ALPHA_VANTAGE_API_KEY,
        "finnhub": settings.FINNHUB_API_KEY,
        "iex": settings.IEX_API_KEY,
        "polygon": settings.POLYGON_API_KEY,
    }
    return (keys.get(provider_id) or "").strip()


def _build_provider(cfg: ProviderSettings, company_names: Dict[str, str]) -> HttpQuoteProvider:
    cls = PROVIDER_CLASSES.get(cfg.provider_id)
    if cls is None:
        raise ValueError(f"Unknown provider: {cfg.provider_id}")
    api_key = _api_key_for(cfg.provider_id)
    if not api_key:
        raise ValueError(f"API key missing for provider {cfg.provider_id}")
    return cls(
        api_key=api_key,
        base_url=cfg.base_url,
        rate_limit_per_minute=cfg.rate_limit,
        timeout_seconds=settings.PROVIDER_TIMEOUT_SECONDS,
        company_names=company_names,
    )


def get_quote_aggregator(config_engine: Optional[ConfigEngine] = None) -> QuoteAggregator:
    if config_engine is None:
        config_engine = ConfigEngine()
        config_engine.load_all()

    market_cfg = config_engine.market_data
    company_names = config_engine.universe.company_names

    providers: List[HttpQuoteProvider] = []
    for provider_id in market_cfg.chain:
        try:
            providers.append(_build_provider(market_cfg.providers[provider_id], company_names))
        except ValueError as exc:
            # Providers without credentials are left out of the chain
            logger.warning(f"Skipping provider {provider_id}: {exc}")

    if not providers:
        raise RuntimeError("No valid quote providers configured")
    logger.info(f"Quote provider chain: {[p.provider_id for p in providers]}")
    return QuoteAggregator(providers)


def get_alpha_vantage(aggregator: QuoteAggregator) -> Optional[AlphaVantageProvider]:
    """The chain's Alpha Vantage instance, shared so search and charts use its pacer."""
    for provider in aggregator.providers:
        if isinstance(provider, AlphaVantageProvider):
            return provider
    return None


def get_finnhub(aggregator: QuoteAggregator) -> Optional[FinnhubProvider]:
    """The chain's Finnhub instance; news requests count against its pacer."""
    for provider in aggregator.providers:
        if isinstance(provider, FinnhubProvider):
            return provider
    return None

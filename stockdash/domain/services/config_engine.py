"""
CONFIG ENGINE
Load, validate, and expose system configuration

RESPONSIBILITIES:
- Load app.yml (packaged default, or CONFIG_DIR)
- Validate configuration integrity
- Expose read-only typed objects

RULES:
- Fail fast on missing or invalid config
- No hardcoded provider lists
"""

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from stockdash.config import settings

# app.yml ships inside the stockdash.config package
DEFAULT_CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"


@dataclass(frozen=True)
class ProviderSettings:
    """One configured quote provider"""
    provider_id: str
    base_url: str
    rate_limit: float


@dataclass(frozen=True)
class MarketDataSettings:
    """Provider chain: primary first, then fallbacks in order"""
    primary: str
    fallbacks: List[str]
    providers: Dict[str, ProviderSettings]

    @property
    def chain(self) -> List[str]:
        ordered = [self.primary]
        for name in self.fallbacks:
            if name not in ordered:
                ordered.append(name)
        return ordered


@dataclass(frozen=True)
class Universe:
    popular_symbols: List[str]
    company_names: Dict[str, str]


class ConfigEngine:
    """
    Configuration Engine
    Single source of truth for market data configuration
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None and settings.CONFIG_DIR:
            config_dir = Path(settings.CONFIG_DIR)
        self.config_dir = Path(config_dir) if config_dir is not None else DEFAULT_CONFIG_DIR
        self._app_config: Dict[str, Any] = None
        self._market_data: MarketDataSettings = None
        self._universe: Universe = None

    def load_all(self) -> None:
        """Load all configuration files"""
        self._load_app_config()
        self._load_market_data()
        self._load_universe()

    def _load_app_config(self) -> None:
        app_file = self.config_dir / "app.yml"
        if not app_file.exists():
            raise ValueError(f"Config file not found: {app_file}")
        with open(app_file, "r") as f:
            data = yaml.safe_load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Config file is empty or malformed: {app_file}")
        self._app_config = data

    def _load_market_data(self) -> None:
        section = self._app_config.get("market_data")
        if not section:
            raise ValueError("app.yml: market_data section missing")
        primary = (section.get("provider") or "").strip().lower()
        if not primary:
            raise ValueError("app.yml: market_data.provider missing")
        fallbacks = [str(p).strip().lower() for p in section.get("fallback_providers") or []]

        providers: Dict[str, ProviderSettings] = {}
        for name, cfg in (section.get("providers") or {}).items():
            cfg = cfg or {}
            base_url = cfg.get("base_url")
            rate_limit = cfg.get("rate_limit")
            if not base_url:
                raise ValueError(f"app.yml: base_url missing for provider {name}")
            if rate_limit is None or float(rate_limit) <= 0:
                raise ValueError(f"app.yml: rate_limit must be positive for provider {name}")
            providers[name.lower()] = ProviderSettings(
                provider_id=name.lower(),
                base_url=str(base_url),
                rate_limit=float(rate_limit),
            )

        for name in [primary, *fallbacks]:
            if name not in providers:
                raise ValueError(f"app.yml: provider '{name}' referenced but not configured")

        self._market_data = MarketDataSettings(primary=primary, fallbacks=fallbacks, providers=providers)

    def _load_universe(self) -> None:
        section = self._app_config.get("universe") or {}
        symbols = [str(s).strip().upper() for s in section.get("popular_symbols") or []]
        if not symbols:
            raise ValueError("app.yml: universe.popular_symbols must not be empty")
        names = {str(k).upper(): str(v) for k, v in (section.get("company_names") or {}).items()}
        self._universe = Universe(popular_symbols=symbols, company_names=names)

    @property
    def market_data(self) -> MarketDataSettings:
        return self._market_data

    @property
    def universe(self) -> Universe:
        return self._universe

    def chart_base_price(self, symbol: str) -> Decimal:
        charts = self._app_config.get("charts") or {}
        prices = {str(k).upper(): v for k, v in (charts.get("base_prices") or {}).items()}
        value = prices.get(symbol.upper(), charts.get("default_base_price", 150))
        return Decimal(str(value))

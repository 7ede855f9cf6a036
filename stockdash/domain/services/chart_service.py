"""
Intraday chart series.

Upstream failures never reach the caller: the series falls back to a
synthetic one and is flagged as such.
"""

import logging
import math
import random
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Optional, Protocol

from stockdash.domain.errors import ProviderError
from stockdash.domain.models import ChartPoint, ChartSeries, normalize_symbol
from stockdash.utils.time import now_utc_naive

logger = logging.getLogger(__name__)

INTERVAL_MINUTES = {"1min": 1, "5min": 5, "15min": 15, "30min": 30, "60min": 60}
SYNTHETIC_POINTS = 50
PRICE_PLACES = Decimal("0.0001")


class IntradaySource(Protocol):
    async def get_intraday(self, symbol: str, interval: str = "5min") -> List[ChartPoint]:
        ...


class SyntheticChartGenerator:
    """
    Deterministic stand-in series: same symbol, interval and anchor time
    always give the same points.
    """

    def __init__(
        self,
        base_price_for: Callable[[str], Decimal],
        points: int = SYNTHETIC_POINTS,
        clock: Callable[[], datetime] = now_utc_naive,
    ):
        self.base_price_for = base_price_for
        self.points = points
        self._clock = clock

    def generate(self, symbol: str, interval: str = "5min") -> List[ChartPoint]:
        step = timedelta(minutes=INTERVAL_MINUTES[interval])
        now = self._clock()
        anchor = now.replace(second=0, microsecond=0)
        anchor -= timedelta(minutes=anchor.minute % INTERVAL_MINUTES[interval])

        rng = random.Random(f"{symbol}:{interval}:{anchor.isoformat()}")
        base = float(self.base_price_for(symbol))
        volatility = base * 0.02

        series: List[ChartPoint] = []
        for i in range(self.points - 1, -1, -1):
            trend = math.sin(i * 0.1) * volatility * 0.5
            random_walk = (rng.random() - 0.5) * volatility
            price = base + trend + random_walk
            series.append(ChartPoint(
                timestamp=anchor - i * step,
                open=self._q(price * 0.999),
                high=self._q(price * 1.002),
                low=self._q(price * 0.998),
                close=self._q(price),
                volume=rng.randint(500_000, 1_499_999),
            ))
        return series

    @staticmethod
    def _q(value: float) -> Decimal:
        return Decimal(str(value)).quantize(PRICE_PLACES)


class ChartService:
    def __init__(self, source: Optional[IntradaySource], generator: SyntheticChartGenerator):
        self.source = source
        self.generator = generator

    async def get_series(self, symbol: str, interval: str = "5min") -> ChartSeries:
        if interval not in INTERVAL_MINUTES:
            raise ValueError(f"Unsupported interval: {interval}")
        symbol = normalize_symbol(symbol)

        if self.source is not None:
            try:
                points = await self.source.get_intraday(symbol, interval)
            except ProviderError as exc:
                logger.warning(f"Intraday feed error for {symbol}: {exc.message}; generating synthetic data")
            else:
                if points:
                    logger.info(f"Fetched {len(points)} data points for {symbol}")
                    return ChartSeries(symbol=symbol, interval=interval, points=points)
                logger.info(f"No intraday data for {symbol}; generating synthetic data")

        points = self.generator.generate(symbol, interval)
        return ChartSeries(symbol=symbol, interval=interval, points=points, synthetic=True)

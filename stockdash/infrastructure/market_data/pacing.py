"""
Per-provider request pacing.

Each provider owns one pacer. A call that arrives before the provider's
minimum interval has elapsed waits out the remainder before going upstream.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class RequestPacer:
    def __init__(
        self,
        name: str,
        requests_per_minute: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        wall_clock: Callable[[], float] = time.time,
    ):
        if requests_per_minute <= 0:
            raise ValueError(f"Rate limit for {name} must be positive")
        self.name = name
        self.requests_per_minute = requests_per_minute
        self.min_interval = 60.0 / requests_per_minute
        self._clock = clock
        self._sleep = sleep
        self._wall_clock = wall_clock
        self._lock = asyncio.Lock()
        self._last_request: Optional[float] = None
        self.last_request_at: Optional[float] = None
        self.request_count = 0

    async def wait(self) -> None:
        """Block until this provider may send its next request, then claim the slot."""
        async with self._lock:
            if self._last_request is not None:
                elapsed = self._clock() - self._last_request
                if elapsed < self.min_interval:
                    wait_s = self.min_interval - elapsed
                    logger.info(f"Rate limiting {self.name}: waiting {wait_s * 1000:.0f}ms")
                    await self._sleep(wait_s)
            self._last_request = self._clock()
            self.last_request_at = self._wall_clock()
            self.request_count += 1

    def status(self) -> dict:
        last = None
        if self.last_request_at is not None:
            last = datetime.fromtimestamp(self.last_request_at, tz=timezone.utc).isoformat()
        limit = self.requests_per_minute
        limit_text = f"{int(limit)}" if float(limit).is_integer() else f"{limit}"
        return {
            "request_count": self.request_count,
            "last_request": last,
            "rate_limit": f"{limit_text} requests/minute",
        }

"""
Quote provider protocol for type hints.
"""

from __future__ import annotations

from typing import Dict, Protocol

from stockdash.domain.models import Quote


class QuoteProvider(Protocol):
    provider_id: str

    async def fetch_quote(self, symbol: str) -> Quote:
        ...

    def status(self) -> Dict[str, object]:
        ...

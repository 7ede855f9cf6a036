"""
Domain errors.

Provider-level errors are recoverable by trying the next provider.
Aggregator and ledger errors are terminal for the request that raised them;
API routes translate them into HTTP status codes.
"""

from typing import List

from stockdash.domain.models import ProviderErrorKind, ProviderFailure


class ProviderError(Exception):
    """A single quote provider could not produce a quote"""

    kind: ProviderErrorKind = ProviderErrorKind.UNAVAILABLE

    def __init__(self, provider_id: str, message: str):
        super().__init__(message)
        self.provider_id = provider_id
        self.message = message

    def to_failure(self) -> ProviderFailure:
        return ProviderFailure(provider_id=self.provider_id, kind=self.kind, message=self.message)


class InvalidSymbol(ProviderError):
    kind = ProviderErrorKind.INVALID_SYMBOL


class RateLimited(ProviderError):
    kind = ProviderErrorKind.RATE_LIMITED


class Unavailable(ProviderError):
    kind = ProviderErrorKind.UNAVAILABLE


class AllProvidersFailed(Exception):
    """Every provider in the chain failed for one symbol"""

    def __init__(self, symbol: str, failures: List[ProviderFailure]):
        self.symbol = symbol
        self.failures = list(failures)
        joined = ", ".join(f"{f.provider_id}: {f.message}" for f in self.failures)
        super().__init__(f"All providers failed for {symbol}. Errors: {joined}")


class QuoteRefreshFailed(Exception):
    """Bulk refresh produced no quotes and nothing is cached"""


class LedgerError(Exception):
    """Base class for trade validation errors"""


class InvalidTrade(LedgerError):
    pass


class SymbolNotFound(LedgerError):
    pass


class NoSuchHolding(LedgerError):
    pass


class InsufficientShares(LedgerError):
    pass


class ConcurrentModification(LedgerError):
    """Holding kept changing underneath a trade"""

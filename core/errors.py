# -*- coding: utf-8 -*-
"""
Error taxonomy for the aggregation engine.

Only ``InvalidWalletRequest`` ever reaches a caller of ``get_portfolio``;
the rest are raised at provider boundaries and folded into result values.
"""

from typing import List, Optional


class AggregationError(Exception):
    """Base class for aggregation failures."""


class ProviderUnavailable(AggregationError):
    """A single data provider timed out, refused, or answered non-2xx."""

    def __init__(self, provider: str, reason: str, status_code: Optional[int] = None):
        self.provider = provider
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"{provider}: {reason}")


class MalformedUpstreamResponse(ProviderUnavailable):
    """A provider answered, but the payload could not be parsed."""


class ProviderExhausted(AggregationError):
    """Every provider for a chain failed for one request."""

    def __init__(self, chain: str, failures: List[ProviderUnavailable]):
        self.chain = chain
        self.failures = list(failures)
        names = ", ".join(f.provider for f in self.failures) or "none"
        super().__init__(f"all {chain} providers failed ({names})")


class UnsupportedChain(AggregationError):
    """No adapter is registered for a wallet's blockchain value."""

    def __init__(self, blockchain):
        self.blockchain = blockchain
        super().__init__(f"unsupported blockchain: {blockchain!r}")


class PriceUnresolved(AggregationError):
    """Neither the live source nor the fallback table knows a symbol."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"no price for {symbol}")


class InvalidWalletRequest(AggregationError):
    """The caller handed the engine something that is not a wallet list."""

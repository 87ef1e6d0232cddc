# -*- coding: utf-8 -*-
"""
Portfolio Builder
-----------------
Joins native and token balances with prices into a ``PortfolioSnapshot``.

Guarantees:
- every leaf carries ``usd_value == balance * price``; unresolved prices are 0
- wallet and grand totals are finite and never negative
- a failed native read falls back to the wallet's cached balance
"""

import math
from typing import Dict, Iterable, List, Optional, Set, Tuple

from config.constants import KNOWN_TOKEN_PRICES
from models.wallet import (
    NativeEntry,
    PortfolioSnapshot,
    TokenBalance,
    WalletFetch,
    WalletPortfolio,
    WalletRef,
)
from utils.helpers import get_current_timestamp_iso, non_negative
from utils.price_service import PriceLookup


def _finite_sum(values: Iterable[float]) -> float:
    total = math.fsum(non_negative(v) for v in values)
    return total if math.isfinite(total) else 0.0


def collect_symbols(fetches: Iterable[WalletFetch]) -> List[str]:
    """Native and token symbols to price, in first-seen order."""
    symbols: List[str] = []
    for fetch in fetches:
        candidates = [fetch.native.native_symbol] + [t.symbol for t in fetch.tokens]
        for symbol in candidates:
            upper = (symbol or "").upper()
            if upper and upper != "UNKNOWN" and upper not in symbols:
                symbols.append(upper)
    return symbols


class PortfolioBuilder:
    """Stateless join of balances and a price lookup."""

    def __init__(self, known_token_prices: Optional[Dict[str, float]] = None):
        self.known_token_prices = dict(KNOWN_TOKEN_PRICES if known_token_prices is None else known_token_prices)

    def native_price(self, symbol: str, prices: PriceLookup) -> Optional[float]:
        """Live, then fallback table (both already in the lookup); None if neither."""
        quote = prices.quotes.get(symbol.upper())
        return quote.usd if quote is not None else None

    def token_price(self, symbol: str, prices: PriceLookup) -> Optional[float]:
        """Live quote, then the known-token table; None if neither."""
        upper = symbol.upper()
        if prices.is_live(upper):
            return prices.price_of(upper)
        if upper in self.known_token_prices:
            return non_negative(self.known_token_prices[upper])
        return None

    def _native_entry(self, fetch: WalletFetch, prices: PriceLookup, used: Dict[str, float], missing: Set[str]):
        native = fetch.native
        if native.success:
            balance, source = non_negative(native.native_balance), native.source or "live"
        else:
            balance, source = non_negative(fetch.wallet.cached_balance), "cached"
        price = self.native_price(native.native_symbol, prices)
        if price is None:
            # unregistered chains carry no real symbol
            if native.native_symbol.upper() != "UNKNOWN":
                missing.add(native.native_symbol.upper())
            price = 0.0
        else:
            used[native.native_symbol.upper()] = price
        return NativeEntry(
            symbol=native.native_symbol,
            balance=balance,
            price=price,
            usd_value=balance * price,
            success=native.success,
            balance_source=source,
        )

    def _priced_tokens(self, tokens: List[TokenBalance], prices: PriceLookup, used, missing) -> List[TokenBalance]:
        priced = []
        for token in tokens:
            if non_negative(token.balance) <= 0:
                continue
            price = self.token_price(token.symbol, prices)
            if price is None:
                missing.add(token.symbol.upper())
                price = 0.0
            else:
                used[token.symbol.upper()] = price
            priced.append(token.priced(price))
        return priced

    def build(
        self,
        fetches: List[WalletFetch],
        prices: PriceLookup,
        checked_at: Optional[str] = None,
    ) -> PortfolioSnapshot:
        used: Dict[str, float] = {}
        # filled per leaf: a symbol is missing if any entry was left unpriced
        missing: Set[str] = set()
        wallets: List[WalletPortfolio] = []
        by_chain: Dict[str, float] = {}

        for fetch in fetches:
            native = self._native_entry(fetch, prices, used, missing)
            tokens = self._priced_tokens(fetch.tokens, prices, used, missing)
            total = _finite_sum([native.usd_value] + [t.usd_value for t in tokens])
            chain = fetch.wallet.blockchain.value
            by_chain[chain] = by_chain.get(chain, 0.0) + total
            wallets.append(
                WalletPortfolio(
                    id=fetch.wallet.id,
                    address=fetch.wallet.address,
                    blockchain=fetch.wallet.blockchain,
                    native=native,
                    tokens=tokens,
                    total_usd=total,
                    error=fetch.native.error,
                )
            )

        return PortfolioSnapshot(
            wallets=wallets,
            total_balance_usd=_finite_sum(w.total_usd for w in wallets),
            checked_at=checked_at or get_current_timestamp_iso(),
            by_chain=by_chain,
            prices=used,
            missing_symbols=sorted(missing),
            price_source=prices.source.value,
        )

    @staticmethod
    def write_back_candidates(fetches: Iterable[WalletFetch]) -> List[Tuple[WalletRef, float]]:
        """Wallets whose fresh, successful native balance differs from the cached one."""
        candidates = []
        for fetch in fetches:
            if not fetch.native.success:
                continue
            balance = non_negative(fetch.native.native_balance)
            if math.isclose(balance, fetch.wallet.cached_balance, rel_tol=0.0, abs_tol=1e-12):
                continue
            candidates.append((fetch.wallet, balance))
        return candidates

"""
Price Oracle (Live + Static Fallback)
-------------------------------------
Resolves ticker symbols to USD prices.

Sources (in order of priority):
1. CoinGecko ``simple/price``, one batched call per lookup
2. Static fallback table from ``config.constants``

Features:
- No retry against the live source: a failed call routes every symbol to fallback
- Symbols known to neither source are reported in ``missing_symbols``, never guessed
- Provenance tag on every lookup: live, fallback or mixed
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from api_clients.http_client import HttpClient
from config.constants import COINGECKO_IDS, COINGECKO_PRICE_URL, FALLBACK_PRICES
from core.errors import PriceUnresolved, ProviderUnavailable
from models.wallet import PriceQuote, PriceSource
from utils.helpers import get_current_timestamp_iso, non_negative, print_warning, safe_float_convert


@dataclass
class PriceLookup:
    """Result of one oracle call."""

    quotes: Dict[str, PriceQuote] = field(default_factory=dict)
    missing_symbols: List[str] = field(default_factory=list)
    source: PriceSource = PriceSource.FALLBACK
    response_time_ms: int = 0
    timestamp: str = ""

    @property
    def prices(self) -> Dict[str, float]:
        return {symbol: quote.usd for symbol, quote in self.quotes.items()}

    def price_of(self, symbol: str, strict: bool = False) -> float:
        """USD price for ``symbol``; 0 when unresolved unless ``strict``."""
        quote = self.quotes.get(symbol.upper())
        if quote is None:
            if strict:
                raise PriceUnresolved(symbol)
            return 0.0
        return quote.usd

    def is_live(self, symbol: str) -> bool:
        quote = self.quotes.get(symbol.upper())
        return quote is not None and quote.source is PriceSource.LIVE


def _normalize_symbols(symbols: Iterable[str]) -> List[str]:
    seen = []
    for symbol in symbols:
        if not symbol:
            continue
        upper = str(symbol).strip().upper()
        if upper and upper not in seen:
            seen.append(upper)
    return seen


class PriceOracle:
    """Live-first price resolution with a static fallback table."""

    def __init__(
        self,
        http: HttpClient,
        ids: Optional[Dict[str, str]] = None,
        fallback: Optional[Dict[str, float]] = None,
        timeout: float = 5.0,
        price_url: str = COINGECKO_PRICE_URL,
    ):
        self.http = http
        self.ids = dict(COINGECKO_IDS if ids is None else ids)
        self.fallback = dict(FALLBACK_PRICES if fallback is None else fallback)
        self.timeout = timeout
        self.price_url = price_url

    def _fetch_live(self, symbols: List[str]) -> Dict[str, float]:
        """One batched CoinGecko call; raises ProviderUnavailable on failure."""
        id_to_symbol = {self.ids[s]: s for s in symbols if s in self.ids}
        if not id_to_symbol:
            return {}
        data = self.http.get_json(
            self.price_url,
            params={"ids": ",".join(id_to_symbol), "vs_currencies": "usd"},
            provider="coingecko",
            timeout=self.timeout,
        )
        live: Dict[str, float] = {}
        if not isinstance(data, dict):
            return live
        for coin_id, symbol in id_to_symbol.items():
            entry = data.get(coin_id)
            if not isinstance(entry, dict) or entry.get("usd") is None:
                continue
            price = safe_float_convert(entry.get("usd"), default=-1.0)
            if price >= 0:
                live[symbol] = price
        return live

    def resolve(self, symbols: Iterable[str]) -> PriceLookup:
        """Blocking lookup; meant to run in a worker thread."""
        started = time.monotonic()
        wanted = _normalize_symbols(symbols)
        try:
            live = self._fetch_live(wanted)
        except ProviderUnavailable as e:
            print_warning(f"Live prices unavailable, using fallback table: {e}")
            live = {}

        lookup = PriceLookup()
        for symbol in wanted:
            if symbol in live:
                lookup.quotes[symbol] = PriceQuote(symbol, live[symbol], PriceSource.LIVE)
            elif symbol in self.fallback:
                lookup.quotes[symbol] = PriceQuote(symbol, non_negative(self.fallback[symbol]), PriceSource.FALLBACK)
            else:
                lookup.missing_symbols.append(symbol)

        sources = {quote.source for quote in lookup.quotes.values()}
        if sources == {PriceSource.LIVE}:
            lookup.source = PriceSource.LIVE
        elif PriceSource.LIVE in sources:
            lookup.source = PriceSource.MIXED
        else:
            lookup.source = PriceSource.FALLBACK
        lookup.response_time_ms = int((time.monotonic() - started) * 1000)
        lookup.timestamp = get_current_timestamp_iso()
        return lookup

    async def get_prices(self, symbols: Iterable[str]) -> PriceLookup:
        return await asyncio.to_thread(self.resolve, list(symbols))

# -*- coding: utf-8 -*-
"""
Portfolio Aggregator
--------------------
Entry point of the engine: wallet list in, consolidated ``PortfolioSnapshot``
out. Wallets are processed in throttled waves; each wallet's native balance
and token holdings are fetched concurrently, then one price lookup covers
every symbol seen. Fresh native balances are written back to the registry in
the background.

Only an invalid request (something that is not a wallet list) raises; every
per-wallet failure degrades to a lower total or a cached value.
"""

import asyncio
from dataclasses import replace
from typing import Any, Iterable, List, Optional

from api_clients.http_client import HttpClient
from config.constants import NO_WALLETS_MESSAGE
from config.settings import AggregatorSettings
from core.background import BackgroundTasks
from core.batch_scheduler import BatchScheduler
from core.errors import InvalidWalletRequest, UnsupportedChain
from core.portfolio_builder import PortfolioBuilder, collect_symbols
from models.wallet import AdapterResult, Blockchain, PortfolioSnapshot, WalletFetch, WalletRef
from models.wallet_registry import WalletRegistry
from utils.helpers import (
    format_currency,
    get_current_timestamp_iso,
    print_error,
    print_info,
    print_success,
    print_warning,
    short_address,
)
from utils.price_service import PriceLookup, PriceOracle
from utils.ttl_cache import TokenCache, TTLCacheStore
from wallets.adapters import AdapterRegistry, build_default_adapters
from wallets.token_discovery import TokenDiscovery


class PortfolioAggregator:
    """Multi-chain balance and USD valuation engine."""

    def __init__(
        self,
        registry: Optional[WalletRegistry] = None,
        adapters: Optional[AdapterRegistry] = None,
        token_discovery: Optional[TokenDiscovery] = None,
        price_oracle: Optional[PriceOracle] = None,
        settings: Optional[AggregatorSettings] = None,
        http: Optional[HttpClient] = None,
        background: Optional[BackgroundTasks] = None,
        scheduler: Optional[BatchScheduler] = None,
        builder: Optional[PortfolioBuilder] = None,
    ):
        self.settings = settings or AggregatorSettings.from_env()
        self.http = http or HttpClient(default_timeout=self.settings.request_timeout)
        self.background = background or BackgroundTasks()
        self.registry = registry
        self.adapters = adapters or build_default_adapters(self.http, self.settings)
        if token_discovery is None:
            store = TTLCacheStore(ttl=self.settings.token_cache_ttl, maxsize=self.settings.token_cache_maxsize)
            token_discovery = TokenDiscovery(
                self.http, TokenCache(store), settings=self.settings, background=self.background
            )
        self.token_discovery = token_discovery
        self.price_oracle = price_oracle or PriceOracle(self.http, timeout=self.settings.request_timeout)
        self.scheduler = scheduler or BatchScheduler(self.settings.batch_size, self.settings.batch_delay)
        self.builder = builder or PortfolioBuilder()

    # --- input ---

    @staticmethod
    def _coerce_wallets(wallets: Any) -> List[WalletRef]:
        if wallets is None or isinstance(wallets, (str, bytes, dict)) or not isinstance(wallets, Iterable):
            raise InvalidWalletRequest(f"expected a list of wallets, got {type(wallets).__name__}")
        refs: List[WalletRef] = []
        for item in wallets:
            if isinstance(item, WalletRef):
                try:
                    chain = Blockchain.parse(item.blockchain)
                except UnsupportedChain as e:
                    print_error(f"Skipping wallet {short_address(item.address)}: {e}")
                    continue
                wallet = item if chain is item.blockchain else replace(item, blockchain=chain)
            elif isinstance(item, dict):
                try:
                    wallet = WalletRef.from_dict(item)
                except UnsupportedChain as e:
                    print_error(f"Skipping wallet {short_address(str(item.get('address', '')))}: {e}")
                    continue
            else:
                raise InvalidWalletRequest(f"unsupported wallet entry: {type(item).__name__}")
            if not wallet.address:
                print_warning(f"Skipping wallet {wallet.id or '?'} with no address")
                continue
            refs.append(wallet)
        return refs

    # --- per wallet ---

    async def _fetch_wallet(self, wallet: WalletRef) -> WalletFetch:
        native, tokens = await asyncio.gather(
            self.adapters.get_balance(wallet),
            self.token_discovery.get_tokens(wallet),
            return_exceptions=True,
        )
        for outcome in (native, tokens):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
        if isinstance(native, BaseException):
            print_error(f"Native balance read crashed for {short_address(wallet.address)}: {native}")
            native = AdapterResult.failure(wallet, f"unexpected: {native}")
        if isinstance(tokens, BaseException):
            print_warning(f"Token lookup crashed for {short_address(wallet.address)}: {tokens}")
            tokens = []
        return WalletFetch(wallet=wallet, native=native, tokens=tokens)

    @staticmethod
    def _failed_fetch(wallet: WalletRef, error: BaseException) -> WalletFetch:
        return WalletFetch(wallet=wallet, native=AdapterResult.failure(wallet, f"unexpected: {error}"))

    async def _lookup_prices(self, symbols: List[str]) -> PriceLookup:
        try:
            return await self.price_oracle.get_prices(symbols)
        except Exception as e:
            print_error(f"Price lookup failed: {e}")
            return PriceLookup(missing_symbols=list(symbols), timestamp=get_current_timestamp_iso())

    def _schedule_write_backs(self, fetches: List[WalletFetch], checked_at: str):
        if self.registry is None:
            return
        for wallet, balance in self.builder.write_back_candidates(fetches):
            self.background.spawn(
                lambda w=wallet, b=balance: self.registry.update_cached_balance(w.id, b, checked_at),
                f"cached balance write-back {short_address(wallet.address)}",
            )

    # --- public surface ---

    async def get_portfolio(self, wallets: Any) -> PortfolioSnapshot:
        """Aggregates balances and USD values for ``wallets``."""
        refs = self._coerce_wallets(wallets)
        checked_at = get_current_timestamp_iso()
        if not refs:
            return PortfolioSnapshot(wallets=[], total_balance_usd=0.0, checked_at=checked_at, message=NO_WALLETS_MESSAGE)

        print_info(f"Aggregating {len(refs)} wallets in {self.scheduler.waves_for(len(refs))} batches")
        fetches = await self.scheduler.run(refs, self._fetch_wallet, on_error=self._failed_fetch)
        prices = await self._lookup_prices(collect_symbols(fetches))
        snapshot = self.builder.build(fetches, prices, checked_at)
        self._schedule_write_backs(fetches, checked_at)

        failed = sum(1 for f in fetches if not f.native.success)
        if failed:
            print_warning(f"{failed} of {len(fetches)} wallet balances fell back to cached values")
        print_success(f"Portfolio total: {format_currency(snapshot.total_balance_usd)} ({prices.source.value} prices)")
        return snapshot

    async def get_registry_portfolio(self) -> PortfolioSnapshot:
        """Aggregates every active wallet in the configured registry."""
        if self.registry is None:
            raise InvalidWalletRequest("no wallet registry configured")
        wallets = await asyncio.to_thread(self.registry.list_active_wallets)
        return await self.get_portfolio(wallets)

    async def _run_and_drain(self, wallets: Any) -> PortfolioSnapshot:
        try:
            return await self.get_portfolio(wallets)
        finally:
            await self.background.drain()

    def get_portfolio_sync(self, wallets: Any) -> PortfolioSnapshot:
        """Blocking wrapper; background writes are drained before returning."""
        return asyncio.run(self._run_and_drain(wallets))

    def close(self):
        self.http.close()

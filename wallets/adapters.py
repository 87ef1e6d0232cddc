# -*- coding: utf-8 -*-
"""
Chain Balance Adapters
----------------------
One adapter per blockchain family, each turning an address into a native
balance. Adapters never raise to their caller: every failure is folded into
an ``AdapterResult`` with ``success=False`` so a real zero balance can be told
apart from a failed read.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional

from api_clients.http_client import HttpClient
from api_clients.provider_rotator import ProviderFailoverRotator, default_bitcoin_providers
from config.constants import EVM_RPC_ENDPOINTS, SOLANA_RPC_URL, TRONSCAN_API_URL
from config.settings import AggregatorSettings
from core.errors import (
    MalformedUpstreamResponse,
    ProviderExhausted,
    ProviderUnavailable,
    UnsupportedChain,
)
from models.wallet import AdapterResult, Blockchain, ChainFamily, WalletRef
from utils.helpers import format_units, hex_to_int, print_error, short_address


class ChainAdapter(ABC):
    """Base adapter: subclasses only implement the blocking balance read."""

    family: ChainFamily

    def __init__(self, http: HttpClient, timeout: float = 5.0):
        self.http = http
        self.timeout = timeout

    @abstractmethod
    def read_balance(self, wallet: WalletRef) -> float:
        """Returns the native balance or raises ProviderUnavailable."""

    def source_name(self, wallet: WalletRef) -> str:
        return wallet.blockchain.value

    def fetch_balance(self, wallet: WalletRef) -> AdapterResult:
        """Blocking read converted to an explicit result value."""
        try:
            balance = self.read_balance(wallet)
        except ProviderExhausted as e:
            return AdapterResult.failure(wallet, str(e), source=self.source_name(wallet))
        except ProviderUnavailable as e:
            print_error(
                f"Fetching {wallet.blockchain.value} balance for {short_address(wallet.address)}: {e}",
                is_network_issue=not isinstance(e, MalformedUpstreamResponse),
            )
            return AdapterResult.failure(wallet, str(e), source=self.source_name(wallet))
        return AdapterResult(
            address=wallet.address,
            blockchain=wallet.blockchain,
            native_balance=balance,
            native_symbol=wallet.blockchain.native_symbol,
            success=True,
            source=self.source_name(wallet),
        )

    async def get_balance(self, wallet: WalletRef) -> AdapterResult:
        """Runs the blocking read in a worker thread."""
        try:
            return await asyncio.to_thread(self.fetch_balance, wallet)
        except Exception as e:
            print_error(f"Unexpected adapter error for {short_address(wallet.address)}: {e}")
            return AdapterResult.failure(wallet, f"unexpected: {e}", source=self.source_name(wallet))


class EvmAdapter(ChainAdapter):
    """eth_getBalance against the chain's JSON-RPC endpoint."""

    family = ChainFamily.EVM

    def __init__(self, http: HttpClient, rpc_urls: Optional[Dict[str, str]] = None, timeout: float = 5.0):
        super().__init__(http, timeout)
        self.rpc_urls = dict(rpc_urls or EVM_RPC_ENDPOINTS)

    def read_balance(self, wallet: WalletRef) -> float:
        rpc_url = self.rpc_urls.get(wallet.blockchain.value)
        if not rpc_url:
            raise ProviderUnavailable(wallet.blockchain.value, "no RPC endpoint configured")
        result = self.http.json_rpc(
            rpc_url,
            "eth_getBalance",
            [wallet.address, "latest"],
            provider=f"{wallet.blockchain.value}-rpc",
            timeout=self.timeout,
        )
        try:
            wei = hex_to_int(result)
        except ValueError as e:
            raise MalformedUpstreamResponse(f"{wallet.blockchain.value}-rpc", str(e)) from e
        return format_units(wei, wallet.blockchain.native_decimals)

    def source_name(self, wallet: WalletRef) -> str:
        return f"{wallet.blockchain.value}-rpc"


class BitcoinAdapter(ChainAdapter):
    """UTXO explorer balance through the failover rotator."""

    family = ChainFamily.BITCOIN

    def __init__(self, http: HttpClient, rotator: ProviderFailoverRotator, timeout: float = 5.0):
        super().__init__(http, timeout)
        self.rotator = rotator

    def read_balance(self, wallet: WalletRef) -> float:
        outcome = self.rotator.fetch(wallet.address)
        if not outcome.success:
            raise outcome.exhausted
        return outcome.balance

    def source_name(self, wallet: WalletRef) -> str:
        return "bitcoin-explorers"


class SolanaAdapter(ChainAdapter):
    """getBalance in lamports."""

    family = ChainFamily.SOLANA

    def __init__(self, http: HttpClient, rpc_url: str = SOLANA_RPC_URL, timeout: float = 5.0):
        super().__init__(http, timeout)
        self.rpc_url = rpc_url

    def read_balance(self, wallet: WalletRef) -> float:
        result = self.http.json_rpc(
            self.rpc_url, "getBalance", [wallet.address], provider="solana-rpc", timeout=self.timeout
        )
        try:
            lamports = int(result["value"])
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedUpstreamResponse("solana-rpc", f"unexpected getBalance result: {e}") from e
        return format_units(lamports, wallet.blockchain.native_decimals)

    def source_name(self, wallet: WalletRef) -> str:
        return "solana-rpc"


class TronAdapter(ChainAdapter):
    """Tronscan account endpoint, balance in sun."""

    family = ChainFamily.TRON

    def __init__(self, http: HttpClient, api_url: str = TRONSCAN_API_URL, timeout: float = 5.0):
        super().__init__(http, timeout)
        self.api_url = api_url.rstrip("/")

    def read_balance(self, wallet: WalletRef) -> float:
        data = self.http.get_json(
            f"{self.api_url}/account",
            params={"address": wallet.address},
            provider="tronscan",
            timeout=self.timeout,
        )
        try:
            sun = int(data.get("balance") or 0)
        except (AttributeError, TypeError, ValueError) as e:
            raise MalformedUpstreamResponse("tronscan", f"unexpected account payload: {e}") from e
        return format_units(sun, wallet.blockchain.native_decimals)

    def source_name(self, wallet: WalletRef) -> str:
        return "tronscan"


class AdapterRegistry:
    """Dispatch table from blockchain to adapter."""

    def __init__(self, adapters: Optional[Dict[Blockchain, ChainAdapter]] = None):
        self._adapters: Dict[Blockchain, ChainAdapter] = dict(adapters or {})

    def register(self, chains: Iterable[Blockchain], adapter: ChainAdapter):
        for chain in chains:
            self._adapters[chain] = adapter

    def for_chain(self, blockchain) -> ChainAdapter:
        try:
            return self._adapters[blockchain]
        except (KeyError, TypeError):
            raise UnsupportedChain(blockchain) from None

    def chains(self):
        return list(self._adapters)

    async def get_balance(self, wallet: WalletRef) -> AdapterResult:
        """Dispatches to the chain's adapter; an unknown chain fails only this wallet."""
        try:
            adapter = self.for_chain(wallet.blockchain)
        except UnsupportedChain as e:
            print_error(f"{short_address(wallet.address)}: {e}")
            return AdapterResult(
                address=wallet.address,
                blockchain=wallet.blockchain,
                native_balance=0.0,
                native_symbol="UNKNOWN",
                success=False,
                error=str(e),
            )
        return await adapter.get_balance(wallet)


def build_default_adapters(http: HttpClient, settings: AggregatorSettings) -> AdapterRegistry:
    """Wires one adapter per chain family with the configured timeouts."""
    rotator = ProviderFailoverRotator(
        default_bitcoin_providers(),
        http,
        timeout=settings.provider_timeout,
        attempt_delay=settings.provider_attempt_delay,
        name="bitcoin",
    )
    evm = EvmAdapter(http, timeout=settings.request_timeout)
    registry = AdapterRegistry()
    registry.register([chain for chain in Blockchain if chain.family is ChainFamily.EVM], evm)
    registry.register([Blockchain.BITCOIN], BitcoinAdapter(http, rotator, timeout=settings.provider_timeout))
    registry.register([Blockchain.SOLANA], SolanaAdapter(http, timeout=settings.request_timeout))
    registry.register([Blockchain.TRON], TronAdapter(http, timeout=settings.request_timeout))
    return registry

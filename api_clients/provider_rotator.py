# -*- coding: utf-8 -*-
"""
Provider Failover Rotator
-------------------------
Spreads requests across interchangeable data providers (e.g. Bitcoin
explorer mirrors). The rotation cursor advances on every attempt, not only
on success, so consecutive calls start on different providers. When all
providers fail the rotator returns an unsuccessful result instead of
raising; the caller decides what the fallback value is.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from api_clients.http_client import HttpClient
from config.constants import BITCOIN_API_ENDPOINTS
from core.errors import MalformedUpstreamResponse, ProviderExhausted, ProviderUnavailable
from utils.helpers import format_units, print_warning, short_address


@dataclass(frozen=True)
class ExplorerProvider:
    """One provider: where to ask, and how to read its answer into a balance."""

    name: str
    url_template: str
    parse: Callable[[Any], float]

    def url_for(self, address: str) -> str:
        return self.url_template.format(address=address)


@dataclass
class RotationResult:
    chain: str = ""
    balance: float = 0.0
    provider: Optional[str] = None
    success: bool = False
    failures: List[ProviderUnavailable] = field(default_factory=list)

    @property
    def exhausted(self) -> Optional[ProviderExhausted]:
        return None if self.success else ProviderExhausted(self.chain, self.failures)


class ProviderFailoverRotator:
    """Tries providers in rotating order until one answers."""

    def __init__(
        self,
        providers: Sequence[ExplorerProvider],
        http: HttpClient,
        timeout: float = 5.0,
        attempt_delay: float = 0.3,
        name: str = "providers",
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not providers:
            raise ValueError("at least one provider is required")
        self.providers = list(providers)
        self.http = http
        self.timeout = timeout
        self.attempt_delay = attempt_delay
        self.name = name
        self._sleep = sleep
        self._cursor = 0
        self._lock = threading.Lock()

    @property
    def cursor(self) -> int:
        with self._lock:
            return self._cursor

    def reset(self, cursor: int = 0):
        with self._lock:
            self._cursor = cursor % len(self.providers)

    def _advance(self) -> ExplorerProvider:
        with self._lock:
            provider = self.providers[self._cursor]
            self._cursor = (self._cursor + 1) % len(self.providers)
        return provider

    def _query(self, provider: ExplorerProvider, address: str) -> float:
        data = self.http.get_json(provider.url_for(address), provider=provider.name, timeout=self.timeout)
        try:
            balance = provider.parse(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise MalformedUpstreamResponse(provider.name, f"unexpected payload: {e}") from e
        if balance < 0:
            raise MalformedUpstreamResponse(provider.name, f"negative balance {balance}")
        return balance

    def fetch(self, address: str) -> RotationResult:
        """Blocking; meant to run in a worker thread."""
        result = RotationResult(chain=self.name)
        for attempt in range(len(self.providers)):
            if attempt:
                self._sleep(self.attempt_delay)
            provider = self._advance()
            try:
                result.balance = self._query(provider, address)
            except ProviderUnavailable as e:
                print_warning(f"🔄 {provider.name} failed for {short_address(address)}: {e.reason}")
                result.failures.append(e)
                continue
            result.provider = provider.name
            result.success = True
            return result

        print_warning(
            f"All {self.name} providers failed for {short_address(address)} "
            f"({len(result.failures)} attempts)"
        )
        return result


def _utxo_chain_stats_balance(data: Dict[str, Any]) -> float:
    stats = data["chain_stats"]
    sats = int(stats.get("funded_txo_sum") or 0) - int(stats.get("spent_txo_sum") or 0)
    return format_units(sats, 8)


def _blockcypher_balance(data: Dict[str, Any]) -> float:
    return format_units(int(data["balance"]), 8)


def default_bitcoin_providers() -> List[ExplorerProvider]:
    parsers = {
        "blockstream": _utxo_chain_stats_balance,
        "mempool": _utxo_chain_stats_balance,
        "blockcypher": _blockcypher_balance,
    }
    return [
        ExplorerProvider(name=name, url_template=template, parse=parsers[name])
        for name, template in BITCOIN_API_ENDPOINTS.items()
    ]

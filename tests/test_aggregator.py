"""End-to-end aggregation against offline providers."""

import asyncio
import json
import math
import os
import tempfile
import unittest

from api_clients.provider_rotator import ExplorerProvider, ProviderFailoverRotator
from config.constants import NO_WALLETS_MESSAGE
from config.settings import AggregatorSettings
from core.aggregator import PortfolioAggregator
from core.batch_scheduler import BatchScheduler
from core.errors import InvalidWalletRequest, ProviderUnavailable
from models.wallet import Blockchain, WalletRef
from models.wallet_registry import InMemoryWalletRegistry, JsonWalletRegistry
from tests.fakes import (
    BTC_ADDRESS,
    EVM_ADDRESS,
    EVM_ADDRESS_2,
    FakeHttp,
    RecordingSleep,
    UnreachableReadStore,
    make_wallet,
)
from utils.price_service import PriceOracle
from utils.ttl_cache import TokenCache
from wallets.adapters import AdapterRegistry, BitcoinAdapter, EvmAdapter
from wallets.token_discovery import TokenDiscovery

WEI = {
    EVM_ADDRESS.lower(): 1_500_000_000_000_000_000,
    EVM_ADDRESS_2.lower(): 0,
}


class NoTokens:
    def __init__(self):
        self.calls = 0

    async def get_tokens(self, wallet):
        self.calls += 1
        return []


def _evm_rpc(url, method, params):
    return hex(WEI[params[0].lower()])


def _bitcoin_adapter(handler):
    http = FakeHttp(get_handler=handler)
    providers = [
        ExplorerProvider("first", "https://first/{address}", lambda d: d["balance"]),
        ExplorerProvider("second", "https://second/{address}", lambda d: d["balance"]),
    ]
    rotator = ProviderFailoverRotator(providers, http, attempt_delay=0, name="bitcoin", sleep=lambda s: None)
    return BitcoinAdapter(http, rotator)


def _first_times_out(url, params):
    if "first" in url:
        raise ProviderUnavailable("first", "timeout: read timed out")
    return {"balance": 0.002}


def _all_down(url, params):
    raise ProviderUnavailable(url, "HTTP 503", status_code=503)


class PortfolioAggregatorTests(unittest.TestCase):
    def _aggregator(self, bitcoin_handler=_first_times_out, registry=None, prices=None):
        adapters = AdapterRegistry()
        adapters.register([Blockchain.ETHEREUM], EvmAdapter(FakeHttp(rpc_handler=_evm_rpc), {"ethereum": "https://eth"}))
        adapters.register([Blockchain.BITCOIN], _bitcoin_adapter(bitcoin_handler))
        live = prices if prices is not None else {"ethereum": {"usd": 2280}, "bitcoin": {"usd": 43250}}
        self.tokens = NoTokens()
        self.sleep = RecordingSleep()
        return PortfolioAggregator(
            registry=registry,
            adapters=adapters,
            token_discovery=self.tokens,
            price_oracle=PriceOracle(FakeHttp(get_handler=lambda url, params: live)),
            settings=AggregatorSettings(),
            http=FakeHttp(),
            scheduler=BatchScheduler(batch_size=2, batch_delay=0.5, sleep=self.sleep),
        )

    def _wallets(self, btc_cached=0.0):
        return [
            make_wallet("eth-1", EVM_ADDRESS),
            make_wallet("eth-2", EVM_ADDRESS_2),
            make_wallet("btc-1", BTC_ADDRESS, Blockchain.BITCOIN, cached_balance=btc_cached),
        ]

    def test_mixed_chains_with_failover(self):
        snapshot = self._aggregator().get_portfolio_sync(self._wallets())
        self.assertTrue(math.isclose(snapshot.total_balance_usd, 3506.50, abs_tol=1e-6))
        by_id = {w.id: w for w in snapshot.wallets}
        self.assertEqual(by_id["eth-2"].native.balance, 0.0)
        self.assertEqual(by_id["btc-1"].native.balance, 0.002)
        self.assertTrue(by_id["btc-1"].native.success)
        self.assertEqual(snapshot.price_source, "live")
        self.assertEqual(self.tokens.calls, 3)
        # three wallets in batches of two: one delay between the waves
        self.assertEqual(self.sleep.delays, [0.5])

    def test_exhausted_bitcoin_keeps_cached_balance(self):
        wallets = self._wallets(btc_cached=0.01)
        registry = InMemoryWalletRegistry(wallets)
        aggregator = self._aggregator(bitcoin_handler=_all_down, registry=registry)
        snapshot = aggregator.get_portfolio_sync(registry.list_active_wallets())

        btc = next(w for w in snapshot.wallets if w.id == "btc-1")
        self.assertEqual(btc.native.balance, 0.01)
        self.assertEqual(btc.native.balance_source, "cached")
        self.assertEqual(registry.get("btc-1").cached_balance, 0.01)
        # the successful, changed EVM read is written back
        self.assertEqual(registry.get("eth-1").cached_balance, 1.5)
        self.assertIsNotNone(registry.get("eth-1").last_checked_at)
        self.assertEqual(aggregator.background.errors, [])

    def test_price_outage_uses_fallback_table(self):
        def down(url, params):
            raise ProviderUnavailable("coingecko", "timeout")

        aggregator = self._aggregator()
        aggregator.price_oracle = PriceOracle(FakeHttp(get_handler=down))
        snapshot = aggregator.get_portfolio_sync(self._wallets())
        self.assertEqual(snapshot.price_source, "fallback")
        self.assertTrue(math.isclose(snapshot.total_balance_usd, 3506.50, abs_tol=1e-6))

    def test_empty_list(self):
        snapshot = self._aggregator().get_portfolio_sync([])
        self.assertEqual(snapshot.total_balance_usd, 0.0)
        self.assertEqual(snapshot.wallets, [])
        self.assertEqual(snapshot.to_dict()["message"], NO_WALLETS_MESSAGE)

    def test_invalid_request_raises(self):
        aggregator = self._aggregator()
        with self.assertRaises(InvalidWalletRequest):
            asyncio.run(aggregator.get_portfolio(None))
        with self.assertRaises(InvalidWalletRequest):
            asyncio.run(aggregator.get_portfolio("0xabc"))
        with self.assertRaises(InvalidWalletRequest):
            asyncio.run(aggregator.get_portfolio([42]))

    def test_unsupported_chain_fails_only_that_item(self):
        wallets = [
            {"id": "eth-1", "address": EVM_ADDRESS, "blockchain": "ethereum"},
            {"id": "doge-1", "address": "D8xyz", "blockchain": "dogecoin"},
        ]
        snapshot = self._aggregator().get_portfolio_sync(wallets)
        self.assertEqual([w.id for w in snapshot.wallets], ["eth-1"])
        self.assertTrue(math.isclose(snapshot.total_balance_usd, 3420.0, abs_tol=1e-6))

    def test_wallet_ref_with_unknown_chain_string_fails_only_that_item(self):
        wallets = [
            make_wallet("eth-1", EVM_ADDRESS),
            WalletRef(id="doge-1", address="D8xyz", blockchain="dogecoin"),
        ]
        snapshot = self._aggregator().get_portfolio_sync(wallets)
        self.assertEqual([w.id for w in snapshot.wallets], ["eth-1"])
        self.assertTrue(math.isclose(snapshot.total_balance_usd, 3420.0, abs_tol=1e-6))

    def test_wallet_ref_with_chain_string_is_normalized(self):
        wallet = WalletRef(id="eth-1", address=EVM_ADDRESS, blockchain="Ethereum")
        snapshot = self._aggregator().get_portfolio_sync([wallet])
        self.assertIs(snapshot.wallets[0].blockchain, Blockchain.ETHEREUM)
        self.assertEqual(snapshot.by_chain, {"ethereum": 3420.0})

    def test_unreadable_token_cache_keeps_native_balance(self):
        aggregator = self._aggregator()
        aggregator.token_discovery = TokenDiscovery(
            FakeHttp(get_handler=lambda url, params: {"status": "0", "message": "No transactions found"}),
            TokenCache(UnreachableReadStore()),
            settings=AggregatorSettings(),
            background=aggregator.background,
            explorer_apis={"ethereum": "https://explorer"},
            rpc_urls={"ethereum": "https://eth"},
            known_tokens={},
        )
        snapshot = aggregator.get_portfolio_sync([make_wallet("eth-1", EVM_ADDRESS)])
        native = snapshot.wallets[0].native
        self.assertTrue(native.success)
        self.assertEqual(native.balance, 1.5)
        self.assertTrue(math.isclose(snapshot.total_balance_usd, 3420.0, abs_tol=1e-6))

    def test_crashing_token_lookup_keeps_native_balance(self):
        class BrokenTokens:
            async def get_tokens(self, wallet):
                raise RuntimeError("token index offline")

        registry = InMemoryWalletRegistry([make_wallet("eth-1", EVM_ADDRESS)])
        aggregator = self._aggregator(registry=registry)
        aggregator.token_discovery = BrokenTokens()
        snapshot = aggregator.get_portfolio_sync(registry.list_active_wallets())
        self.assertTrue(snapshot.wallets[0].native.success)
        self.assertEqual(snapshot.wallets[0].tokens, [])
        self.assertTrue(math.isclose(snapshot.total_balance_usd, 3420.0, abs_tol=1e-6))
        self.assertEqual(registry.get("eth-1").cached_balance, 1.5)

    def test_registry_portfolio_reads_active_wallets_from_json(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "wallets.json")
            with open(path, "w") as f:
                json.dump(
                    {
                        "wallets": [
                            {"id": "eth-1", "address": EVM_ADDRESS, "blockchain": "ethereum", "cached_balance": 0},
                            {"id": "eth-2", "address": EVM_ADDRESS_2, "blockchain": "ethereum", "is_active": False},
                        ]
                    },
                    f,
                )
            registry = JsonWalletRegistry(path)
            aggregator = self._aggregator(registry=registry)

            async def run():
                snapshot = await aggregator.get_registry_portfolio()
                await aggregator.background.drain()
                return snapshot

            snapshot = asyncio.run(run())
            self.assertEqual([w.id for w in snapshot.wallets], ["eth-1"])
            with open(path) as f:
                stored = {w["id"]: w for w in json.load(f)["wallets"]}
            self.assertEqual(stored["eth-1"]["cached_balance"], 1.5)
            self.assertIsNotNone(stored["eth-1"]["last_balance_check"])

    def test_registry_portfolio_without_registry(self):
        with self.assertRaises(InvalidWalletRequest):
            asyncio.run(self._aggregator().get_registry_portfolio())


if __name__ == "__main__":  # pragma: no cover
    unittest.main()

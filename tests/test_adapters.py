"""Native balance adapters and their dispatch table."""

import asyncio
import unittest

from api_clients.provider_rotator import ExplorerProvider, ProviderFailoverRotator
from config.settings import AggregatorSettings
from core.errors import ProviderUnavailable
from models.wallet import Blockchain
from tests.fakes import BTC_ADDRESS, SOL_ADDRESS, TRON_ADDRESS, FakeHttp, make_wallet
from wallets.adapters import (
    AdapterRegistry,
    BitcoinAdapter,
    EvmAdapter,
    SolanaAdapter,
    TronAdapter,
    build_default_adapters,
)


class EvmAdapterTests(unittest.TestCase):
    def test_reads_wei_with_integer_split(self):
        http = FakeHttp(rpc_handler=lambda url, method, params: hex(1_500_000_000_000_000_000))
        adapter = EvmAdapter(http, rpc_urls={"ethereum": "https://eth"})
        result = asyncio.run(adapter.get_balance(make_wallet()))
        self.assertTrue(result.success)
        self.assertEqual(result.native_balance, 1.5)
        self.assertEqual(result.native_symbol, "ETH")
        self.assertEqual(result.source, "ethereum-rpc")

    def test_symbol_follows_chain(self):
        http = FakeHttp(rpc_handler=lambda url, method, params: "0x0")
        adapter = EvmAdapter(http, rpc_urls={"polygon": "https://polygon"})
        result = asyncio.run(adapter.get_balance(make_wallet(blockchain=Blockchain.POLYGON)))
        self.assertTrue(result.success)
        self.assertEqual(result.native_balance, 0.0)
        self.assertEqual(result.native_symbol, "MATIC")

    def test_rpc_failure_is_a_result_not_an_exception(self):
        def handler(url, method, params):
            raise ProviderUnavailable("ethereum-rpc", "timeout")

        adapter = EvmAdapter(FakeHttp(rpc_handler=handler), rpc_urls={"ethereum": "https://eth"})
        result = asyncio.run(adapter.get_balance(make_wallet()))
        self.assertFalse(result.success)
        self.assertEqual(result.native_balance, 0.0)
        self.assertIn("timeout", result.error)

    def test_garbage_quantity_is_a_failure(self):
        adapter = EvmAdapter(FakeHttp(rpc_handler=lambda *a: "not-hex"), rpc_urls={"ethereum": "https://eth"})
        self.assertFalse(asyncio.run(adapter.get_balance(make_wallet())).success)


class SolanaAndTronAdapterTests(unittest.TestCase):
    def test_solana_lamports(self):
        http = FakeHttp(rpc_handler=lambda url, method, params: {"context": {}, "value": 2_500_000_000})
        adapter = SolanaAdapter(http, rpc_url="https://sol")
        wallet = make_wallet(address=SOL_ADDRESS, blockchain=Blockchain.SOLANA)
        result = asyncio.run(adapter.get_balance(wallet))
        self.assertTrue(result.success)
        self.assertEqual(result.native_balance, 2.5)
        self.assertEqual(result.native_symbol, "SOL")

    def test_tron_sun(self):
        http = FakeHttp(get_handler=lambda url, params: {"balance": 12_000_000})
        adapter = TronAdapter(http, api_url="https://tron/api")
        wallet = make_wallet(address=TRON_ADDRESS, blockchain=Blockchain.TRON)
        result = asyncio.run(adapter.get_balance(wallet))
        self.assertTrue(result.success)
        self.assertEqual(result.native_balance, 12.0)
        self.assertEqual(http.calls[0][1], "https://tron/api/account")

    def test_tron_malformed_payload(self):
        adapter = TronAdapter(FakeHttp(get_handler=lambda url, params: ["nope"]), api_url="https://tron/api")
        wallet = make_wallet(address=TRON_ADDRESS, blockchain=Blockchain.TRON)
        self.assertFalse(asyncio.run(adapter.get_balance(wallet)).success)


class BitcoinAdapterTests(unittest.TestCase):
    def _adapter(self, handler):
        http = FakeHttp(get_handler=handler)
        providers = [
            ExplorerProvider("one", "https://one/{address}", lambda d: d["balance"]),
            ExplorerProvider("two", "https://two/{address}", lambda d: d["balance"]),
        ]
        rotator = ProviderFailoverRotator(providers, http, attempt_delay=0, name="bitcoin", sleep=lambda s: None)
        return BitcoinAdapter(http, rotator)

    def test_success_through_rotator(self):
        adapter = self._adapter(lambda url, params: {"balance": 0.002})
        result = asyncio.run(adapter.get_balance(make_wallet(address=BTC_ADDRESS, blockchain=Blockchain.BITCOIN)))
        self.assertTrue(result.success)
        self.assertEqual(result.native_balance, 0.002)
        self.assertEqual(result.native_symbol, "BTC")

    def test_exhaustion_is_unsuccessful(self):
        def handler(url, params):
            raise ProviderUnavailable(url, "down")

        adapter = self._adapter(handler)
        result = asyncio.run(adapter.get_balance(make_wallet(address=BTC_ADDRESS, blockchain=Blockchain.BITCOIN)))
        self.assertFalse(result.success)
        self.assertIn("all bitcoin providers failed", result.error)


class AdapterRegistryTests(unittest.TestCase):
    def test_every_chain_has_exactly_one_adapter(self):
        registry = build_default_adapters(FakeHttp(), AggregatorSettings())
        self.assertEqual(set(registry.chains()), set(Blockchain))

    def test_unregistered_chain_fails_only_that_wallet(self):
        registry = AdapterRegistry()
        result = asyncio.run(registry.get_balance(make_wallet()))
        self.assertFalse(result.success)
        self.assertEqual(result.native_symbol, "UNKNOWN")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()

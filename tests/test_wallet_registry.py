"""Wallet registries and the wallet model."""

import json
import os
import tempfile
import unittest

from core.errors import UnsupportedChain
from models.wallet import Blockchain, ChainFamily, WalletRef
from models.wallet_registry import InMemoryWalletRegistry, JsonWalletRegistry
from tests.fakes import BTC_ADDRESS, EVM_ADDRESS, make_wallet


class WalletModelTests(unittest.TestCase):
    def test_parse_blockchain(self):
        self.assertIs(Blockchain.parse(" Polygon "), Blockchain.POLYGON)
        self.assertIs(Blockchain.parse(Blockchain.TRON), Blockchain.TRON)
        with self.assertRaises(UnsupportedChain):
            Blockchain.parse("dogecoin")
        with self.assertRaises(UnsupportedChain):
            Blockchain.parse(None)

    def test_every_chain_has_a_family_and_symbol(self):
        for chain in Blockchain:
            self.assertIsInstance(chain.family, ChainFamily)
            self.assertTrue(chain.native_symbol)
        self.assertEqual(Blockchain.BSC.native_symbol, "BNB")
        self.assertEqual(Blockchain.AVALANCHE.native_symbol, "AVAX")

    def test_from_dict_clamps_negative_cached_balance(self):
        wallet = WalletRef.from_dict({"id": 1, "address": BTC_ADDRESS, "blockchain": "bitcoin", "cached_balance": -2})
        self.assertEqual(wallet.id, "1")
        self.assertEqual(wallet.cached_balance, 0.0)
        self.assertTrue(wallet.is_active)


class RegistryTests(unittest.TestCase):
    def test_in_memory_lists_active_wallets_only(self):
        inactive = make_wallet("b", BTC_ADDRESS, Blockchain.BITCOIN)
        inactive.is_active = False
        registry = InMemoryWalletRegistry([make_wallet("a"), inactive])
        self.assertEqual([w.id for w in registry.list_active_wallets()], ["a"])

    def test_update_unknown_wallet(self):
        self.assertFalse(InMemoryWalletRegistry().update_cached_balance("missing", 1.0, "now"))

    def test_json_round_trip_and_update(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "nested", "wallets.json")
            registry = JsonWalletRegistry(path)
            self.assertEqual(registry.all_wallets(), [])
            registry.add_wallet(make_wallet("a", EVM_ADDRESS.lower()))
            self.assertTrue(registry.update_cached_balance("a", 2.5, "2026-01-01T00:00:00.000Z"))

            reloaded = JsonWalletRegistry(path).get("a")
            self.assertEqual(reloaded.cached_balance, 2.5)
            self.assertEqual(reloaded.last_checked_at, "2026-01-01T00:00:00.000Z")
            self.assertNotEqual(reloaded.address, EVM_ADDRESS.lower())
            self.assertEqual(reloaded.address.lower(), EVM_ADDRESS.lower())

    def test_json_skips_unsupported_and_corrupt_files(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "wallets.json")
            with open(path, "w") as f:
                json.dump({"wallets": [{"id": "x", "address": "D8", "blockchain": "dogecoin"}, "junk"]}, f)
            self.assertEqual(JsonWalletRegistry(path).all_wallets(), [])

            with open(path, "w") as f:
                f.write("{not json")
            self.assertEqual(JsonWalletRegistry(path).all_wallets(), [])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()

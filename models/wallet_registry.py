# -*- coding: utf-8 -*-
"""
Wallet Registry Model
---------------------
Stores the wallets the engine aggregates and receives best-effort
``cached_balance`` write-backs. The JSON-file registry keeps everything in
``data/wallets.json``; the in-memory registry is for embedding and tests.
"""

import json
import os
import threading
from typing import Dict, List, Optional

from web3 import Web3

from config.constants import WALLET_STORAGE_FILE
from core.errors import UnsupportedChain
from models.wallet import ChainFamily, WalletRef
from utils.helpers import non_negative, print_error, print_info, print_warning, short_address


def _normalize_address(wallet: WalletRef) -> WalletRef:
    if wallet.blockchain.family is ChainFamily.EVM:
        try:
            wallet.address = Web3.to_checksum_address(wallet.address)
        except ValueError:
            pass
    return wallet


class WalletRegistry:
    """Common behaviour; subclasses decide where the wallets live."""

    def __init__(self):
        self._wallets: Dict[str, WalletRef] = {}
        self._lock = threading.Lock()

    def _persist(self):
        """Hook for durable registries."""

    def add_wallet(self, wallet: WalletRef) -> WalletRef:
        with self._lock:
            self._wallets[wallet.id] = _normalize_address(wallet)
            self._persist()
        return wallet

    def get(self, wallet_id: str) -> Optional[WalletRef]:
        with self._lock:
            return self._wallets.get(wallet_id)

    def all_wallets(self) -> List[WalletRef]:
        with self._lock:
            return list(self._wallets.values())

    def list_active_wallets(self) -> List[WalletRef]:
        return [w for w in self.all_wallets() if w.is_active]

    def update_cached_balance(self, wallet_id: str, balance: float, checked_at: str) -> bool:
        """Stores a freshly observed native balance; returns False for unknown ids."""
        with self._lock:
            wallet = self._wallets.get(wallet_id)
            if wallet is None:
                print_warning(f"Cannot update cached balance: unknown wallet id {wallet_id}")
                return False
            wallet.cached_balance = non_negative(balance)
            wallet.last_checked_at = checked_at
            self._persist()
        return True


class InMemoryWalletRegistry(WalletRegistry):
    def __init__(self, wallets: Optional[List[WalletRef]] = None):
        super().__init__()
        for wallet in wallets or []:
            self._wallets[wallet.id] = _normalize_address(wallet)


class JsonWalletRegistry(WalletRegistry):
    """Registry persisted as ``{"wallets": [...]}`` in a JSON file."""

    def __init__(self, storage_file: str = WALLET_STORAGE_FILE):
        super().__init__()
        self.storage_file = storage_file
        self._load_data()

    def _load_data(self):
        """Loads wallets from the storage file; unreadable files start empty."""
        if not os.path.exists(self.storage_file):
            print_warning(f"{self.storage_file} not found. Initializing with empty data.")
            return
        try:
            with open(self.storage_file, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError:
            print_error(f"Error decoding {self.storage_file}. Initializing with empty data.")
            return
        except OSError as e:
            print_error(f"Error loading data from {self.storage_file}: {e}. Initializing with empty data.")
            return

        for raw in data.get("wallets", []) if isinstance(data, dict) else []:
            if not isinstance(raw, dict):
                continue
            try:
                wallet = WalletRef.from_dict(raw)
            except UnsupportedChain as e:
                print_warning(f"Skipping stored wallet {short_address(str(raw.get('address', '')))}: {e}")
                continue
            self._wallets[wallet.id] = _normalize_address(wallet)
        print_info(f"Loaded {len(self._wallets)} wallets from {self.storage_file}")

    def _persist(self):
        directory = os.path.dirname(self.storage_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        payload = {"wallets": [wallet.to_dict() for wallet in self._wallets.values()]}
        tmp_file = f"{self.storage_file}.tmp"
        with open(tmp_file, "w") as f:
            json.dump(payload, f, indent=4)
        os.replace(tmp_file, self.storage_file)

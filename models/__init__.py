# -*- coding: utf-8 -*-
"""
Models Package
--------------
Data types for wallets, balances and snapshots, plus the wallet registries.
"""

from .wallet import (
    AdapterResult,
    Blockchain,
    ChainFamily,
    PortfolioSnapshot,
    PriceQuote,
    PriceSource,
    TokenBalance,
    WalletRef,
)
from .wallet_registry import InMemoryWalletRegistry, JsonWalletRegistry, WalletRegistry

__all__ = [
    "AdapterResult",
    "Blockchain",
    "ChainFamily",
    "InMemoryWalletRegistry",
    "JsonWalletRegistry",
    "PortfolioSnapshot",
    "PriceQuote",
    "PriceSource",
    "TokenBalance",
    "WalletRef",
    "WalletRegistry",
]

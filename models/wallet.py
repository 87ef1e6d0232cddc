# -*- coding: utf-8 -*-
"""
Wallet and Balance Models
-------------------------
Data types exchanged between the registry, the chain adapters, the price
oracle and the portfolio builder.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from config.constants import NATIVE_TOKENS
from core.errors import UnsupportedChain
from utils.helpers import non_negative


class ChainFamily(Enum):
    EVM = "evm"
    BITCOIN = "bitcoin"
    SOLANA = "solana"
    TRON = "tron"


class Blockchain(Enum):
    """Supported blockchains; every member maps to exactly one adapter."""

    ETHEREUM = "ethereum"
    POLYGON = "polygon"
    BSC = "bsc"
    AVALANCHE = "avalanche"
    ARBITRUM = "arbitrum"
    OPTIMISM = "optimism"
    BITCOIN = "bitcoin"
    SOLANA = "solana"
    TRON = "tron"

    @property
    def family(self) -> ChainFamily:
        if self is Blockchain.BITCOIN:
            return ChainFamily.BITCOIN
        if self is Blockchain.SOLANA:
            return ChainFamily.SOLANA
        if self is Blockchain.TRON:
            return ChainFamily.TRON
        return ChainFamily.EVM

    @property
    def native_symbol(self) -> str:
        return NATIVE_TOKENS[self.value]["symbol"]

    @property
    def native_decimals(self) -> int:
        return NATIVE_TOKENS[self.value]["decimals"]

    @classmethod
    def parse(cls, value: Any) -> "Blockchain":
        """Accepts an enum member or its (case-insensitive) string value."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise UnsupportedChain(value)


@dataclass
class WalletRef:
    """A wallet as supplied by the registry."""

    id: str
    address: str
    blockchain: Blockchain
    label: str = ""
    cached_balance: float = 0.0
    last_checked_at: Optional[str] = None
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WalletRef":
        """Builds a WalletRef from registry storage; raises UnsupportedChain for unknown chains."""
        return cls(
            id=str(data.get("id", "")),
            address=str(data.get("address", "")).strip(),
            blockchain=Blockchain.parse(data.get("blockchain")),
            label=data.get("label") or "",
            cached_balance=non_negative(data.get("cached_balance", 0.0)),
            last_checked_at=data.get("last_balance_check") or data.get("last_checked_at"),
            is_active=bool(data.get("is_active", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "address": self.address,
            "blockchain": self.blockchain.value,
            "label": self.label,
            "cached_balance": self.cached_balance,
            "last_balance_check": self.last_checked_at,
            "is_active": self.is_active,
        }


@dataclass
class AdapterResult:
    """Native balance read for one wallet; ``success`` separates a real zero from a failed read."""

    address: str
    blockchain: Blockchain
    native_balance: float
    native_symbol: str
    success: bool
    source: str = ""
    error: Optional[str] = None

    @classmethod
    def failure(cls, wallet: WalletRef, error: str, source: str = "") -> "AdapterResult":
        return cls(
            address=wallet.address,
            blockchain=wallet.blockchain,
            native_balance=0.0,
            native_symbol=wallet.blockchain.native_symbol,
            success=False,
            source=source,
            error=error,
        )


@dataclass
class TokenBalance:
    """A token holding discovered for an address; only balances > 0 are kept."""

    contract: str
    symbol: str
    name: str
    decimals: int
    balance: float
    blockchain: Blockchain
    price: float = 0.0
    usd_value: float = 0.0

    def priced(self, price: float) -> "TokenBalance":
        price = non_negative(price)
        return TokenBalance(
            contract=self.contract,
            symbol=self.symbol,
            name=self.name,
            decimals=self.decimals,
            balance=self.balance,
            blockchain=self.blockchain,
            price=price,
            usd_value=self.balance * price,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contract": self.contract,
            "symbol": self.symbol,
            "name": self.name,
            "decimals": self.decimals,
            "balance": self.balance,
            "price": self.price,
            "usd_value": self.usd_value,
        }


class PriceSource(Enum):
    LIVE = "live"
    FALLBACK = "fallback"
    MIXED = "mixed"


@dataclass(frozen=True)
class PriceQuote:
    symbol: str
    usd: float
    source: PriceSource


@dataclass
class WalletFetch:
    """Everything fetched for one wallet before prices are joined in."""

    wallet: WalletRef
    native: AdapterResult
    tokens: List[TokenBalance] = field(default_factory=list)


@dataclass
class NativeEntry:
    symbol: str
    balance: float
    price: float
    usd_value: float
    success: bool
    balance_source: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "balance": self.balance,
            "price": self.price,
            "usd_value": self.usd_value,
            "success": self.success,
            "balance_source": self.balance_source,
        }


@dataclass
class WalletPortfolio:
    id: str
    address: str
    blockchain: Blockchain
    native: NativeEntry
    tokens: List[TokenBalance]
    total_usd: float
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "address": self.address,
            "blockchain": self.blockchain.value,
            "native": self.native.to_dict(),
            "tokens": [token.to_dict() for token in self.tokens],
            "total_usd": self.total_usd,
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class PortfolioSnapshot:
    """Consolidated valuation; built fresh per request and never persisted here."""

    wallets: List[WalletPortfolio]
    total_balance_usd: float
    checked_at: str
    by_chain: Dict[str, float] = field(default_factory=dict)
    prices: Dict[str, float] = field(default_factory=dict)
    missing_symbols: List[str] = field(default_factory=list)
    price_source: str = PriceSource.FALLBACK.value
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "total_balance_usd": self.total_balance_usd,
            "wallets": [wallet.to_dict() for wallet in self.wallets],
            "checked_at": self.checked_at,
            "by_chain": dict(self.by_chain),
            "prices": dict(self.prices),
            "missing_symbols": list(self.missing_symbols),
            "price_source": self.price_source,
        }
        if self.message:
            data["message"] = self.message
        return data

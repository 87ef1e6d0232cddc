# -*- coding: utf-8 -*-
"""
Token Discovery & Balance Module
--------------------------------
Finds the tokens an address holds and reads their balances.

EVM flow: recent transfer history from the chain explorer, deduplicated by
contract, topped up with a small allow-list of well-known contracts, capped
at ``max_token_candidates`` (discovery order wins), then ``balanceOf`` reads
in small throttled sub-batches. Solana and Tron holdings come straight from
their token-account endpoints. Only balances above zero are returned.

Results are memoized per (address, blockchain) in the TTL cache; a cache hit
skips every network call.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from web3 import Web3

from api_clients.http_client import HttpClient
from config.constants import (
    ERC20_BALANCE_OF_SELECTOR,
    EVM_EXPLORER_APIS,
    EVM_RPC_ENDPOINTS,
    KNOWN_EVM_TOKENS,
    SOLANA_RPC_URL,
    SOLANA_TOKEN_PROGRAM_ID,
    SOLANA_TOKENS,
    TRON_TOKEN_PAGE_LIMIT,
    TRONSCAN_API_URL,
)
from config.settings import AggregatorSettings
from core.background import BackgroundTasks
from core.errors import MalformedUpstreamResponse, ProviderUnavailable
from models.wallet import Blockchain, ChainFamily, TokenBalance, WalletRef
from utils.helpers import (
    format_units,
    hex_to_int,
    print_info,
    print_warning,
    safe_float_convert,
    short_address,
)
from utils.ttl_cache import TokenCache

TokenCandidate = Dict[str, Any]

_EXPLORER_EMPTY_MESSAGES = ("no transactions found", "no records found")


def encode_balance_of(holder: str) -> str:
    """ABI-encodes ``balanceOf(holder)`` call data."""
    try:
        checksum = Web3.to_checksum_address(holder)
    except ValueError:
        checksum = holder
    return ERC20_BALANCE_OF_SELECTOR + checksum[2:].lower().rjust(64, "0")


def dedupe_candidates(transfers: List[Dict[str, Any]]) -> List[TokenCandidate]:
    """Unique token contracts in first-seen order."""
    seen = set()
    candidates: List[TokenCandidate] = []
    for tx in transfers:
        contract = (tx.get("contractAddress") or "").strip()
        if not contract or contract.lower() in seen:
            continue
        try:
            decimals = int(tx.get("tokenDecimal") or 0)
        except (TypeError, ValueError):
            continue
        seen.add(contract.lower())
        candidates.append(
            {
                "contract": contract,
                "symbol": tx.get("tokenSymbol") or "UNKNOWN",
                "name": tx.get("tokenName") or "",
                "decimals": decimals,
            }
        )
    return candidates


def inject_known_tokens(candidates: List[TokenCandidate], known: List[TokenCandidate]) -> List[TokenCandidate]:
    """Appends allow-listed contracts that transfer history did not surface."""
    merged = list(candidates)
    present = {c["contract"].lower() for c in candidates}
    for token in known:
        if token["contract"].lower() not in present:
            merged.append(dict(token))
            present.add(token["contract"].lower())
    return merged


class TokenDiscovery:
    """Discovers and balances tokens for one wallet at a time."""

    def __init__(
        self,
        http: HttpClient,
        cache: TokenCache,
        settings: Optional[AggregatorSettings] = None,
        background: Optional[BackgroundTasks] = None,
        explorer_apis: Optional[Dict[str, str]] = None,
        rpc_urls: Optional[Dict[str, str]] = None,
        known_tokens: Optional[Dict[str, List[TokenCandidate]]] = None,
        solana_rpc_url: str = SOLANA_RPC_URL,
        tronscan_url: str = TRONSCAN_API_URL,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.http = http
        self.cache = cache
        self.settings = settings or AggregatorSettings()
        self.background = background or BackgroundTasks()
        self.explorer_apis = dict(explorer_apis or EVM_EXPLORER_APIS)
        self.rpc_urls = dict(rpc_urls or EVM_RPC_ENDPOINTS)
        self.known_tokens = known_tokens if known_tokens is not None else KNOWN_EVM_TOKENS
        self.solana_rpc_url = solana_rpc_url
        self.tronscan_url = tronscan_url.rstrip("/")
        self._sleep = sleep

    async def get_tokens(self, wallet: WalletRef) -> List[TokenBalance]:
        """Cached token balances for a wallet; never raises."""
        try:
            cached = self.cache.get(wallet.address, wallet.blockchain)
        except Exception as e:
            print_warning(f"Token cache read failed for {short_address(wallet.address)}, treating as miss: {e}")
            cached = None
        if cached is not None:
            return list(cached)

        try:
            tokens, complete = await self._discover(wallet)
        except Exception as e:
            print_warning(f"Token discovery failed for {short_address(wallet.address)}: {e}")
            return []

        if complete:
            self._schedule_cache_write(wallet, tokens)
        return tokens

    def _schedule_cache_write(self, wallet: WalletRef, tokens: List[TokenBalance]):
        snapshot = list(tokens)
        self.background.spawn(
            lambda: self.cache.set(wallet.address, wallet.blockchain, snapshot),
            f"token cache write {short_address(wallet.address)}/{wallet.blockchain.value}",
        )

    async def _discover(self, wallet: WalletRef) -> Tuple[List[TokenBalance], bool]:
        family = wallet.blockchain.family
        if family is ChainFamily.EVM:
            return await self._discover_evm(wallet)
        if family is ChainFamily.SOLANA:
            return await asyncio.to_thread(self._discover_solana, wallet), True
        if family is ChainFamily.TRON:
            return await asyncio.to_thread(self._discover_tron, wallet), True
        return [], True

    # --- EVM ---

    def _fetch_transfer_history(self, wallet: WalletRef) -> List[Dict[str, Any]]:
        chain = wallet.blockchain.value
        api_base = self.explorer_apis.get(chain)
        if not api_base:
            raise ProviderUnavailable(f"{chain}-explorer", "no explorer API configured")
        params = {
            "module": "account",
            "action": "tokentx",
            "address": wallet.address,
            "page": 1,
            "offset": self.settings.transfer_history_window,
            "startblock": 0,
            "endblock": 999999999,
            "sort": "desc",
        }
        if self.settings.explorer_api_key:
            params["apikey"] = self.settings.explorer_api_key
        data = self.http.get_json(
            api_base, params=params, provider=f"{chain}-explorer", timeout=self.settings.request_timeout
        )
        if not isinstance(data, dict):
            raise MalformedUpstreamResponse(f"{chain}-explorer", "response is not an object")
        result = data.get("result")
        if str(data.get("status")) == "1" and isinstance(result, list):
            return result[: self.settings.transfer_history_window]
        message = str(data.get("message") or result or "").lower()
        if any(text in message for text in _EXPLORER_EMPTY_MESSAGES):
            return []
        raise ProviderUnavailable(f"{chain}-explorer", f"explorer error: {data.get('message') or result}")

    def collect_evm_candidates(self, wallet: WalletRef, transfers: List[Dict[str, Any]]) -> List[TokenCandidate]:
        """Dedupe, inject the allow-list, then apply the candidate cap."""
        candidates = dedupe_candidates(transfers)
        candidates = inject_known_tokens(candidates, self.known_tokens.get(wallet.blockchain.value, []))
        cap = self.settings.max_token_candidates
        if len(candidates) > cap:
            print_info(
                f"Checking {cap} of {len(candidates)} token contracts for {short_address(wallet.address)}"
            )
        return candidates[:cap]

    def _read_token_balance(self, wallet: WalletRef, candidate: TokenCandidate) -> Optional[TokenBalance]:
        chain = wallet.blockchain.value
        rpc_url = self.rpc_urls.get(chain)
        if not rpc_url:
            return None
        try:
            contract = Web3.to_checksum_address(candidate["contract"])
        except ValueError:
            print_warning(f"Skipping invalid token contract {candidate['contract']}")
            return None
        try:
            result = self.http.json_rpc(
                rpc_url,
                "eth_call",
                [{"to": contract, "data": encode_balance_of(wallet.address)}, "latest"],
                provider=f"{chain}-rpc",
                timeout=self.settings.request_timeout,
            )
            raw = hex_to_int(result)
        except (ProviderUnavailable, ValueError) as e:
            print_warning(f"Balance read failed for {candidate['symbol']} on {chain}: {e}")
            return None
        balance = format_units(raw, candidate["decimals"])
        if balance <= 0:
            return None
        return TokenBalance(
            contract=candidate["contract"],
            symbol=candidate["symbol"],
            name=candidate["name"],
            decimals=candidate["decimals"],
            balance=balance,
            blockchain=wallet.blockchain,
        )

    async def _discover_evm(self, wallet: WalletRef) -> Tuple[List[TokenBalance], bool]:
        complete = True
        try:
            transfers = await asyncio.to_thread(self._fetch_transfer_history, wallet)
        except ProviderUnavailable as e:
            print_warning(f"Transfer history unavailable for {short_address(wallet.address)}: {e}")
            transfers = []
            complete = False

        candidates = self.collect_evm_candidates(wallet, transfers)
        tokens: List[TokenBalance] = []
        size = self.settings.token_batch_size
        for start in range(0, len(candidates), size):
            if start:
                await self._sleep(self.settings.token_batch_delay)
            batch = candidates[start : start + size]
            results = await asyncio.gather(
                *[asyncio.to_thread(self._read_token_balance, wallet, c) for c in batch],
                return_exceptions=True,
            )
            for candidate, result in zip(batch, results):
                if isinstance(result, BaseException):
                    print_warning(f"Balance read crashed for {candidate['symbol']}: {result}")
                elif result is not None:
                    tokens.append(result)
        return tokens, complete

    # --- Solana ---

    def _discover_solana(self, wallet: WalletRef) -> List[TokenBalance]:
        result = self.http.json_rpc(
            self.solana_rpc_url,
            "getTokenAccountsByOwner",
            [wallet.address, {"programId": SOLANA_TOKEN_PROGRAM_ID}, {"encoding": "jsonParsed"}],
            provider="solana-rpc",
            timeout=self.settings.request_timeout,
        )
        mint_symbols = {mint: symbol for symbol, mint in SOLANA_TOKENS.items()}
        tokens: List[TokenBalance] = []
        accounts = result.get("value", []) if isinstance(result, dict) else []
        for account in accounts:
            info = account.get("account", {}).get("data", {}).get("parsed", {}).get("info", {})
            amount = info.get("tokenAmount", {})
            mint = info.get("mint")
            balance = safe_float_convert(amount.get("uiAmountString", amount.get("uiAmount")))
            if not mint or balance <= 0:
                continue
            symbol = mint_symbols.get(mint, "SPL")
            tokens.append(
                TokenBalance(
                    contract=mint,
                    symbol=symbol,
                    name="SPL Token" if symbol == "SPL" else symbol,
                    decimals=int(amount.get("decimals") or 0),
                    balance=balance,
                    blockchain=Blockchain.SOLANA,
                )
            )
        return tokens

    # --- Tron ---

    def _discover_tron(self, wallet: WalletRef) -> List[TokenBalance]:
        data = self.http.get_json(
            f"{self.tronscan_url}/account/tokens",
            params={"address": wallet.address, "start": 0, "limit": TRON_TOKEN_PAGE_LIMIT},
            provider="tronscan",
            timeout=self.settings.request_timeout,
        )
        tokens: List[TokenBalance] = []
        for token in (data or {}).get("data") or []:
            token_id = str(token.get("tokenId") or "")
            # "_" is TRX itself, already counted as the native balance
            if not token_id or token_id == "_":
                continue
            try:
                decimals = int(token.get("tokenDecimal") or 6)
                balance = format_units(int(str(token.get("balance") or "0")), decimals)
            except (TypeError, ValueError):
                continue
            if balance <= 0:
                continue
            tokens.append(
                TokenBalance(
                    contract=token_id,
                    symbol=token.get("tokenAbbr") or "UNKNOWN",
                    name=token.get("tokenName") or "",
                    decimals=decimals,
                    balance=balance,
                    blockchain=Blockchain.TRON,
                )
            )
        return tokens

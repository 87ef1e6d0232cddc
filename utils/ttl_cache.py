# -*- coding: utf-8 -*-
"""
TTL Cache Layer
---------------
Memoizes token-discovery results per (address, blockchain). Entries expire
after a fixed TTL regardless of what the request that produced them did.
Native balances are not cached here.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional, Protocol, Tuple

from cachetools import TTLCache


class CacheStore(Protocol):
    """Key-value store with a store-wide TTL."""

    def get(self, key: Hashable) -> Optional[Any]:
        ...

    def set(self, key: Hashable, value: Any) -> None:
        ...


class TTLCacheStore:
    """In-process store backed by cachetools; the timer is injectable for tests."""

    def __init__(self, ttl: float = 300.0, maxsize: int = 1024, timer: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._cache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            return self._cache.get(key)

    def set(self, key: Hashable, value: Any) -> None:
        # last write wins; entries are TTL-bound so ordering does not matter
        with self._lock:
            self._cache[key] = value

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    write_failures: int = 0


def token_cache_key(address: str, blockchain) -> Tuple[str, str]:
    chain = getattr(blockchain, "value", blockchain)
    return (str(address).strip().lower(), str(chain))


class TokenCache:
    """Typed front for the token-discovery entries of a CacheStore."""

    def __init__(self, store: Optional[CacheStore] = None, ttl: float = 300.0):
        self.store = store if store is not None else TTLCacheStore(ttl=ttl)
        self.stats = CacheStats()

    def get(self, address: str, blockchain) -> Optional[Any]:
        value = self.store.get(token_cache_key(address, blockchain))
        if value is None:
            self.stats.misses += 1
        else:
            self.stats.hits += 1
        return value

    def set(self, address: str, blockchain, value: Any) -> None:
        try:
            self.store.set(token_cache_key(address, blockchain), value)
        except Exception:
            self.stats.write_failures += 1
            raise

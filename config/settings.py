# -*- coding: utf-8 -*-
"""
Runtime settings for the aggregation engine.

Defaults mirror the throttling policy the engine was tuned with; every
field can be overridden through a ``PORTFOLIO_*`` environment variable so
request handlers embedding the engine do not need code changes.
"""

import math
import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

_POSITIVE_FIELDS = ("batch_size", "token_batch_size", "token_cache_maxsize")


@dataclass(frozen=True)
class AggregatorSettings:
    """Tunables for batching, timeouts and caching."""

    # Wallet-level waves
    batch_size: int = 50
    batch_delay: float = 0.5
    # Token balance sub-batches
    token_batch_size: int = 5
    token_batch_delay: float = 0.2
    max_token_candidates: int = 25
    transfer_history_window: int = 500
    # Network
    provider_timeout: float = 5.0
    provider_attempt_delay: float = 0.3
    request_timeout: float = 5.0
    # Cache
    token_cache_ttl: float = 300.0
    token_cache_maxsize: int = 1024
    explorer_api_key: Optional[str] = None

    def __post_init__(self):
        if self.batch_size < 1 or self.token_batch_size < 1:
            raise ValueError("batch sizes must be positive")
        if self.max_token_candidates < 0:
            raise ValueError("max_token_candidates must not be negative")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AggregatorSettings":
        """Build settings from ``PORTFOLIO_<FIELD>`` variables, ignoring malformed or out-of-range values."""
        environ = os.environ if environ is None else environ
        overrides = {}
        for field in fields(cls):
            if field.name == "explorer_api_key":
                continue
            raw = environ.get(f"PORTFOLIO_{field.name.upper()}")
            if raw is None or raw == "":
                continue
            caster = int if field.type in (int, "int") else float
            try:
                value = caster(raw)
            except ValueError:
                continue
            minimum = 1 if field.name in _POSITIVE_FIELDS else 0
            if not math.isfinite(value) or value < minimum:
                continue
            overrides[field.name] = value
        api_key = environ.get("ETHERSCAN_API_KEY")
        if api_key:
            overrides["explorer_api_key"] = api_key
        return cls(**overrides)

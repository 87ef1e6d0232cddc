# -*- coding: utf-8 -*-
"""
Utility functions for the Multi-Chain Balance Aggregator
"""
import math
from datetime import datetime, timezone
from typing import Any, Optional

from utils.display_theme import theme


def print_success(text: str):
    """Prints a success message."""
    print(f"{theme.SUCCESS}{theme.CHECKMARK} {text}{theme.RESET}")


def print_error(text: str, is_network_issue: bool = False):
    """Prints an error message."""
    message = f"{theme.ERROR}{theme.CROSS} Error: {text}{theme.RESET}"
    if is_network_issue:
        message += f"\n{theme.SUBTLE}   Network troubleshooting: Check connection and DNS settings{theme.RESET}"
    print(message)


def print_warning(text: str):
    """Prints a warning message."""
    print(f"{theme.WARNING}{theme.WARNING_SYMBOL} Warning: {text}{theme.RESET}")


def print_info(text: str):
    """Prints an informational message."""
    print(f"{theme.INFO}{theme.INFO_SYMBOL} {text}{theme.RESET}")


def short_address(address: str, prefix: int = 6) -> str:
    """Shortens an address for log lines."""
    if not address:
        return "<empty>"
    return f"{address[:prefix]}..." if len(address) > prefix else address


def get_current_timestamp_iso() -> str:
    """Returns the current UTC time in ISO format."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def safe_float_convert(value: Any, default: float = 0.0) -> float:
    """Safely converts a value to a finite float, returning default if conversion fails."""
    try:
        result = float(value)
    except (ValueError, TypeError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def non_negative(value: Any) -> float:
    """Clamps a numeric value to a finite, non-negative float."""
    return max(safe_float_convert(value), 0.0)


def format_units(raw_value: int, decimals: int) -> float:
    """
    Converts an integer base-unit amount (wei, lamports, sun, satoshi) to a float.

    The integer and fractional parts are split with integer arithmetic first so
    large wei values do not lose precision before the final float conversion.
    """
    if decimals <= 0:
        return float(raw_value)
    negative = raw_value < 0
    whole, frac = divmod(abs(int(raw_value)), 10**decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0")
    text = f"{whole}.{frac_str}" if frac_str else str(whole)
    value = float(text)
    return -value if negative else value


def hex_to_int(value: Optional[str]) -> int:
    """Parses a 0x-prefixed hex quantity; empty results ("0x") read as zero."""
    if value is None:
        raise ValueError("missing hex quantity")
    if not isinstance(value, str) or not value.lower().startswith("0x"):
        raise ValueError(f"not a hex quantity: {value!r}")
    digits = value[2:]
    return int(digits, 16) if digits else 0


def format_currency(value: Optional[float], max_precision: bool = False) -> str:
    """Formats a float as USD currency, handling None."""
    if value is None:
        return "N/A"
    if max_precision:
        return f"${value:,.8f}"
    return f"${value:,.2f}"

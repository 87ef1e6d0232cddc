# -*- coding: utf-8 -*-
"""
Console Theme for Aggregator Status Output
"""

import os

from colorama import Fore, Style


class SimpleTheme:
    """Basic theme with consistent colors; plain text when color is disabled."""

    def __init__(self, use_color: bool = True):
        self.CHECKMARK = "✓"
        self.CROSS = "✗"
        self.WARNING_SYMBOL = "⚠"
        self.INFO_SYMBOL = "ℹ"
        self.apply(use_color)

    def apply(self, use_color: bool):
        """Switch between colored and plain output."""
        self.use_color = use_color
        if use_color:
            self.SUCCESS = Fore.GREEN + Style.BRIGHT
            self.ERROR = Fore.RED + Style.BRIGHT
            self.WARNING = Fore.YELLOW + Style.BRIGHT
            self.INFO = Fore.BLUE + Style.BRIGHT
            self.SUBTLE = Style.DIM
            self.RESET = Style.RESET_ALL
        else:
            self.SUCCESS = self.ERROR = self.WARNING = self.INFO = ""
            self.SUBTLE = self.RESET = ""


def _color_enabled() -> bool:
    return not (os.environ.get("NO_COLOR") or os.environ.get("PORTFOLIO_NO_COLOR"))


# Global theme instance
theme = SimpleTheme(use_color=_color_enabled())

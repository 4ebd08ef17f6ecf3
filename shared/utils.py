"""
utils.py – small generic helpers reused in multiple services
"""

from __future__ import annotations

import secrets
import time

from .constants import ASSET_SYMBOLS


def now_ms() -> int:
    """Wall clock in epoch milliseconds."""
    return int(time.time() * 1000)


def new_trade_id() -> str:
    """9-char opaque id, unique enough for one session's trade log."""
    return secrets.token_hex(5)[:9]


def asset_symbol(asset: str) -> str:
    """'Volatility 100' → 'R_100'; unknown labels are taken as raw symbols."""
    return ASSET_SYMBOLS.get(asset, asset)

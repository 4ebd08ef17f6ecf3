"""
rules.py  – indicator helpers for the strategy engine
=====================================================
Pure-function utilities only; no state, no side-effects.  Both
indicators are recomputed from the whole window on every tick, the
window is small enough that there is nothing to gain from streaming
accumulators.

Warm-up sentinels: RSI → 50, SMA → 0.  Neither is a tradable value.
"""

from __future__ import annotations
from typing import Sequence

import numpy as np

from shared.config    import EngineConfig
from shared.constants import RSI_NEUTRAL, SMA_NOT_READY
from shared.models    import IndicatorSnapshot


def compute_rsi(prices: Sequence[float], period: int = 14) -> float:
    """
    Plain (non-smoothed) RSI over the last *period* deltas.
    Flat deltas count towards gains, which only matters for saturation.
    """
    if len(prices) < period + 1:
        return RSI_NEUTRAL
    deltas = np.diff(np.asarray(prices[-(period + 1):], dtype=np.float64))
    gains = deltas[deltas >= 0].sum()
    losses = -deltas[deltas < 0].sum()
    if losses == 0:
        return 100.0
    return float(100.0 - 100.0 / (1.0 + gains / losses))


def compute_sma(prices: Sequence[float], period: int) -> float:
    if period < 1 or len(prices) < period:
        return SMA_NOT_READY
    return float(np.mean(np.asarray(prices[-period:], dtype=np.float64)))


def snapshot(prices: Sequence[float], cfg: EngineConfig) -> IndicatorSnapshot:
    return IndicatorSnapshot(
        rsi=compute_rsi(prices, cfg.rsi_period),
        sma_fast=compute_sma(prices, cfg.sma_fast),
        sma_slow=compute_sma(prices, cfg.sma_slow),
    )

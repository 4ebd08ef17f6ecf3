"""
decision.py – strategy engine
=============================
One exhaustive evaluation over the closed set of strategies.  Adding a
strategy means adding a `StrategyType` member *and* a case here; anything
that slips through evaluates to `Signal.NONE`.
"""

from __future__ import annotations
from typing import Optional, Sequence

from shared.config  import EngineConfig
from shared.logging import get_logger
from shared.models  import Advisory, IndicatorSnapshot, Signal, StrategyType

log = get_logger("decision_service.decision")


def rsi_reversal(ind: IndicatorSnapshot, cfg: EngineConfig) -> Signal:
    if ind.rsi > cfg.rsi_overbought:
        return Signal.PUT                       # overbought → fade
    if ind.rsi < cfg.rsi_oversold:
        return Signal.CALL                      # oversold → bounce
    return Signal.NONE


def sma_crossover(ind: IndicatorSnapshot, prices: Sequence[float]) -> Signal:
    """
    Crossover *heuristic*: compares the fast/slow relation now with where
    the previous price sat relative to the slow SMA.  There is no
    previous-bar SMA, so it fires whenever both agree, not only on the
    exact bar of a textbook cross.
    """
    if not ind.sma_fast or not ind.sma_slow or len(prices) < 2:
        return Signal.NONE
    prev = prices[-2]
    if ind.sma_fast > ind.sma_slow and prev < ind.sma_slow:
        return Signal.CALL
    if ind.sma_fast < ind.sma_slow and prev > ind.sma_slow:
        return Signal.PUT
    return Signal.NONE


def ai_advisory(advisory: Optional[Advisory], cfg: EngineConfig,
                last_acted_seq: Optional[int] = None) -> Signal:
    if advisory is None or advisory.seq == last_acted_seq:
        return Signal.NONE
    if advisory.confidence <= cfg.ai_confidence_threshold:
        return Signal.NONE
    if advisory.recommendation == "CALL":
        return Signal.CALL
    if advisory.recommendation == "PUT":
        return Signal.PUT
    return Signal.NONE


def evaluate(
    strategy: StrategyType,
    indicators: IndicatorSnapshot,
    prices: Sequence[float],
    has_active_trade: bool,
    cfg: EngineConfig,
    advisory: Optional[Advisory] = None,
    last_acted_seq: Optional[int] = None,
) -> Signal:
    if has_active_trade:
        return Signal.NONE
    if strategy is StrategyType.RSI_REVERSAL:
        return rsi_reversal(indicators, cfg)
    if strategy is StrategyType.SMA_CROSSOVER:
        return sma_crossover(indicators, prices)
    if strategy is StrategyType.AI_GEMINI:
        return ai_advisory(advisory, cfg, last_acted_seq)
    log.warning("unknown strategy %r – ignoring", strategy)
    return Signal.NONE

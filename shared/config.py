"""
config.py – centralised env-var handling + engine settings
=========================================================

• Loads the first `.env` file it finds (cwd or /app) exactly **once**.
• `env(key, default=None, cast=None)` helper for one-off lookups
  with automatic type-casting (int, float, bool).
• `BotSettings`  – the live, user-editable knobs (stake, strategy …),
  read on every decision point.
• `EngineConfig` – per-deployment constants.  Several of them disagree
  between the two known deployments (hold 3000 vs 5000 ms, RSI 70/30 vs
  75/25, AI confidence 70 vs 75); defaults are the most recent values.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from .models import StrategyType

# ───── locate & load .env (first one wins) ────────────────────────────
for candidate in (Path.cwd() / ".env", Path("/app/.env")):
    if candidate.is_file():
        load_dotenv(dotenv_path=candidate, override=False)
        break


def env(key: str, default: Any = None, cast: Optional[type] = None) -> Any:
    """`os.getenv` with optional cast; bad values fall back to *default*."""
    val = os.getenv(key, default)
    if cast is not None and val is not None:
        try:
            if cast is bool:
                return str(val).lower() in ("1", "true", "yes", "y")
            return cast(val)
        except (ValueError, TypeError):
            return default
    return val


# ───── live settings ──────────────────────────────────────────────────
@dataclass
class BotSettings:
    stake: float = 50.0
    take_profit: float = 100.0
    stop_loss: float = 50.0
    asset: str = "Volatility 100"
    strategy: StrategyType = StrategyType.AI_GEMINI
    credential: str = field(default="", repr=False)

    def validate(self) -> None:
        if not self.stake > 0:
            raise ValueError(f"stake must be > 0 (got {self.stake})")
        if self.take_profit < 0 or self.stop_loss < 0:
            raise ValueError("take_profit / stop_loss must be >= 0")
        if not self.asset:
            raise ValueError("asset must not be empty")
        if not isinstance(self.strategy, StrategyType):
            raise ValueError(f"unknown strategy {self.strategy!r}")

    def update(self, **changes: Any) -> "BotSettings":
        """Validate a copy first so a bad change never half-applies."""
        if "strategy" in changes and changes["strategy"] is not None:
            changes["strategy"] = StrategyType.parse(changes["strategy"])
        changes = {k: v for k, v in changes.items() if v is not None}
        unknown = set(changes) - {f.name for f in fields(self)}
        if unknown:
            raise ValueError(f"unknown setting(s): {', '.join(sorted(unknown))}")
        candidate = replace(self, **changes)
        candidate.validate()
        for k, v in changes.items():
            setattr(self, k, v)
        return self

    def to_dict(self) -> dict:
        return {
            "stake": self.stake,
            "take_profit": self.take_profit,
            "stop_loss": self.stop_loss,
            "asset": self.asset,
            "strategy": self.strategy.value,
            "live": bool(self.credential),
        }

    @classmethod
    def from_env(cls) -> "BotSettings":
        s = cls(
            stake=env("STAKE", 50.0, float),
            take_profit=env("TAKE_PROFIT", 100.0, float),
            stop_loss=env("STOP_LOSS", 50.0, float),
            asset=env("ASSET", "Volatility 100"),
            strategy=StrategyType.parse(env("STRATEGY", "AI_GEMINI")),
            credential=env("DERIV_TOKEN", ""),
        )
        s.validate()
        return s


# ───── per-deployment constants ───────────────────────────────────────
@dataclass(frozen=True)
class EngineConfig:
    hold_duration_ms: int = 5000
    rsi_period: int = 14
    rsi_overbought: float = 75.0
    rsi_oversold: float = 25.0
    sma_fast: int = 5
    sma_slow: int = 10
    ai_confidence_threshold: float = 75.0
    buffer_capacity: int = 60
    tick_interval_ms: int = 1000
    advisory_interval_ms: int = 5000
    advisory_window: int = 20
    advisory_timeout_s: float = 8.0
    advisory_backend: str = "gemini"
    gemini_api_key: str = field(default="", repr=False)
    gemini_model: str = "gemini-2.5-flash"
    initial_balance: float = 10_000.0
    initial_price: float = 6350.50
    payout_ratio: float = 0.95
    session_limits: bool = False
    heartbeat_s: float = 15.0

    @classmethod
    def from_env(cls) -> "EngineConfig":
        d = cls()
        return cls(
            hold_duration_ms=env("HOLD_DURATION_MS", d.hold_duration_ms, int),
            rsi_period=env("RSI_PERIOD", d.rsi_period, int),
            rsi_overbought=env("RSI_OVERBOUGHT", d.rsi_overbought, float),
            rsi_oversold=env("RSI_OVERSOLD", d.rsi_oversold, float),
            sma_fast=env("SMA_FAST", d.sma_fast, int),
            sma_slow=env("SMA_SLOW", d.sma_slow, int),
            ai_confidence_threshold=env("AI_CONFIDENCE", d.ai_confidence_threshold, float),
            buffer_capacity=env("BUFFER_CAPACITY", d.buffer_capacity, int),
            tick_interval_ms=env("TICK_INTERVAL_MS", d.tick_interval_ms, int),
            advisory_interval_ms=env("ADVISORY_INTERVAL_MS", d.advisory_interval_ms, int),
            advisory_window=env("ADVISORY_WINDOW", d.advisory_window, int),
            advisory_timeout_s=env("ADVISORY_TIMEOUT", d.advisory_timeout_s, float),
            advisory_backend=env("ADVISORY_BACKEND", d.advisory_backend).lower(),
            gemini_api_key=env("GEMINI_API_KEY", "") or env("API_KEY", ""),
            gemini_model=env("GEMINI_MODEL", d.gemini_model),
            initial_balance=env("INITIAL_BALANCE", d.initial_balance, float),
            initial_price=env("INITIAL_PRICE", d.initial_price, float),
            payout_ratio=env("PAYOUT_RATIO", d.payout_ratio, float),
            session_limits=env("SESSION_LIMITS", d.session_limits, bool),
            heartbeat_s=env("HEARTBEAT_SEC", d.heartbeat_s, float),
        )


__all__ = ["env", "BotSettings", "EngineConfig"]

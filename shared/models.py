"""
models.py – value types passed between the services
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Optional


class TradeType(str, Enum):
    CALL = "CALL"        # price goes up
    PUT = "PUT"          # price goes down


class TradeStatus(str, Enum):
    PENDING = "PENDING"
    WIN = "WIN"
    LOSS = "LOSS"
    CANCELLED = "CANCELLED"


class Signal(str, Enum):
    CALL = "CALL"
    PUT = "PUT"
    NONE = "NONE"

    def trade_type(self) -> Optional[TradeType]:
        return None if self is Signal.NONE else TradeType(self.value)


class StrategyType(str, Enum):
    AI_GEMINI = "AI_GEMINI"
    RSI_REVERSAL = "RSI_REVERSAL"
    SMA_CROSSOVER = "SMA_CROSSOVER"

    @classmethod
    def parse(cls, value: "str | StrategyType") -> "StrategyType":
        """Accepts the enum, its name (any case) or the short alias `AI`."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().upper()
        if key == "AI":
            return cls.AI_GEMINI
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"unknown strategy {value!r}") from None


class BotState(str, Enum):
    IDLE = "IDLE"
    ANALYZING = "ANALYZING"      # reserved, no transition leads here
    TRADING = "TRADING"
    STOPPED = "STOPPED"


@dataclass(frozen=True)
class Tick:
    time: int            # epoch ms
    price: float


@dataclass(frozen=True)
class IndicatorSnapshot:
    rsi: float = 50.0
    sma_fast: float = 0.0
    sma_slow: float = 0.0


@dataclass(frozen=True)
class Trade:
    id: str
    type: TradeType
    entry_price: float
    stake: float
    opened_at: int
    strategy_used: str
    status: TradeStatus = TradeStatus.PENDING
    profit: float = 0.0
    exit_price: Optional[float] = None

    def closed(self, status: TradeStatus, exit_price: float, profit: float) -> "Trade":
        return replace(self, status=status, exit_price=exit_price, profit=profit)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["type"] = self.type.value
        d["status"] = self.status.value
        return d


@dataclass(frozen=True)
class Advisory:
    recommendation: str          # CALL | PUT | HOLD
    reasoning: str
    confidence: float            # 0 … 100
    seq: int = 0
    at: int = 0

    @classmethod
    def hold(cls, reasoning: str) -> "Advisory":
        return cls("HOLD", reasoning, 0.0)

    def to_dict(self) -> dict:
        return asdict(self)

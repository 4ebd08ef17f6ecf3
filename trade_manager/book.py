"""
book.py – trade lifecycle
=========================
Owns the single active-trade slot, the append-only history and the
derived balance.  Binary payout: a win returns `stake * payout_ratio`,
a loss costs the whole stake.  Settlement happens exactly once, on the
first tick after the hold period.
"""

from __future__ import annotations

from typing import Optional, Tuple

import pandas as pd

from shared.config  import BotSettings
from shared.logging import get_logger
from shared.models  import Tick, Trade, TradeStatus, TradeType
from shared.utils   import new_trade_id

log = get_logger("trade_manager.book")


class TradeBook:
    def __init__(self, initial_balance: float = 10_000.0, payout_ratio: float = 0.95) -> None:
        self.initial_balance = initial_balance
        self.payout_ratio = payout_ratio
        self.active: Optional[Trade] = None
        self._history: list[Trade] = []

    # ─── read-only views ──────────────────────────────────────────
    @property
    def history(self) -> Tuple[Trade, ...]:
        return tuple(self._history)

    @property
    def session_profit(self) -> float:
        return sum(t.profit for t in self._history)

    @property
    def balance(self) -> float:
        """Initial balance plus every recorded profit."""
        return self.initial_balance + self.session_profit

    # ─── lifecycle ────────────────────────────────────────────────
    def open_trade(self, type_: TradeType, price: float,
                   settings: BotSettings, now: int) -> Optional[Trade]:
        if self.active is not None:
            log.debug("open %s rejected – %s still pending", type_.value, self.active.id)
            return None
        trade = Trade(
            id=new_trade_id(),
            type=type_,
            entry_price=price,
            stake=settings.stake,
            opened_at=now,
            strategy_used=settings.strategy.value,
        )
        self.active = trade
        log.info("%s → OPEN %s @ %.5f stake=%.2f (%s)",
                 trade.id, type_.value, price, trade.stake, trade.strategy_used)
        return trade

    def settlement_profit(self, trade: Trade, exit_price: float) -> float:
        diff = exit_price - trade.entry_price
        won = diff > 0 if trade.type is TradeType.CALL else diff < 0
        return trade.stake * self.payout_ratio if won else -trade.stake

    def try_settle(self, tick: Tick, now: int, hold_duration_ms: int) -> Optional[Trade]:
        trade = self.active
        if trade is None or now - trade.opened_at <= hold_duration_ms:
            return None
        profit = self.settlement_profit(trade, tick.price)
        status = TradeStatus.WIN if profit > 0 else TradeStatus.LOSS
        done = trade.closed(status, tick.price, profit)
        self._record(done)
        log.info("%s → %s @ %.5f (%+.2f) balance=%.2f",
                 done.id, status.value, tick.price, profit, self.balance)
        return done

    def cancel_active(self, price: Optional[float]) -> Optional[Trade]:
        """Forced stop: keep the trade on record as CANCELLED, no P/L."""
        trade = self.active
        if trade is None:
            return None
        exit_px = trade.entry_price if price is None else price
        done = trade.closed(TradeStatus.CANCELLED, exit_px, 0.0)
        self._record(done)
        log.warning("%s → CANCELLED (bot stopped while pending)", done.id)
        return done

    def _record(self, trade: Trade) -> None:
        self._history.append(trade)
        self.active = None

    # ─── reporting ────────────────────────────────────────────────
    def summary(self) -> dict:
        """Per-strategy and overall win/loss figures for the ops API."""
        empty = {"trades": 0, "wins": 0, "losses": 0, "cancelled": 0,
                 "win_rate": 0.0, "profit": 0.0}
        settled = [t.to_dict() for t in self._history]
        if not settled:
            return {"overall": empty, "by_strategy": {}, "balance": self.balance}

        df = pd.DataFrame(settled)
        df["win"] = df["status"] == TradeStatus.WIN.value
        df["loss"] = df["status"] == TradeStatus.LOSS.value
        df["cancelled"] = df["status"] == TradeStatus.CANCELLED.value

        def _figures(g: pd.DataFrame) -> dict:
            decided = int(g["win"].sum() + g["loss"].sum())
            return {
                "trades": int(len(g)),
                "wins": int(g["win"].sum()),
                "losses": int(g["loss"].sum()),
                "cancelled": int(g["cancelled"].sum()),
                "win_rate": round(float(g["win"].sum()) / decided, 4) if decided else 0.0,
                "profit": round(float(g["profit"].sum()), 2),
            }

        return {
            "overall": _figures(df),
            "by_strategy": {k: _figures(g) for k, g in df.groupby("strategy_used")},
            "balance": self.balance,
        }

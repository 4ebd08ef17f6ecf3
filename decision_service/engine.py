#!/usr/bin/env python3
"""
engine.py – live execution engine
=================================

Single owner of the mutable trading state: run state, rolling buffer,
indicators, trade book and balance.  Everything that mutates it is plain
synchronous code running on one asyncio loop, so the check-then-open of
the single-position rule can never interleave with another tick, an
advisory or a REST call.

Per tick
--------
1. push into the rolling buffer
2. recompute RSI + fast/slow SMA from the whole window
3. active trade?  → settle once the hold period has elapsed
   otherwise      → ask the strategy (only while TRADING and not paused)

Producers
---------
• tick source   – DerivClient (credential set) or SyntheticFeed
• advisory      – AdvisoryPoller, AI strategy only, own 5 s timer
• supervisor    – Redis heartbeat + kill-switch, every HEARTBEAT_SEC

Stop policy
-----------
A trade still pending when the bot is stopped is recorded as CANCELLED
(profit 0, balance untouched) instead of silently vanishing.
"""

from __future__ import annotations

import asyncio
import random
from typing import Any, Callable, Dict, Optional

from data_loader.buffer     import RollingBuffer
from data_loader.synthetic  import SyntheticFeed
from model_service.inference import Oracle, build_oracle
from model_service.infer_loop import AdvisoryCell, AdvisoryPoller
from shared.config          import BotSettings, EngineConfig
from shared.logging         import get_logger
from shared.models          import BotState, IndicatorSnapshot, StrategyType, Tick, Trade, TradeType
from shared.redis_client    import heartbeat, trading_paused
from shared.utils           import asset_symbol, now_ms
from trade_executor.deriv_client import DerivClient
from trade_executor.executor import OrderExecutor
from trade_manager.book     import TradeBook

from . import rules
from .decision import evaluate

log = get_logger("decision_service.engine")

LOCKED_WHILE_PENDING = ("stake", "strategy")


class SettingsLocked(RuntimeError):
    """Stake / strategy may not change while a trade is pending."""


class Engine:
    def __init__(
        self,
        settings: BotSettings,
        cfg: Optional[EngineConfig] = None,
        book: Optional[TradeBook] = None,
        oracle: Optional[Oracle] = None,
        executor: Optional[OrderExecutor] = None,
        clock: Callable[[], int] = now_ms,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.settings = settings
        self.cfg = cfg or EngineConfig()
        self.book = book or TradeBook(self.cfg.initial_balance, self.cfg.payout_ratio)
        self.buffer = RollingBuffer(self.cfg.buffer_capacity)
        self.indicators = IndicatorSnapshot()
        self.state = BotState.IDLE
        self.paused = False
        self.epoch = 0
        self.clock = clock
        self.rng = rng or random.Random()

        self.advisory = AdvisoryCell()
        self.advisory.reset("Initializing…")
        self.last_acted_seq: Optional[int] = None
        self.poller = AdvisoryPoller(
            oracle or build_oracle(self.cfg, lambda: self.settings.asset),
            self.advisory,
            self.buffer.prices,
            lambda: self.epoch,
            self.cfg.advisory_interval_ms,
            self.cfg.advisory_window,
            self.cfg.advisory_timeout_s,
        )
        self.executor = executor or OrderExecutor()
        self.source: Any = None
        self.last_confirmation: Optional[Dict[str, Any]] = None

        self._control = asyncio.Lock()
        self._session_base = 0.0
        self._teardown: Optional[asyncio.Task] = None
        self._supervisor: Optional[asyncio.Task] = None

    # ─── read-only helpers ────────────────────────────────────────
    @property
    def running(self) -> bool:
        return self.state is BotState.TRADING

    @property
    def last_price(self) -> float:
        tick = self.buffer.last()
        return tick.price if tick else self.cfg.initial_price

    @property
    def session_profit(self) -> float:
        return self.book.session_profit - self._session_base

    # ─── tick path (synchronous, never awaits) ────────────────────
    def on_tick(self, tick: Tick) -> Optional[Trade]:
        """Returns the trade opened or settled on this tick, if any."""
        self.buffer.push(tick)
        self.indicators = rules.snapshot(self.buffer.prices(), self.cfg)

        if self.book.active is not None:
            done = self.book.try_settle(tick, self.clock(), self.cfg.hold_duration_ms)
            if done is not None:
                self._check_session_limits()
            return done

        if not self.running or self.paused:
            return None

        signal = evaluate(
            self.settings.strategy,
            self.indicators,
            self.buffer.prices(),
            self.book.active is not None,
            self.cfg,
            self.advisory.latest,
            self.last_acted_seq,
        )
        type_ = signal.trade_type()
        return None if type_ is None else self.open_trade(type_, tick.price)

    def open_trade(self, type_: TradeType, price: float) -> Optional[Trade]:
        trade = self.book.open_trade(type_, price, self.settings, self.clock())
        if trade is None:
            return None
        if self.settings.strategy is StrategyType.AI_GEMINI and self.advisory.latest:
            self.last_acted_seq = self.advisory.latest.seq
        if self.settings.credential:
            self.executor.submit(trade)
        return trade

    def on_trade_confirmation(self, payload: Dict[str, Any]) -> None:
        self.last_confirmation = payload
        log.info("broker confirmation contract=%s", payload.get("contract_id"))

    def _check_session_limits(self) -> None:
        if not self.cfg.session_limits or not self.running:
            return
        p = self.session_profit
        tp, sl = self.settings.take_profit, self.settings.stop_loss
        if (tp and p >= tp) or (sl and p <= -sl):
            log.warning("session limit hit (%+.2f, tp=%.2f sl=%.2f) – stopping", p, tp, sl)
            self._halt()
            self._teardown = asyncio.get_running_loop().create_task(self._release_after_halt())

    async def _release_after_halt(self) -> None:
        async with self._control:
            if not self.running:            # a restart already swapped the source
                await self._release()

    # ─── run-state control ────────────────────────────────────────
    async def start(self) -> bool:
        async with self._control:
            if self.running:
                return False
            self.epoch += 1
            self._session_base = self.book.session_profit
            self.state = BotState.TRADING
            await self._switch_source()
            await self._sync_poller()
            log.info("bot TRADING – strategy=%s source=%s",
                     self.settings.strategy.value, self.source.name)
            return True

    async def stop(self) -> bool:
        async with self._control:
            if not self.running:
                return False
            self._halt()
            await self._release()
            return True

    def _halt(self) -> None:
        """Synchronous half of stop: no new trades, pending one cancelled."""
        self.state = BotState.STOPPED
        self.epoch += 1
        self.book.cancel_active(self.last_price)
        log.info("bot STOPPED – balance=%.2f", self.book.balance)

    async def _release(self) -> None:
        source, self.source = self.source, None
        self.executor.gateway = None
        if source is not None:
            await source.stop()
        await self.poller.stop()

    async def _switch_source(self) -> None:
        old, self.source = self.source, None
        self.executor.gateway = None
        if old is not None:
            await old.stop()

        if self.settings.credential:
            src: Any = DerivClient(
                self.settings.credential, self.on_tick, self.on_trade_confirmation,
                symbol=asset_symbol(self.settings.asset),
            )
            self.executor.gateway = src.submit_order
        else:
            if not len(self.buffer):
                self.buffer.initialize_with_synthetic(
                    self.cfg.initial_price, self.cfg.buffer_capacity,
                    now=self.clock(), interval_ms=self.cfg.tick_interval_ms, rng=self.rng,
                )
                self.indicators = rules.snapshot(self.buffer.prices(), self.cfg)
            src = SyntheticFeed(
                self.on_tick, lambda: self.last_price,
                self.cfg.tick_interval_ms, rng=self.rng, clock=self.clock,
            )
        self.source = src
        src.start()

    async def _sync_poller(self) -> None:
        wanted = self.running and self.settings.strategy is StrategyType.AI_GEMINI
        if wanted and not self.poller.running:
            self.advisory.reset()
            self.poller.start()
        elif not wanted:
            await self.poller.stop()

    async def update_settings(self, **changes: Any) -> BotSettings:
        async with self._control:
            if self.book.active is not None:
                if changes.get("strategy") is not None:
                    changes["strategy"] = StrategyType.parse(changes["strategy"])
                locked = [k for k in LOCKED_WHILE_PENDING
                          if changes.get(k) is not None and changes[k] != getattr(self.settings, k)]
                if locked:
                    raise SettingsLocked(f"{', '.join(locked)} locked while trade pending")
            feed_before = (self.settings.credential, self.settings.asset)
            self.settings.update(**changes)
            feed_changed = (self.settings.credential, self.settings.asset) != feed_before
            if self.running:
                if feed_changed:
                    await self._switch_source()
                await self._sync_poller()
            return self.settings

    async def set_credential(self, token: str) -> None:
        await self.update_settings(credential=token)

    # ─── ops supervision ──────────────────────────────────────────
    def start_supervisor(self) -> None:
        if self._supervisor is None or self._supervisor.done():
            self._supervisor = asyncio.get_running_loop().create_task(
                self._supervise(), name="engine-supervisor")

    async def _supervise(self) -> None:
        while True:
            await asyncio.to_thread(heartbeat, "engine")
            paused = await asyncio.to_thread(trading_paused)
            if paused != self.paused:
                log.warning("kill-switch %s", "raised – no new trades" if paused else "cleared")
            self.paused = paused
            await asyncio.sleep(self.cfg.heartbeat_s)

    async def shutdown(self) -> None:
        await self.stop()
        if self._teardown is not None:
            await self._teardown
        if self._supervisor is not None:
            self._supervisor.cancel()
            try:
                await self._supervisor
            except asyncio.CancelledError:
                pass
            self._supervisor = None
        await self.executor.drain()

    # ─── reporting ────────────────────────────────────────────────
    def status(self) -> Dict[str, Any]:
        active = self.book.active
        latest = self.advisory.latest
        return {
            "state": self.state.value,
            "paused": self.paused,
            "source": self.source.name if self.source else None,
            "balance": round(self.book.balance, 2),
            "session_profit": round(self.session_profit, 2),
            "last_price": self.last_price,
            "ticks": len(self.buffer),
            "indicators": {
                "rsi": round(self.indicators.rsi, 2),
                "sma_fast": self.indicators.sma_fast,
                "sma_slow": self.indicators.sma_slow,
            },
            "active_trade": active.to_dict() if active else None,
            "advisory": latest.to_dict() if latest else None,
            "settings": self.settings.to_dict(),
        }

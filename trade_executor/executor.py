#!/usr/bin/env python3
"""
executor.py – fire-and-forget order submission
----------------------------------------------
* Engine opened a trade locally      →  schedule the broker `buy`.
* No gateway (simulation mode)       →  DRY-RUN log line only.
* Gateway failure                    →  logged; local settlement is
                                        never waiting on the broker.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, Set

from shared.logging import get_logger
from shared.models  import Trade, TradeType

log = get_logger("trade_executor")

Gateway = Callable[[TradeType, float], Awaitable[bool]]


class OrderExecutor:
    def __init__(self, gateway: Optional[Gateway] = None) -> None:
        self.gateway = gateway
        self._inflight: Set[asyncio.Task] = set()

    @property
    def dry_run(self) -> bool:
        return self.gateway is None

    def submit(self, trade: Trade) -> Optional[asyncio.Task]:
        gateway = self.gateway
        if gateway is None:
            log.info("DRY-RUN order %s %s %.2f", trade.id, trade.type.value, trade.stake)
            return None
        # bound now: a stop or source switch may swap the gateway before the task runs
        task = asyncio.get_running_loop().create_task(
            self._send(trade, gateway), name=f"order-{trade.id}")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def _send(self, trade: Trade, gateway: Gateway) -> bool:
        try:
            ok = await gateway(trade.type, trade.stake)
        except Exception:                                    # noqa: BLE001
            log.exception("order %s failed", trade.id)
            return False
        if not ok:
            log.warning("order %s not accepted by gateway", trade.id)
        return ok

    async def drain(self) -> None:
        """Wait for in-flight submissions (used on shutdown and in tests)."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

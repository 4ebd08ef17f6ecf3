"""
synthetic.py – offline tick generator
-------------------------------------
Used whenever no Deriv credential is configured: one tick every
`interval_ms`, random-walking from the engine's last price.
"""

from __future__ import annotations

import asyncio
import random
from typing import Callable, Optional

from shared.constants import SYNTH_STEP
from shared.logging import get_logger
from shared.models import Tick
from shared.utils import now_ms

log = get_logger("data_loader.synthetic")


class SyntheticFeed:
    name = "synthetic"

    def __init__(
        self,
        on_tick: Callable[[Tick], None],
        last_price: Callable[[], float],
        interval_ms: int = 1000,
        step: float = SYNTH_STEP,
        rng: Optional[random.Random] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.on_tick = on_tick
        self.last_price = last_price
        self.interval = interval_ms / 1000
        self.step = step
        self.rng = rng or random.Random()
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def next_tick(self) -> Tick:
        change = (self.rng.random() - 0.5) * self.step
        return Tick(time=self.clock(), price=self.last_price() + change)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="synthetic-feed")
        log.info("synthetic feed started (every %.1f s)", self.interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log.info("synthetic feed stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.on_tick(self.next_tick())
            except Exception:                                # noqa: BLE001
                log.exception("tick handler failed")

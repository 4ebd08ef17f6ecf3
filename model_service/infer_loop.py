"""
infer_loop.py – advisory poller
-------------------------------
Runs on its own timer, independent of tick arrival.  Each cycle sends
the newest window to the oracle and publishes the answer into a
single-writer cell that the tick path reads without blocking.  A
recommendation may be a few ticks old by the time it is acted on.
"""
from __future__ import annotations

import asyncio
from typing import Callable, List, Optional

from shared.logging import get_logger
from shared.models  import Advisory
from shared.utils   import now_ms
from .inference     import Oracle

log = get_logger("model_service.poller")


class AdvisoryCell:
    """Latest advisory; every publish gets the next sequence number."""

    def __init__(self) -> None:
        self._seq = 0
        self.latest: Optional[Advisory] = None

    def publish(self, advisory: Advisory, at: Optional[int] = None) -> Advisory:
        self._seq += 1
        self.latest = Advisory(
            advisory.recommendation, advisory.reasoning, advisory.confidence,
            seq=self._seq, at=now_ms() if at is None else at,
        )
        return self.latest

    def reset(self, reasoning: str = "Waiting for analysis.") -> None:
        self.publish(Advisory.hold(reasoning))


class AdvisoryPoller:
    def __init__(
        self,
        oracle: Oracle,
        cell: AdvisoryCell,
        prices: Callable[[], List[float]],
        epoch: Callable[[], int],
        interval_ms: int = 5000,
        window: int = 20,
        timeout_s: float = 8.0,
    ) -> None:
        self.oracle = oracle
        self.cell = cell
        self.prices = prices
        self.epoch = epoch
        self.interval = interval_ms / 1000
        self.window = window
        self.timeout = timeout_s
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> Optional[Advisory]:
        prices = self.prices()
        if len(prices) < self.window:
            log.debug("advisory skipped – %d/%d prices", len(prices), self.window)
            return None

        started_in = self.epoch()
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(self.oracle.analyze, prices[-self.window:]),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            log.warning("advisory timed out after %.1f s – holding", self.timeout)
            result = Advisory.hold("Oracle timed out, waiting…")
        except Exception as exc:                               # noqa: BLE001
            log.warning("advisory failed – %s", exc)
            result = Advisory.hold("Oracle unavailable, waiting…")

        if self.epoch() != started_in:
            log.info("advisory discarded – bot stopped while in flight")
            return None
        published = self.cell.publish(result)
        log.info("advisory #%d %s (%.0f%%)",
                 published.seq, published.recommendation, published.confidence)
        return published

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="advisory-poller")
        log.info("advisory poller started (every %.1f s)", self.interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log.info("advisory poller stopped")

    def _current(self) -> bool:
        # wait_for on 3.10/3.11 can swallow a cancel that lands as the
        # worker thread returns; a detached task must still exit.
        return self._task is asyncio.current_task()

    async def _run(self) -> None:
        while self._current():
            await self.run_once()
            if not self._current():
                return
            await asyncio.sleep(self.interval)

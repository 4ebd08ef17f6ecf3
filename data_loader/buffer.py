"""
buffer.py – fixed-capacity tick window
======================================
Newest tick appended on the right; once full, every push evicts the
oldest one (FIFO).  Only the engine mutates it.
"""

from __future__ import annotations

import random
from collections import deque
from typing import Deque, List, Optional, Tuple

from shared.constants import BUFFER_CAPACITY, SEED_AMPLITUDE
from shared.models import Tick
from shared.utils import now_ms


class RollingBuffer:
    def __init__(self, capacity: int = BUFFER_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._ticks: Deque[Tick] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._ticks)

    def push(self, tick: Tick) -> Tuple[Tick, ...]:
        self._ticks.append(tick)
        return self.view()

    def view(self) -> Tuple[Tick, ...]:
        return tuple(self._ticks)

    def prices(self) -> List[float]:
        return [t.price for t in self._ticks]

    def last(self) -> Optional[Tick]:
        return self._ticks[-1] if self._ticks else None

    def initialize_with_synthetic(
        self,
        seed_price: float,
        count: int,
        amplitude: float = SEED_AMPLITUDE,
        now: Optional[int] = None,
        interval_ms: int = 1000,
        rng: Optional[random.Random] = None,
    ) -> Tuple[Tick, ...]:
        """
        Pre-populate with a bounded random walk ending one interval before
        *now*: `price += uniform(-1, 1) * amplitude` per step.
        """
        rng = rng or random.Random()
        end = now_ms() if now is None else now
        price = seed_price
        for i in range(count, 0, -1):
            price += rng.uniform(-1.0, 1.0) * amplitude
            self._ticks.append(Tick(time=end - i * interval_ms, price=price))
        return self.view()

import asyncio
import unittest
import random
import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from data_loader.buffer import RollingBuffer
from data_loader.synthetic import SyntheticFeed
from shared.models import Tick


class TestRollingBuffer(unittest.TestCase):
    def test_evicts_oldest_when_full(self):
        buf = RollingBuffer(60)
        for p in range(1, 62):
            view = buf.push(Tick(time=p * 1000, price=float(p)))
        self.assertEqual(len(buf), 60)
        self.assertEqual(buf.prices(), [float(p) for p in range(2, 62)])
        self.assertEqual(view[0].price, 2.0)
        self.assertEqual(view[-1].price, 61.0)

    def test_never_exceeds_capacity(self):
        buf = RollingBuffer(3)
        for i in range(10):
            buf.push(Tick(i, float(i)))
            self.assertLessEqual(len(buf), 3)

    def test_last_and_empty(self):
        buf = RollingBuffer(5)
        self.assertIsNone(buf.last())
        buf.push(Tick(1, 9.5))
        self.assertEqual(buf.last(), Tick(1, 9.5))

    def test_invalid_capacity(self):
        with self.assertRaises(ValueError):
            RollingBuffer(0)

    def test_synthetic_seed_is_bounded_walk(self):
        buf = RollingBuffer(60)
        view = buf.initialize_with_synthetic(
            6350.5, 60, amplitude=1.0, now=100_000, interval_ms=1000, rng=random.Random(7))
        self.assertEqual(len(view), 60)
        prev = 6350.5
        for tick in view:
            self.assertLessEqual(abs(tick.price - prev), 1.0)
            prev = tick.price
        self.assertEqual(view[0].time, 40_000)
        self.assertEqual(view[-1].time, 99_000)

    def test_seed_respects_capacity(self):
        buf = RollingBuffer(10)
        buf.initialize_with_synthetic(100.0, 25, now=0, rng=random.Random(1))
        self.assertEqual(len(buf), 10)


class TestSyntheticFeed(unittest.IsolatedAsyncioTestCase):
    async def test_next_tick_walks_from_last_price(self):
        feed = SyntheticFeed(lambda t: None, lambda: 6350.5, rng=random.Random(5),
                             clock=lambda: 42)
        tick = feed.next_tick()
        self.assertEqual(tick.time, 42)
        self.assertLessEqual(abs(tick.price - 6350.5), 1.5)

    async def test_emits_until_stopped(self):
        seen = []
        feed = SyntheticFeed(seen.append, lambda: 100.0, interval_ms=5)
        feed.start()
        self.assertTrue(feed.running)
        await asyncio.sleep(0.05)
        await feed.stop()
        self.assertFalse(feed.running)
        count = len(seen)
        self.assertGreater(count, 0)
        await asyncio.sleep(0.02)
        self.assertEqual(len(seen), count)

    async def test_handler_error_does_not_kill_feed(self):
        calls = []

        def boom(tick):
            calls.append(tick)
            raise RuntimeError("handler")

        feed = SyntheticFeed(boom, lambda: 100.0, interval_ms=5)
        feed.start()
        await asyncio.sleep(0.05)
        self.assertTrue(feed.running)
        await feed.stop()
        self.assertGreater(len(calls), 1)


if __name__ == '__main__':
    unittest.main()

import asyncio
import time
import unittest
import sys
import os
from unittest.mock import MagicMock

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from model_service.infer_loop import AdvisoryCell, AdvisoryPoller
from shared.models import Advisory


class SlowOracle:
    def __init__(self, delay):
        self.delay = delay

    def analyze(self, prices):
        time.sleep(self.delay)
        return Advisory("CALL", "late", 99.0)


class TestAdvisoryCell(unittest.TestCase):
    def test_sequence_grows(self):
        cell = AdvisoryCell()
        a = cell.publish(Advisory("CALL", "x", 80.0), at=1)
        b = cell.publish(Advisory("PUT", "y", 90.0), at=2)
        self.assertEqual((a.seq, b.seq), (1, 2))
        self.assertIs(cell.latest, b)
        cell.reset()
        self.assertEqual((cell.latest.recommendation, cell.latest.confidence, cell.latest.seq),
                         ("HOLD", 0.0, 3))


class TestAdvisoryPoller(unittest.IsolatedAsyncioTestCase):
    def make(self, oracle, prices, epoch=lambda: 1, timeout=1.0, interval_ms=5000):
        self.cell = AdvisoryCell()
        return AdvisoryPoller(oracle, self.cell, lambda: list(prices), epoch,
                              interval_ms=interval_ms, window=20, timeout_s=timeout)

    async def test_skips_short_history(self):
        oracle = MagicMock()
        poller = self.make(oracle, [1.0] * 19)
        self.assertIsNone(await poller.run_once())
        oracle.analyze.assert_not_called()
        self.assertIsNone(self.cell.latest)

    async def test_sends_last_window_and_publishes(self):
        oracle = MagicMock()
        oracle.analyze.return_value = Advisory("PUT", "down", 81.0)
        poller = self.make(oracle, [float(i) for i in range(60)])

        adv = await poller.run_once()

        sent = oracle.analyze.call_args[0][0]
        self.assertEqual(sent, [float(i) for i in range(40, 60)])
        self.assertEqual((adv.recommendation, adv.confidence, adv.seq), ("PUT", 81.0, 1))
        self.assertIs(self.cell.latest, adv)

    async def test_timeout_falls_back_to_hold(self):
        poller = self.make(SlowOracle(0.5), [1.0] * 20, timeout=0.05)
        self.cell.publish(Advisory("CALL", "stale", 95.0))

        adv = await poller.run_once()

        self.assertEqual((adv.recommendation, adv.confidence), ("HOLD", 0.0))
        self.assertEqual(self.cell.latest.recommendation, "HOLD")

    async def test_oracle_error_falls_back_to_hold(self):
        oracle = MagicMock()
        oracle.analyze.side_effect = RuntimeError("quota exceeded")
        poller = self.make(oracle, [1.0] * 20)
        adv = await poller.run_once()
        self.assertEqual((adv.recommendation, adv.confidence), ("HOLD", 0.0))

    async def test_result_discarded_after_stop(self):
        epoch = {"n": 1}

        class BumpingOracle:
            def analyze(self, prices):
                epoch["n"] += 1            # bot stopped while the call was in flight
                return Advisory("CALL", "x", 99.0)

        poller = self.make(BumpingOracle(), [1.0] * 20, epoch=lambda: epoch["n"])
        self.assertIsNone(await poller.run_once())
        self.assertIsNone(self.cell.latest)

    async def test_start_stop(self):
        oracle = MagicMock()
        oracle.analyze.return_value = Advisory("CALL", "x", 50.0)
        poller = self.make(oracle, [1.0] * 20, interval_ms=10)
        poller.start()
        self.assertTrue(poller.running)
        await asyncio.sleep(0.1)
        await poller.stop()
        self.assertFalse(poller.running)
        calls = oracle.analyze.call_count
        self.assertGreaterEqual(calls, 2)
        await asyncio.sleep(0.05)
        self.assertLessEqual(oracle.analyze.call_count, calls + 1)

    async def test_stop_when_cycle_absorbs_cancel(self):
        poller = self.make(MagicMock(), [1.0] * 20, interval_ms=10)
        cycles = []

        async def absorbing_cycle():
            # a cancel lost inside wait_for looks like a normal return
            cycles.append(1)
            try:
                await asyncio.sleep(0.05)
            except asyncio.CancelledError:
                pass
            return None

        poller.run_once = absorbing_cycle
        poller.start()
        await asyncio.sleep(0.01)
        await asyncio.wait_for(poller.stop(), timeout=1.0)
        self.assertFalse(poller.running)
        seen = len(cycles)
        await asyncio.sleep(0.05)
        self.assertEqual(len(cycles), seen)


if __name__ == '__main__':
    unittest.main()
